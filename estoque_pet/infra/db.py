# estoque_pet/infra/db.py
"""
Utilidades de conexão SQLite.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from estoque_pet.config import DEFAULTS


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - commit ao sair (rollback em caso de exceção)
    """
    conn = sqlite3.connect(db_path, timeout=DEFAULTS.timeout_bloqueio_s)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transacao(
    db_path: str,
    timeout: float = DEFAULTS.timeout_bloqueio_s,
    modo: str = "IMMEDIATE",
) -> Iterator[sqlite3.Connection]:
    """
    Transação explícita; por padrão de escrita, com `BEGIN IMMEDIATE`.

    - Adquire o lock de escrita do banco antes da primeira leitura, de modo
      que ler saldo, gravar movimentação e atualizar produto acontecem sem
      outro escritor no meio.
    - Se o lock não for obtido em `timeout` segundos, o sqlite3 levanta
      `OperationalError('database is locked')`; o chamador traduz.
    - `modo="DEFERRED"` serve para leituras que precisam de um retrato único
      do banco (várias consultas enxergando o mesmo commit).
    """
    conn = sqlite3.connect(db_path, timeout=timeout, isolation_level=None)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"BEGIN {modo};")
        yield conn
        conn.execute("COMMIT;")
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK;")
        raise
    finally:
        conn.close()
