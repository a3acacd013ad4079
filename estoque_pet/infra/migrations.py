# estoque_pet/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (params, produto, movimentacao, contagem de inventário)
V2: índices de consulta e triggers que tornam o razão somente-inclusão
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Preferências K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Referência de produto (estoque_atual é escrito apenas pelo razão)
    """
    CREATE TABLE IF NOT EXISTS produto (
        id TEXT PRIMARY KEY,
        sku TEXT NOT NULL UNIQUE,
        nome TEXT NOT NULL,
        unidade TEXT NOT NULL DEFAULT 'UN',
        ativo INTEGER NOT NULL DEFAULT 1,
        estoque_minimo REAL,
        data_validade TEXT,
        estoque_atual REAL NOT NULL DEFAULT 0,
        saldo_inicial REAL NOT NULL DEFAULT 0,
        versao INTEGER NOT NULL DEFAULT 0,
        bloqueado INTEGER NOT NULL DEFAULT 0,
        criado_em TEXT
    );
    """,
    # Razão de movimentações
    """
    CREATE TABLE IF NOT EXISTS movimentacao (
        id TEXT PRIMARY KEY,
        produto_id TEXT NOT NULL,
        sequencia INTEGER NOT NULL,
        tipo TEXT NOT NULL CHECK (tipo IN ('ENTRADA', 'SAIDA', 'AJUSTE')),
        data TEXT NOT NULL,
        quantidade_delta REAL NOT NULL,
        saldo_anterior REAL NOT NULL,
        saldo_resultante REAL NOT NULL,
        sku TEXT,
        nome_produto TEXT,
        quantidade REAL,
        custo_unitario REAL,
        motivo TEXT,          -- 'VENDA' | 'PERDA' | 'CONSUMO' | 'OUTRO'
        motivo_detalhe TEXT,
        origem TEXT,          -- 'COMPRA' | 'VENDA' | 'PERDA' | 'INVENTARIO' | 'MANUAL'
        documento TEXT,
        observacao TEXT,
        usuario TEXT,
        estoque_minimo_anterior REAL,
        estoque_minimo_novo REAL,
        UNIQUE (produto_id, sequencia),
        FOREIGN KEY (produto_id) REFERENCES produto(id)
    );
    """,
    # Contagens de inventário
    """
    CREATE TABLE IF NOT EXISTS contagem_inventario (
        id TEXT PRIMARY KEY,
        tipo TEXT NOT NULL,   -- 'CEGA' | 'PARCIAL'
        status TEXT NOT NULL, -- 'ABERTA' | 'EM_CONTAGEM' | 'FINALIZADA' | 'CANCELADA'
        criado_em TEXT,
        finalizada_em TEXT,
        observacao TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS contagem_item (
        contagem_id TEXT NOT NULL,
        produto_id TEXT NOT NULL,
        sku TEXT,
        nome TEXT,
        sistema_na_abertura REAL NOT NULL,
        contagem REAL,
        PRIMARY KEY (contagem_id, produto_id),
        FOREIGN KEY (contagem_id) REFERENCES contagem_inventario(id) ON DELETE CASCADE,
        FOREIGN KEY (produto_id) REFERENCES produto(id)
    );
    """,
]

SCHEMA_V2: List[str] = [
    "CREATE INDEX IF NOT EXISTS idx_mov_produto_seq ON movimentacao(produto_id, sequencia);",
    "CREATE INDEX IF NOT EXISTS idx_mov_data        ON movimentacao(data);",
    "CREATE INDEX IF NOT EXISTS idx_mov_tipo        ON movimentacao(tipo);",
    "CREATE INDEX IF NOT EXISTS idx_produto_ativo   ON produto(ativo);",
    """
    CREATE TRIGGER IF NOT EXISTS trg_movimentacao_sem_update
    BEFORE UPDATE ON movimentacao
    BEGIN
        SELECT RAISE(ABORT, 'movimentacao e somente-inclusao');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_movimentacao_sem_delete
    BEFORE DELETE ON movimentacao
    BEGIN
        SELECT RAISE(ABORT, 'movimentacao e somente-inclusao');
    END;
    """,
]


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    for sql in SCHEMA_V2:
        conn.executescript(sql)


def _enable_wal(db_path: str) -> None:
    # Leitores enxergam o último commit sem bloquear o escritor
    with connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode = WAL;")


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    _enable_wal(db_path)
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
