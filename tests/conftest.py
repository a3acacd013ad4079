import os
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

# logs de auditoria são sempre gravados; nos testes vão para um diretório temporário
os.environ.setdefault("ESTOQUE_PET_LOG_DIR", tempfile.mkdtemp(prefix="estoque_pet_logs_"))

from estoque_pet.infra.db import connect
from estoque_pet.infra.memoria import MemoriaRepositorioEstoque
from estoque_pet.infra.migrations import apply_migrations
from estoque_pet.infra.repositories import SqliteRepositorioEstoque
from estoque_pet.infra.views import create_views


class RelogioFixo:
    """Relógio determinístico: cada chamada avança `passo`."""

    def __init__(self, inicio=datetime(2025, 3, 10, 9, 0, 0), passo=timedelta(minutes=1)):
        self.atual = inicio
        self.passo = passo

    def __call__(self):
        valor = self.atual
        self.atual += self.passo
        return valor


def novo_sqlite(tmp_path, relogio=datetime.now, nome="estoque_test.sqlite"):
    db_path = str(tmp_path / nome)
    apply_migrations(db_path)
    create_views(db_path)
    return SqliteRepositorioEstoque(db_path, relogio=relogio)


def corromper_saldo(repo, produto_id, valor):
    """Altera o saldo em cache por fora do razão (simula escrita indevida)."""
    if isinstance(repo, SqliteRepositorioEstoque):
        with connect(repo.db_path) as c:
            c.execute("UPDATE produto SET estoque_atual = ? WHERE id = ?", (valor, produto_id))
    else:
        repo._produtos[produto_id] = replace(repo._produtos[produto_id], estoque_atual=valor)


@pytest.fixture
def relogio():
    return RelogioFixo()


@pytest.fixture(params=["memoria", "sqlite"])
def repo(request, tmp_path, relogio):
    if request.param == "memoria":
        return MemoriaRepositorioEstoque(relogio=relogio)
    return novo_sqlite(tmp_path, relogio)


@pytest.fixture
def corromper():
    return corromper_saldo


@pytest.fixture
def sqlite_repo(tmp_path):
    """Repositório SQLite com relógio real (testes de concorrência e CLI)."""
    return novo_sqlite(tmp_path)


@pytest.fixture(params=["memoria", "sqlite"])
def repo_real(request, tmp_path):
    """Repositórios com relógio real (testes de concorrência)."""
    if request.param == "memoria":
        return MemoriaRepositorioEstoque()
    return novo_sqlite(tmp_path)
