from datetime import date, timedelta

import pytest

from estoque_pet.adapters.servico import ServicoEstoque, payload_de_body
from estoque_pet.domain.errors import ConflictError
from estoque_pet.domain.models import TipoMovimento
from estoque_pet.infra.memoria import MemoriaRepositorioEstoque
from estoque_pet.usecases.razao import Razao

HOJE = date(2025, 3, 10)


@pytest.fixture
def servico(repo):
    return ServicoEstoque(repo)


def _produto(servico, sku="RAC-15", **kw):
    kw.setdefault("saldo_inicial", 50)
    kw.setdefault("estoque_minimo", 10)
    return Razao(servico.repo).cadastrar_produto(sku, f"Produto {sku}", **kw)


def test_payload_de_body_ajuste():
    assert payload_de_body({"tipo": "AJUSTE", "quantidade": 0})["alterar_saldo"] is True
    p = payload_de_body({"tipo": "ajuste", "estoqueMinimo": 4})
    assert p["alterar_saldo"] is False
    assert p["alterar_minimo"] is True
    assert p["novo_minimo"] == 4
    p = payload_de_body({"tipo": "AJUSTE", "quantidade": 3, "alterarSaldo": False})
    assert p["alterar_saldo"] is False
    assert payload_de_body({"tipo": TipoMovimento.AJUSTE, "estoqueMinimo": 2})["alterar_minimo"] is True


def test_payload_de_body_entrada():
    p = payload_de_body({"tipo": "ENTRADA", "quantidade": 2, "custoUnit": 5, "documento": "NF-9"})
    assert p["quantidade"] == 2
    assert p["custo_unitario"] == 5
    assert p["documento"] == "NF-9"


def test_post_movement_cenario_completo(servico):
    p = _produto(servico)

    r = servico.post_movement({"tipo": "ENTRADA", "produtoId": p.id, "quantidade": 20, "custoUnit": 5.0})
    assert r["product"]["estoque_atual"] == 70
    assert r["movement"]["tipo"] == "ENTRADA"

    r = servico.post_movement({"tipo": "SAIDA", "produtoId": p.id, "quantidade": 65, "motivo": "Venda"})
    assert r["product"]["estoque_atual"] == 5
    assert r["movement"]["motivo"] == "VENDA"

    r = servico.post_movement({"tipo": "AJUSTE", "produtoId": p.id, "quantidade": 0, "alterarSaldo": True})
    assert r["product"]["estoque_atual"] == 0
    assert r["movement"]["quantidade_delta"] == -5


def test_post_movement_erros_viram_dicionario(servico):
    p = _produto(servico, saldo_inicial=1)
    assert servico.post_movement({"tipo": "SAIDA", "produtoId": p.id, "quantidade": 0})["erro"] == "invalid_quantity"
    assert servico.post_movement({"tipo": "AJUSTE", "produtoId": p.id})["erro"] == "no_operation_selected"
    assert servico.post_movement({"tipo": "SAIDA", "produtoId": "x", "quantidade": 1})["erro"] == "product_not_found"
    r = servico.post_movement({"tipo": "SAIDA", "produtoId": p.id, "quantidade": 2})
    assert r["erro"] == "insufficient_stock"
    assert r["disponivel"] == 1
    r = servico.post_movement({"tipo": "ENTRADA", "produtoId": p.id, "quantidade": 1, "versao": 7})
    assert r["erro"] == "conflict"
    assert servico.repo.obter_produto(p.id).estoque_atual == 1


class _RepoComConflito(MemoriaRepositorioEstoque):
    """Falha com ConflictError nas primeiras `falhas` escritas."""

    def __init__(self, falhas):
        super().__init__()
        self.falhas = falhas
        self.tentativas = 0

    def aplicar_movimento(self, produto_id, montar, versao_esperada=None):
        self.tentativas += 1
        if self.tentativas <= self.falhas:
            raise ConflictError("lock de escrita ocupado", produto_id=produto_id)
        return super().aplicar_movimento(produto_id, montar, versao_esperada)


def test_post_movement_refaz_apos_conflito():
    repo = _RepoComConflito(falhas=1)
    servico = ServicoEstoque(repo)
    p = _produto(servico)

    assert servico.post_movement({"tipo": "ENTRADA", "produtoId": p.id, "quantidade": 1})["erro"] == "conflict"

    repo.tentativas = 0
    r = servico.post_movement({"tipo": "ENTRADA", "produtoId": p.id, "quantidade": 1}, tentativas=3)
    assert r["product"]["estoque_atual"] == 51
    assert repo.tentativas == 2


def test_get_stock(servico):
    _produto(servico, "OK-1", saldo_inicial=50)
    _produto(servico, "BX-1", saldo_inicial=3)
    _produto(servico, "ZR-1", saldo_inicial=0, data_validade=HOJE + timedelta(days=5))

    r = servico.get_stock(hoje=HOJE)
    assert r["total"] == 3
    assert sorted(i["sku"] for i in servico.get_stock("below-min", hoje=HOJE)["itens"]) == ["BX-1"]
    assert sorted(i["sku"] for i in servico.get_stock("out-of-stock", hoje=HOJE)["itens"]) == ["ZR-1"]
    assert sorted(i["sku"] for i in servico.get_stock("expire-soon", days=7, hoje=HOJE)["itens"]) == ["ZR-1"]
    assert servico.get_stock("expire-soon", days=3, hoje=HOJE)["total"] == 0
    assert servico.get_stock("qualquer")["erro"] == "validation"


def test_get_movements_paginado(servico):
    p = _produto(servico)
    for i in range(5):
        servico.post_movement({"tipo": "ENTRADA", "produtoId": p.id, "quantidade": 1, "documento": f"NF-{i}"})

    r = servico.get_movements(produtoId=p.id, page=2, pageSize=2)
    assert r["total"] == 5
    assert r["pagina"] == 2
    assert [m["documento"] for m in r["itens"]] == ["NF-2", "NF-3"]
    assert servico.get_movements(q="nf-4")["total"] == 1
    assert servico.get_movements(tipo="SAIDA")["itens"] == []
    assert servico.get_movements(from_="ontem")["erro"] == "validation"


def test_get_alerts_e_summary(servico):
    p = _produto(servico, saldo_inicial=12)
    servico.post_movement({"tipo": "SAIDA", "produtoId": p.id, "quantidade": 4, "motivo": "perda"})

    alertas = servico.get_alerts(hoje=HOJE)
    assert [a["tipo"] for a in alertas["itens"]] == ["ABAIXO_MINIMO"]

    resumo = servico.get_movement_summary()
    assert resumo["itens"][0]["motivo"] == "PERDA"
    assert resumo["itens"][0]["quantidade"] == 4


def test_servico_sqlite(tmp_path):
    servico = ServicoEstoque.sqlite(str(tmp_path / "svc.sqlite"))
    p = _produto(servico, saldo_inicial=2)
    r = servico.post_movement({"tipo": "SAIDA", "produtoId": p.id, "quantidade": 2})
    assert r["product"]["estoque_atual"] == 0
    assert servico.get_stock("out")["total"] == 1
