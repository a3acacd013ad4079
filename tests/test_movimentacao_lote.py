import pandas as pd
import pytest

from estoque_pet.adapters.planilhas import load_entradas, load_saidas
from estoque_pet.domain.errors import ValidationError
from estoque_pet.domain.models import MotivoSaida, OrigemMovimento, TipoMovimento
from estoque_pet.usecases.movimentacao_lote import run_movimentacao_lote
from estoque_pet.usecases.razao import Razao


def _xlsx(tmp_path, nome, dados):
    path = tmp_path / nome
    pd.DataFrame(dados).to_excel(path, index=False)
    return str(path)


@pytest.fixture
def razao(repo):
    r = Razao(repo)
    r.cadastrar_produto("RAC-15", "Ração Premium 15kg", saldo_inicial=10)
    r.cadastrar_produto("AREIA-4", "Areia Sanitária 4kg", saldo_inicial=2)
    return r


def test_load_entradas_normaliza_cabecalhos(tmp_path):
    path = _xlsx(tmp_path, "entradas.xlsx", {
        "Código": ["RAC-15", None, "AREIA-4"],
        "Quantidade": ["5 UN - Unidade", None, "2,5"],
        "Custo Unitário": ["89,90", None, None],
        "Nota Fiscal": ["NF-1", None, "NF-2"],
    })
    rows = load_entradas(path)
    assert [r["linha"] for r in rows] == [2, 4]
    assert rows[0]["sku"] == "RAC-15"
    assert rows[0]["quantidade_raw"] == "5 UN - Unidade"
    assert rows[0]["custo_unitario"] == "89,90"
    assert rows[0]["documento"] == "NF-1"
    assert rows[1]["custo_unitario"] is None


def test_load_sem_colunas_obrigatorias(tmp_path):
    path = _xlsx(tmp_path, "ruim.xlsx", {"Produto": ["Ração"], "Total": ["10"]})
    with pytest.raises(ValueError):
        load_saidas(path)


def test_formato_nao_suportado(tmp_path):
    path = tmp_path / "dados.txt"
    path.write_text("sku;quantidade\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_entradas(str(path))


def test_entradas_em_lote(razao, tmp_path):
    path = _xlsx(tmp_path, "entradas.xlsx", {
        "SKU": ["RAC-15", "NAO-EXISTE", "AREIA-4", "RAC-15"],
        "Quantidade": ["5 UN - Unidade", "1", "abc", "1.234,5"],
        "Custo": ["89,90", None, None, None],
        "NF": ["NF-1", "NF-2", "NF-3", "NF-4"],
    })
    res = run_movimentacao_lote(razao, path, "entrada")

    assert res["tipo"] == "ENTRADA"
    assert res["linhas_lidas"] == 4
    assert res["linhas_registradas"] == 2
    assert [(f["linha"], f["erro"]) for f in res["falhas"]] == [(3, "product_not_found"), (4, "invalid_quantity")]

    produto = razao.repo.obter_produto_por_sku("RAC-15")
    assert produto.estoque_atual == pytest.approx(10 + 5 + 1234.5)
    movs = razao.listar_movimentacoes(produto_id=produto.id)
    assert movs[0].custo_unitario == pytest.approx(89.9)
    assert movs[0].documento == "NF-1"
    assert movs[0].origem is OrigemMovimento.COMPRA


def test_saidas_em_lote_csv(razao, tmp_path):
    path = tmp_path / "saidas.csv"
    path.write_text(
        "SKU;Quantidade;Motivo;Observação\n"
        "RAC-15;3;Venda;balcão\n"
        "AREIA-4;5;Venda;\n"
        "AREIA-4;1;Perda;saco rasgado\n",
        encoding="utf-8",
    )
    res = run_movimentacao_lote(razao, str(path), TipoMovimento.SAIDA)

    assert res["linhas_registradas"] == 2
    assert [(f["linha"], f["erro"]) for f in res["falhas"]] == [(3, "insufficient_stock")]
    areia = razao.repo.obter_produto_por_sku("AREIA-4")
    assert areia.estoque_atual == 1
    mov = razao.listar_movimentacoes(produto_id=areia.id)[0]
    assert mov.motivo is MotivoSaida.PERDA
    assert mov.observacao == "saco rasgado"


def test_lote_rejeita_ajuste(razao, tmp_path):
    path = _xlsx(tmp_path, "ajustes.xlsx", {"SKU": ["RAC-15"], "Quantidade": ["1"]})
    with pytest.raises(ValidationError):
        run_movimentacao_lote(razao, path, TipoMovimento.AJUSTE)
    with pytest.raises(ValidationError):
        run_movimentacao_lote(razao, path, "TRANSFERENCIA")
