from datetime import date, timedelta

import pytest

from estoque_pet.domain.models import PreferenciasEstoque
from estoque_pet.usecases.razao import Razao
from estoque_pet.usecases.relatorios import (
    alertas_estoque,
    relatorio_alertas,
    relatorio_saidas_por_motivo,
    resumo_saidas_por_motivo,
)

HOJE = date(2025, 3, 10)


def test_alertas_por_tipo(repo):
    razao = Razao(repo)
    razao.cadastrar_produto("OK-01", "Produto em dia", estoque_minimo=2, saldo_inicial=10)
    razao.cadastrar_produto("ZER-01", "Produto zerado", estoque_minimo=2, saldo_inicial=0,
                            data_validade=HOJE + timedelta(days=3))
    razao.cadastrar_produto("BX-01", "Produto baixo", estoque_minimo=5, saldo_inicial=2)
    razao.cadastrar_produto("VAL-01", "Produto vencendo", estoque_minimo=1, saldo_inicial=9,
                            data_validade=HOJE + timedelta(days=15))

    alertas = alertas_estoque(repo, PreferenciasEstoque(), hoje=HOJE)
    pares = sorted((a["tipo"], a["produto"]["sku"]) for a in alertas)
    assert pares == [
        ("ABAIXO_MINIMO", "BX-01"),
        ("RUPTURA", "ZER-01"),
        ("VALIDADE_PROXIMA", "VAL-01"),
        ("VALIDADE_PROXIMA", "ZER-01"),
    ]
    mensagens = {(a["tipo"], a["produto"]["sku"]): a["mensagem"] for a in alertas}
    assert mensagens[("RUPTURA", "ZER-01")] == "Produto sem estoque"
    assert mensagens[("ABAIXO_MINIMO", "BX-01")] == "Estoque abaixo do mínimo (5)"
    assert mensagens[("VALIDADE_PROXIMA", "VAL-01")] == "Validade em 15 dia(s)"


def test_alertas_respeitam_preferencias(repo):
    razao = Razao(repo)
    razao.cadastrar_produto("SEM-MIN", "Sem mínimo próprio", saldo_inicial=4,
                            data_validade=HOJE + timedelta(days=3))

    prefs = PreferenciasEstoque(estoque_minimo_padrao=5, considerar_validade=False)
    alertas = alertas_estoque(repo, prefs, hoje=HOJE)
    assert [a["tipo"] for a in alertas] == ["ABAIXO_MINIMO"]

    prefs = PreferenciasEstoque(estoque_minimo_padrao=None, dias_alerta_validade=2)
    assert alertas_estoque(repo, prefs, hoje=HOJE) == []


def test_relatorio_alertas_vazio(repo):
    cols, rows, msg = relatorio_alertas(repo, hoje=HOJE)
    assert cols[0] == "Tipo"
    assert rows == []
    assert msg == "Nenhum alerta de estoque."


def test_resumo_saidas_por_motivo(repo, relogio):
    relogio.passo = timedelta(days=1)
    razao = Razao(repo)
    p = razao.cadastrar_produto("RAC-10", "Ração 10kg", saldo_inicial=100)   # dia 10
    razao.registrar_saida(p.id, 5, motivo="venda", custo_unitario=10)        # dia 11
    razao.registrar_saida(p.id, 2, motivo="perda", custo_unitario=10)        # dia 12
    razao.registrar_saida(p.id, 3, motivo="venda")                           # dia 13
    razao.registrar_saida(p.id, 1, motivo="Doação")                          # dia 14
    razao.registrar_entrada(p.id, 50)                                        # dia 15

    resumo = resumo_saidas_por_motivo(repo)
    assert [r["motivo"] for r in resumo] == ["VENDA", "PERDA", "OUTRO"]
    venda = resumo[0]
    assert venda["movimentacoes"] == 2
    assert venda["quantidade"] == 8
    assert venda["custo_total"] == pytest.approx(50.0)

    periodo = resumo_saidas_por_motivo(repo, "2025-03-12", "2025-03-13")
    assert {r["motivo"]: r["quantidade"] for r in periodo} == {"PERDA": 2, "VENDA": 3}


def test_relatorio_saidas_por_motivo(repo):
    cols, rows, msg = relatorio_saidas_por_motivo(repo)
    assert msg == "Nenhuma saída no período."

    razao = Razao(repo)
    p = razao.cadastrar_produto("RAC-10", "Ração 10kg", saldo_inicial=10)
    razao.registrar_saida(p.id, 2, motivo="consumo", custo_unitario="1,5")
    cols, rows, msg = relatorio_saidas_por_motivo(repo)
    assert msg is None
    assert cols == ["Motivo", "Movimentações", "Quantidade", "Custo total"]
    assert rows == [["CONSUMO", 1, "2", "3.00"]]
