# estoque_pet/usecases/relatorios.py
"""
Relatórios de estoque:
- alertas (ruptura, abaixo do mínimo, validade próxima)
- saídas por motivo (período)

As funções `relatorio_*` devolvem (colunas, linhas, mensagem) para exibição
tabular na CLI; as demais devolvem dicionários.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from estoque_pet.domain.models import (
    FiltroMovimentacoes,
    PreferenciasEstoque,
    StatusEstoque,
    TipoMovimento,
    to_dict,
)
from estoque_pet.domain.policies import dias_ate, estoque_minimo_efetivo, vence_em_breve
from estoque_pet.infra.logger import log_system_event
from estoque_pet.infra.repositories import RepositorioEstoque
from estoque_pet.usecases.posicao_estoque import ProjetorEstoque
from estoque_pet.usecases.razao import como_datetime


Tabela = Tuple[List[str], List[List[Any]], Optional[str]]


def _fmt_num(v: float) -> str:
    return f"{v:g}"


# ----------------------
# 1) Alertas
# ----------------------

def alertas_estoque(
    repo: RepositorioEstoque,
    preferencias: Optional[PreferenciasEstoque] = None,
    hoje: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Lista alertas por produto ativo. Um produto gera no máximo um alerta de
    estoque (RUPTURA tem precedência sobre ABAIXO_MINIMO) e, independente
    disso, um alerta de VALIDADE_PROXIMA.
    """
    prefs = preferencias or PreferenciasEstoque()
    projetor = ProjetorEstoque(repo, prefs)
    alertas: List[Dict[str, Any]] = []

    for pos in projetor.posicao_estoque("all", hoje=hoje):
        p = pos.produto
        if pos.status is StatusEstoque.RUPTURA:
            alertas.append({"tipo": "RUPTURA", "produto": to_dict(p), "mensagem": "Produto sem estoque"})
        elif pos.status is StatusEstoque.ABAIXO_MINIMO:
            minimo = estoque_minimo_efetivo(p, prefs)
            alertas.append({
                "tipo": "ABAIXO_MINIMO",
                "produto": to_dict(p),
                "mensagem": f"Estoque abaixo do mínimo ({_fmt_num(minimo)})",
            })
        if vence_em_breve(p, prefs.dias_alerta_validade, prefs, hoje):
            alertas.append({
                "tipo": "VALIDADE_PROXIMA",
                "produto": to_dict(p),
                "mensagem": f"Validade em {dias_ate(p.data_validade, hoje)} dia(s)",
            })

    log_system_event("alertas_estoque", {"total": len(alertas)})
    return alertas


def relatorio_alertas(
    repo: RepositorioEstoque,
    preferencias: Optional[PreferenciasEstoque] = None,
    hoje: Optional[date] = None,
) -> Tabela:
    cols = ["Tipo", "SKU", "Produto", "Saldo", "Mensagem"]
    alertas = alertas_estoque(repo, preferencias, hoje)
    if not alertas:
        return cols, [], "Nenhum alerta de estoque."
    rows = [
        [a["tipo"], a["produto"]["sku"], a["produto"]["nome"], _fmt_num(a["produto"]["estoque_atual"]), a["mensagem"]]
        for a in alertas
    ]
    return cols, rows, None


# ----------------------
# 2) Saídas por motivo
# ----------------------

def resumo_saidas_por_motivo(
    repo: RepositorioEstoque,
    data_inicio: Any = None,
    data_fim: Any = None,
    produto_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Totaliza SAÍDAS por motivo no período (limites inclusivos)."""
    filtro = FiltroMovimentacoes(
        produto_id=produto_id,
        tipo=TipoMovimento.SAIDA,
        data_inicio=como_datetime(data_inicio),
        data_fim=como_datetime(data_fim, fim_do_dia=True),
    )
    totais: Dict[str, Dict[str, Any]] = {}
    for m in repo.listar_movimentacoes(filtro):
        chave = m.motivo.value if m.motivo else "VENDA"
        acc = totais.setdefault(chave, {"motivo": chave, "movimentacoes": 0, "quantidade": 0.0, "custo_total": 0.0})
        acc["movimentacoes"] += 1
        acc["quantidade"] += -m.quantidade_delta
        if m.custo_unitario is not None:
            acc["custo_total"] += m.custo_unitario * -m.quantidade_delta

    out = sorted(totais.values(), key=lambda r: (-r["quantidade"], r["motivo"]))
    log_system_event("resumo_saidas_por_motivo", {"motivos": len(out)})
    return out


def relatorio_saidas_por_motivo(
    repo: RepositorioEstoque,
    data_inicio: Any = None,
    data_fim: Any = None,
) -> Tabela:
    cols = ["Motivo", "Movimentações", "Quantidade", "Custo total"]
    resumo = resumo_saidas_por_motivo(repo, data_inicio, data_fim)
    if not resumo:
        return cols, [], "Nenhuma saída no período."
    rows = [
        [r["motivo"], r["movimentacoes"], _fmt_num(r["quantidade"]), f"{r['custo_total']:.2f}"]
        for r in resumo
    ]
    return cols, rows, None
