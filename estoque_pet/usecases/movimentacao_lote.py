# estoque_pet/usecases/movimentacao_lote.py
"""
UC: Registrar ENTRADAS ou SAÍDAS em lote a partir de planilha (XLSX/CSV).

- Cada linha vira uma movimentação independente no razão.
- Falhas por linha (SKU desconhecido, quantidade inválida, estoque
  insuficiente...) são coletadas e não interrompem as demais linhas.
"""

from __future__ import annotations

from typing import Any, Dict, List

from estoque_pet.adapters.parsers import parse_numero, parse_quantidade_raw
from estoque_pet.adapters.planilhas import load_entradas, load_saidas
from estoque_pet.domain.errors import EstoqueError, ProductNotFound, ValidationError
from estoque_pet.domain.models import TipoMovimento, enum_de, to_dict
from estoque_pet.infra.logger import (
    log_file_operation,
    log_movimentacao,
    log_system_event,
    log_transaction,
)
from estoque_pet.usecases.razao import Razao


def _numero_ou_bruto(raw: Any) -> Any:
    """Número interpretado ou o texto original (que o razão vai rejeitar)."""
    if raw is None:
        return None
    num = parse_numero(raw)
    return raw if num is None else num


def run_movimentacao_lote(razao: Razao, path: str, tipo: Any) -> Dict[str, Any]:
    """Lê a planilha e registra cada linha no razão.

    Returns:
        {"arquivo", "tipo", "linhas_lidas", "linhas_registradas",
         "movimentacoes": [...], "falhas": [{"linha", "sku", "erro", "mensagem"}]}
    """
    try:
        tipo = enum_de(TipoMovimento, tipo)
    except ValueError:
        raise ValidationError(f"Tipo de movimentação inválido: {tipo!r}", tipo=tipo)
    if tipo is TipoMovimento.AJUSTE:
        raise ValidationError("Importação em lote aceita apenas ENTRADA ou SAIDA", tipo=tipo.value)

    log_system_event("movimentacao_lote_start", {"file_path": path, "tipo": tipo.value})
    try:
        rows = load_entradas(path) if tipo is TipoMovimento.ENTRADA else load_saidas(path)
    except (OSError, ValueError) as e:
        log_transaction(f"{tipo.value.lower()}_lote", {"file": path}, error=str(e))
        raise
    log_file_operation("import", path, rows_processed=len(rows), tipo=tipo.value)

    movimentacoes: List[Dict[str, Any]] = []
    falhas: List[Dict[str, Any]] = []
    for row in rows:
        sku = row.get("sku")
        try:
            produto = razao.repo.obter_produto_por_sku(sku) if sku else None
            if produto is None:
                raise ProductNotFound(sku, f"SKU não cadastrado: {sku}")

            num, _unidade, _desc = parse_quantidade_raw(row.get("quantidade_raw"))
            payload = {
                "quantidade": num if num is not None else row.get("quantidade_raw"),
                "custo_unitario": _numero_ou_bruto(row.get("custo_unitario")),
                "documento": row.get("documento"),
                "observacao": row.get("observacao"),
                "usuario": row.get("usuario"),
            }
            if tipo is TipoMovimento.SAIDA:
                payload["motivo"] = row.get("motivo")
            log_movimentacao("batch_prepare", tipo.value, produto.id, linha=row["linha"], sku=sku)

            res = razao.registrar_movimentacao(tipo, produto.id, payload)
            movimentacoes.append(to_dict(res.movimentacao))
        except EstoqueError as e:
            falhas.append({"linha": row["linha"], "sku": sku, "erro": e.kind, "mensagem": e.mensagem})

    result = {
        "arquivo": path,
        "tipo": tipo.value,
        "linhas_lidas": len(rows),
        "linhas_registradas": len(movimentacoes),
        "movimentacoes": movimentacoes,
        "falhas": falhas,
    }
    log_transaction(
        f"{tipo.value.lower()}_lote",
        {"file": path, "rows_count": len(rows)},
        result={"registradas": len(movimentacoes), "falhas": len(falhas)},
    )
    log_system_event("movimentacao_lote_end", {"file_path": path, "registradas": len(movimentacoes), "falhas": len(falhas)})
    return result
