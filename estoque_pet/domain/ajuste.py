"""
Reconciliação de pedidos de AJUSTE e validação de quantidades.

A tela de ajuste tem dois interruptores independentes ("alterar saldo" e
"alterar mínimo"), cada um com seu campo numérico. ``normalizar_ajuste``
transforma esse pedido no único payload de AJUSTE consumido pelo razão:

    SolicitacaoAjuste(alterar_saldo=True, novo_saldo=0)
        → AjustePayload(novo_saldo=0.0, novo_minimo=None)

Campos de interruptores desligados são descartados.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

from estoque_pet.domain.errors import InvalidQuantity, NoOperationSelected


def _to_float(valor: Any, campo: str) -> float:
    if valor is None or isinstance(valor, bool):
        raise InvalidQuantity(campo, valor)
    if isinstance(valor, str):
        valor = valor.strip().replace(",", ".")
        if not valor:
            raise InvalidQuantity(campo, valor)
    try:
        num = float(valor)
    except (TypeError, ValueError):
        raise InvalidQuantity(campo, valor)
    if not math.isfinite(num):
        raise InvalidQuantity(campo, valor)
    return num


def validar_quantidade_positiva(valor: Any, campo: str = "quantidade") -> float:
    """Exige número finito e estritamente positivo (ENTRADA/SAÍDA)."""
    num = _to_float(valor, campo)
    if num <= 0:
        raise InvalidQuantity(campo, valor, f"'{campo}' deve ser maior que zero")
    return num


def validar_nao_negativo(valor: Any, campo: str) -> float:
    """Exige número finito e maior ou igual a zero (campos de AJUSTE, custo)."""
    num = _to_float(valor, campo)
    if num < 0:
        raise InvalidQuantity(campo, valor, f"'{campo}' não pode ser negativo")
    return num


@dataclass
class SolicitacaoAjuste:
    """Pedido de ajuste como chega da interface."""
    alterar_saldo: bool = False
    novo_saldo: Any = None
    alterar_minimo: bool = False
    novo_minimo: Any = None


@dataclass(frozen=True)
class AjustePayload:
    """Payload normalizado de AJUSTE (ao menos um campo presente)."""
    novo_saldo: Optional[float] = None
    novo_minimo: Optional[float] = None

    @property
    def altera_saldo(self) -> bool:
        return self.novo_saldo is not None

    @property
    def altera_minimo(self) -> bool:
        return self.novo_minimo is not None


def normalizar_ajuste(solicitacao: SolicitacaoAjuste) -> AjustePayload:
    """Valida e normaliza um pedido de AJUSTE.

    Raises:
        NoOperationSelected: nenhum interruptor ligado.
        InvalidQuantity: campo ativo ausente, não numérico, infinito ou negativo.
    """
    if not solicitacao.alterar_saldo and not solicitacao.alterar_minimo:
        raise NoOperationSelected()

    novo_saldo = None
    novo_minimo = None
    if solicitacao.alterar_saldo:
        novo_saldo = validar_nao_negativo(solicitacao.novo_saldo, "novo_saldo")
    if solicitacao.alterar_minimo:
        novo_minimo = validar_nao_negativo(solicitacao.novo_minimo, "novo_minimo")
    return AjustePayload(novo_saldo=novo_saldo, novo_minimo=novo_minimo)


def ajuste_de_payload(payload: Any) -> AjustePayload:
    """Aceita ``AjustePayload``, ``SolicitacaoAjuste`` ou dicionário.

    Formatos de dicionário aceitos:
        {"alterar_saldo": {"novo_saldo": 0}, "alterar_minimo": {"novo_minimo": 5}}
        {"alterar_saldo": True, "novo_saldo": 0}
        {"novo_saldo": 0, "novo_minimo": 5}
    """
    if isinstance(payload, AjustePayload):
        if payload.novo_saldo is None and payload.novo_minimo is None:
            raise NoOperationSelected()
        # revalida: o payload pode ter sido montado à mão
        return normalizar_ajuste(SolicitacaoAjuste(
            alterar_saldo=payload.altera_saldo,
            novo_saldo=payload.novo_saldo,
            alterar_minimo=payload.altera_minimo,
            novo_minimo=payload.novo_minimo,
        ))
    if isinstance(payload, SolicitacaoAjuste):
        return normalizar_ajuste(payload)
    if not isinstance(payload, dict):
        raise NoOperationSelected()

    sol = SolicitacaoAjuste()
    saldo = payload.get("alterar_saldo")
    if isinstance(saldo, dict):
        sol.alterar_saldo, sol.novo_saldo = True, saldo.get("novo_saldo")
    elif saldo:
        sol.alterar_saldo, sol.novo_saldo = True, payload.get("novo_saldo")
    elif saldo is None and payload.get("novo_saldo") is not None:
        sol.alterar_saldo, sol.novo_saldo = True, payload.get("novo_saldo")

    minimo = payload.get("alterar_minimo")
    if isinstance(minimo, dict):
        sol.alterar_minimo, sol.novo_minimo = True, minimo.get("novo_minimo")
    elif minimo:
        sol.alterar_minimo, sol.novo_minimo = True, payload.get("novo_minimo")
    elif minimo is None and payload.get("novo_minimo") is not None:
        sol.alterar_minimo, sol.novo_minimo = True, payload.get("novo_minimo")
    return normalizar_ajuste(sol)
