"""
Políticas de classificação de estoque.

Este módulo contém as regras de negócio de leitura usadas pela tela
"Posição de Estoque": classificação de saúde do estoque (ruptura, abaixo
do mínimo, normal), estoque mínimo efetivo e janela de validade.

Todas as funções são puras: dependem apenas dos argumentos e são
recalculadas a cada consulta.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from estoque_pet.domain.models import PreferenciasEstoque, Produto, StatusEstoque


def estoque_minimo_efetivo(produto: Produto, preferencias: Optional[PreferenciasEstoque] = None) -> float:
    """Retorna o mínimo do produto ou, na falta dele, o padrão do tenant.

    Um mínimo igual a zero no produto é respeitado (não cai no padrão).
    """
    if produto.estoque_minimo is not None:
        return float(produto.estoque_minimo)
    if preferencias is not None and preferencias.estoque_minimo_padrao is not None:
        return float(preferencias.estoque_minimo_padrao)
    return 0.0


def classificar(produto: Produto, preferencias: Optional[PreferenciasEstoque] = None) -> StatusEstoque:
    """Classifica o estoque de um produto.

    Regras:
        - ``estoque_atual <= 0`` → ``RUPTURA``
        - ``0 < estoque_atual < mínimo efetivo`` → ``ABAIXO_MINIMO``
        - caso contrário → ``NORMAL`` (inclusive saldo igual ao mínimo)

    Args:
        produto: Produto com saldo atual.
        preferencias: Preferências do tenant (para o mínimo padrão).

    Returns:
        O ``StatusEstoque`` correspondente.
    """
    saldo = float(produto.estoque_atual or 0.0)
    if saldo <= 0:
        return StatusEstoque.RUPTURA
    if saldo < estoque_minimo_efetivo(produto, preferencias):
        return StatusEstoque.ABAIXO_MINIMO
    return StatusEstoque.NORMAL


def dias_ate(data_alvo: Optional[date], hoje: Optional[date] = None) -> Optional[int]:
    """Dias corridos de ``hoje`` até ``data_alvo`` (negativo se já passou)."""
    if data_alvo is None:
        return None
    if isinstance(data_alvo, datetime):
        data_alvo = data_alvo.date()
    hoje = hoje or date.today()
    if isinstance(hoje, datetime):
        hoje = hoje.date()
    return (data_alvo - hoje).days


def vence_em_breve(
    produto: Produto,
    dias: int,
    preferencias: Optional[PreferenciasEstoque] = None,
    hoje: Optional[date] = None,
) -> bool:
    """Indica se o produto vence dentro da janela ``(0, dias]``.

    Só considera validade quando ``preferencias.considerar_validade`` está
    ligado (sem preferências, vale o padrão de ``PreferenciasEstoque``);
    produtos sem data de validade nunca entram. Produtos já vencidos (ou
    vencendo hoje) ficam fora da janela.
    """
    preferencias = preferencias or PreferenciasEstoque()
    if not preferencias.considerar_validade:
        return False
    restante = dias_ate(produto.data_validade, hoje)
    if restante is None:
        return False
    return 0 < restante <= int(dias)
