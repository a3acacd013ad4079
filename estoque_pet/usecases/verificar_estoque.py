# estoque_pet/usecases/verificar_estoque.py
"""
Caso de uso: verificar estoque (auditoria de consistência do razão).

Fluxo:
1) Para cada produto (ou só o informado), lê o razão em ordem de sequência.
2) Confere a cadeia: sequências 1..n sem buracos, saldo_anterior igual ao
   saldo_resultante anterior (ou ao saldo inicial) e
   saldo_anterior + delta == saldo_resultante.
3) Compara o replay (saldo_inicial + Σ delta) com o saldo em cache.
4) Produtos divergentes são bloqueados e reportados; nada é corrigido
   automaticamente. A correção é explícita via `reconciliar_produto`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from estoque_pet.config import TOLERANCIA_SALDO
from estoque_pet.domain.errors import ConflictError, IntegrityError, ProductNotFound, ValidationError
from estoque_pet.domain.models import Produto
from estoque_pet.infra.logger import log_auditoria, log_system_event
from estoque_pet.infra.repositories import RepositorioEstoque


@dataclass
class Divergencia:
    produto_id: str
    sku: str
    motivo: str                     # "saldo" | "cadeia"
    saldo_cache: float
    saldo_replay: float
    sequencia: Optional[int] = None  # primeira movimentação com a cadeia quebrada
    versao: Optional[int] = None     # versão do produto no retrato auditado

    @property
    def diferenca(self) -> float:
        return self.saldo_cache - self.saldo_replay

    def to_dict(self) -> Dict[str, Any]:
        return {
            "produto_id": self.produto_id,
            "sku": self.sku,
            "motivo": self.motivo,
            "saldo_cache": self.saldo_cache,
            "saldo_replay": self.saldo_replay,
            "diferenca": self.diferenca,
            "sequencia": self.sequencia,
            "versao": self.versao,
        }


def _iguais(a: float, b: float) -> bool:
    return abs(float(a) - float(b)) <= TOLERANCIA_SALDO


def _auditar(repo: RepositorioEstoque, produto_id: str) -> Tuple[float, Optional[Divergencia]]:
    """Replay de um retrato atômico (produto + razão). Devolve (saldo_replay, divergência)."""
    produto, movs = repo.retrato_razao(produto_id)
    if produto is None:
        raise ProductNotFound(produto_id)

    saldo = float(produto.saldo_inicial)
    quebra: Optional[int] = None
    for i, m in enumerate(movs, start=1):
        if quebra is None and (
            m.sequencia != i
            or not _iguais(m.saldo_anterior, saldo)
            or not _iguais(m.saldo_anterior + m.quantidade_delta, m.saldo_resultante)
        ):
            quebra = m.sequencia
        saldo += m.quantidade_delta

    cache = float(produto.estoque_atual)
    if quebra is not None:
        return saldo, Divergencia(produto.id, produto.sku, "cadeia", cache, saldo, quebra, produto.versao)
    if not _iguais(cache, saldo):
        return saldo, Divergencia(produto.id, produto.sku, "saldo", cache, saldo, versao=produto.versao)
    return saldo, None


def _log_divergencia(d: Divergencia) -> None:
    detalhes = {k: v for k, v in d.to_dict().items() if k != "produto_id"}
    log_auditoria("divergencia", d.produto_id, level="error", **detalhes)


def _bloquear(repo: RepositorioEstoque, d: Divergencia, tentativas: int = 3) -> Optional[Divergencia]:
    """Bloqueia só na versão auditada; se o produto mudou, audita de novo antes de decidir."""
    for _ in range(tentativas):
        try:
            repo.definir_bloqueio(d.produto_id, True, versao_esperada=d.versao)
        except ConflictError:
            _, novo = _auditar(repo, d.produto_id)
            if novo is None:
                return None
            d = novo
            continue
        log_auditoria("bloqueio", d.produto_id, sku=d.sku, versao=d.versao)
        return d
    raise ConflictError(
        "Produto em escrita contínua; não foi possível bloquear após a auditoria",
        produto_id=d.produto_id,
    )


def run_verificar(
    repo: RepositorioEstoque,
    produto_id: Optional[str] = None,
    bloquear: bool = True,
) -> List[Divergencia]:
    """Audita o razão e devolve as divergências encontradas.

    Cada produto é conferido sobre um retrato atômico do repositório, então
    escritas concorrentes legítimas não aparecem como divergência.

    Args:
        repo: Repositório de estoque.
        produto_id: Restringe a auditoria a um produto.
        bloquear: Marca produtos divergentes como bloqueados para escrita.
    """
    if produto_id:
        if repo.obter_produto(produto_id) is None:
            raise ProductNotFound(produto_id)
        ids = [produto_id]
    else:
        ids = [p.id for p in repo.listar_produtos(incluir_inativos=True)]

    divergencias: List[Divergencia] = []
    for pid in ids:
        try:
            _, d = _auditar(repo, pid)
        except ProductNotFound:
            if produto_id:
                raise
            continue  # removido durante a varredura (só produtos sem histórico podem sair)
        if d is None:
            continue
        _log_divergencia(d)
        if bloquear:
            d = _bloquear(repo, d)
            if d is None:
                continue
        divergencias.append(d)

    log_system_event("verificar_estoque", {"produtos": len(ids), "divergencias": len(divergencias)})
    return divergencias


def verificar_produto(repo: RepositorioEstoque, produto_id: str, bloquear: bool = False) -> float:
    """Devolve o saldo do replay; levanta IntegrityError se o cache divergir."""
    saldo, d = _auditar(repo, produto_id)
    if d is not None:
        _log_divergencia(d)
        if bloquear:
            d = _bloquear(repo, d)
    if d is not None:
        raise IntegrityError("Saldo em cache diverge do replay do razão", **d.to_dict())
    return saldo


def reconciliar_produto(repo: RepositorioEstoque, produto_id: str, usuario: Optional[str] = None) -> Produto:
    """Reconciliação manual: saldo em cache passa a ser o replay do razão e o bloqueio é removido."""
    p, movs = repo.retrato_razao(produto_id)
    if p is None:
        raise ProductNotFound(produto_id)
    if not p.bloqueado:
        raise ValidationError("Produto não está bloqueado; nada a reconciliar", produto_id=produto_id)

    replay = float(p.saldo_inicial) + sum(m.quantidade_delta for m in movs)
    atualizado = repo.reconciliar_saldo_cache(produto_id, replay)
    log_auditoria(
        "reconciliado", produto_id,
        sku=p.sku, saldo_cache_anterior=p.estoque_atual, saldo_replay=replay, usuario=usuario,
    )
    return atualizado
