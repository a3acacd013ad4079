# estoque_pet/usecases/posicao_estoque.py
"""
UC: Posição de estoque (projeção do razão).

- saldo_atual / saldo_inicial: leitura do saldo em cache, que só o razão escreve.
- saldo_reconstruido: replay do razão até um instante (histórico e auditoria).
- posicao_estoque: listagem da tela "Posição de Estoque" com status,
  mínimo efetivo e janela de validade, filtrável por
  all | below-min | out-of-stock | expire-soon.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from estoque_pet.domain.errors import ProductNotFound, ValidationError
from estoque_pet.domain.models import (
    FiltroMovimentacoes,
    PreferenciasEstoque,
    Produto,
    StatusEstoque,
    to_dict,
)
from estoque_pet.domain.policies import classificar, dias_ate, estoque_minimo_efetivo, vence_em_breve
from estoque_pet.infra.repositories import RepositorioEstoque


FILTROS = {
    "all": "all",
    "todos": "all",
    "below-min": "below-min",
    "low": "below-min",
    "out-of-stock": "out-of-stock",
    "out": "out-of-stock",
    "expire-soon": "expire-soon",
    "expiring": "expire-soon",
}


@dataclass
class PosicaoProduto:
    produto: Produto
    status: StatusEstoque
    estoque_minimo_efetivo: float
    dias_para_vencer: Optional[int]
    vence_em_breve: bool

    def to_dict(self) -> Dict[str, Any]:
        out = to_dict(self.produto)
        out.update({
            "status": self.status.value,
            "estoque_minimo_efetivo": self.estoque_minimo_efetivo,
            "dias_para_vencer": self.dias_para_vencer,
            "vence_em_breve": self.vence_em_breve,
        })
        return out


def _casa_texto(produto: Produto, texto: Optional[str]) -> bool:
    if not texto or not texto.strip():
        return True
    t = texto.strip().casefold()
    return t in produto.nome.casefold() or t in produto.sku.casefold()


class ProjetorEstoque:
    def __init__(self, repo: RepositorioEstoque, preferencias: Optional[PreferenciasEstoque] = None):
        self.repo = repo
        self.preferencias = preferencias or PreferenciasEstoque()

    def _produto(self, produto_id: str) -> Produto:
        p = self.repo.obter_produto(produto_id)
        if p is None:
            raise ProductNotFound(produto_id)
        return p

    def saldo_atual(self, produto_id: str) -> float:
        """Saldo corrente (igual ao replay do razão por construção)."""
        return float(self._produto(produto_id).estoque_atual)

    def saldo_inicial(self, produto_id: str) -> float:
        return float(self._produto(produto_id).saldo_inicial)

    def saldo_reconstruido(self, produto_id: str, ate: Optional[datetime] = None) -> float:
        """saldo_inicial + Σ quantidade_delta das movimentações com data <= ``ate``."""
        p = self._produto(produto_id)
        movs = self.repo.listar_movimentacoes(FiltroMovimentacoes(produto_id=produto_id, data_fim=ate))
        return float(p.saldo_inicial) + sum(m.quantidade_delta for m in movs)

    def avaliar(self, produto: Produto, dias: Optional[int] = None, hoje: Optional[date] = None) -> PosicaoProduto:
        dias = self.preferencias.dias_alerta_validade if dias is None else int(dias)
        return PosicaoProduto(
            produto=produto,
            status=classificar(produto, self.preferencias),
            estoque_minimo_efetivo=estoque_minimo_efetivo(produto, self.preferencias),
            dias_para_vencer=dias_ate(produto.data_validade, hoje),
            vence_em_breve=vence_em_breve(produto, dias, self.preferencias, hoje),
        )

    def posicao_estoque(
        self,
        filtro: str = "all",
        dias: Optional[int] = None,
        texto: Optional[str] = None,
        hoje: Optional[date] = None,
    ) -> List[PosicaoProduto]:
        """Produtos ativos com status de estoque.

        Args:
            filtro: all | below-min | out-of-stock | expire-soon
            dias: janela de validade (padrão: preferências, 30 dias)
            texto: busca por nome ou SKU (sem diferenciar maiúsculas)
            hoje: data de referência (testes)
        """
        chave = FILTROS.get(str(filtro or "all").strip().lower())
        if chave is None:
            raise ValidationError(f"Filtro inválido: {filtro!r}", filtro=filtro)
        if dias is not None and int(dias) < 0:
            raise ValidationError("'dias' não pode ser negativo", dias=dias)

        out: List[PosicaoProduto] = []
        for p in self.repo.listar_produtos():
            if not _casa_texto(p, texto):
                continue
            pos = self.avaliar(p, dias, hoje)
            if chave == "below-min" and pos.status is not StatusEstoque.ABAIXO_MINIMO:
                continue
            if chave == "out-of-stock" and pos.status is not StatusEstoque.RUPTURA:
                continue
            if chave == "expire-soon" and not pos.vence_em_breve:
                continue
            out.append(pos)
        return out
