# estoque_pet/adapters/servico.py
"""
Fachada no formato das rotas REST, sem transporte.

    GET  /stock?filter=...&days=N   → get_stock
    POST /stock/movements           → post_movement
    GET  /stock/movements           → get_movements
    GET  /stock/alerts              → get_alerts
    GET  /stock/movements/summary   → get_movement_summary

Corpos de entrada usam as chaves camelCase da interface web; as respostas
são dicionários prontos para JSON. Falhas do domínio viram
``{"erro": kind, "mensagem": ..., **detalhes}`` e nenhuma escrita parcial
acontece.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Mapping, Optional

from estoque_pet.config import DB_PATH
from estoque_pet.domain.errors import ConflictError, EstoqueError, InsufficientStock
from estoque_pet.domain.models import PreferenciasEstoque, TipoMovimento, to_dict
from estoque_pet.infra.logger import log_system_event
from estoque_pet.infra.migrations import apply_migrations
from estoque_pet.infra.repositories import PreferenciasRepo, RepositorioEstoque, SqliteRepositorioEstoque
from estoque_pet.infra.views import create_views
from estoque_pet.usecases.posicao_estoque import ProjetorEstoque
from estoque_pet.usecases.razao import Razao
from estoque_pet.usecases.relatorios import alertas_estoque, resumo_saidas_por_motivo


def _tem(body: Mapping[str, Any], chave: str) -> bool:
    return body.get(chave) not in (None, "")


def payload_de_body(body: Mapping[str, Any]) -> Dict[str, Any]:
    """Traduz o corpo camelCase de POST /stock/movements para o payload do razão."""
    tipo = str(getattr(body.get("tipo"), "value", body.get("tipo")) or "").strip().upper()
    payload: Dict[str, Any] = {
        "documento": body.get("documento"),
        "observacao": body.get("observacao"),
        "usuario": body.get("usuario"),
        "origem": body.get("origem"),
    }
    if tipo == TipoMovimento.AJUSTE.value:
        # quantidade = saldo alvo; estoqueMinimo = novo mínimo
        alterar_saldo = body.get("alterarSaldo")
        alterar_minimo = body.get("alterarMinimo")
        payload["alterar_saldo"] = bool(alterar_saldo) if alterar_saldo is not None else _tem(body, "quantidade")
        payload["novo_saldo"] = body.get("quantidade")
        payload["alterar_minimo"] = bool(alterar_minimo) if alterar_minimo is not None else _tem(body, "estoqueMinimo")
        payload["novo_minimo"] = body.get("estoqueMinimo")
    else:
        payload["quantidade"] = body.get("quantidade")
        payload["custo_unitario"] = body.get("custoUnit")
        payload["motivo"] = body.get("motivo")
        payload["motivo_detalhe"] = body.get("motivoDetalhe")
    return payload


class ServicoEstoque:
    def __init__(self, repo: RepositorioEstoque, preferencias: Optional[PreferenciasEstoque] = None):
        self.repo = repo
        self.preferencias = preferencias or PreferenciasEstoque()
        self.razao = Razao(repo, self.preferencias)
        self.projetor = ProjetorEstoque(repo, self.preferencias)

    @classmethod
    def sqlite(cls, db_path: str = DB_PATH) -> "ServicoEstoque":
        """Serviço sobre o banco SQLite, com migrações aplicadas e preferências do `params`."""
        apply_migrations(db_path)
        create_views(db_path)
        return cls(SqliteRepositorioEstoque(db_path), PreferenciasRepo(db_path).carregar())

    # ---- GET /stock ----

    def get_stock(
        self,
        filter: str = "all",
        days: Optional[int] = None,
        q: Optional[str] = None,
        hoje: Optional[date] = None,
    ) -> Dict[str, Any]:
        try:
            itens = self.projetor.posicao_estoque(filter, days, q, hoje)
        except EstoqueError as e:
            return e.to_dict()
        return {"itens": [i.to_dict() for i in itens], "total": len(itens)}

    # ---- POST /stock/movements ----

    def post_movement(self, body: Mapping[str, Any], tentativas: int = 1) -> Dict[str, Any]:
        """Registra uma movimentação.

        ``tentativas`` > 1 refaz a operação após ``ConflictError`` de
        concorrência (nunca após estoque insuficiente ou versão divergente
        informada pelo chamador).
        """
        payload = payload_de_body(body)
        versao = body.get("versao")
        tentativa = 1
        while True:
            try:
                res = self.razao.registrar_movimentacao(body.get("tipo"), body.get("produtoId"), payload, versao)
                return res.to_dict()
            except InsufficientStock as e:
                return e.to_dict()
            except ConflictError as e:
                if versao is not None or tentativa >= int(tentativas):
                    return e.to_dict()
                log_system_event("post_movement_retry", {"produto_id": body.get("produtoId"), "tentativa": tentativa}, level="warning")
                tentativa += 1
            except EstoqueError as e:
                return e.to_dict()

    # ---- GET /stock/movements ----

    def get_movements(
        self,
        produtoId: Optional[str] = None,
        tipo: Optional[str] = None,
        q: Optional[str] = None,
        from_: Any = None,
        to: Any = None,
        page: int = 1,
        pageSize: int = 50,
    ) -> Dict[str, Any]:
        try:
            page = max(1, int(page))
            pageSize = max(1, int(pageSize))
            criterios = dict(produto_id=produtoId, tipo=tipo, texto=q, data_inicio=from_, data_fim=to)
            total = self.razao.contar_movimentacoes(**criterios)
            itens = self.razao.listar_movimentacoes(limite=pageSize, deslocamento=(page - 1) * pageSize, **criterios)
        except EstoqueError as e:
            return e.to_dict()
        return {
            "itens": [to_dict(m) for m in itens],
            "total": total,
            "pagina": page,
            "por_pagina": pageSize,
        }

    # ---- relatórios ----

    def get_alerts(self, hoje: Optional[date] = None) -> Dict[str, Any]:
        alertas = alertas_estoque(self.repo, self.preferencias, hoje)
        return {"itens": alertas, "total": len(alertas)}

    def get_movement_summary(self, from_: Any = None, to: Any = None) -> Dict[str, Any]:
        try:
            itens = resumo_saidas_por_motivo(self.repo, from_, to)
        except EstoqueError as e:
            return e.to_dict()
        return {"itens": itens}
