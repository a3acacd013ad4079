# estoque_pet/usecases/razao.py
"""
UC: Razão de movimentações (ENTRADA, SAÍDA, AJUSTE).

O razão é o único escritor do saldo. Cada movimentação:
1) é validada antes de qualquer escrita (quantidade, custo, motivo, ajuste);
2) tem o delta calculado dentro da transação do repositório, a partir do
   saldo lido sob o lock (AJUSTE: delta = novo_saldo - saldo atual);
3) grava exatamente um registro imutável e atualiza o saldo em cache.

Também concentra o cadastro mínimo de produtos que o razão precisa
(cadastrar, desativar, excluir com soft delete).
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Dict, List, Mapping, Optional

from estoque_pet.config import TOLERANCIA_SALDO
from estoque_pet.domain.ajuste import (
    AjustePayload,
    ajuste_de_payload,
    validar_nao_negativo,
    validar_quantidade_positiva,
)
from estoque_pet.domain.errors import EstoqueError, InsufficientStock, ProductNotFound, ValidationError
from estoque_pet.domain.models import (
    FiltroMovimentacoes,
    MotivoSaida,
    Movimentacao,
    OrigemMovimento,
    PreferenciasEstoque,
    Produto,
    RascunhoMovimento,
    ResultadoMovimentacao,
    TipoMovimento,
    UnidadeMedida,
    enum_de,
)
from estoque_pet.infra.logger import log_movimentacao, log_system_event, log_transaction
from estoque_pet.infra.repositories import RepositorioEstoque, novo_id


# Origem implícita quando o chamador não informa
_ORIGEM_POR_MOTIVO = {
    MotivoSaida.VENDA: OrigemMovimento.VENDA,
    MotivoSaida.PERDA: OrigemMovimento.PERDA,
}


def _normalize_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


def _tipo(valor: Any) -> TipoMovimento:
    try:
        return enum_de(TipoMovimento, valor)
    except ValueError:
        raise ValidationError(f"Tipo de movimentação inválido: {valor!r}", tipo=valor)


def _origem(valor: Any, padrao: OrigemMovimento) -> OrigemMovimento:
    if valor is None or not str(valor).strip():
        return padrao
    try:
        return enum_de(OrigemMovimento, valor)
    except ValueError:
        raise ValidationError(f"Origem inválida: {valor!r}", origem=valor)


def como_datetime(valor: Any, fim_do_dia: bool = False) -> Optional[datetime]:
    """Converte limites de período. Uma data pura cobre o dia inteiro."""
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        return valor
    if isinstance(valor, str):
        s = valor.strip()
        try:
            if len(s) <= 10:
                valor = date.fromisoformat(s)
            else:
                return datetime.fromisoformat(s)
        except ValueError:
            raise ValidationError(f"Data inválida: {valor!r}", data=valor)
    if isinstance(valor, date):
        return datetime.combine(valor, time.max if fim_do_dia else time.min)
    raise ValidationError(f"Data inválida: {valor!r}", data=valor)


def como_data(valor: Any) -> Optional[date]:
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    try:
        return date.fromisoformat(str(valor).strip()[:10])
    except ValueError:
        raise ValidationError(f"Data inválida: {valor!r}", data=valor)


class Razao:
    """Razão de movimentações de estoque sobre um repositório injetado."""

    def __init__(self, repo: RepositorioEstoque, preferencias: Optional[PreferenciasEstoque] = None):
        self.repo = repo
        self.preferencias = preferencias or PreferenciasEstoque()

    # -------------------------
    # Escrita
    # -------------------------

    def registrar_movimentacao(
        self,
        tipo: Any,
        produto_id: str,
        payload: Optional[Mapping[str, Any]] = None,
        versao_esperada: Optional[int] = None,
    ) -> ResultadoMovimentacao:
        """Registra uma movimentação e devolve o registro e o produto atualizado.

        Raises:
            InvalidQuantity, NoOperationSelected, ValidationError: payload inválido.
            ProductNotFound: produto desconhecido ou inativo.
            InsufficientStock: SAÍDA deixaria o saldo negativo (política padrão).
            ConflictError: versão divergente ou lock de escrita indisponível.
            IntegrityError: produto bloqueado pela auditoria.
        """
        payload = dict(payload or {})
        dados_log = {"produto_id": produto_id, **payload}
        tipo_log = getattr(tipo, "value", tipo)
        try:
            tipo = _tipo(tipo)
            tipo_log = tipo.value
            montar = self._preparar(tipo, payload)
            mov, produto = self.repo.aplicar_movimento(produto_id, montar, versao_esperada)
        except EstoqueError as e:
            log_movimentacao("rejected", tipo_log, produto_id, erro=e.kind, mensagem=e.mensagem)
            log_transaction(tipo_log, dados_log, error=f"{e.kind}: {e.mensagem}")
            raise

        log_movimentacao(
            "commit", tipo.value, produto_id, mov.quantidade_delta,
            sequencia=mov.sequencia, saldo_resultante=mov.saldo_resultante,
        )
        log_transaction(tipo.value, dados_log, result={"id": mov.id, "saldo": produto.estoque_atual})
        return ResultadoMovimentacao(movimentacao=mov, produto=produto)

    def _preparar(self, tipo: TipoMovimento, payload: Dict[str, Any]):
        """Valida o payload e devolve a função que monta o rascunho sob o lock."""
        comuns = {
            "documento": _normalize_str(payload.get("documento")),
            "observacao": _normalize_str(payload.get("observacao")),
            "usuario": _normalize_str(payload.get("usuario")),
        }

        if tipo is TipoMovimento.AJUSTE:
            ajuste = ajuste_de_payload(payload)
            origem = _origem(payload.get("origem"), OrigemMovimento.MANUAL)
            return lambda produto: self._rascunho_ajuste(produto, ajuste, origem, comuns)

        quantidade = validar_quantidade_positiva(payload.get("quantidade"))
        custo = payload.get("custo_unitario")
        custo = validar_nao_negativo(custo, "custo_unitario") if custo not in (None, "") else None

        if tipo is TipoMovimento.ENTRADA:
            origem = _origem(payload.get("origem"), OrigemMovimento.COMPRA)

            def montar_entrada(produto: Produto) -> RascunhoMovimento:
                return RascunhoMovimento(
                    tipo=tipo, quantidade_delta=quantidade, quantidade=quantidade,
                    custo_unitario=custo, origem=origem, **comuns,
                )
            return montar_entrada

        motivo, detalhe = MotivoSaida.from_raw(payload.get("motivo"))
        detalhe = _normalize_str(payload.get("motivo_detalhe")) or detalhe
        origem = _origem(payload.get("origem"), _ORIGEM_POR_MOTIVO.get(motivo, OrigemMovimento.MANUAL))
        permitir_negativo = self.preferencias.permitir_estoque_negativo

        def montar_saida(produto: Produto) -> RascunhoMovimento:
            if not permitir_negativo and produto.estoque_atual - quantidade < -TOLERANCIA_SALDO:
                raise InsufficientStock(produto.id, produto.estoque_atual, quantidade)
            return RascunhoMovimento(
                tipo=tipo, quantidade_delta=-quantidade, quantidade=quantidade,
                custo_unitario=custo, motivo=motivo, motivo_detalhe=detalhe,
                origem=origem, **comuns,
            )
        return montar_saida

    @staticmethod
    def _rascunho_ajuste(
        produto: Produto,
        ajuste: AjustePayload,
        origem: OrigemMovimento,
        comuns: Dict[str, Optional[str]],
    ) -> RascunhoMovimento:
        delta = 0.0
        if ajuste.altera_saldo:
            delta = float(ajuste.novo_saldo) - float(produto.estoque_atual)
        return RascunhoMovimento(
            tipo=TipoMovimento.AJUSTE,
            quantidade_delta=delta,
            quantidade=ajuste.novo_saldo,
            novo_minimo=ajuste.novo_minimo,
            origem=origem,
            **comuns,
        )

    def registrar_entrada(self, produto_id: str, quantidade: Any, custo_unitario: Any = None, **extras: Any) -> ResultadoMovimentacao:
        versao = extras.pop("versao_esperada", None)
        return self.registrar_movimentacao(
            TipoMovimento.ENTRADA, produto_id,
            {"quantidade": quantidade, "custo_unitario": custo_unitario, **extras},
            versao_esperada=versao,
        )

    def registrar_saida(self, produto_id: str, quantidade: Any, motivo: Any = None, **extras: Any) -> ResultadoMovimentacao:
        versao = extras.pop("versao_esperada", None)
        return self.registrar_movimentacao(
            TipoMovimento.SAIDA, produto_id,
            {"quantidade": quantidade, "motivo": motivo, **extras},
            versao_esperada=versao,
        )

    def registrar_ajuste(
        self,
        produto_id: str,
        novo_saldo: Any = None,
        novo_minimo: Any = None,
        **extras: Any,
    ) -> ResultadoMovimentacao:
        """AJUSTE com os campos informados (``None`` = interruptor desligado)."""
        payload: Dict[str, Any] = dict(extras)
        versao = payload.pop("versao_esperada", None)
        if novo_saldo is not None:
            payload["alterar_saldo"] = {"novo_saldo": novo_saldo}
        if novo_minimo is not None:
            payload["alterar_minimo"] = {"novo_minimo": novo_minimo}
        return self.registrar_movimentacao(TipoMovimento.AJUSTE, produto_id, payload, versao_esperada=versao)

    # -------------------------
    # Leitura
    # -------------------------

    @staticmethod
    def montar_filtro(
        produto_id: Optional[str] = None,
        tipo: Any = None,
        data_inicio: Any = None,
        data_fim: Any = None,
        texto: Optional[str] = None,
        limite: Optional[int] = None,
        deslocamento: int = 0,
    ) -> FiltroMovimentacoes:
        if limite is not None and int(limite) < 0:
            raise ValidationError("'limite' não pode ser negativo", limite=limite)
        if deslocamento and int(deslocamento) < 0:
            raise ValidationError("'deslocamento' não pode ser negativo", deslocamento=deslocamento)
        return FiltroMovimentacoes(
            produto_id=_normalize_str(produto_id),
            tipo=_tipo(tipo) if tipo not in (None, "") else None,
            data_inicio=como_datetime(data_inicio),
            data_fim=como_datetime(data_fim, fim_do_dia=True),
            texto=_normalize_str(texto),
            limite=int(limite) if limite is not None else None,
            deslocamento=int(deslocamento or 0),
        )

    def listar_movimentacoes(self, filtro: Optional[FiltroMovimentacoes] = None, **criterios: Any) -> List[Movimentacao]:
        """Movimentações em ordem cronológica (empate pela sequência).

        Cada chamada consulta o repositório de novo; limites de data são
        inclusivos e uma data sem hora cobre o dia inteiro.
        """
        if filtro is None:
            filtro = self.montar_filtro(**criterios)
        return self.repo.listar_movimentacoes(filtro)

    def contar_movimentacoes(self, filtro: Optional[FiltroMovimentacoes] = None, **criterios: Any) -> int:
        if filtro is None:
            filtro = self.montar_filtro(**criterios)
        return self.repo.contar_movimentacoes(filtro)

    # -------------------------
    # Cadastro mínimo de produtos
    # -------------------------

    def cadastrar_produto(
        self,
        sku: str,
        nome: str,
        unidade: Any = UnidadeMedida.UN,
        estoque_minimo: Any = None,
        data_validade: Any = None,
        saldo_inicial: Any = 0.0,
        produto_id: Optional[str] = None,
    ) -> Produto:
        sku = _normalize_str(sku)
        nome = _normalize_str(nome)
        if not sku or not nome:
            raise ValidationError("SKU e nome são obrigatórios", sku=sku, nome=nome)
        try:
            unidade = enum_de(UnidadeMedida, unidade or UnidadeMedida.UN)
        except ValueError:
            raise ValidationError(f"Unidade inválida: {unidade!r}", unidade=unidade)
        minimo = validar_nao_negativo(estoque_minimo, "estoque_minimo") if estoque_minimo not in (None, "") else None
        saldo = validar_nao_negativo(saldo_inicial if saldo_inicial not in (None, "") else 0.0, "saldo_inicial")

        produto = Produto(
            id=produto_id or novo_id(),
            sku=sku,
            nome=nome,
            unidade=unidade,
            estoque_minimo=minimo,
            data_validade=como_data(data_validade),
            estoque_atual=saldo,
            saldo_inicial=saldo,
            criado_em=self.repo.relogio(),
        )
        self.repo.inserir_produto(produto)
        log_system_event("produto_cadastrado", {"produto_id": produto.id, "sku": sku, "saldo_inicial": saldo})
        return produto

    def desativar_produto(self, produto_id: str) -> Produto:
        if self.repo.obter_produto(produto_id) is None:
            raise ProductNotFound(produto_id)
        produto = self.repo.definir_ativo(produto_id, False)
        log_system_event("produto_desativado", {"produto_id": produto_id})
        return produto

    def excluir_produto(self, produto_id: str) -> str:
        """Remove fisicamente só produtos sem histórico; os demais são desativados.

        Returns:
            ``"removido"`` ou ``"desativado"``.
        """
        if self.repo.obter_produto(produto_id) is None:
            raise ProductNotFound(produto_id)
        if self.repo.tem_movimentacoes(produto_id):
            self.desativar_produto(produto_id)
            return "desativado"
        self.repo.remover_produto(produto_id)
        log_system_event("produto_removido", {"produto_id": produto_id})
        return "removido"
