# estoque_pet/usecases/inventario.py
"""
UC: Contagem de inventário (CEGA ou PARCIAL).

- abrir_contagem: fotografa o saldo de sistema dos produtos selecionados.
- registrar_contagem: grava a quantidade física de um item.
- finalizar_contagem: gera um AJUSTE (origem INVENTARIO, documento INV-<id>)
  para cada item contado cuja contagem difere do saldo atual do produto.
- cancelar_contagem.

Se algum AJUSTE falhar na finalização, a contagem continua EM_CONTAGEM; os
itens já ajustados ficam com saldo igual à contagem, então finalizar de
novo só reprocessa os que falharam.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from estoque_pet.domain.ajuste import validar_nao_negativo
from estoque_pet.domain.errors import EstoqueError, NotFoundError, ProductNotFound, ValidationError
from estoque_pet.domain.models import (
    ContagemInventario,
    ItemContagem,
    OrigemMovimento,
    StatusContagem,
    TipoContagem,
    enum_de,
    to_dict,
)
from estoque_pet.infra.logger import log_system_event, log_transaction
from estoque_pet.infra.repositories import novo_id
from estoque_pet.usecases.razao import Razao


_ENCERRADAS = {StatusContagem.FINALIZADA, StatusContagem.CANCELADA}


def _obter(razao: Razao, contagem_id: str) -> ContagemInventario:
    c = razao.repo.obter_contagem(contagem_id)
    if c is None:
        raise NotFoundError("Inventário não encontrado", contagem_id=contagem_id)
    return c


def _aberta(c: ContagemInventario) -> None:
    if c.status is StatusContagem.FINALIZADA:
        raise ValidationError("Inventário já finalizado", contagem_id=c.id)
    if c.status is StatusContagem.CANCELADA:
        raise ValidationError("Inventário cancelado", contagem_id=c.id)


def abrir_contagem(
    razao: Razao,
    tipo: Any = TipoContagem.CEGA,
    produto_ids: Optional[Sequence[str]] = None,
    observacao: Optional[str] = None,
) -> ContagemInventario:
    try:
        tipo = enum_de(TipoContagem, tipo)
    except ValueError:
        raise ValidationError(f"Tipo de inventário inválido: {tipo!r}", tipo=tipo)

    produtos = razao.repo.listar_produtos()
    if produto_ids:
        ids = set(produto_ids)
        desconhecidos = ids - {p.id for p in produtos}
        if desconhecidos:
            raise ProductNotFound(sorted(desconhecidos)[0])
        produtos = [p for p in produtos if p.id in ids]

    contagem = ContagemInventario(
        id=novo_id(),
        tipo=tipo,
        criado_em=razao.repo.relogio(),
        observacao=observacao,
        itens=[
            ItemContagem(produto_id=p.id, sku=p.sku, nome=p.nome, sistema_na_abertura=float(p.estoque_atual))
            for p in produtos
        ],
    )
    razao.repo.salvar_contagem(contagem)
    log_system_event("inventario_aberto", {"contagem_id": contagem.id, "tipo": tipo.value, "itens": len(contagem.itens)})
    return contagem


def registrar_contagem(razao: Razao, contagem_id: str, produto_id: str, quantidade: Any) -> ContagemInventario:
    c = _obter(razao, contagem_id)
    _aberta(c)
    qtd = validar_nao_negativo(quantidade, "contagem")
    for item in c.itens:
        if item.produto_id == produto_id:
            item.contagem = qtd
            break
    else:
        raise ProductNotFound(produto_id, "Produto não faz parte deste inventário")
    c.status = StatusContagem.EM_CONTAGEM
    razao.repo.salvar_contagem(c)
    return c


def finalizar_contagem(razao: Razao, contagem_id: str, usuario: Optional[str] = None) -> Dict[str, Any]:
    """Gera os AJUSTES do inventário.

    Returns:
        {"contagem": ..., "ajustes": [movimentações], "falhas": [{produto_id, erro, mensagem}]}
    """
    c = _obter(razao, contagem_id)
    _aberta(c)

    ajustes: List[Dict[str, Any]] = []
    falhas: List[Dict[str, Any]] = []
    for item in c.itens:
        if item.contagem is None:
            continue
        # a contagem física vale contra o saldo de agora, não o da abertura
        atual = razao.repo.obter_produto(item.produto_id)
        diff = item.contagem - (atual.estoque_atual if atual else item.sistema_na_abertura)
        if diff == 0:
            continue
        try:
            res = razao.registrar_ajuste(
                item.produto_id,
                novo_saldo=item.contagem,
                origem=OrigemMovimento.INVENTARIO.value,
                documento=f"INV-{c.id}",
                observacao=f"Inventário {c.tipo.value} - Ajuste: {diff:+g}",
                usuario=usuario,
            )
        except EstoqueError as e:
            falhas.append({"produto_id": item.produto_id, **e.to_dict()})
            continue
        ajustes.append(to_dict(res.movimentacao))

    if not falhas:
        c.status = StatusContagem.FINALIZADA
        c.finalizada_em = razao.repo.relogio()
    razao.repo.salvar_contagem(c)

    resultado = {"contagem": to_dict(c), "ajustes": ajustes, "falhas": falhas}
    log_transaction(
        "inventario_finalizar",
        {"contagem_id": c.id},
        result={"ajustes": len(ajustes), "falhas": len(falhas)},
        error=f"{len(falhas)} ajuste(s) falharam" if falhas else None,
    )
    return resultado


def cancelar_contagem(razao: Razao, contagem_id: str) -> ContagemInventario:
    c = _obter(razao, contagem_id)
    if c.status in _ENCERRADAS:
        raise ValidationError(f"Inventário já {c.status.value.lower()}", contagem_id=c.id)
    c.status = StatusContagem.CANCELADA
    razao.repo.salvar_contagem(c)
    log_system_event("inventario_cancelado", {"contagem_id": c.id})
    return c


def obter_contagem(razao: Razao, contagem_id: str) -> ContagemInventario:
    return _obter(razao, contagem_id)
