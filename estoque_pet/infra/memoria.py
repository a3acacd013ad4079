# estoque_pet/infra/memoria.py
"""
Repositório em memória (testes, simulações e uso embutido).

Concorrência:
- Um `threading.Lock` por produto serializa leitura-modificação-escrita do
  saldo; produtos diferentes avançam em paralelo.
- A lista do razão tem lock próprio para o append e para as leituras.

Todas as leituras devolvem cópias; alterar o objeto devolvido não altera o
estado armazenado.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from estoque_pet.domain.errors import ConflictError, ProductNotFound, ValidationError
from estoque_pet.domain.models import (
    ContagemInventario,
    FiltroMovimentacoes,
    Movimentacao,
    Produto,
)
from estoque_pet.infra.repositories import (
    MontarMovimento,
    RepositorioEstoque,
    construir_movimentacao,
    filtrar_movimentacao,
    proximo_instante,
    verificar_gravavel,
)


def _copiar_contagem(c: ContagemInventario) -> ContagemInventario:
    return replace(c, itens=[replace(i) for i in c.itens])


class MemoriaRepositorioEstoque(RepositorioEstoque):
    def __init__(self, relogio: Callable[[], datetime] = datetime.now):
        self.relogio = relogio
        self._produtos: Dict[str, Produto] = {}
        self._movimentacoes: List[Movimentacao] = []
        self._contagens: Dict[str, ContagemInventario] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._razao_lock = threading.Lock()

    def _lock(self, produto_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(produto_id)
            if lock is None:
                lock = self._locks[produto_id] = threading.Lock()
            return lock

    # ---- produtos ----

    def obter_produto(self, produto_id: str) -> Optional[Produto]:
        p = self._produtos.get(produto_id)
        return replace(p) if p else None

    def obter_produto_por_sku(self, sku: str) -> Optional[Produto]:
        for p in self._produtos.values():
            if p.sku == sku:
                return replace(p)
        return None

    def listar_produtos(self, incluir_inativos: bool = False) -> List[Produto]:
        out = [replace(p) for p in self._produtos.values() if incluir_inativos or p.ativo]
        out.sort(key=lambda p: (p.nome, p.sku))
        return out

    def inserir_produto(self, produto: Produto) -> Produto:
        with self._locks_guard:
            if produto.id in self._produtos or any(p.sku == produto.sku for p in self._produtos.values()):
                raise ValidationError(f"Produto duplicado (id ou SKU já cadastrado): {produto.sku}", sku=produto.sku)
            self._produtos[produto.id] = replace(produto)
        return replace(produto)

    def _atualizar(self, produto_id: str, versao_esperada: Optional[int] = None, **campos) -> Produto:
        with self._lock(produto_id):
            p = self._produtos.get(produto_id)
            if p is None:
                raise ProductNotFound(produto_id)
            if versao_esperada is not None and p.versao != int(versao_esperada):
                raise ConflictError(
                    "O estoque deste produto mudou; atualize e tente novamente",
                    produto_id=produto_id,
                    versao_esperada=versao_esperada,
                    versao_atual=p.versao,
                )
            novo = replace(p, **campos)
            self._produtos[produto_id] = novo
            return replace(novo)

    def definir_ativo(self, produto_id: str, ativo: bool) -> Produto:
        return self._atualizar(produto_id, ativo=bool(ativo))

    def definir_bloqueio(
        self, produto_id: str, bloqueado: bool, versao_esperada: Optional[int] = None
    ) -> Produto:
        return self._atualizar(produto_id, versao_esperada, bloqueado=bool(bloqueado))

    def remover_produto(self, produto_id: str) -> None:
        with self._lock(produto_id):
            if produto_id not in self._produtos:
                raise ProductNotFound(produto_id)
            if self.tem_movimentacoes(produto_id):
                raise ValidationError("Produto com histórico no razão não pode ser removido; desative-o", produto_id=produto_id)
            del self._produtos[produto_id]

    def reconciliar_saldo_cache(self, produto_id: str, saldo: float) -> Produto:
        with self._lock(produto_id):
            p = self._produtos.get(produto_id)
            if p is None:
                raise ProductNotFound(produto_id)
            novo = replace(p, estoque_atual=float(saldo), bloqueado=False, versao=p.versao + 1)
            self._produtos[produto_id] = novo
            return replace(novo)

    # ---- razão ----

    def aplicar_movimento(
        self,
        produto_id: str,
        montar: MontarMovimento,
        versao_esperada: Optional[int] = None,
    ) -> Tuple[Movimentacao, Produto]:
        with self._lock(produto_id):
            produto = verificar_gravavel(self.obter_produto(produto_id), produto_id, versao_esperada)
            rascunho = montar(produto)
            with self._razao_lock:
                anteriores = [m for m in self._movimentacoes if m.produto_id == produto_id]
                ultimo = anteriores[-1] if anteriores else None
                sequencia = (ultimo.sequencia if ultimo else 0) + 1
                data = proximo_instante(self.relogio(), ultimo.data if ultimo else None)
                mov, atualizado = construir_movimentacao(produto, rascunho, sequencia, data)
                self._movimentacoes.append(mov)
                self._produtos[produto_id] = atualizado
            return replace(mov), replace(atualizado)

    def _filtradas(self, filtro: Optional[FiltroMovimentacoes]) -> List[Movimentacao]:
        filtro = filtro or FiltroMovimentacoes()
        with self._razao_lock:
            itens = [replace(m) for m in self._movimentacoes if filtrar_movimentacao(m, filtro)]
        itens.sort(key=lambda m: (m.data, m.sequencia))
        return itens

    def listar_movimentacoes(self, filtro: Optional[FiltroMovimentacoes] = None) -> List[Movimentacao]:
        filtro = filtro or FiltroMovimentacoes()
        itens = self._filtradas(filtro)
        inicio = int(filtro.deslocamento or 0)
        fim = None if filtro.limite is None else inicio + int(filtro.limite)
        return itens[inicio:fim]

    def contar_movimentacoes(self, filtro: Optional[FiltroMovimentacoes] = None) -> int:
        return len(self._filtradas(filtro))

    def retrato_razao(self, produto_id: str) -> Tuple[Optional[Produto], List[Movimentacao]]:
        # mesma ordem de locks de aplicar_movimento
        with self._lock(produto_id), self._razao_lock:
            p = self._produtos.get(produto_id)
            if p is None:
                return None, []
            movs = [replace(m) for m in self._movimentacoes if m.produto_id == produto_id]
        movs.sort(key=lambda m: m.sequencia)
        return replace(p), movs

    # ---- contagens ----

    def salvar_contagem(self, contagem: ContagemInventario) -> None:
        with self._locks_guard:
            self._contagens[contagem.id] = _copiar_contagem(contagem)

    def obter_contagem(self, contagem_id: str) -> Optional[ContagemInventario]:
        c = self._contagens.get(contagem_id)
        return _copiar_contagem(c) if c else None

    def listar_contagens(self) -> List[ContagemInventario]:
        out = [_copiar_contagem(c) for c in self._contagens.values()]
        out.sort(key=lambda c: c.criado_em or datetime.min, reverse=True)
        return out
