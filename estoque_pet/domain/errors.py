# estoque_pet/domain/errors.py
"""
Erros do razão de estoque.

Toda falha exposta ao chamador carrega:
- ``kind``: identificador estável, legível por máquina;
- ``mensagem``: motivo legível por humanos (pt-BR);
- ``detalhes``: contexto adicional (produto, quantidades, versões...).

Hierarquia:
    EstoqueError
    ├── ValidationError       (entrada inválida; nada é gravado)
    │   ├── InvalidQuantity
    │   └── NoOperationSelected
    ├── NotFoundError         (produto desconhecido; nada é gravado)
    │   └── ProductNotFound
    ├── ConflictError         (escrita concorrente; refazer leitura e tentar de novo)
    │   └── InsufficientStock
    └── IntegrityError        (cache != replay do razão; bloqueia o produto)
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class EstoqueError(Exception):
    kind = "estoque_error"

    def __init__(self, mensagem: str, **detalhes: Any):
        super().__init__(mensagem)
        self.mensagem = mensagem
        self.detalhes: Dict[str, Any] = detalhes

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"erro": self.kind, "mensagem": self.mensagem}
        out.update(self.detalhes)
        return out


class ValidationError(EstoqueError):
    kind = "validation"


class InvalidQuantity(ValidationError):
    kind = "invalid_quantity"

    def __init__(self, campo: str, valor: Any, mensagem: Optional[str] = None):
        super().__init__(
            mensagem or f"Quantidade inválida em '{campo}': {valor!r}",
            campo=campo,
            valor=valor,
        )


class NoOperationSelected(ValidationError):
    kind = "no_operation_selected"

    def __init__(self, mensagem: str = "Selecione ao menos uma operação: alterar saldo e/ou alterar mínimo"):
        super().__init__(mensagem)


class NotFoundError(EstoqueError):
    kind = "not_found"


class ProductNotFound(NotFoundError):
    kind = "product_not_found"

    def __init__(self, produto_id: Any, mensagem: str = "Produto não encontrado"):
        super().__init__(mensagem, produto_id=produto_id)


class ConflictError(EstoqueError):
    kind = "conflict"


class InsufficientStock(ConflictError):
    kind = "insufficient_stock"

    def __init__(self, produto_id: Any, disponivel: float, solicitado: float):
        super().__init__(
            f"Estoque insuficiente: disponível {disponivel:g}, solicitado {solicitado:g}",
            produto_id=produto_id,
            disponivel=disponivel,
            solicitado=solicitado,
        )


class IntegrityError(EstoqueError):
    kind = "integrity"
