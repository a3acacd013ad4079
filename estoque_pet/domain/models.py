# estoque_pet/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios devolvem cópias destas dataclasses; alterar uma instância
  devolvida não altera o estado armazenado. Toda mudança de saldo passa pelo
  razão (`usecases.razao.Razao`).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TipoMovimento(str, Enum):
    ENTRADA = "ENTRADA"
    SAIDA = "SAIDA"
    AJUSTE = "AJUSTE"


class MotivoSaida(str, Enum):
    """Motivos de SAÍDA. `OUTRO` guarda o texto livre em `motivo_detalhe`."""
    VENDA = "VENDA"
    PERDA = "PERDA"
    CONSUMO = "CONSUMO"
    OUTRO = "OUTRO"

    @classmethod
    def from_raw(cls, raw: Any) -> Tuple["MotivoSaida", Optional[str]]:
        """Mapeia texto livre ("Venda", "perda"...) para o enum.

        Retorna ``(motivo, detalhe)``; textos desconhecidos viram ``OUTRO`` e
        o texto original é preservado como detalhe.
        """
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return cls.VENDA, None
        if isinstance(raw, cls):
            return raw, None
        s = str(raw).strip()
        try:
            return cls(s.upper()), None
        except ValueError:
            return cls.OUTRO, s


class OrigemMovimento(str, Enum):
    COMPRA = "COMPRA"
    VENDA = "VENDA"
    PERDA = "PERDA"
    INVENTARIO = "INVENTARIO"
    MANUAL = "MANUAL"


class UnidadeMedida(str, Enum):
    UN = "UN"
    KG = "KG"
    L = "L"
    CX = "CX"


class StatusEstoque(str, Enum):
    RUPTURA = "RUPTURA"              # sem estoque (saldo <= 0)
    ABAIXO_MINIMO = "ABAIXO_MINIMO"
    NORMAL = "NORMAL"


class TipoContagem(str, Enum):
    CEGA = "CEGA"
    PARCIAL = "PARCIAL"


class StatusContagem(str, Enum):
    ABERTA = "ABERTA"
    EM_CONTAGEM = "EM_CONTAGEM"
    FINALIZADA = "FINALIZADA"
    CANCELADA = "CANCELADA"


def enum_de(cls, valor: Any):
    """Aceita o próprio membro ou o texto ("entrada", " UN "). ValueError se inválido."""
    if isinstance(valor, cls):
        return valor
    return cls(str(valor).strip().upper())


def _serializar(valor: Any) -> Any:
    if isinstance(valor, Enum):
        return valor.value
    if isinstance(valor, (date, datetime)):
        return valor.isoformat()
    if isinstance(valor, list):
        return [_serializar(v) for v in valor]
    if isinstance(valor, dict):
        return {k: _serializar(v) for k, v in valor.items()}
    return valor


def to_dict(obj: Any) -> Dict[str, Any]:
    """Converte uma dataclass do domínio em dicionário JSON-friendly."""
    return _serializar(asdict(obj))


@dataclass
class PreferenciasEstoque:
    """Preferências do tenant (armazenadas na tabela `params` como chave/valor)."""
    considerar_validade: bool = True
    estoque_minimo_padrao: Optional[float] = 10.0
    dias_alerta_validade: int = 30
    permitir_estoque_negativo: bool = False


@dataclass
class Produto:
    """Referência de produto vista pelo razão."""
    id: str
    sku: str
    nome: str
    unidade: UnidadeMedida = UnidadeMedida.UN
    ativo: bool = True
    estoque_minimo: Optional[float] = None
    data_validade: Optional[date] = None
    estoque_atual: float = 0.0        # escrito apenas pelo razão
    saldo_inicial: float = 0.0        # saldo na adoção do razão
    versao: int = 0
    bloqueado: bool = False           # travado pela auditoria de consistência
    criado_em: Optional[datetime] = None


@dataclass
class Movimentacao:
    """Registro imutável do razão."""
    id: str
    produto_id: str
    sequencia: int
    tipo: TipoMovimento
    data: datetime
    quantidade_delta: float
    saldo_anterior: float
    saldo_resultante: float
    sku: str = ""
    nome_produto: str = ""
    quantidade: Optional[float] = None
    custo_unitario: Optional[float] = None
    motivo: Optional[MotivoSaida] = None
    motivo_detalhe: Optional[str] = None
    origem: Optional[OrigemMovimento] = None
    documento: Optional[str] = None
    observacao: Optional[str] = None
    usuario: Optional[str] = None
    estoque_minimo_anterior: Optional[float] = None
    estoque_minimo_novo: Optional[float] = None


@dataclass
class RascunhoMovimento:
    """Movimentação calculada pelo razão, antes de receber id/sequência/data."""
    tipo: TipoMovimento
    quantidade_delta: float
    quantidade: Optional[float] = None
    novo_minimo: Optional[float] = None      # AJUSTE que altera o mínimo
    custo_unitario: Optional[float] = None
    motivo: Optional[MotivoSaida] = None
    motivo_detalhe: Optional[str] = None
    origem: Optional[OrigemMovimento] = None
    documento: Optional[str] = None
    observacao: Optional[str] = None
    usuario: Optional[str] = None


@dataclass
class FiltroMovimentacoes:
    produto_id: Optional[str] = None
    tipo: Optional[TipoMovimento] = None
    data_inicio: Optional[datetime] = None   # inclusivo
    data_fim: Optional[datetime] = None      # inclusivo
    texto: Optional[str] = None              # nome / SKU / documento
    limite: Optional[int] = None
    deslocamento: int = 0


@dataclass
class ResultadoMovimentacao:
    movimentacao: Movimentacao
    produto: Produto

    def to_dict(self) -> Dict[str, Any]:
        return {"product": to_dict(self.produto), "movement": to_dict(self.movimentacao)}


@dataclass
class ItemContagem:
    produto_id: str
    sku: str
    nome: str
    sistema_na_abertura: float
    contagem: Optional[float] = None


@dataclass
class ContagemInventario:
    """Sessão de contagem física de estoque."""
    id: str
    tipo: TipoContagem
    status: StatusContagem = StatusContagem.ABERTA
    criado_em: Optional[datetime] = None
    finalizada_em: Optional[datetime] = None
    observacao: Optional[str] = None
    itens: List[ItemContagem] = field(default_factory=list)
