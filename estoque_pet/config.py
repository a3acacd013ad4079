# estoque_pet/config.py
"""
Configurações globais e valores padrão do razão de estoque.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("ESTOQUE_PET_DB") or os.path.join(os.getcwd(), "estoque_pet.db")

# Tolerância usada ao comparar saldo em cache com o replay do razão
TOLERANCIA_SALDO = 1e-6


@dataclass
class DefaultConfig:
    """Valores padrão das preferências de estoque (tabela `params`)."""
    considerar_validade: bool = True
    estoque_minimo_padrao: float = 10.0
    dias_alerta_validade: int = 30
    permitir_estoque_negativo: bool = False  # inverso de "bloquear venda sem estoque"
    timeout_bloqueio_s: float = 5.0          # espera pelo lock de escrita do SQLite


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
