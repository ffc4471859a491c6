# armazem/config.py
"""
Configurações globais e valores padrão do motor de inventário.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.path.join(os.getcwd(), "armazem.db")


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    capacidade_padrao_kg: float = 1000.0    # capacidade de cada localização gerada
    margem_seguranca: float = 0.05          # 5% de folga recomendada na capacidade
    limite_sugestoes: int = 3               # localizações alternativas sugeridas
    horas_verificacao_pendente: float = 48.0
    tolerancia_peso: float = 0.05           # peso x (quantidade * peso_por_unidade)
    busy_timeout_s: float = 5.0             # espera por lock de escrita no SQLite


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()

# Chaves aceitas na tabela `params`
PARAM_KEYS = (
    "capacidade_padrao_kg",
    "margem_seguranca",
    "limite_sugestoes",
    "horas_verificacao_pendente",
    "tolerancia_peso",
)
