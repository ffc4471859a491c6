# armazem/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios leem linhas do SQLite e devolvem estas dataclasses;
  as operações públicas devolvem dicionários (``asdict``) dentro do
  envelope ``{"success": True, "data": {...}}``.
- Os valores de status e de tipo de movimentação são gravados literalmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class StatusProduto:
    LOCADO = "LOCADO"
    AGUARDANDO_RETIRADA = "AGUARDANDO_RETIRADA"
    RETIRADO = "RETIRADO"

    ATIVOS = (LOCADO, AGUARDANDO_RETIRADA)
    TODOS = (LOCADO, AGUARDANDO_RETIRADA, RETIRADO)


class StatusSolicitacao:
    PENDENTE = "PENDENTE"
    CONFIRMADA = "CONFIRMADA"
    CANCELADA = "CANCELADA"


class TipoRetirada:
    TOTAL = "TOTAL"
    PARCIAL = "PARCIAL"

    TODOS = (TOTAL, PARCIAL)


class TipoMovimentacao:
    ENTRADA = "entry"
    SAIDA = "exit"
    TRANSFERENCIA = "transfer"
    AJUSTE = "adjustment"

    TODOS = (ENTRADA, SAIDA, TRANSFERENCIA, AJUSTE)


class EventoMovimentacao:
    """Valor de ``metadata['evento']`` de cada movimentação gerada."""
    CRIACAO = "criacao"
    TRANSFERENCIA = "transferencia"
    REMOCAO = "remocao"
    SOLICITACAO_RETIRADA = "solicitacao_retirada"
    CANCELAMENTO_RETIRADA = "cancelamento_retirada"
    RETIRADA_TOTAL = "retirada_total"
    RETIRADA_PARCIAL = "retirada_parcial"
    ADICAO_ESTOQUE = "adicao_estoque"
    AJUSTE_MANUAL = "ajuste_manual"


class StatusCamara:
    ATIVA = "active"
    MANUTENCAO = "maintenance"
    INATIVA = "inactive"

    TODOS = (ATIVA, MANUTENCAO, INATIVA)


TIPOS_ARMAZENAMENTO = ("saco", "bag")
LADOS = "ABCDEFGHIJKLMNOPQRST"


@dataclass
class Camara:
    """Câmara fria e suas dimensões (quadras x lados x filas x andares)."""
    nome: str
    quadras: int
    lados: int
    filas: int
    andares: int
    status: str = StatusCamara.ATIVA
    id: Optional[int] = None
    criado_em: Optional[str] = None

    @property
    def total_localizacoes(self) -> int:
        return self.quadras * self.lados * self.filas * self.andares


@dataclass
class Localizacao:
    camara_id: int
    quadra: int
    lado: str
    fila: int
    andar: int
    codigo: str
    capacidade_max_kg: float = 1000.0
    peso_atual_kg: float = 0.0
    ocupada: bool = False
    versao: int = 0
    nivel_acesso: str = "ground"
    id: Optional[int] = None

    @property
    def capacidade_disponivel_kg(self) -> float:
        return round(self.capacidade_max_kg - self.peso_atual_kg, 3)


@dataclass
class Produto:
    lote: str
    quantidade: int
    peso_por_unidade: float
    peso_total: float
    localizacao_id: Optional[int]
    status: str = StatusProduto.LOCADO
    versao: int = 0
    nome: Optional[str] = None
    tipo_semente: Optional[str] = None
    tipo_armazenamento: str = "saco"
    data_entrada: Optional[str] = None
    data_validade: Optional[str] = None
    atributos: Dict[str, Any] = field(default_factory=dict)
    criado_por: Optional[str] = None
    modificado_por: Optional[str] = None
    criado_em: Optional[str] = None
    atualizado_em: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Movimentacao:
    tipo: str
    produto_id: int
    quantidade: float
    peso: float
    usuario_id: str
    motivo: str
    origem_id: Optional[int] = None
    destino_id: Optional[int] = None
    automatica: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[str] = None
    id: Optional[int] = None


@dataclass
class SolicitacaoRetirada:
    produto_id: int
    tipo: str
    quantidade_solicitada: int
    solicitado_por: str
    status: str = StatusSolicitacao.PENDENTE
    motivo: Optional[str] = None
    solicitado_em: Optional[str] = None
    resolvido_em: Optional[str] = None
    resolvido_por: Optional[str] = None
    quantidade_retirada: Optional[int] = None
    id: Optional[int] = None
