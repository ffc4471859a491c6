"""
Hierarquia de exceções do motor de inventário.

Toda exceção carrega um ``code`` legível por máquina, usado pela CLI e
pelos chamadores externos para mapear o erro (ex.: para um status HTTP)
sem depender do texto da mensagem.

    ArmazemError
    +-- ValidationError          entrada malformada ou regra de quantidade
    +-- NotFoundError            id de produto/localização/solicitação inexistente
    +-- LocationOccupiedError    localização já possui produto ativo
    +-- CapacityExceededError    peso excede a capacidade (carrega ``deficit``)
    +-- InvalidTransitionError   transição de status ilegal
    +-- OptimisticLockError      versão lida não confere na escrita
    +-- DatabaseError            falha de infraestrutura (transação desfeita)

Apenas ``OptimisticLockError`` é segura para nova tentativa, e a nova
tentativa é responsabilidade de quem chamou.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ArmazemError(Exception):
    code = "ARMAZEM_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


class ValidationError(ArmazemError):
    code = "VALIDATION_ERROR"


class NotFoundError(ArmazemError):
    code = "NOT_FOUND"


class LocationOccupiedError(ArmazemError):
    code = "LOCATION_OCCUPIED"

    def __init__(self, message: str, localizacao_id: Optional[int] = None, **details: Any):
        super().__init__(message, localizacao_id=localizacao_id, **details)
        self.localizacao_id = localizacao_id


class CapacityExceededError(ArmazemError):
    code = "INSUFFICIENT_CAPACITY"

    def __init__(
        self,
        message: str,
        deficit: float,
        localizacao_id: Optional[int] = None,
        suggestions: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(
            message,
            deficit=deficit,
            localizacao_id=localizacao_id,
            suggestions=suggestions or [],
        )
        self.deficit = deficit
        self.localizacao_id = localizacao_id
        self.suggestions = suggestions or []


class InvalidTransitionError(ArmazemError):
    code = "INVALID_TRANSITION"

    def __init__(self, message: str, status_atual: Optional[str] = None, **details: Any):
        super().__init__(message, status_atual=status_atual, **details)
        self.status_atual = status_atual


class OptimisticLockError(ArmazemError):
    code = "OPTIMISTIC_LOCK"

    def __init__(self, message: str, entidade: str, entidade_id: Any, esperada: int):
        super().__init__(message, entidade=entidade, entidade_id=entidade_id, esperada=esperada)
        self.entidade = entidade
        self.entidade_id = entidade_id
        self.esperada = esperada


class DatabaseError(ArmazemError):
    code = "DATABASE_ERROR"
