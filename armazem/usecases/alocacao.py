# armazem/usecases/alocacao.py
"""
Alocador de localizações.

Único ponto do sistema que altera ``ocupada``/``peso_atual_kg`` de uma
localização. Todas as funções recebem a unidade de trabalho da operação
em curso, de modo que a escrita na localização entra no mesmo commit que
a escrita no produto e a movimentação do ledger.

- validar_capacidade():           diagnóstico (não grava nada)
- encontrar_localizacao_otima():  melhor localização livre para um peso
- ocupar() / liberar():           únicas operações que mudam ``ocupada``
- adicionar_peso() / remover_peso(): ajustes de peso em localização ocupada
"""

from __future__ import annotations

from dataclasses import asdict, replace
from typing import Any, Dict, List, Optional

from armazem.config import DEFAULTS, DefaultConfig
from armazem.domain.erros import (
    CapacityExceededError,
    LocationOccupiedError,
    NotFoundError,
    OptimisticLockError,
    ValidationError,
)
from armazem.domain.models import Localizacao, StatusCamara
from armazem.domain.policies import (
    excede_margem,
    pontuacao_localizacao,
    status_capacidade,
)
from armazem.infra.uow import UnidadeTrabalho

EPS = 1e-9


def _exigir_localizacao(uow: UnidadeTrabalho, localizacao_id: int) -> Localizacao:
    loc = uow.localizacoes.obter(localizacao_id)
    if loc is None:
        raise NotFoundError("Localização não encontrada", localizacao_id=localizacao_id)
    return loc


def _peso_valido(peso: Any) -> float:
    try:
        valor = float(peso)
    except (TypeError, ValueError):
        raise ValidationError("Peso deve ser numérico", peso=peso)
    if valor < 0:
        raise ValidationError("Peso não pode ser negativo", peso=valor)
    return valor


def ranquear(locais: List[Localizacao], peso: float, limite: Optional[int] = None) -> List[Dict[str, Any]]:
    """Ordena localizações livres pela pontuação (andar baixo e folga de capacidade)."""
    ranking = [
        {
            "localizacao": asdict(loc),
            "score": pontuacao_localizacao(
                loc.andar, loc.capacidade_disponivel_kg - peso, loc.capacidade_max_kg
            ),
        }
        for loc in locais
    ]
    ranking.sort(key=lambda r: (-r["score"], r["localizacao"]["andar"], r["localizacao"]["id"]))
    return ranking[:limite] if limite is not None else ranking


def validar_capacidade(
    uow: UnidadeTrabalho,
    localizacao_id: int,
    peso: Any,
    cfg: DefaultConfig = DEFAULTS,
    nova_alocacao: bool = True,
    incluir_sugestoes: bool = False,
) -> Dict[str, Any]:
    """Verifica se ``peso`` kg cabem na localização.

    Ordem das checagens: peso válido, localização existente, câmara ativa,
    ocupação (apenas para nova alocação) e capacidade. Falhas de regra
    voltam como ``{"valid": False, "code": ...}``; apenas entrada inválida
    e localização inexistente levantam exceção.

    Args:
        uow: Unidade de trabalho corrente.
        localizacao_id: Localização avaliada.
        peso: Peso a acrescentar (kg).
        cfg: Parâmetros (margem de segurança, limite de sugestões).
        nova_alocacao: Se ``True``, localização ocupada é recusada.
        incluir_sugestoes: Anexa alternativas livres ranqueadas.

    Returns:
        Dicionário com ``valid``, ``code``, ``warnings`` e, conforme o caso,
        ``reason``, ``deficit``, ``analysis`` e ``suggestions``.
    """
    peso = _peso_valido(peso)
    loc = _exigir_localizacao(uow, localizacao_id)
    resultado: Dict[str, Any] = {"valid": True, "code": "CAPACITY_OK", "warnings": []}

    if uow.localizacoes.status_camara(loc.id) != StatusCamara.ATIVA:
        resultado.update(valid=False, code="CHAMBER_INACTIVE", reason="Câmara não está ativa")
    elif nova_alocacao and loc.ocupada:
        resultado.update(
            valid=False, code="LOCATION_OCCUPIED", reason="Localização já está ocupada"
        )
    else:
        peso_final = round(loc.peso_atual_kg + peso, 3)
        if peso_final > loc.capacidade_max_kg + EPS:
            deficit = round(peso_final - loc.capacidade_max_kg, 3)
            resultado.update(
                valid=False,
                code="INSUFFICIENT_CAPACITY",
                reason=f"Capacidade insuficiente. Excesso de {deficit} kg",
                deficit=deficit,
            )
        else:
            resultado["analysis"] = {
                "capacidade_disponivel_kg": loc.capacidade_disponivel_kg,
                "capacidade_max_kg": loc.capacidade_max_kg,
                "peso_atual_kg": loc.peso_atual_kg,
                "peso_final_kg": peso_final,
                "utilizacao_apos": round(peso_final / loc.capacidade_max_kg * 100, 1),
                "status_capacidade": status_capacidade(peso_final, loc.capacidade_max_kg),
            }
            if excede_margem(peso_final, loc.capacidade_max_kg, cfg.margem_seguranca):
                resultado["warnings"].append(
                    f"Peso final ultrapassa a margem de segurança de "
                    f"{round(cfg.margem_seguranca * 100, 1)}% da capacidade"
                )

    if incluir_sugestoes:
        livres = uow.localizacoes.livres(peso, excluir_id=loc.id)
        resultado["suggestions"] = ranquear(livres, peso, cfg.limite_sugestoes)
    return resultado


def encontrar_localizacao_otima(
    uow: UnidadeTrabalho,
    dados: Dict[str, Any],
    cfg: DefaultConfig = DEFAULTS,
    camara_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Escolhe a melhor localização livre para o produto descrito em ``dados``.

    Não levanta exceção quando nada serve: devolve ``success=False``.
    """
    try:
        ppu = float(dados.get("peso_por_unidade") or 0)
        quantidade = float(dados.get("quantidade") or 1)
    except (TypeError, ValueError):
        return {"success": False, "message": "Peso por unidade deve ser maior que zero"}
    if ppu <= 0:
        return {"success": False, "message": "Peso por unidade deve ser maior que zero"}

    peso = round(quantidade * ppu, 3)
    ranking = ranquear(uow.localizacoes.livres(peso, camara_id=camara_id), peso)
    if not ranking:
        return {"success": False, "message": "Nenhuma localização disponível encontrada"}

    melhor, alternativas = ranking[0], ranking[1:1 + cfg.limite_sugestoes]
    return {
        "success": True,
        "data": {
            "location": melhor["localizacao"],
            "score": melhor["score"],
            "alternatives": alternativas,
        },
    }


def ocupar(uow: UnidadeTrabalho, localizacao_id: int, peso: float) -> Localizacao:
    """Marca a localização como ocupada com ``peso`` kg (CAS na versão + vacância)."""
    loc = _exigir_localizacao(uow, localizacao_id)
    if loc.ocupada:
        raise LocationOccupiedError("Localização já está ocupada", localizacao_id=loc.id)
    if peso > loc.capacidade_max_kg + EPS:
        raise CapacityExceededError(
            "Capacidade insuficiente",
            deficit=round(peso - loc.capacidade_max_kg, 3),
            localizacao_id=loc.id,
        )
    if not uow.localizacoes.gravar_estado(loc.id, loc.versao, peso, True, exigir_livre=True):
        raise LocationOccupiedError("Localização já está ocupada", localizacao_id=loc.id)
    return replace(loc, ocupada=True, peso_atual_kg=round(peso, 3), versao=loc.versao + 1)


def liberar(uow: UnidadeTrabalho, localizacao_id: int) -> Localizacao:
    """Zera o peso e desocupa a localização."""
    loc = _exigir_localizacao(uow, localizacao_id)
    if not loc.ocupada:
        raise ValidationError("Localização não está ocupada", localizacao_id=loc.id)
    _gravar(uow, loc, 0.0, False)
    return replace(loc, ocupada=False, peso_atual_kg=0.0, versao=loc.versao + 1)


def adicionar_peso(uow: UnidadeTrabalho, localizacao_id: int, peso: float) -> Localizacao:
    loc = _exigir_localizacao(uow, localizacao_id)
    if not loc.ocupada:
        raise ValidationError("Localização não está ocupada", localizacao_id=loc.id)
    novo = round(loc.peso_atual_kg + _peso_valido(peso), 3)
    if novo > loc.capacidade_max_kg + EPS:
        raise CapacityExceededError(
            "Capacidade insuficiente",
            deficit=round(novo - loc.capacidade_max_kg, 3),
            localizacao_id=loc.id,
        )
    _gravar(uow, loc, novo, True)
    return replace(loc, peso_atual_kg=novo, versao=loc.versao + 1)


def remover_peso(uow: UnidadeTrabalho, localizacao_id: int, peso: float) -> Localizacao:
    loc = _exigir_localizacao(uow, localizacao_id)
    if not loc.ocupada:
        raise ValidationError("Localização não está ocupada", localizacao_id=loc.id)
    retirado = _peso_valido(peso)
    novo = round(loc.peso_atual_kg - retirado, 3)
    if novo < 0:
        raise ValidationError(
            "Peso a remover excede o peso armazenado na localização",
            localizacao_id=loc.id,
            peso_atual_kg=loc.peso_atual_kg,
            peso=retirado,
        )
    _gravar(uow, loc, novo, True)
    return replace(loc, peso_atual_kg=novo, versao=loc.versao + 1)


def _gravar(uow: UnidadeTrabalho, loc: Localizacao, peso: float, ocupada: bool) -> None:
    if not uow.localizacoes.gravar_estado(loc.id, loc.versao, peso, ocupada):
        raise OptimisticLockError(
            "Localização alterada por outra operação; releia e tente novamente",
            entidade="localizacao",
            entidade_id=loc.id,
            esperada=loc.versao,
        )
