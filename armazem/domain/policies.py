"""
Políticas de alocação e utilidades para o motor de inventário.

Este módulo contém funções que encapsulam regras de negócio de
classificação de capacidade, de pontuação de localizações e de
consistência de peso. As funções aqui expostas são utilizadas pela
camada de aplicação ao escolher onde alocar um produto e ao conferir
movimentações pendentes de verificação.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from armazem.domain.models import LADOS


def gerar_codigo(quadra: int, lado: str, fila: int, andar: int) -> str:
    """Código legível da localização, ex.: ``Q1-LA-F2-A3``."""
    return f"Q{quadra}-L{lado}-F{fila}-A{andar}"


def lado_por_indice(indice: int) -> str:
    """Converte o índice 1-based do lado na letra correspondente (1 → 'A')."""
    if not (1 <= indice <= len(LADOS)):
        raise ValueError(f"lado deve estar entre 1 e {len(LADOS)}")
    return LADOS[indice - 1]


def nivel_acesso(andar: int) -> str:
    """Classifica a facilidade de acesso físico pelo andar."""
    if andar <= 2:
        return "ground"
    if andar <= 5:
        return "elevated"
    return "high"


def status_capacidade(peso_atual: Optional[float], capacidade_max: Optional[float]) -> str:
    """Classifica a ocupação de uma localização.

    Regras:
        - Se algum dos parâmetros for ``None`` ou a capacidade for zero,
          retorna ``'VERIFICAR'``.
        - 0%            → ``'empty'``
        - abaixo de 50% → ``'low'``
        - abaixo de 80% → ``'medium'``
        - abaixo de 100% → ``'high'``
        - caso contrário → ``'full'``

    Args:
        peso_atual: Peso atualmente armazenado (kg).
        capacidade_max: Capacidade máxima da localização (kg).

    Returns:
        A classificação textual da ocupação.
    """
    try:
        atual = float(peso_atual) if peso_atual is not None else None
        maximo = float(capacidade_max) if capacidade_max is not None else None
    except (TypeError, ValueError):
        return "VERIFICAR"

    if atual is None or maximo is None or maximo <= 0:
        return "VERIFICAR"
    pct = atual / maximo * 100
    if pct == 0:
        return "empty"
    if pct < 50:
        return "low"
    if pct < 80:
        return "medium"
    if pct < 100:
        return "high"
    return "full"


def pontuacao_localizacao(andar: int, capacidade_restante: float, capacidade_max: float) -> float:
    """Pontua uma localização livre para receber um produto (0 a 100).

    Favorece andares baixos (acesso físico mais fácil) e maior folga de
    capacidade. O acesso pesa 60 pontos (``60 / andar``) e a folga 40
    pontos (fração da capacidade máxima ainda disponível).

    Args:
        andar: Andar da localização (1 = térreo).
        capacidade_restante: Capacidade ainda livre (kg).
        capacidade_max: Capacidade máxima da localização (kg).

    Returns:
        Pontuação arredondada a 2 casas decimais.
    """
    acesso = 1.0 / max(int(andar), 1)
    folga = 0.0
    if capacidade_max and capacidade_max > 0:
        folga = max(0.0, min(1.0, float(capacidade_restante) / float(capacidade_max)))
    return round(60.0 * acesso + 40.0 * folga, 2)


def excede_margem(peso_final: float, capacidade_max: float, margem: float) -> bool:
    """Indica se o peso final ultrapassa a capacidade segura (max * (1 - margem))."""
    return float(peso_final) > float(capacidade_max) * (1.0 - float(margem))


def peso_consistente(
    peso: float,
    quantidade: float,
    peso_por_unidade: Optional[float],
    tolerancia: float,
) -> bool:
    """Confere o peso de uma movimentação contra quantidade x peso por unidade."""
    if peso_por_unidade is None:
        return False
    esperado = float(quantidade) * float(peso_por_unidade)
    return abs(float(peso) - esperado) <= esperado * float(tolerancia)


def analisar_otimizacao(antiga: Dict[str, Any], nova: Dict[str, Any]) -> Dict[str, Any]:
    """Compara a localização antiga e a nova de uma transferência.

    Parte de 85 pontos; soma 10 quando a nova fica em andar mais baixo e
    5 quando tem maior capacidade máxima.
    """
    beneficios = ["Localização antiga liberada", "Produto realocado com sucesso"]
    score = 85
    if nova["andar"] < antiga["andar"]:
        beneficios.append("Melhor acesso (andar mais baixo)")
        score += 10
    if nova["capacidade_max_kg"] > antiga["capacidade_max_kg"]:
        beneficios.append("Maior capacidade disponível")
        score += 5
    return {
        "benefits": beneficios,
        "score": score,
        "acesso": {"antigo": nivel_acesso(antiga["andar"]), "novo": nivel_acesso(nova["andar"])},
    }
