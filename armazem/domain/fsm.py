"""
Máquina de estados do ciclo de vida de um produto.

    LOCADO --solicitar--> AGUARDANDO_RETIRADA --confirmar (total)--> RETIRADO
       ^                        |
       +----cancelar / confirmar (parcial)

    LOCADO / AGUARDANDO_RETIRADA --remover (forçado)--> RETIRADO

As funções deste módulo são puras: recebem o produto lido do banco e
devolvem o próximo valor (ou levantam ``InvalidTransitionError``). A
versão não é tocada aqui; quem grava o novo valor faz a escrita
condicionada à versão lida e a incrementa em exatamente 1.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from armazem.domain.erros import InvalidTransitionError, ValidationError
from armazem.domain.models import Produto, StatusProduto


TRANSICOES_VALIDAS: Dict[str, Tuple[str, ...]] = {
    StatusProduto.LOCADO: (StatusProduto.AGUARDANDO_RETIRADA, StatusProduto.RETIRADO),
    StatusProduto.AGUARDANDO_RETIRADA: (StatusProduto.LOCADO, StatusProduto.RETIRADO),
    StatusProduto.RETIRADO: (),
}


@dataclass
class ResultadoRetirada:
    """Próximo valor do produto e o quanto saiu da localização."""
    produto: Produto
    total: bool
    quantidade_retirada: int
    peso_retirado: float


def pode_transitar(atual: str, destino: str) -> bool:
    return destino in TRANSICOES_VALIDAS.get(atual, ())


def calcular_peso_total(quantidade: float, peso_por_unidade: float) -> float:
    """Peso total arredondado a gramas (3 casas decimais)."""
    return round(float(quantidade) * float(peso_por_unidade), 3)


def _exigir_transicao(produto: Produto, destino: str, mensagem: str) -> None:
    if not pode_transitar(produto.status, destino):
        raise InvalidTransitionError(mensagem, status_atual=produto.status, produto_id=produto.id)


def solicitar_retirada(produto: Produto) -> Produto:
    if produto.status != StatusProduto.LOCADO:
        raise InvalidTransitionError(
            "Apenas produtos locados podem ter retirada solicitada",
            status_atual=produto.status,
            produto_id=produto.id,
        )
    return replace(produto, status=StatusProduto.AGUARDANDO_RETIRADA)


def cancelar_retirada(produto: Produto) -> Produto:
    if produto.status != StatusProduto.AGUARDANDO_RETIRADA:
        raise InvalidTransitionError(
            "Apenas produtos aguardando retirada podem ter a solicitação cancelada",
            status_atual=produto.status,
            produto_id=produto.id,
        )
    return replace(produto, status=StatusProduto.LOCADO)


def confirmar_retirada(produto: Produto, quantidade: Optional[int] = None) -> ResultadoRetirada:
    """Confirma a retirada de ``quantidade`` unidades (``None`` = tudo).

    Retirar a quantidade restante inteira equivale a ``None``: o produto
    vai para RETIRADO e perde a localização. Uma retirada menor devolve o
    produto a LOCADO com quantidade e peso total recalculados.
    """
    if produto.status != StatusProduto.AGUARDANDO_RETIRADA:
        raise InvalidTransitionError(
            "Apenas produtos aguardando retirada podem ter a retirada confirmada",
            status_atual=produto.status,
            produto_id=produto.id,
        )

    if quantidade is None or quantidade == produto.quantidade:
        return _retirada_total(produto)

    if quantidade <= 0:
        raise ValidationError("Quantidade retirada deve ser maior que zero", quantidade=quantidade)
    if quantidade > produto.quantidade:
        raise ValidationError(
            "Quantidade retirada excede a quantidade do produto",
            quantidade=quantidade,
            disponivel=produto.quantidade,
        )

    restante = produto.quantidade - quantidade
    novo_peso = calcular_peso_total(restante, produto.peso_por_unidade)
    novo = replace(
        produto,
        status=StatusProduto.LOCADO,
        quantidade=restante,
        peso_total=novo_peso,
    )
    return ResultadoRetirada(
        produto=novo,
        total=False,
        quantidade_retirada=quantidade,
        peso_retirado=round(produto.peso_total - novo_peso, 3),
    )


def remover(produto: Produto) -> ResultadoRetirada:
    """Retirada total forçada, sem solicitação prévia."""
    _exigir_transicao(
        produto,
        StatusProduto.RETIRADO,
        "Produto já retirado não pode ser removido novamente",
    )
    return _retirada_total(produto)


def _retirada_total(produto: Produto) -> ResultadoRetirada:
    novo = replace(produto, status=StatusProduto.RETIRADO, localizacao_id=None)
    return ResultadoRetirada(
        produto=novo,
        total=True,
        quantidade_retirada=produto.quantidade,
        peso_retirado=produto.peso_total,
    )
