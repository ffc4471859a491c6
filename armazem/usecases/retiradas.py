# armazem/usecases/retiradas.py
"""
UC: Fluxo de retirada (solicitação → confirmação/cancelamento).

As funções com ``uow`` executam dentro da unidade de trabalho aberta pela
fachada (``operacoes.py``) e combinam: transição da FSM, escrita
condicionada do produto, ajuste da localização, fechamento da
solicitação e uma movimentação no ledger.
"""

from __future__ import annotations

from dataclasses import asdict, replace
from typing import Any, Dict, List, Optional

from armazem.config import DB_PATH
from armazem.domain import fsm
from armazem.domain.erros import ValidationError
from armazem.domain.models import (
    EventoMovimentacao,
    SolicitacaoRetirada,
    StatusSolicitacao,
    TipoMovimentacao,
    TipoRetirada,
)
from armazem.infra.uow import UnidadeTrabalho, unidade_trabalho
from armazem.usecases import alocacao
from armazem.usecases.movimentacoes import registrar


def _quantidade_inteira(valor: Any, campo: str) -> int:
    try:
        numero = float(valor)
    except (TypeError, ValueError):
        raise ValidationError(f"{campo} deve ser um número inteiro", **{campo: valor})
    if not numero.is_integer():
        raise ValidationError(f"{campo} deve ser um número inteiro", **{campo: valor})
    return int(numero)


def criar_solicitacao_retirada(
    uow: UnidadeTrabalho,
    dados: Dict[str, Any],
    usuario_id: str,
) -> Dict[str, Any]:
    """Abre uma solicitação de retirada e leva o produto a AGUARDANDO_RETIRADA."""
    tipo = str(dados.get("tipo") or TipoRetirada.TOTAL).strip().upper()
    if tipo not in TipoRetirada.TODOS:
        raise ValidationError("Tipo de retirada deve ser TOTAL ou PARCIAL", tipo=tipo)

    produto = uow.exigir_produto(dados["produto_id"])

    if tipo == TipoRetirada.PARCIAL:
        if dados.get("quantidade_solicitada") in (None, ""):
            raise ValidationError("Quantidade solicitada é obrigatória para retirada parcial")
        quantidade = _quantidade_inteira(dados["quantidade_solicitada"], "quantidade_solicitada")
        if quantidade <= 0:
            raise ValidationError(
                "Quantidade solicitada deve ser maior que zero", quantidade_solicitada=quantidade
            )
        if quantidade >= produto.quantidade:
            raise ValidationError(
                "Quantidade para retirada parcial deve ser menor que a quantidade total",
                quantidade_solicitada=quantidade,
                quantidade_produto=produto.quantidade,
            )
    else:
        quantidade = produto.quantidade

    novo = fsm.solicitar_retirada(produto)
    gravado = uow.gravar_produto(replace(novo, modificado_por=usuario_id), produto.versao)

    motivo = dados.get("motivo")
    solicitacao = uow.solicitacoes.inserir(
        SolicitacaoRetirada(
            produto_id=produto.id,
            tipo=tipo,
            quantidade_solicitada=quantidade,
            solicitado_por=usuario_id,
            motivo=motivo,
        )
    )
    mov = registrar(
        uow,
        TipoMovimentacao.AJUSTE,
        produto.id,
        0,
        0.0,
        usuario_id,
        motivo or f"Solicitação de retirada {tipo}",
        origem_id=produto.localizacao_id,
        evento=EventoMovimentacao.SOLICITACAO_RETIRADA,
        solicitacao_id=solicitacao.id,
        tipo_retirada=tipo,
        quantidade_solicitada=quantidade,
    )
    return {
        "produto": asdict(gravado),
        "solicitacao": asdict(solicitacao),
        "movimentacao": asdict(mov),
    }


def confirmar(
    uow: UnidadeTrabalho,
    produto_id: int,
    usuario_id: str,
    quantidade: Optional[int] = None,
    motivo: Optional[str] = None,
) -> Dict[str, Any]:
    """Confirma a retirada pendente.

    Sem ``quantidade``, vale a quantidade da solicitação PARCIAL pendente;
    para uma solicitação TOTAL (ou sem solicitação) retira tudo.
    """
    produto = uow.exigir_produto(produto_id)
    solicitacao = uow.solicitacoes.pendente_do_produto(produto.id)
    if quantidade is not None:
        quantidade = _quantidade_inteira(quantidade, "quantidade")
    elif solicitacao is not None and solicitacao.tipo == TipoRetirada.PARCIAL:
        quantidade = solicitacao.quantidade_solicitada
    resultado = fsm.confirmar_retirada(produto, quantidade)
    gravado = uow.gravar_produto(
        replace(resultado.produto, modificado_por=usuario_id), produto.versao
    )

    if resultado.total:
        localizacao = alocacao.liberar(uow, produto.localizacao_id)
        evento = EventoMovimentacao.RETIRADA_TOTAL
    else:
        localizacao = alocacao.remover_peso(uow, produto.localizacao_id, resultado.peso_retirado)
        evento = EventoMovimentacao.RETIRADA_PARCIAL

    if solicitacao is not None:
        uow.solicitacoes.resolver(
            solicitacao.id, StatusSolicitacao.CONFIRMADA, usuario_id, resultado.quantidade_retirada
        )
        solicitacao = uow.solicitacoes.obter(solicitacao.id)

    mov = registrar(
        uow,
        TipoMovimentacao.SAIDA,
        produto.id,
        resultado.quantidade_retirada,
        resultado.peso_retirado,
        usuario_id,
        motivo or ("Retirada total confirmada" if resultado.total else "Retirada parcial confirmada"),
        origem_id=produto.localizacao_id,
        evento=evento,
        total=resultado.total,
        solicitacao_id=solicitacao.id if solicitacao else None,
    )
    return {
        "produto": asdict(gravado),
        "localizacao": asdict(localizacao),
        "solicitacao": asdict(solicitacao) if solicitacao else None,
        "movimentacao": asdict(mov),
        "total": resultado.total,
        "quantidade_retirada": resultado.quantidade_retirada,
        "peso_retirado": resultado.peso_retirado,
    }


def cancelar(
    uow: UnidadeTrabalho,
    produto_id: int,
    usuario_id: str,
    motivo: Optional[str] = None,
) -> Dict[str, Any]:
    produto = uow.exigir_produto(produto_id)
    novo = fsm.cancelar_retirada(produto)
    gravado = uow.gravar_produto(replace(novo, modificado_por=usuario_id), produto.versao)

    solicitacao = uow.solicitacoes.pendente_do_produto(produto.id)
    if solicitacao is not None:
        uow.solicitacoes.resolver(solicitacao.id, StatusSolicitacao.CANCELADA, usuario_id)
        solicitacao = uow.solicitacoes.obter(solicitacao.id)

    mov = registrar(
        uow,
        TipoMovimentacao.AJUSTE,
        produto.id,
        0,
        0.0,
        usuario_id,
        motivo or "Solicitação de retirada cancelada",
        origem_id=produto.localizacao_id,
        evento=EventoMovimentacao.CANCELAMENTO_RETIRADA,
        solicitacao_id=solicitacao.id if solicitacao else None,
    )
    return {
        "produto": asdict(gravado),
        "solicitacao": asdict(solicitacao) if solicitacao else None,
        "movimentacao": asdict(mov),
    }


def listar_pendentes(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    with unidade_trabalho(db_path) as uow:
        return [asdict(s) for s in uow.solicitacoes.listar(status=StatusSolicitacao.PENDENTE)]


def listar_por_produto(produto_id: int, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    with unidade_trabalho(db_path) as uow:
        uow.exigir_produto(produto_id)
        return [asdict(s) for s in uow.solicitacoes.listar(produto_id=produto_id)]
