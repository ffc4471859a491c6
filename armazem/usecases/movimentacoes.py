# armazem/usecases/movimentacoes.py
"""
UC: Ledger de movimentações.

- registrar():            append de uma movimentação (dentro da unidade de trabalho da operação)
- verificar():            verificação manual de uma movimentação
- verificar_pendentes():  lista/verifica movimentações antigas ainda sem verificação
- historico_produto():    movimentações de um produto em ordem cronológica
- reconstruir_estado():   replay do ledger em estado de produtos/localizações
- reconciliar():          compara o replay com o estado desnormalizado

Obs.:
- O ledger nunca é alterado; a verificação vai para `verificacao_movimentacao`.
- O caminho quente (operações do motor) nunca varre o ledger.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from armazem.config import DB_PATH
from armazem.domain.erros import NotFoundError, ValidationError
from armazem.domain.models import (
    EventoMovimentacao,
    Movimentacao,
    StatusProduto,
    TipoMovimentacao,
)
from armazem.domain.policies import peso_consistente
from armazem.infra.logger import log_movimentacao, log_system_event, log_transaction
from armazem.infra.uow import UnidadeTrabalho, carregar_parametros, unidade_trabalho

TOLERANCIA_RECONCILIACAO = 1e-3


def registrar(
    uow: UnidadeTrabalho,
    tipo: str,
    produto_id: int,
    quantidade: float,
    peso: float,
    usuario_id: str,
    motivo: str,
    origem_id: Optional[int] = None,
    destino_id: Optional[int] = None,
    automatica: bool = True,
    **metadata: Any,
) -> Movimentacao:
    """Acrescenta uma movimentação ao ledger."""
    if tipo not in TipoMovimentacao.TODOS:
        raise ValidationError("Tipo de movimentação inválido", tipo=tipo)
    if not usuario_id:
        raise ValidationError("Usuário é obrigatório para registrar movimentação")
    mov = uow.movimentacoes.inserir(
        Movimentacao(
            tipo=tipo,
            produto_id=produto_id,
            quantidade=quantidade,
            peso=round(float(peso), 3),
            usuario_id=usuario_id,
            motivo=motivo,
            origem_id=origem_id,
            destino_id=destino_id,
            automatica=automatica,
            metadata=metadata,
        )
    )
    log_movimentacao(
        tipo, produto_id, quantidade, mov.peso,
        origem_id=origem_id, destino_id=destino_id, automatica=automatica, **metadata
    )
    return mov


def verificar(
    movimentacao_id: int,
    usuario_id: str,
    notas: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Registra a verificação manual de uma movimentação (uma única vez)."""
    dados = {"movimentacao_id": movimentacao_id, "usuario_id": usuario_id}
    try:
        with unidade_trabalho(db_path) as uow:
            if uow.movimentacoes.obter(movimentacao_id) is None:
                raise NotFoundError("Movimentação não encontrada", movimentacao_id=movimentacao_id)
            if uow.movimentacoes.verificacao(movimentacao_id) is not None:
                raise ValidationError("Movimentação já verificada", movimentacao_id=movimentacao_id)
            verificacao = uow.movimentacoes.registrar_verificacao(
                movimentacao_id, usuario_id, automatica=False, notas=notas
            )
        log_transaction("verificar_movimentacao", dados, result="success")
        return {"success": True, "data": verificacao}
    except Exception as e:
        log_transaction("verificar_movimentacao", dados, error=str(e))
        raise


def _idade_horas(timestamp: str, agora: datetime) -> float:
    return round((agora - datetime.fromisoformat(timestamp)).total_seconds() / 3600, 2)


def verificar_pendentes(
    db_path: str = DB_PATH,
    horas: Optional[float] = None,
    auto_verificar: bool = False,
    usuario_id: str = "sistema",
    agora: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Movimentações sem verificação mais antigas que ``horas`` (padrão: 48h).

    Cada item recebe uma recomendação: ``auto_verificar`` quando a
    movimentação é automática e o peso confere com quantidade x peso por
    unidade (dentro da tolerância), ``revisao_manual`` nos demais casos.
    Com ``auto_verificar=True`` as recomendadas recebem verificação
    automática.
    """
    cfg = carregar_parametros(db_path)
    horas = cfg.horas_verificacao_pendente if horas is None else float(horas)
    agora = agora or datetime.now(timezone.utc)
    corte = (agora - timedelta(hours=horas)).isoformat(timespec="microseconds")
    log_system_event("verificar_pendentes_start", {"horas": horas, "auto_verificar": auto_verificar})

    try:
        itens: List[Dict[str, Any]] = []
        verificadas = 0
        with unidade_trabalho(db_path) as uow:
            for pend in uow.movimentacoes.pendentes(corte):
                mov: Movimentacao = pend["movimentacao"]
                ppu = pend["produto_peso_por_unidade"]
                consistente = peso_consistente(mov.peso, mov.quantidade, ppu, cfg.tolerancia_peso)
                recomendacao = "auto_verificar" if mov.automatica and consistente else "revisao_manual"
                if auto_verificar and recomendacao == "auto_verificar":
                    uow.movimentacoes.registrar_verificacao(
                        mov.id, usuario_id, automatica=True, notas="Verificação automática"
                    )
                    verificadas += 1
                itens.append(
                    {
                        "movimentacao": asdict(mov),
                        "lote": pend["produto_lote"],
                        "peso_esperado": round(mov.quantidade * ppu, 3),
                        "idade_horas": _idade_horas(mov.timestamp, agora),
                        "recomendacao": recomendacao,
                    }
                )

        resumo = {
            "total": len(itens),
            "auto_verificaveis": sum(1 for i in itens if i["recomendacao"] == "auto_verificar"),
            "revisao_manual": sum(1 for i in itens if i["recomendacao"] == "revisao_manual"),
            "verificadas": verificadas,
            "horas": horas,
            "itens": itens,
        }
        log_transaction(
            "verificar_pendentes",
            {"horas": horas, "auto_verificar": auto_verificar},
            result={k: v for k, v in resumo.items() if k != "itens"},
        )
        return {"success": True, "data": resumo}
    except Exception as e:
        log_transaction("verificar_pendentes", {"horas": horas}, error=str(e))
        log_system_event("verificar_pendentes_error", {"error": str(e)}, level="error")
        raise


def historico_produto(produto_id: int, db_path: str = DB_PATH) -> Dict[str, Any]:
    with unidade_trabalho(db_path) as uow:
        uow.exigir_produto(produto_id)
        historico = []
        for mov in uow.movimentacoes.por_produto(produto_id):
            item = asdict(mov)
            item["verificacao"] = uow.movimentacoes.verificacao(mov.id)
            historico.append(item)
    return {"success": True, "data": historico}


# -------------------------
# Replay / reconciliação
# -------------------------

def _aplicar(estado: Dict[int, Dict[str, Any]], mov: Movimentacao) -> None:
    evento = mov.metadata.get("evento")

    if mov.tipo == TipoMovimentacao.ENTRADA:
        estado[mov.produto_id] = {
            "status": StatusProduto.LOCADO,
            "quantidade": int(mov.quantidade),
            "peso_total": mov.peso,
            "localizacao_id": mov.destino_id,
        }
        return

    p = estado.get(mov.produto_id)
    if p is None:
        raise ValidationError(
            "Ledger inconsistente: movimentação anterior à entrada do produto",
            movimentacao_id=mov.id,
        )

    if mov.tipo == TipoMovimentacao.TRANSFERENCIA:
        p["localizacao_id"] = mov.destino_id
    elif mov.tipo == TipoMovimentacao.SAIDA:
        if mov.metadata.get("total") or evento in (
            EventoMovimentacao.RETIRADA_TOTAL,
            EventoMovimentacao.REMOCAO,
        ):
            p.update(status=StatusProduto.RETIRADO, localizacao_id=None)
        else:
            p["status"] = StatusProduto.LOCADO
            p["quantidade"] -= int(mov.quantidade)
            p["peso_total"] = round(p["peso_total"] - mov.peso, 3)
    elif evento == EventoMovimentacao.SOLICITACAO_RETIRADA:
        p["status"] = StatusProduto.AGUARDANDO_RETIRADA
    elif evento == EventoMovimentacao.CANCELAMENTO_RETIRADA:
        p["status"] = StatusProduto.LOCADO
    elif evento == EventoMovimentacao.ADICAO_ESTOQUE:
        p["quantidade"] += int(mov.quantidade)
        p["peso_total"] = round(p["peso_total"] + mov.peso, 3)
    elif evento == EventoMovimentacao.AJUSTE_MANUAL:
        p["quantidade"] = int(mov.metadata["quantidade_nova"])
        p["peso_total"] = float(mov.metadata["peso_novo"])


def _replay(uow: UnidadeTrabalho) -> Dict[str, Dict[int, Dict[str, Any]]]:
    produtos: Dict[int, Dict[str, Any]] = {}
    for mov in uow.movimentacoes.todas():
        _aplicar(produtos, mov)

    localizacoes: Dict[int, Dict[str, Any]] = {}
    for p in produtos.values():
        if p["status"] == StatusProduto.RETIRADO or p["localizacao_id"] is None:
            continue
        loc = localizacoes.setdefault(p["localizacao_id"], {"ocupada": True, "peso_atual_kg": 0.0})
        loc["peso_atual_kg"] = round(loc["peso_atual_kg"] + p["peso_total"], 3)
    return {"produtos": produtos, "localizacoes": localizacoes}


def reconstruir_estado(db_path: str = DB_PATH) -> Dict[str, Any]:
    """Estado de produtos e localizações obtido apenas pelo replay do ledger."""
    with unidade_trabalho(db_path) as uow:
        estado = _replay(uow)
    return {"success": True, "data": estado}


def reconciliar(db_path: str = DB_PATH) -> Dict[str, Any]:
    """Compara o replay do ledger com os campos desnormalizados do banco."""
    divergencias: List[Dict[str, Any]] = []

    def _diverge(entidade: str, ident: int, campo: str, ledger: Any, atual: Any) -> None:
        divergencias.append(
            {"entidade": entidade, "id": ident, "campo": campo, "ledger": ledger, "atual": atual}
        )

    with unidade_trabalho(db_path) as uow:
        estado = _replay(uow)
        produtos = {p.id: p for p in uow.produtos.listar()}
        localizacoes = uow.localizacoes.todas()

    for pid, produto in produtos.items():
        esperado = estado["produtos"].get(pid)
        if esperado is None:
            _diverge("produto", pid, "ledger", None, "sem movimentação de entrada")
            continue
        for campo in ("status", "quantidade", "localizacao_id"):
            if esperado[campo] != getattr(produto, campo):
                _diverge("produto", pid, campo, esperado[campo], getattr(produto, campo))
        if abs(esperado["peso_total"] - produto.peso_total) > TOLERANCIA_RECONCILIACAO:
            _diverge("produto", pid, "peso_total", esperado["peso_total"], produto.peso_total)

    for loc in localizacoes:
        esperado = estado["localizacoes"].get(loc.id, {"ocupada": False, "peso_atual_kg": 0.0})
        if esperado["ocupada"] != loc.ocupada:
            _diverge("localizacao", loc.id, "ocupada", esperado["ocupada"], loc.ocupada)
        if abs(esperado["peso_atual_kg"] - loc.peso_atual_kg) > TOLERANCIA_RECONCILIACAO:
            _diverge("localizacao", loc.id, "peso_atual_kg", esperado["peso_atual_kg"], loc.peso_atual_kg)

    if divergencias:
        log_system_event("reconciliacao_divergente", {"total": len(divergencias)}, level="warning")
    return {"success": True, "data": {"consistente": not divergencias, "divergencias": divergencias}}
