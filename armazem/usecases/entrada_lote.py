# armazem/usecases/entrada_lote.py
"""
UC: Registrar ENTRADAS de lotes a partir de planilha XLSX.

Cada linha vira uma chamada a ``operacoes.criar_produto`` com sua própria
transação: uma linha recusada (capacidade, localização ocupada, dados
inválidos) não desfaz as demais. O resultado lista as linhas aceitas e
as recusadas com o código do erro.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from armazem.adapters.planilha_loader import load_lotes_from_xlsx
from armazem.config import DB_PATH
from armazem.domain.erros import ArmazemError, NotFoundError, ValidationError
from armazem.infra.logger import log_file_operation, log_system_event, log_transaction
from armazem.infra.uow import unidade_trabalho
from armazem.usecases.operacoes import criar_produto


def _resolver_destino(linha: Dict[str, Any], db_path: str) -> Dict[str, Optional[int]]:
    """Traduz nome de câmara e código de localização em ids."""
    destino: Dict[str, Optional[int]] = {"camara_id": None, "localizacao_id": None}
    if not linha.get("camara") and not linha.get("localizacao_raw"):
        return destino
    with unidade_trabalho(db_path) as uow:
        camara = None
        if linha.get("camara"):
            camara = uow.camaras.por_nome(linha["camara"])
            if camara is None:
                raise NotFoundError("Câmara não encontrada", camara=linha["camara"])
            destino["camara_id"] = camara.id
        if linha.get("localizacao_raw"):
            if linha.get("localizacao") is None:
                raise ValidationError(
                    "Código de localização inválido", localizacao=linha["localizacao_raw"]
                )
            if camara is None:
                raise ValidationError(
                    "Informe a câmara para usar um código de localização",
                    localizacao=linha["localizacao"],
                )
            loc = uow.localizacoes.por_codigo(camara.id, linha["localizacao"])
            if loc is None:
                raise NotFoundError(
                    "Localização não encontrada", camara=camara.nome, localizacao=linha["localizacao"]
                )
            destino["localizacao_id"] = loc.id
    return destino


def run_entrada_lote(path: str, usuario_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê um XLSX de lotes e aloca cada linha (melhor localização quando não informada)."""
    log_system_event("entrada_lote_start", {"file_path": path})
    log_file_operation("import", path)

    try:
        linhas = load_lotes_from_xlsx(path)
        log_file_operation("import", path, rows_processed=len(linhas))
    except Exception as e:
        log_transaction("entrada_lote", {"file": path}, error=str(e))
        log_system_event("entrada_lote_error", {"file_path": path, "error": str(e)}, level="error")
        raise

    criados: List[Dict[str, Any]] = []
    recusados: List[Dict[str, Any]] = []
    for linha in linhas:
        try:
            dados = {**linha, **_resolver_destino(linha, db_path)}
            res = criar_produto(dados, usuario_id, db_path=db_path)
        except ArmazemError as e:
            recusados.append({"linha": linha["linha"], "lote": linha.get("lote"), **e.to_dict()})
            continue
        criados.append(
            {
                "linha": linha["linha"],
                "produto_id": res["data"]["produto"]["id"],
                "lote": res["data"]["produto"]["lote"],
                "localizacao": res["data"]["localizacao"]["codigo"],
            }
        )

    result = {"arquivo": path, "criados": criados, "recusados": recusados}
    log_transaction(
        "entrada_lote",
        {"file": path, "rows_count": len(linhas)},
        result={"criados": len(criados), "recusados": len(recusados)},
    )
    log_system_event("entrada_lote_success", {"file_path": path, "rows_inserted": len(criados)})
    return result
