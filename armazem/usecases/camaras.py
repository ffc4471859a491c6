# armazem/usecases/camaras.py
"""
UC: Câmaras e geração de localizações.

- criar_camara():          cadastra a câmara e gera todas as localizações
- gerar_localizacoes():    expansão idempotente de quadras x lados x filas x andares
- expandir_camara():       aumenta as dimensões e gera apenas as células novas
- alterar_status_camara(): active / maintenance / inactive
- listar_camaras(), listar_localizacoes()

Obs.:
- Localizações nunca são apagadas (gatilho no banco), por isso as
  dimensões de uma câmara só podem crescer.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from armazem.config import DB_PATH
from armazem.domain.erros import NotFoundError, ValidationError
from armazem.domain.models import Camara, Localizacao, StatusCamara
from armazem.domain.policies import gerar_codigo, lado_por_indice, nivel_acesso
from armazem.infra.logger import log_system_event, log_transaction
from armazem.infra.uow import UnidadeTrabalho, carregar_parametros, unidade_trabalho

LIMITES_DIMENSAO = {
    "quadras": (1, 100),
    "lados": (1, 20),
    "filas": (1, 100),
    "andares": (1, 20),
}
CAPACIDADE_MAXIMA_KG = 50000.0


def _validar_dimensao(nome: str, valor: Any) -> int:
    minimo, maximo = LIMITES_DIMENSAO[nome]
    try:
        numero = int(valor)
    except (TypeError, ValueError):
        raise ValidationError(f"{nome} deve ser um número inteiro", **{nome: valor})
    if not (minimo <= numero <= maximo):
        raise ValidationError(f"{nome} deve estar entre {minimo} e {maximo}", **{nome: numero})
    return numero


def _validar_capacidade(valor: Any) -> float:
    try:
        capacidade = float(valor)
    except (TypeError, ValueError):
        raise ValidationError("Capacidade deve ser numérica", capacidade_kg=valor)
    if not (0 < capacidade <= CAPACIDADE_MAXIMA_KG):
        raise ValidationError(
            f"Capacidade deve estar entre 1 e {CAPACIDADE_MAXIMA_KG:g} kg", capacidade_kg=capacidade
        )
    return capacidade


def _exigir_camara(uow: UnidadeTrabalho, camara_id: int) -> Camara:
    camara = uow.camaras.obter(camara_id)
    if camara is None:
        raise NotFoundError("Câmara não encontrada", camara_id=camara_id)
    return camara


def _gerar(uow: UnidadeTrabalho, camara: Camara, capacidade_kg: float) -> int:
    existentes = uow.localizacoes.codigos_da_camara(camara.id)
    novas: List[Localizacao] = []
    for q in range(1, camara.quadras + 1):
        for indice_lado in range(1, camara.lados + 1):
            lado = lado_por_indice(indice_lado)
            for f in range(1, camara.filas + 1):
                for a in range(1, camara.andares + 1):
                    codigo = gerar_codigo(q, lado, f, a)
                    if codigo in existentes:
                        continue
                    novas.append(
                        Localizacao(
                            camara_id=camara.id,
                            quadra=q,
                            lado=lado,
                            fila=f,
                            andar=a,
                            codigo=codigo,
                            capacidade_max_kg=capacidade_kg,
                            nivel_acesso=nivel_acesso(a),
                        )
                    )
    return uow.localizacoes.inserir_muitas(novas)


def criar_camara(dados: Dict[str, Any], db_path: str = DB_PATH) -> Dict[str, Any]:
    """Cadastra uma câmara e gera suas localizações na mesma transação."""
    nome = str(dados.get("nome") or "").strip()
    if not nome:
        raise ValidationError("Nome da câmara é obrigatório")
    dims = {k: _validar_dimensao(k, dados.get(k)) for k in LIMITES_DIMENSAO}
    status = dados.get("status") or StatusCamara.ATIVA
    if status not in StatusCamara.TODOS:
        raise ValidationError("Status de câmara inválido", status=status)
    cfg = carregar_parametros(db_path)
    capacidade = _validar_capacidade(dados.get("capacidade_padrao_kg") or cfg.capacidade_padrao_kg)

    log_system_event("criar_camara_start", {"nome": nome, **dims})
    try:
        with unidade_trabalho(db_path) as uow:
            if uow.camaras.por_nome(nome) is not None:
                raise ValidationError("Já existe uma câmara com este nome", nome=nome)
            camara = uow.camaras.inserir(Camara(nome=nome, status=status, **dims))
            criadas = _gerar(uow, camara, capacidade)
        resultado = {"camara": asdict(camara), "localizacoes_criadas": criadas}
        log_transaction("criar_camara", {"nome": nome, **dims}, result=resultado)
        return {"success": True, "data": resultado}
    except Exception as e:
        log_transaction("criar_camara", {"nome": nome}, error=str(e))
        raise


def gerar_localizacoes(
    camara_id: int,
    capacidade_padrao_kg: Optional[float] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Gera as localizações que ainda não existem; devolve quantas foram criadas."""
    cfg = carregar_parametros(db_path)
    capacidade = _validar_capacidade(capacidade_padrao_kg or cfg.capacidade_padrao_kg)
    with unidade_trabalho(db_path) as uow:
        camara = _exigir_camara(uow, camara_id)
        criadas = _gerar(uow, camara, capacidade)
    log_transaction("gerar_localizacoes", {"camara_id": camara_id}, result=criadas)
    return {"success": True, "data": {"camara_id": camara_id, "localizacoes_criadas": criadas}}


def expandir_camara(
    camara_id: int,
    quadras: Optional[int] = None,
    lados: Optional[int] = None,
    filas: Optional[int] = None,
    andares: Optional[int] = None,
    capacidade_padrao_kg: Optional[float] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Aumenta as dimensões da câmara e gera somente as células novas."""
    cfg = carregar_parametros(db_path)
    capacidade = _validar_capacidade(capacidade_padrao_kg or cfg.capacidade_padrao_kg)
    pedidas = {"quadras": quadras, "lados": lados, "filas": filas, "andares": andares}
    try:
        with unidade_trabalho(db_path) as uow:
            camara = _exigir_camara(uow, camara_id)
            atuais = {k: getattr(camara, k) for k in LIMITES_DIMENSAO}
            novas = {
                k: atuais[k] if v is None else _validar_dimensao(k, v) for k, v in pedidas.items()
            }
            for k, v in novas.items():
                if v < atuais[k]:
                    raise ValidationError(
                        f"{k} não pode ser reduzido (localizações não são apagadas)",
                        atual=atuais[k],
                        pedido=v,
                    )
            uow.camaras.atualizar_dimensoes(camara_id, **novas)
            camara = Camara(**{**asdict(camara), **novas})
            criadas = _gerar(uow, camara, capacidade)
        log_transaction("expandir_camara", {"camara_id": camara_id, **novas}, result=criadas)
        return {"success": True, "data": {"camara": asdict(camara), "localizacoes_criadas": criadas}}
    except Exception as e:
        log_transaction("expandir_camara", {"camara_id": camara_id}, error=str(e))
        raise


def alterar_status_camara(camara_id: int, status: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    if status not in StatusCamara.TODOS:
        raise ValidationError("Status de câmara inválido", status=status)
    with unidade_trabalho(db_path) as uow:
        _exigir_camara(uow, camara_id)
        uow.camaras.atualizar_status(camara_id, status)
        camara = uow.camaras.obter(camara_id)
    log_transaction("alterar_status_camara", {"camara_id": camara_id, "status": status}, result="success")
    return {"success": True, "data": asdict(camara)}


def listar_camaras(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Câmaras com contagem de localizações livres/ocupadas."""
    with unidade_trabalho(db_path) as uow:
        return uow.camaras.ocupacao()


def listar_localizacoes(
    camara_id: int,
    apenas_livres: bool = False,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    with unidade_trabalho(db_path) as uow:
        _exigir_camara(uow, camara_id)
        return [asdict(l) for l in uow.localizacoes.da_camara(camara_id, apenas_livres)]
