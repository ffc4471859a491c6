import pytest

from armazem.config import DEFAULTS
from armazem.domain.erros import NotFoundError, ValidationError
from armazem.infra.uow import unidade_trabalho
from armazem.usecases import alocacao
from armazem.usecases.camaras import alterar_status_camara
from armazem.usecases.operacoes import (
    buscar_localizacao_otima,
    criar_produto,
    validar_capacidade_localizacao,
)

from conftest import definir_capacidade, loc_id


def test_validar_capacidade_ok_com_analise(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    res = validar_capacidade_localizacao(lid, 400, db_path=db_path)
    data = res["data"]
    assert res["success"] is True
    assert data["valid"] is True
    assert data["code"] == "CAPACITY_OK"
    assert data["analysis"]["capacidade_disponivel_kg"] == 1000.0
    assert data["analysis"]["utilizacao_apos"] == 40.0
    assert data["warnings"] == []


def test_validar_capacidade_insuficiente_com_deficit(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    definir_capacidade(db_path, lid, 500)
    data = validar_capacidade_localizacao(lid, 5000, db_path=db_path, incluir_sugestoes=True)["data"]
    assert data["valid"] is False
    assert data["code"] == "INSUFFICIENT_CAPACITY"
    assert data["deficit"] == 4500.0
    # nenhuma outra localização comporta 5000 kg
    assert data["suggestions"] == []


def test_validar_capacidade_localizacao_ocupada(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    criar_produto(
        {"lote": "L1", "quantidade": 2, "peso_por_unidade": 50, "localizacao_id": lid},
        "ana",
        db_path=db_path,
    )
    data = validar_capacidade_localizacao(lid, 10, db_path=db_path)["data"]
    assert data["valid"] is False
    assert data["code"] == "LOCATION_OCCUPIED"


def test_validar_capacidade_aviso_de_margem(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    data = validar_capacidade_localizacao(lid, 980, db_path=db_path)["data"]
    assert data["valid"] is True
    assert data["code"] == "CAPACITY_OK"
    assert len(data["warnings"]) == 1


def test_validar_capacidade_camara_inativa(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    alterar_status_camara(camara["id"], "maintenance", db_path=db_path)
    data = validar_capacidade_localizacao(lid, 10, db_path=db_path)["data"]
    assert data["valid"] is False
    assert data["code"] == "CHAMBER_INACTIVE"


def test_validar_capacidade_erros_de_entrada(db_path, camara):
    with pytest.raises(NotFoundError):
        validar_capacidade_localizacao(9999, 10, db_path=db_path)
    with pytest.raises(ValidationError):
        validar_capacidade_localizacao(loc_id(db_path, "Q1-LA-F1-A1"), -1, db_path=db_path)


def test_sugestoes_ranqueadas_e_limitadas(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    data = validar_capacidade_localizacao(lid, 100, db_path=db_path, incluir_sugestoes=True)["data"]
    sugestoes = data["suggestions"]
    assert len(sugestoes) == DEFAULTS.limite_sugestoes
    assert all(s["localizacao"]["id"] != lid for s in sugestoes)
    assert all(s["localizacao"]["andar"] == 1 for s in sugestoes)
    scores = [s["score"] for s in sugestoes]
    assert scores == sorted(scores, reverse=True)


def test_localizacao_otima_prefere_andar_baixo(db_path, camara):
    res = buscar_localizacao_otima({"peso_por_unidade": 50, "quantidade": 10}, db_path=db_path)
    assert res["success"] is True
    assert res["data"]["location"]["andar"] == 1
    assert len(res["data"]["alternatives"]) == DEFAULTS.limite_sugestoes


def test_localizacao_otima_rejeita_peso_zero(db_path, camara):
    res = buscar_localizacao_otima({"peso_por_unidade": 0, "quantidade": 10}, db_path=db_path)
    assert res == {"success": False, "message": "Peso por unidade deve ser maior que zero"}


def test_localizacao_otima_sem_espaco(db_path, camara):
    res = buscar_localizacao_otima({"peso_por_unidade": 50, "quantidade": 100}, db_path=db_path)
    assert res["success"] is False
    assert res["message"] == "Nenhuma localização disponível encontrada"


def test_localizacao_otima_ignora_camara_inativa(db_path, camara):
    alterar_status_camara(camara["id"], "inactive", db_path=db_path)
    res = buscar_localizacao_otima({"peso_por_unidade": 1, "quantidade": 1}, db_path=db_path)
    assert res["success"] is False


def test_ocupar_liberar_incrementam_versao(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    with unidade_trabalho(db_path) as uow:
        ocupada = alocacao.ocupar(uow, lid, 300)
    assert ocupada.ocupada and ocupada.peso_atual_kg == 300 and ocupada.versao == 1

    with unidade_trabalho(db_path) as uow:
        acrescida = alocacao.adicionar_peso(uow, lid, 200)
        reduzida = alocacao.remover_peso(uow, lid, 100)
        livre = alocacao.liberar(uow, lid)
    assert acrescida.peso_atual_kg == 500
    assert reduzida.peso_atual_kg == 400
    assert livre.ocupada is False and livre.peso_atual_kg == 0 and livre.versao == 4

    with unidade_trabalho(db_path) as uow:
        lido = uow.localizacoes.obter(lid)
    assert lido.versao == 4 and lido.ocupada is False


def test_liberar_localizacao_livre_falha(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    with pytest.raises(ValidationError):
        with unidade_trabalho(db_path) as uow:
            alocacao.liberar(uow, lid)


def test_remover_peso_acima_do_armazenado_falha(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    with unidade_trabalho(db_path) as uow:
        alocacao.ocupar(uow, lid, 300)

    with pytest.raises(ValidationError):
        with unidade_trabalho(db_path) as uow:
            alocacao.remover_peso(uow, lid, 300.5)

    with unidade_trabalho(db_path) as uow:
        lido = uow.localizacoes.obter(lid)
    assert lido.peso_atual_kg == 300 and lido.versao == 1
