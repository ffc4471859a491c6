import sqlite3

import pytest

from armazem.domain.erros import NotFoundError, ValidationError
from armazem.infra.repositories import ParamsRepo
from armazem.usecases.camaras import (
    alterar_status_camara,
    criar_camara,
    expandir_camara,
    gerar_localizacoes,
    listar_camaras,
    listar_localizacoes,
)
from armazem.usecases.operacoes import criar_produto

from conftest import loc_id


def test_criar_camara_gera_todas_as_localizacoes(db_path):
    res = criar_camara(
        {"nome": "Camara A", "quadras": 1, "lados": 2, "filas": 2, "andares": 3},
        db_path=db_path,
    )["data"]
    assert res["localizacoes_criadas"] == 12

    locs = listar_localizacoes(res["camara"]["id"], db_path=db_path)
    codigos = [l["codigo"] for l in locs]
    assert len(set(codigos)) == 12
    assert "Q1-LB-F2-A3" in codigos
    assert {l["capacidade_max_kg"] for l in locs} == {1000.0}
    niveis = {l["andar"]: l["nivel_acesso"] for l in locs}
    assert niveis == {1: "ground", 2: "ground", 3: "elevated"}


def test_geracao_e_idempotente(db_path, camara):
    res = gerar_localizacoes(camara["id"], db_path=db_path)["data"]
    assert res["localizacoes_criadas"] == 0
    assert len(listar_localizacoes(camara["id"], db_path=db_path)) == 12


def test_expandir_gera_apenas_celulas_novas(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    criar_produto(
        {"lote": "L1", "quantidade": 1, "peso_por_unidade": 10, "localizacao_id": lid},
        "ana",
        db_path=db_path,
    )

    res = expandir_camara(camara["id"], quadras=2, capacidade_padrao_kg=2000, db_path=db_path)["data"]
    assert res["localizacoes_criadas"] == 12
    assert res["camara"]["quadras"] == 2

    locs = listar_localizacoes(camara["id"], db_path=db_path)
    assert len(locs) == 24
    novas = [l for l in locs if l["quadra"] == 2]
    assert {l["capacidade_max_kg"] for l in novas} == {2000.0}
    # localizações existentes mantêm o estado
    assert loc_id(db_path, "Q1-LA-F1-A1") == lid
    assert next(l for l in locs if l["id"] == lid)["ocupada"] is True


def test_expandir_nao_reduz_dimensoes(db_path, camara):
    with pytest.raises(ValidationError):
        expandir_camara(camara["id"], andares=2, db_path=db_path)
    assert len(listar_localizacoes(camara["id"], db_path=db_path)) == 12


@pytest.mark.parametrize(
    "dados",
    [
        {"nome": "", "quadras": 1, "lados": 1, "filas": 1, "andares": 1},
        {"nome": "X", "quadras": 0, "lados": 1, "filas": 1, "andares": 1},
        {"nome": "X", "quadras": 1, "lados": 21, "filas": 1, "andares": 1},
        {"nome": "X", "quadras": 1, "lados": 1, "filas": 101, "andares": 1},
        {"nome": "X", "quadras": 1, "lados": 1, "filas": 1, "andares": "dois"},
        {"nome": "X", "quadras": 1, "lados": 1, "filas": 1, "andares": 1, "capacidade_padrao_kg": 60000},
        {"nome": "X", "quadras": 1, "lados": 1, "filas": 1, "andares": 1, "status": "aberta"},
    ],
)
def test_criar_camara_invalida(db_path, dados):
    with pytest.raises(ValidationError):
        criar_camara(dados, db_path=db_path)
    assert listar_camaras(db_path=db_path) == []


def test_nome_duplicado(db_path, camara):
    with pytest.raises(ValidationError):
        criar_camara(
            {"nome": "Camara A", "quadras": 1, "lados": 1, "filas": 1, "andares": 1},
            db_path=db_path,
        )
    assert len(listar_camaras(db_path=db_path)) == 1


def test_capacidade_padrao_vem_dos_parametros(db_path):
    ParamsRepo(db_path).set_many([("capacidade_padrao_kg", "1500")])
    res = criar_camara(
        {"nome": "Camara B", "quadras": 1, "lados": 1, "filas": 1, "andares": 2},
        db_path=db_path,
    )["data"]
    locs = listar_localizacoes(res["camara"]["id"], db_path=db_path)
    assert {l["capacidade_max_kg"] for l in locs} == {1500.0}


def test_localizacoes_nunca_sao_apagadas(db_path, camara):
    with sqlite3.connect(db_path) as conn:
        with pytest.raises(sqlite3.IntegrityError, match="nunca"):
            conn.execute("DELETE FROM localizacao WHERE camara_id = ?", (camara["id"],))
    conn.close()
    assert len(listar_localizacoes(camara["id"], db_path=db_path)) == 12


def test_status_e_ocupacao(db_path, camara):
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    criar_produto(
        {"lote": "L1", "quantidade": 4, "peso_por_unidade": 25, "localizacao_id": lid},
        "ana",
        db_path=db_path,
    )

    [linha] = listar_camaras(db_path=db_path)
    assert (linha["total"], linha["ocupadas"], linha["livres"]) == (12, 1, 11)
    assert linha["peso_total_kg"] == 100.0

    assert len(listar_localizacoes(camara["id"], apenas_livres=True, db_path=db_path)) == 11

    res = alterar_status_camara(camara["id"], "maintenance", db_path=db_path)["data"]
    assert res["status"] == "maintenance"
    with pytest.raises(ValidationError):
        alterar_status_camara(camara["id"], "fechada", db_path=db_path)
    with pytest.raises(NotFoundError):
        alterar_status_camara(99, "active", db_path=db_path)
