"""
Testes do loader de planilhas de entrada e da importação em lote.
"""

import pandas as pd
import pytest

from armazem.adapters.planilha_loader import _normalize_columns, _slug, load_lotes_from_xlsx
from armazem.usecases.entrada_lote import run_entrada_lote
from armazem.usecases.operacoes import listar_produtos

from conftest import loc_id, localizacao


def _xlsx(tmp_path, linhas, nome="entrada.xlsx"):
    path = tmp_path / nome
    pd.DataFrame(linhas).to_excel(path, index=False)
    return str(path)


def test_slug_e_sinonimos():
    assert _slug("  Número Lote ") == "numero lote"
    assert _slug("Peso/Saco (kg)") == "peso saco kg"

    df = pd.DataFrame(columns=["Nº Lote", "Qtde", "Peso Saco", "Câmara Fria", "Posição", "Germinação"])
    cols = list(_normalize_columns(df).columns)
    assert cols == ["lote", "quantidade", "peso_por_unidade", "camara", "localizacao", "germinacao"]


def test_load_lotes_normaliza_campos(tmp_path):
    path = _xlsx(
        tmp_path,
        {
            "Lote": ["L-001", "L-002"],
            "Cultivar": ["Soja BRS", None],
            "Qtde": ["20 SC - Sacos", "2,5 SC"],
            "Peso Saco": ["50 kg", "1.000,5 KG"],
            "Embalagem": ["Saco", "Big Bag"],
            "Câmara": ["Camara A", None],
            "Localização": ["q1-la-f1-a2", "corredor"],
            "Data de Entrada": ["2026-01-10", "15/02/2026"],
            "Validade": ["2027-01-10", None],
            "Germinação": ["92%", None],
        },
    )
    linhas = load_lotes_from_xlsx(path)
    assert len(linhas) == 2

    a, b = linhas
    assert a["linha"] == 2
    assert a["lote"] == "L-001"
    assert a["tipo_semente"] == "Soja BRS"
    assert a["quantidade"] == 20
    assert a["peso_por_unidade"] == 50.0
    assert a["tipo_armazenamento"] == "saco"
    assert a["camara"] == "Camara A"
    assert a["localizacao"] == "Q1-LA-F1-A2"
    assert a["data_entrada"] == "2026-01-10"
    assert a["data_validade"] == "2027-01-10"
    assert a["atributos"] == {"germinacao": "92%"}

    assert b["linha"] == 3
    assert b["quantidade"] is None
    assert b["peso_por_unidade"] == 1000.5
    assert b["tipo_armazenamento"] == "bag"
    assert b["localizacao"] is None
    assert b["localizacao_raw"] == "corredor"
    assert b["data_entrada"] == "2026-02-15"
    assert b["atributos"] == {}


def test_entrada_lote_aceita_e_recusa_por_linha(db_path, camara, tmp_path):
    path = _xlsx(
        tmp_path,
        {
            "Lote": ["OK-1", "OK-2", "SEM-QTD", "OCUPADA", "CAMARA-X"],
            "Quantidade": ["10", "4 SC", "", "2", "1"],
            "Peso Unidade": ["50", "25 kg", "10", "10", "10"],
            "Câmara": ["Camara A", None, None, "Camara A", "Camara X"],
            "Localização": ["Q1-LA-F2-A1", None, None, "Q1-LA-F2-A1", "Q1-LA-F1-A1"],
        },
    )
    res = run_entrada_lote(path, "importador", db_path=db_path)

    assert [c["lote"] for c in res["criados"]] == ["OK-1", "OK-2"]
    assert res["criados"][0]["localizacao"] == "Q1-LA-F2-A1"
    # sem localização informada: melhor localização livre (andar 1)
    assert res["criados"][1]["localizacao"].endswith("-A1")

    recusados = {r["lote"]: r for r in res["recusados"]}
    assert recusados["SEM-QTD"]["code"] == "VALIDATION_ERROR"
    assert recusados["OCUPADA"]["code"] == "LOCATION_OCCUPIED"
    assert recusados["CAMARA-X"]["code"] == "NOT_FOUND"
    assert recusados["OCUPADA"]["linha"] == 5

    assert len(listar_produtos(db_path=db_path)["data"]) == 2
    assert localizacao(db_path, loc_id(db_path, "Q1-LA-F2-A1")).peso_atual_kg == 500.0


def test_entrada_lote_codigo_sem_camara(db_path, camara, tmp_path):
    path = _xlsx(tmp_path, {"Lote": ["L1"], "Quantidade": ["1"], "Peso Unidade": ["10"], "Local": ["Q1-LA-F1-A1"]})
    res = run_entrada_lote(path, "importador", db_path=db_path)
    assert res["criados"] == []
    assert res["recusados"][0]["code"] == "VALIDATION_ERROR"


def test_entrada_lote_arquivo_inexistente(db_path, tmp_path):
    with pytest.raises(FileNotFoundError):
        run_entrada_lote(str(tmp_path / "nao_existe.xlsx"), "importador", db_path=db_path)
