import pytest
from armazem.adapters.parsers import (
    normalizar_codigo,
    parse_codigo_localizacao,
    parse_numero,
    parse_peso_kg,
    parse_quantidade,
)


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("1.000,5", 1000.5),
        ("25,5", 25.5),
        ("1.000", 1000.0),
        ("25.5", 25.5),
        ("12.000.000", 12000000.0),
        (40, 40.0),
        ("sem numero", None),
        (None, None),
    ],
)
def test_parse_numero(txt, esperado):
    assert parse_numero(txt) == esperado


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("25 kg", 25.0),
        ("1.000,5 KG", 1000.5),
        ("500 g", 0.5),
        ("1,2 t", 1200.0),
        ("40", 40.0),
        (30, 30.0),
        ("", None),
        (None, None),
    ],
)
def test_parse_peso_kg(txt, esperado):
    assert parse_peso_kg(txt) == esperado


@pytest.mark.parametrize(
    "txt,exp_num,exp_unit",
    [
        ("20 SC - Sacos", 20, "SC"),
        ("3 bag", 3, "BAG"),
        ("1.200 SC", 1200, "SC"),
        ("12", 12, None),
        ("2,5 SC", None, "SC"),
        ("", None, None),
        (None, None, None),
    ],
)
def test_parse_quantidade(txt, exp_num, exp_unit):
    num, unit = parse_quantidade(txt)
    assert num == exp_num
    assert unit == exp_unit


def test_parse_codigo_localizacao():
    assert parse_codigo_localizacao("Q1-LA-F2-A3") == (1, "A", 2, 3)
    assert parse_codigo_localizacao(" q10-lb-f1-a2 ") == (10, "B", 1, 2)
    assert parse_codigo_localizacao("Q1-LZ-F1-A1") is None
    assert parse_codigo_localizacao("A1") is None
    assert parse_codigo_localizacao(None) is None


def test_normalizar_codigo():
    assert normalizar_codigo("q2 - lc - f3 - a1") == "Q2-LC-F3-A1"
    assert normalizar_codigo("corredor 3") is None
