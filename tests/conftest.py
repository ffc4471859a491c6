from pathlib import Path

import pytest

from armazem.infra.uow import preparar_banco, unidade_trabalho
from armazem.usecases.camaras import criar_camara


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "armazem_test.sqlite")
    preparar_banco(path)
    return path


@pytest.fixture
def camara(db_path):
    """Câmara 1x2x2x3 (12 localizações de 1000 kg)."""
    res = criar_camara(
        {"nome": "Camara A", "quadras": 1, "lados": 2, "filas": 2, "andares": 3},
        db_path=db_path,
    )
    return res["data"]["camara"]


def loc_id(db_path: str, codigo: str, camara_id: int = 1) -> int:
    with unidade_trabalho(db_path) as uow:
        return uow.localizacoes.por_codigo(camara_id, codigo).id


def localizacao(db_path: str, localizacao_id: int):
    with unidade_trabalho(db_path) as uow:
        return uow.localizacoes.obter(localizacao_id)


def produto(db_path: str, produto_id: int):
    with unidade_trabalho(db_path) as uow:
        return uow.produtos.obter(produto_id)


def movimentos(db_path: str, produto_id: int):
    with unidade_trabalho(db_path) as uow:
        return uow.movimentacoes.por_produto(produto_id)


def definir_capacidade(db_path: str, localizacao_id: int, capacidade_kg: float) -> None:
    """Ajusta a capacidade de uma localização vazia (preparação de cenário)."""
    with unidade_trabalho(db_path) as uow:
        uow.conn.execute(
            "UPDATE localizacao SET capacidade_max_kg = ? WHERE id = ?",
            (capacidade_kg, localizacao_id),
        )
