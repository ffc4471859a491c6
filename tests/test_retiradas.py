import pytest

from armazem.domain.erros import InvalidTransitionError, NotFoundError, ValidationError
from armazem.domain.models import StatusProduto, StatusSolicitacao, TipoRetirada
from armazem.usecases.operacoes import (
    cancelar_retirada,
    confirmar_retirada,
    criar_produto,
    solicitar_retirada,
)
from armazem.usecases.retiradas import listar_pendentes, listar_por_produto

from conftest import loc_id, movimentos, produto


@pytest.fixture
def produto_id(db_path, camara):
    return criar_produto(
        {
            "lote": "LOTE-RET",
            "quantidade": 10,
            "peso_por_unidade": 50,
            "localizacao_id": loc_id(db_path, "Q1-LA-F1-A1"),
        },
        "ana",
        db_path=db_path,
    )["data"]["produto"]["id"]


def test_solicitacao_total_por_padrao(db_path, produto_id):
    data = solicitar_retirada(produto_id, "ana", motivo="Venda", db_path=db_path)["data"]
    sol = data["solicitacao"]
    assert sol["tipo"] == TipoRetirada.TOTAL
    assert sol["quantidade_solicitada"] == 10
    assert sol["status"] == StatusSolicitacao.PENDENTE
    assert sol["motivo"] == "Venda"
    assert data["produto"]["status"] == StatusProduto.AGUARDANDO_RETIRADA

    mov = movimentos(db_path, produto_id)[-1]
    assert mov.tipo == "adjustment"
    assert (mov.quantidade, mov.peso) == (0, 0)
    assert mov.metadata["solicitacao_id"] == sol["id"]


@pytest.mark.parametrize(
    "tipo,quantidade",
    [
        ("PARCIAL", None),
        ("PARCIAL", 0),
        ("PARCIAL", 10),
        ("PARCIAL", 11),
        ("PARCIAL", 2.5),
        ("PARCIAL", "muito"),
        ("DEVOLUCAO", None),
    ],
)
def test_solicitacao_invalida_nao_altera_produto(db_path, produto_id, tipo, quantidade):
    with pytest.raises(ValidationError):
        solicitar_retirada(
            produto_id, "ana", tipo=tipo, quantidade_solicitada=quantidade, db_path=db_path
        )
    p = produto(db_path, produto_id)
    assert p.status == StatusProduto.LOCADO and p.versao == 0
    assert listar_por_produto(produto_id, db_path=db_path) == []


def test_mensagem_da_parcial_maior_que_total(db_path, produto_id):
    with pytest.raises(ValidationError) as exc:
        solicitar_retirada(produto_id, "ana", tipo="PARCIAL", quantidade_solicitada=10, db_path=db_path)
    assert exc.value.message == "Quantidade para retirada parcial deve ser menor que a quantidade total"


def test_segunda_solicitacao_e_transicao_invalida(db_path, produto_id):
    solicitar_retirada(produto_id, "ana", db_path=db_path)
    with pytest.raises(InvalidTransitionError):
        solicitar_retirada(produto_id, "bruno", db_path=db_path)
    assert len(listar_pendentes(db_path=db_path)) == 1


def test_tipo_em_minusculas_aceito(db_path, produto_id):
    data = solicitar_retirada(
        produto_id, "ana", tipo="parcial", quantidade_solicitada=4, db_path=db_path
    )["data"]
    assert data["solicitacao"]["tipo"] == TipoRetirada.PARCIAL
    assert data["solicitacao"]["quantidade_solicitada"] == 4


def test_confirmar_quantidade_invalida(db_path, produto_id):
    solicitar_retirada(produto_id, "ana", db_path=db_path)
    for quantidade in (0, 11, 1.5):
        with pytest.raises(ValidationError):
            confirmar_retirada(produto_id, "ana", quantidade=quantidade, db_path=db_path)
    assert produto(db_path, produto_id).status == StatusProduto.AGUARDANDO_RETIRADA


def test_confirmar_quantidade_igual_ao_saldo_e_total(db_path, produto_id):
    solicitar_retirada(produto_id, "ana", db_path=db_path)
    data = confirmar_retirada(produto_id, "ana", quantidade=10, db_path=db_path)["data"]
    assert data["total"] is True
    assert data["movimentacao"]["metadata"]["evento"] == "retirada_total"
    assert data["localizacao"]["ocupada"] is False


def test_pendentes_e_historico_de_solicitacoes(db_path, produto_id):
    solicitar_retirada(produto_id, "ana", db_path=db_path)
    assert [s["produto_id"] for s in listar_pendentes(db_path=db_path)] == [produto_id]

    cancelar_retirada(produto_id, "ana", db_path=db_path)
    assert listar_pendentes(db_path=db_path) == []

    solicitar_retirada(produto_id, "ana", tipo="PARCIAL", quantidade_solicitada=3, db_path=db_path)
    confirmar_retirada(produto_id, "ana", quantidade=3, db_path=db_path)

    historico = listar_por_produto(produto_id, db_path=db_path)
    assert [s["status"] for s in historico] == [
        StatusSolicitacao.CANCELADA,
        StatusSolicitacao.CONFIRMADA,
    ]
    assert historico[1]["quantidade_retirada"] == 3
    assert historico[0]["resolvido_por"] == "ana"

    with pytest.raises(NotFoundError):
        listar_por_produto(999, db_path=db_path)


def test_confirmar_sem_quantidade_usa_a_solicitacao_parcial(db_path, produto_id):
    solicitar_retirada(produto_id, "ana", tipo="PARCIAL", quantidade_solicitada=3, db_path=db_path)
    data = confirmar_retirada(produto_id, "bruno", db_path=db_path)["data"]

    assert data["total"] is False
    assert data["solicitacao"]["status"] == StatusSolicitacao.CONFIRMADA
    assert data["solicitacao"]["quantidade_retirada"] == 3
    p = produto(db_path, produto_id)
    assert (p.status, p.quantidade, p.peso_total) == (StatusProduto.LOCADO, 7, 350.0)
    assert movimentos(db_path, produto_id)[-1].peso == 150.0


def test_quantidade_explicita_prevalece_sobre_a_solicitacao(db_path, produto_id):
    solicitar_retirada(produto_id, "ana", tipo="PARCIAL", quantidade_solicitada=3, db_path=db_path)
    data = confirmar_retirada(produto_id, "bruno", quantidade=10, db_path=db_path)["data"]
    assert data["total"] is True
    assert produto(db_path, produto_id).status == StatusProduto.RETIRADO
