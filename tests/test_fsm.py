import pytest

from armazem.domain import fsm
from armazem.domain.erros import InvalidTransitionError, ValidationError
from armazem.domain.models import Produto, StatusProduto


def _produto(status=StatusProduto.LOCADO, quantidade=100, ppu=50.0, versao=2):
    return Produto(
        id=1,
        lote="L-001",
        quantidade=quantidade,
        peso_por_unidade=ppu,
        peso_total=fsm.calcular_peso_total(quantidade, ppu),
        localizacao_id=7,
        status=status,
        versao=versao,
    )


@pytest.mark.parametrize(
    "atual,destino,esperado",
    [
        (StatusProduto.LOCADO, StatusProduto.AGUARDANDO_RETIRADA, True),
        (StatusProduto.LOCADO, StatusProduto.RETIRADO, True),
        (StatusProduto.AGUARDANDO_RETIRADA, StatusProduto.LOCADO, True),
        (StatusProduto.AGUARDANDO_RETIRADA, StatusProduto.RETIRADO, True),
        (StatusProduto.RETIRADO, StatusProduto.LOCADO, False),
        (StatusProduto.RETIRADO, StatusProduto.AGUARDANDO_RETIRADA, False),
        (StatusProduto.LOCADO, StatusProduto.LOCADO, False),
    ],
)
def test_tabela_de_transicoes(atual, destino, esperado):
    assert fsm.pode_transitar(atual, destino) is esperado


def test_calcular_peso_total_arredonda_em_tres_casas():
    assert fsm.calcular_peso_total(3, 0.1) == 0.3
    assert fsm.calcular_peso_total(20, 50) == 1000.0


def test_solicitar_apenas_de_locado():
    novo = fsm.solicitar_retirada(_produto())
    assert novo.status == StatusProduto.AGUARDANDO_RETIRADA
    # a FSM não mexe na versão
    assert novo.versao == 2

    with pytest.raises(InvalidTransitionError) as exc:
        fsm.solicitar_retirada(_produto(status=StatusProduto.AGUARDANDO_RETIRADA))
    assert "Apenas produtos locados" in exc.value.message
    assert exc.value.status_atual == StatusProduto.AGUARDANDO_RETIRADA


def test_cancelar_apenas_de_aguardando():
    novo = fsm.cancelar_retirada(_produto(status=StatusProduto.AGUARDANDO_RETIRADA))
    assert novo.status == StatusProduto.LOCADO

    with pytest.raises(InvalidTransitionError):
        fsm.cancelar_retirada(_produto(status=StatusProduto.LOCADO))


def test_confirmar_parcial_recalcula_quantidade_e_peso():
    res = fsm.confirmar_retirada(_produto(status=StatusProduto.AGUARDANDO_RETIRADA), 30)
    assert res.total is False
    assert res.produto.status == StatusProduto.LOCADO
    assert res.produto.quantidade == 70
    assert res.produto.peso_total == 3500.0
    assert res.produto.localizacao_id == 7
    assert res.peso_retirado == 1500.0


@pytest.mark.parametrize("quantidade", [None, 100])
def test_confirmar_total(quantidade):
    res = fsm.confirmar_retirada(_produto(status=StatusProduto.AGUARDANDO_RETIRADA), quantidade)
    assert res.total is True
    assert res.produto.status == StatusProduto.RETIRADO
    assert res.produto.localizacao_id is None
    assert res.peso_retirado == 5000.0
    assert res.quantidade_retirada == 100


@pytest.mark.parametrize("quantidade", [0, -1, 101])
def test_confirmar_quantidade_invalida(quantidade):
    with pytest.raises(ValidationError):
        fsm.confirmar_retirada(_produto(status=StatusProduto.AGUARDANDO_RETIRADA), quantidade)


def test_confirmar_exige_aguardando():
    with pytest.raises(InvalidTransitionError):
        fsm.confirmar_retirada(_produto(status=StatusProduto.LOCADO), 10)


def test_remover_de_locado_e_aguardando_mas_nao_de_retirado():
    for status in StatusProduto.ATIVOS:
        res = fsm.remover(_produto(status=status))
        assert res.total and res.produto.status == StatusProduto.RETIRADO

    with pytest.raises(InvalidTransitionError):
        fsm.remover(_produto(status=StatusProduto.RETIRADO))
