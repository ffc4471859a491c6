import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from armazem.domain.erros import NotFoundError, ValidationError
from armazem.infra.uow import unidade_trabalho
from armazem.usecases.movimentacoes import (
    historico_produto,
    reconciliar,
    reconstruir_estado,
    registrar,
    verificar,
    verificar_pendentes,
)
from armazem.usecases.operacoes import (
    adicionar_estoque,
    cancelar_retirada,
    confirmar_retirada,
    criar_produto,
    mover_produto,
    registrar_ajuste_manual,
    remover_produto,
    solicitar_retirada,
)

from conftest import definir_capacidade, loc_id, movimentos


def _criar(db_path, codigo, lote, quantidade=10, ppu=50):
    return criar_produto(
        {
            "lote": lote,
            "quantidade": quantidade,
            "peso_por_unidade": ppu,
            "localizacao_id": loc_id(db_path, codigo),
        },
        "ana",
        db_path=db_path,
    )["data"]["produto"]["id"]


def _daqui_a(horas):
    return datetime.now(timezone.utc) + timedelta(hours=horas)


def test_ledger_rejeita_update_e_delete(db_path, camara):
    pid = _criar(db_path, "Q1-LA-F1-A1", "L1")
    mov_id = movimentos(db_path, pid)[0].id

    with sqlite3.connect(db_path) as conn:
        with pytest.raises(sqlite3.IntegrityError, match="append-only"):
            conn.execute("UPDATE movimentacao SET peso = 1 WHERE id = ?", (mov_id,))
        with pytest.raises(sqlite3.IntegrityError, match="append-only"):
            conn.execute("DELETE FROM movimentacao WHERE id = ?", (mov_id,))
    conn.close()

    assert movimentos(db_path, pid)[0].peso == 500.0


def test_registrar_valida_tipo_e_usuario(db_path, camara):
    pid = _criar(db_path, "Q1-LA-F1-A1", "L1")
    with pytest.raises(ValidationError):
        with unidade_trabalho(db_path) as uow:
            registrar(uow, "perda", pid, 1, 1.0, "ana", "x")
    with pytest.raises(ValidationError):
        with unidade_trabalho(db_path) as uow:
            registrar(uow, "adjustment", pid, 1, 1.0, "", "x")
    assert len(movimentos(db_path, pid)) == 1


def test_historico_em_ordem_com_verificacao(db_path, camara):
    pid = _criar(db_path, "Q1-LA-F1-A1", "L1")
    solicitar_retirada(pid, "ana", db_path=db_path)
    cancelar_retirada(pid, "ana", db_path=db_path)

    historico = historico_produto(pid, db_path=db_path)["data"]
    assert [h["metadata"]["evento"] for h in historico] == [
        "criacao",
        "solicitacao_retirada",
        "cancelamento_retirada",
    ]
    assert all(h["verificacao"] is None for h in historico)

    verificar(historico[0]["id"], "auditor", notas="Conferido", db_path=db_path)
    historico = historico_produto(pid, db_path=db_path)["data"]
    assert historico[0]["verificacao"]["verificado_por"] == "auditor"

    with pytest.raises(NotFoundError):
        historico_produto(999, db_path=db_path)


def test_verificar_duas_vezes_falha(db_path, camara):
    pid = _criar(db_path, "Q1-LA-F1-A1", "L1")
    mov_id = movimentos(db_path, pid)[0].id
    res = verificar(mov_id, "auditor", db_path=db_path)["data"]
    assert res["automatica"] == 0

    with pytest.raises(ValidationError):
        verificar(mov_id, "auditor", db_path=db_path)
    with pytest.raises(NotFoundError):
        verificar(999, "auditor", db_path=db_path)


def test_verificar_pendentes_respeita_janela(db_path, camara):
    _criar(db_path, "Q1-LA-F1-A1", "L1")
    recentes = verificar_pendentes(db_path=db_path)["data"]
    assert recentes["total"] == 0
    assert recentes["horas"] == 48.0

    antigas = verificar_pendentes(db_path=db_path, agora=_daqui_a(49))["data"]
    assert antigas["total"] == 1
    item = antigas["itens"][0]
    assert item["lote"] == "L1"
    assert item["peso_esperado"] == 500.0
    assert item["recomendacao"] == "auto_verificar"
    assert item["idade_horas"] >= 48


def test_verificar_pendentes_auto_verifica_consistentes(db_path, camara):
    pid = _criar(db_path, "Q1-LA-F1-A1", "L1")
    registrar_ajuste_manual(pid, 8, "ana", "Contagem física", db_path=db_path)

    resumo = verificar_pendentes(db_path=db_path, auto_verificar=True, agora=_daqui_a(49))["data"]
    assert resumo["total"] == 2
    assert resumo["auto_verificaveis"] == 1
    # ajuste manual nunca é verificado automaticamente
    assert resumo["revisao_manual"] == 1
    assert resumo["verificadas"] == 1

    restantes = verificar_pendentes(db_path=db_path, agora=_daqui_a(49))["data"]
    assert restantes["total"] == 1
    assert restantes["itens"][0]["movimentacao"]["automatica"] is False


def test_verificar_pendentes_horas_customizadas(db_path, camara):
    _criar(db_path, "Q1-LA-F1-A1", "L1")
    assert verificar_pendentes(db_path=db_path, horas=1, agora=_daqui_a(2))["data"]["total"] == 1
    assert verificar_pendentes(db_path=db_path, horas=3, agora=_daqui_a(2))["data"]["total"] == 0


def test_reconciliar_consistente_apos_sequencia(db_path, camara):
    definir_capacidade(db_path, loc_id(db_path, "Q1-LA-F1-A1"), 10000)
    a = _criar(db_path, "Q1-LA-F1-A1", "A", quantidade=100)
    b = _criar(db_path, "Q1-LA-F2-A1", "B")
    c = _criar(db_path, "Q1-LB-F1-A1", "C")

    solicitar_retirada(a, "ana", tipo="PARCIAL", quantidade_solicitada=30, db_path=db_path)
    confirmar_retirada(a, "ana", quantidade=30, db_path=db_path)
    adicionar_estoque(a, 5, "ana", db_path=db_path)
    mover_produto(b, loc_id(db_path, "Q1-LB-F2-A1"), "ana", db_path=db_path)
    registrar_ajuste_manual(b, 7, "ana", "Contagem", db_path=db_path)
    solicitar_retirada(c, "ana", db_path=db_path)
    remover_produto(c, "ana", db_path=db_path)

    res = reconciliar(db_path)["data"]
    assert res == {"consistente": True, "divergencias": []}

    estado = reconstruir_estado(db_path)["data"]
    assert estado["produtos"][a]["quantidade"] == 75
    assert estado["produtos"][a]["peso_total"] == 3750.0
    assert estado["produtos"][b]["localizacao_id"] == loc_id(db_path, "Q1-LB-F2-A1")
    assert estado["produtos"][c]["status"] == "RETIRADO"
    assert loc_id(db_path, "Q1-LB-F1-A1") not in estado["localizacoes"]


def test_reconciliar_detecta_adulteracao(db_path, camara):
    pid = _criar(db_path, "Q1-LA-F1-A1", "L1")
    lid = loc_id(db_path, "Q1-LA-F1-A1")
    with unidade_trabalho(db_path) as uow:
        uow.conn.execute("UPDATE produto SET quantidade = 99 WHERE id = ?", (pid,))
        uow.conn.execute("UPDATE localizacao SET peso_atual_kg = 700 WHERE id = ?", (lid,))

    res = reconciliar(db_path)["data"]
    assert res["consistente"] is False
    campos = {(d["entidade"], d["campo"]) for d in res["divergencias"]}
    assert campos == {("produto", "quantidade"), ("localizacao", "peso_atual_kg")}
    quantidade = next(d for d in res["divergencias"] if d["campo"] == "quantidade")
    assert (quantidade["ledger"], quantidade["atual"]) == (10, 99)
