# armazem/infra/uow.py
"""
Unidade de trabalho: fronteira transacional do motor.

Cada operação pública abre uma unidade, lê o estado atual pelos
repositórios, grava produto + localização + movimentação na mesma conexão
e faz um único commit ao sair. Qualquer exceção desfaz tudo.

Erros do SQLite são convertidos em ``DatabaseError`` aqui; erros de
regra de negócio (``ArmazemError``) atravessam sem alteração.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator

from armazem.config import DEFAULTS, DefaultConfig
from armazem.domain.erros import DatabaseError, NotFoundError, OptimisticLockError
from armazem.domain.models import Produto
from .db import connect
from .logger import log_system_event
from .migrations import apply_migrations
from .repositories import (
    CamaraRepo,
    LocalizacaoRepo,
    MovimentacaoRepo,
    ParamsRepo,
    ProdutoRepo,
    SolicitacaoRepo,
)
from .views import create_views


class UnidadeTrabalho:
    """Repositórios que compartilham uma única conexão/transação."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.camaras = CamaraRepo(conn)
        self.localizacoes = LocalizacaoRepo(conn)
        self.produtos = ProdutoRepo(conn)
        self.solicitacoes = SolicitacaoRepo(conn)
        self.movimentacoes = MovimentacaoRepo(conn)

    def exigir_produto(self, produto_id: int) -> Produto:
        produto = self.produtos.obter(produto_id)
        if produto is None:
            raise NotFoundError("Produto não encontrado", produto_id=produto_id)
        return produto

    def gravar_produto(self, novo: Produto, versao_esperada: int) -> Produto:
        """Escrita condicionada à versão lida; devolve o produto com a versão nova."""
        if not self.produtos.atualizar(novo, versao_esperada):
            if self.produtos.obter(novo.id) is None:
                raise NotFoundError("Produto não encontrado", produto_id=novo.id)
            raise OptimisticLockError(
                "Produto alterado por outra operação; releia e tente novamente",
                entidade="produto",
                entidade_id=novo.id,
                esperada=versao_esperada,
            )
        return replace(novo, versao=versao_esperada + 1)


@contextmanager
def unidade_trabalho(db_path: str) -> Iterator[UnidadeTrabalho]:
    """Abre uma unidade de trabalho (commit ao sair, rollback em exceção)."""
    try:
        with connect(db_path) as conn:
            yield UnidadeTrabalho(conn)
    except sqlite3.Error as e:
        log_system_event("database_error", {"db_path": db_path, "error": str(e)}, level="error")
        raise DatabaseError(f"Falha no banco de dados: {e}") from e


def preparar_banco(db_path: str) -> None:
    """Aplica migrações e (re)cria views e índices."""
    apply_migrations(db_path)
    create_views(db_path)
    log_system_event("database_ready", {"db_path": db_path})


def carregar_parametros(db_path: str) -> DefaultConfig:
    """Parâmetros da tabela `params`, com fallback para DEFAULTS."""
    repo = ParamsRepo(db_path)
    return replace(
        DEFAULTS,
        capacidade_padrao_kg=repo.get_float("capacidade_padrao_kg", DEFAULTS.capacidade_padrao_kg),
        margem_seguranca=repo.get_float("margem_seguranca", DEFAULTS.margem_seguranca),
        limite_sugestoes=int(repo.get_float("limite_sugestoes", DEFAULTS.limite_sugestoes)),
        horas_verificacao_pendente=repo.get_float(
            "horas_verificacao_pendente", DEFAULTS.horas_verificacao_pendente
        ),
        tolerancia_peso=repo.get_float("tolerancia_peso", DEFAULTS.tolerancia_peso),
    )
