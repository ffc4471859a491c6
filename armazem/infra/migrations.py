# armazem/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (câmaras, localizações, produtos, solicitações, ledger)
V2: gatilhos de imutabilidade (ledger append-only, localizações nunca apagadas)
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Parâmetros K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Câmaras e dimensões
    """
    CREATE TABLE IF NOT EXISTS camara (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL DEFAULT 'active'
            CHECK (status IN ('active', 'maintenance', 'inactive')),
        quadras INTEGER NOT NULL CHECK (quadras BETWEEN 1 AND 100),
        lados INTEGER NOT NULL CHECK (lados BETWEEN 1 AND 20),
        filas INTEGER NOT NULL CHECK (filas BETWEEN 1 AND 100),
        andares INTEGER NOT NULL CHECK (andares BETWEEN 1 AND 20),
        criado_em TEXT
    );
    """,
    # Localizações (Q x L x F x A) com capacidade e ocupação desnormalizadas
    """
    CREATE TABLE IF NOT EXISTS localizacao (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        camara_id INTEGER NOT NULL,
        quadra INTEGER NOT NULL CHECK (quadra >= 1),
        lado TEXT NOT NULL,
        fila INTEGER NOT NULL CHECK (fila >= 1),
        andar INTEGER NOT NULL CHECK (andar >= 1),
        codigo TEXT NOT NULL,
        capacidade_max_kg REAL NOT NULL DEFAULT 1000
            CHECK (capacidade_max_kg > 0 AND capacidade_max_kg <= 50000),
        peso_atual_kg REAL NOT NULL DEFAULT 0 CHECK (peso_atual_kg >= 0),
        ocupada INTEGER NOT NULL DEFAULT 0 CHECK (ocupada IN (0, 1)),
        versao INTEGER NOT NULL DEFAULT 0,
        nivel_acesso TEXT,
        atualizado_em TEXT,
        CHECK (peso_atual_kg <= capacidade_max_kg + 0.000001),
        CHECK (ocupada = 1 OR peso_atual_kg = 0),
        UNIQUE (camara_id, codigo),
        UNIQUE (camara_id, quadra, lado, fila, andar),
        FOREIGN KEY (camara_id) REFERENCES camara(id)
    );
    """,
    # Produtos (lotes de sementes)
    """
    CREATE TABLE IF NOT EXISTS produto (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT,
        lote TEXT NOT NULL,
        tipo_semente TEXT,
        tipo_armazenamento TEXT NOT NULL DEFAULT 'saco'
            CHECK (tipo_armazenamento IN ('saco', 'bag')),
        quantidade INTEGER NOT NULL CHECK (quantidade >= 1),
        peso_por_unidade REAL NOT NULL CHECK (peso_por_unidade > 0),
        peso_total REAL NOT NULL CHECK (peso_total > 0),
        localizacao_id INTEGER,
        status TEXT NOT NULL
            CHECK (status IN ('LOCADO', 'AGUARDANDO_RETIRADA', 'RETIRADO')),
        versao INTEGER NOT NULL DEFAULT 0,
        data_entrada TEXT,
        data_validade TEXT,
        atributos TEXT,
        criado_por TEXT,
        modificado_por TEXT,
        criado_em TEXT,
        atualizado_em TEXT,
        CHECK ((status = 'RETIRADO') = (localizacao_id IS NULL)),
        FOREIGN KEY (localizacao_id) REFERENCES localizacao(id)
    );
    """,
    # No máximo um produto não-terminal por localização
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_produto_localizacao_ativo
        ON produto(localizacao_id)
        WHERE status IN ('LOCADO', 'AGUARDANDO_RETIRADA');
    """,
    # Solicitações de retirada
    """
    CREATE TABLE IF NOT EXISTS solicitacao_retirada (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        produto_id INTEGER NOT NULL,
        tipo TEXT NOT NULL CHECK (tipo IN ('TOTAL', 'PARCIAL')),
        quantidade_solicitada INTEGER NOT NULL CHECK (quantidade_solicitada >= 1),
        status TEXT NOT NULL DEFAULT 'PENDENTE'
            CHECK (status IN ('PENDENTE', 'CONFIRMADA', 'CANCELADA')),
        motivo TEXT,
        solicitado_por TEXT NOT NULL,
        solicitado_em TEXT NOT NULL,
        resolvido_por TEXT,
        resolvido_em TEXT,
        quantidade_retirada INTEGER,
        FOREIGN KEY (produto_id) REFERENCES produto(id)
    );
    """,
    # No máximo uma solicitação aberta por produto
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_solicitacao_pendente
        ON solicitacao_retirada(produto_id)
        WHERE status = 'PENDENTE';
    """,
    # Ledger de movimentações (append-only)
    """
    CREATE TABLE IF NOT EXISTS movimentacao (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        tipo TEXT NOT NULL CHECK (tipo IN ('entry', 'exit', 'transfer', 'adjustment')),
        produto_id INTEGER NOT NULL,
        origem_id INTEGER,
        destino_id INTEGER,
        quantidade REAL NOT NULL CHECK (quantidade >= 0),
        peso REAL NOT NULL CHECK (peso >= 0),
        usuario_id TEXT NOT NULL,
        motivo TEXT NOT NULL,
        automatica INTEGER NOT NULL DEFAULT 1,
        metadata TEXT,
        timestamp TEXT NOT NULL,
        FOREIGN KEY (produto_id) REFERENCES produto(id),
        FOREIGN KEY (origem_id) REFERENCES localizacao(id),
        FOREIGN KEY (destino_id) REFERENCES localizacao(id)
    );
    """,
    # Verificações do ledger (também append-only; o ledger nunca é alterado)
    """
    CREATE TABLE IF NOT EXISTS verificacao_movimentacao (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        movimentacao_id INTEGER NOT NULL UNIQUE,
        verificado_por TEXT,
        verificado_em TEXT NOT NULL,
        automatica INTEGER NOT NULL DEFAULT 0,
        notas TEXT,
        FOREIGN KEY (movimentacao_id) REFERENCES movimentacao(id)
    );
    """,
]

# V2: gatilhos de imutabilidade
SCHEMA_V2: List[str] = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_movimentacao_sem_update
    BEFORE UPDATE ON movimentacao
    BEGIN
        SELECT RAISE(ABORT, 'movimentacao e append-only: UPDATE proibido');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_movimentacao_sem_delete
    BEFORE DELETE ON movimentacao
    BEGIN
        SELECT RAISE(ABORT, 'movimentacao e append-only: DELETE proibido');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_verificacao_sem_update
    BEFORE UPDATE ON verificacao_movimentacao
    BEGIN
        SELECT RAISE(ABORT, 'verificacao_movimentacao e append-only: UPDATE proibido');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_verificacao_sem_delete
    BEFORE DELETE ON verificacao_movimentacao
    BEGIN
        SELECT RAISE(ABORT, 'verificacao_movimentacao e append-only: DELETE proibido');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_localizacao_sem_delete
    BEFORE DELETE ON localizacao
    BEGIN
        SELECT RAISE(ABORT, 'localizacoes nunca sao apagadas');
    END;
    """,
]


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    for sql in SCHEMA_V2:
        conn.executescript(sql)


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

        # versões futuras: if ver < 3: _apply_v3(...)
