# armazem/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_produtos_ativos:          produtos não retirados com o código da localização.
- vw_ocupacao_camara:          localizações livres/ocupadas e peso por câmara.
- vw_movimentacoes_pendentes:  movimentações ainda sem registro de verificação.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        # -----------------------
        # Views (drop + create)
        # -----------------------
        c.executescript(
            """
            ---------------------------
            -- Produtos ativos
            ---------------------------
            DROP VIEW IF EXISTS vw_produtos_ativos;
            CREATE VIEW vw_produtos_ativos AS
            SELECT
                p.id,
                p.nome,
                p.lote,
                p.quantidade,
                p.peso_por_unidade,
                p.peso_total,
                p.status,
                p.versao,
                p.localizacao_id,
                l.codigo     AS localizacao_codigo,
                l.camara_id  AS camara_id
            FROM produto p
            JOIN localizacao l ON l.id = p.localizacao_id
            WHERE p.status IN ('LOCADO', 'AGUARDANDO_RETIRADA');

            ---------------------------
            -- Ocupação por câmara
            ---------------------------
            DROP VIEW IF EXISTS vw_ocupacao_camara;
            CREATE VIEW vw_ocupacao_camara AS
            SELECT
                c.id                                  AS camara_id,
                c.nome                                AS camara,
                c.status                              AS status,
                COUNT(l.id)                           AS total,
                COALESCE(SUM(l.ocupada), 0)           AS ocupadas,
                COUNT(l.id) - COALESCE(SUM(l.ocupada), 0) AS livres,
                COALESCE(SUM(l.capacidade_max_kg), 0.0) AS capacidade_total_kg,
                COALESCE(SUM(l.peso_atual_kg), 0.0)     AS peso_total_kg
            FROM camara c
            LEFT JOIN localizacao l ON l.camara_id = c.id
            GROUP BY c.id, c.nome, c.status;

            ---------------------------
            -- Movimentações sem verificação
            ---------------------------
            DROP VIEW IF EXISTS vw_movimentacoes_pendentes;
            CREATE VIEW vw_movimentacoes_pendentes AS
            SELECT
                m.*,
                p.peso_por_unidade AS produto_peso_por_unidade,
                p.lote             AS produto_lote
            FROM movimentacao m
            JOIN produto p ON p.id = m.produto_id
            LEFT JOIN verificacao_movimentacao v ON v.movimentacao_id = m.id
            WHERE v.id IS NULL;
            """
        )

        # --------------------------------
        # Índices úteis (IF NOT EXISTS)
        # --------------------------------
        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_localizacao_livre   ON localizacao(ocupada, andar);
            CREATE INDEX IF NOT EXISTS idx_localizacao_camara  ON localizacao(camara_id);
            CREATE INDEX IF NOT EXISTS idx_produto_status      ON produto(status);
            CREATE INDEX IF NOT EXISTS idx_produto_lote        ON produto(lote);
            CREATE INDEX IF NOT EXISTS idx_mov_produto         ON movimentacao(produto_id, timestamp);
            CREATE INDEX IF NOT EXISTS idx_mov_timestamp       ON movimentacao(timestamp);
            CREATE INDEX IF NOT EXISTS idx_mov_automatica      ON movimentacao(automatica);
            CREATE INDEX IF NOT EXISTS idx_solicitacao_status  ON solicitacao_retirada(status, solicitado_em);
            """
        )
