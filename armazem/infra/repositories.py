# armazem/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- ParamsRepo
- CamaraRepo
- LocalizacaoRepo
- ProdutoRepo
- SolicitacaoRepo
- MovimentacaoRepo

Com exceção de ``ParamsRepo`` (configuração, abre a própria conexão),
os repositórios recebem a conexão da unidade de trabalho corrente, de
modo que produto, localização e ledger sejam gravados no mesmo commit.

Escritas condicionadas (CAS) devolvem ``True``/``False``; quem chama
decide qual erro levantar quando a condição falha.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .db import connect
from .logger import log_database_operation
from armazem.domain.models import (
    Camara,
    Localizacao,
    Movimentacao,
    Produto,
    SolicitacaoRetirada,
    StatusProduto,
    StatusSolicitacao,
)


# -------------------------
# Helpers
# -------------------------

def agora_iso() -> str:
    """Timestamp UTC com largura fixa (comparável como texto)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return row
    if isinstance(row, sqlite3.Row):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict, sqlite3.Row or dataclass")


def _json_load(val: Optional[str]) -> Dict[str, Any]:
    if not val:
        return {}
    return json.loads(val)


def _camara_from_row(row) -> Camara:
    return Camara(**_as_dict(row))


def _localizacao_from_row(row) -> Localizacao:
    d = _as_dict(row)
    d.pop("atualizado_em", None)
    d["ocupada"] = bool(d["ocupada"])
    return Localizacao(**d)


def _produto_from_row(row) -> Produto:
    d = _as_dict(row)
    d["atributos"] = _json_load(d.get("atributos"))
    return Produto(**d)


def _movimentacao_from_row(row) -> Movimentacao:
    d = _as_dict(row)
    d["automatica"] = bool(d["automatica"])
    d["metadata"] = _json_load(d.get("metadata"))
    return Movimentacao(**d)


def _solicitacao_from_row(row) -> SolicitacaoRetirada:
    return SolicitacaoRetirada(**_as_dict(row))


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_float(self, key: str, default: float) -> float:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return float(v)
        except ValueError:
            return default


# -------------------------
# Câmara
# -------------------------

class CamaraRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def inserir(self, camara: Camara) -> Camara:
        criado_em = agora_iso()
        cur = self.conn.execute(
            """
            INSERT INTO camara (nome, status, quadras, lados, filas, andares, criado_em)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (camara.nome, camara.status, camara.quadras, camara.lados,
             camara.filas, camara.andares, criado_em),
        )
        log_database_operation("camara", "INSERT", 1, nome=camara.nome)
        return Camara(**{**asdict(camara), "id": cur.lastrowid, "criado_em": criado_em})

    def obter(self, camara_id: int) -> Optional[Camara]:
        row = self.conn.execute("SELECT * FROM camara WHERE id = ?", (camara_id,)).fetchone()
        return _camara_from_row(row) if row else None

    def por_nome(self, nome: str) -> Optional[Camara]:
        row = self.conn.execute("SELECT * FROM camara WHERE nome = ?", (nome,)).fetchone()
        return _camara_from_row(row) if row else None

    def listar(self) -> List[Camara]:
        cur = self.conn.execute("SELECT * FROM camara ORDER BY id")
        return [_camara_from_row(r) for r in cur.fetchall()]

    def atualizar_dimensoes(self, camara_id: int, quadras: int, lados: int, filas: int, andares: int) -> None:
        self.conn.execute(
            "UPDATE camara SET quadras = ?, lados = ?, filas = ?, andares = ? WHERE id = ?",
            (quadras, lados, filas, andares, camara_id),
        )
        log_database_operation("camara", "UPDATE", 1, camara_id=camara_id, campo="dimensoes")

    def atualizar_status(self, camara_id: int, status: str) -> None:
        self.conn.execute("UPDATE camara SET status = ? WHERE id = ?", (status, camara_id))
        log_database_operation("camara", "UPDATE", 1, camara_id=camara_id, status=status)

    def ocupacao(self) -> List[Dict[str, Any]]:
        cur = self.conn.execute("SELECT * FROM vw_ocupacao_camara ORDER BY camara_id")
        cols = [d[0] for d in cur.description]
        return [dict(zip(cols, row)) for row in cur.fetchall()]


# -------------------------
# Localização
# -------------------------

class LocalizacaoRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def obter(self, localizacao_id: int) -> Optional[Localizacao]:
        row = self.conn.execute(
            """SELECT id, camara_id, quadra, lado, fila, andar, codigo, capacidade_max_kg,
                      peso_atual_kg, ocupada, versao, nivel_acesso
               FROM localizacao WHERE id = ?""",
            (localizacao_id,),
        ).fetchone()
        return _localizacao_from_row(row) if row else None

    def status_camara(self, localizacao_id: int) -> Optional[str]:
        row = self.conn.execute(
            """SELECT c.status FROM localizacao l JOIN camara c ON c.id = l.camara_id
               WHERE l.id = ?""",
            (localizacao_id,),
        ).fetchone()
        return row[0] if row else None

    def codigos_da_camara(self, camara_id: int) -> Set[str]:
        cur = self.conn.execute("SELECT codigo FROM localizacao WHERE camara_id = ?", (camara_id,))
        return {r[0] for r in cur.fetchall()}

    def inserir_muitas(self, rows: Iterable[Localizacao]) -> int:
        payload = [
            {k: v for k, v in asdict(r).items() if k != "id"}
            for r in rows
        ]
        if not payload:
            return 0
        for p in payload:
            p["ocupada"] = int(p["ocupada"])
        self.conn.executemany(
            """
            INSERT INTO localizacao
                (camara_id, quadra, lado, fila, andar, codigo, capacidade_max_kg,
                 peso_atual_kg, ocupada, versao, nivel_acesso)
            VALUES
                (:camara_id, :quadra, :lado, :fila, :andar, :codigo, :capacidade_max_kg,
                 :peso_atual_kg, :ocupada, :versao, :nivel_acesso)
            """,
            payload,
        )
        log_database_operation("localizacao", "INSERT_MANY", len(payload))
        return len(payload)

    def livres(
        self,
        peso_minimo: float,
        camara_id: Optional[int] = None,
        excluir_id: Optional[int] = None,
    ) -> List[Localizacao]:
        """Localizações desocupadas, em câmaras ativas, que comportam ``peso_minimo``."""
        sql = """
            SELECT l.id, l.camara_id, l.quadra, l.lado, l.fila, l.andar, l.codigo,
                   l.capacidade_max_kg, l.peso_atual_kg, l.ocupada, l.versao, l.nivel_acesso
            FROM localizacao l
            JOIN camara c ON c.id = l.camara_id
            WHERE l.ocupada = 0
              AND c.status = 'active'
              AND l.capacidade_max_kg - l.peso_atual_kg >= ?
        """
        args: List[Any] = [peso_minimo]
        if camara_id is not None:
            sql += " AND l.camara_id = ?"
            args.append(camara_id)
        if excluir_id is not None:
            sql += " AND l.id != ?"
            args.append(excluir_id)
        sql += " ORDER BY l.andar, l.capacidade_max_kg DESC, l.id"
        cur = self.conn.execute(sql, args)
        return [_localizacao_from_row(r) for r in cur.fetchall()]

    def gravar_estado(
        self,
        localizacao_id: int,
        versao_esperada: int,
        peso_atual_kg: float,
        ocupada: bool,
        exigir_livre: bool = False,
    ) -> bool:
        """CAS: grava peso/ocupação se a versão (e, opcionalmente, a vacância) conferir."""
        sql = """
            UPDATE localizacao
               SET peso_atual_kg = ?, ocupada = ?, versao = versao + 1, atualizado_em = ?
             WHERE id = ? AND versao = ?
        """
        if exigir_livre:
            sql += " AND ocupada = 0"
        cur = self.conn.execute(
            sql,
            (round(peso_atual_kg, 3), int(ocupada), agora_iso(), localizacao_id, versao_esperada),
        )
        ok = cur.rowcount == 1
        log_database_operation(
            "localizacao", "UPDATE" if ok else "CAS_FAILED", cur.rowcount,
            localizacao_id=localizacao_id, versao_esperada=versao_esperada,
        )
        return ok

    def por_codigo(self, camara_id: int, codigo: str) -> Optional[Localizacao]:
        row = self.conn.execute(
            """SELECT id, camara_id, quadra, lado, fila, andar, codigo, capacidade_max_kg,
                      peso_atual_kg, ocupada, versao, nivel_acesso
               FROM localizacao WHERE camara_id = ? AND codigo = ?""",
            (camara_id, codigo),
        ).fetchone()
        return _localizacao_from_row(row) if row else None

    def da_camara(self, camara_id: int, apenas_livres: bool = False) -> List[Localizacao]:
        sql = """SELECT id, camara_id, quadra, lado, fila, andar, codigo, capacidade_max_kg,
                        peso_atual_kg, ocupada, versao, nivel_acesso
                 FROM localizacao WHERE camara_id = ?"""
        if apenas_livres:
            sql += " AND ocupada = 0"
        sql += " ORDER BY quadra, lado, fila, andar"
        cur = self.conn.execute(sql, (camara_id,))
        return [_localizacao_from_row(r) for r in cur.fetchall()]

    def todas(self) -> List[Localizacao]:
        cur = self.conn.execute(
            """SELECT id, camara_id, quadra, lado, fila, andar, codigo, capacidade_max_kg,
                      peso_atual_kg, ocupada, versao, nivel_acesso
               FROM localizacao ORDER BY id"""
        )
        return [_localizacao_from_row(r) for r in cur.fetchall()]


# -------------------------
# Produto
# -------------------------

_PRODUTO_COLS = (
    "nome, lote, tipo_semente, tipo_armazenamento, quantidade, peso_por_unidade, peso_total, "
    "localizacao_id, status, versao, data_entrada, data_validade, atributos, criado_por, "
    "modificado_por, criado_em, atualizado_em"
)


class ProdutoRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def obter(self, produto_id: int) -> Optional[Produto]:
        row = self.conn.execute(
            f"SELECT id, {_PRODUTO_COLS} FROM produto WHERE id = ?", (produto_id,)
        ).fetchone()
        return _produto_from_row(row) if row else None

    def ativo_na_localizacao(self, localizacao_id: int) -> Optional[Produto]:
        row = self.conn.execute(
            f"""SELECT id, {_PRODUTO_COLS} FROM produto
                WHERE localizacao_id = ? AND status IN (?, ?)""",
            (localizacao_id, *StatusProduto.ATIVOS),
        ).fetchone()
        return _produto_from_row(row) if row else None

    def listar(self, status: Optional[str] = None) -> List[Produto]:
        if status:
            cur = self.conn.execute(
                f"SELECT id, {_PRODUTO_COLS} FROM produto WHERE status = ? ORDER BY id", (status,)
            )
        else:
            cur = self.conn.execute(f"SELECT id, {_PRODUTO_COLS} FROM produto ORDER BY id")
        return [_produto_from_row(r) for r in cur.fetchall()]

    def inserir(self, produto: Produto) -> Produto:
        agora = agora_iso()
        d = asdict(produto)
        d.pop("id")
        d.update(
            versao=0,
            criado_em=agora,
            atualizado_em=agora,
            data_entrada=produto.data_entrada or agora[:10],
        )
        payload = {**d, "atributos": json.dumps(d["atributos"], ensure_ascii=False)}
        cur = self.conn.execute(
            f"""
            INSERT INTO produto ({_PRODUTO_COLS})
            VALUES (:nome, :lote, :tipo_semente, :tipo_armazenamento, :quantidade,
                    :peso_por_unidade, :peso_total, :localizacao_id, :status, :versao,
                    :data_entrada, :data_validade, :atributos, :criado_por,
                    :modificado_por, :criado_em, :atualizado_em)
            """,
            payload,
        )
        log_database_operation("produto", "INSERT", 1, lote=produto.lote)
        return Produto(**{**d, "id": cur.lastrowid})

    def atualizar(self, produto: Produto, versao_esperada: int) -> bool:
        """CAS: grava o produto se a versão armazenada for ``versao_esperada``.

        Em caso de sucesso a versão armazenada passa a ``versao_esperada + 1``.
        """
        cur = self.conn.execute(
            """
            UPDATE produto
               SET quantidade = ?, peso_total = ?, localizacao_id = ?, status = ?,
                   modificado_por = ?, atualizado_em = ?, versao = versao + 1
             WHERE id = ? AND versao = ?
            """,
            (
                produto.quantidade,
                produto.peso_total,
                produto.localizacao_id,
                produto.status,
                produto.modificado_por,
                agora_iso(),
                produto.id,
                versao_esperada,
            ),
        )
        ok = cur.rowcount == 1
        log_database_operation(
            "produto", "UPDATE" if ok else "CAS_FAILED", cur.rowcount,
            produto_id=produto.id, versao_esperada=versao_esperada,
        )
        return ok


# -------------------------
# Solicitações de retirada
# -------------------------

class SolicitacaoRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def inserir(self, sol: SolicitacaoRetirada) -> SolicitacaoRetirada:
        d = asdict(sol)
        d.pop("id")
        d["solicitado_em"] = d.get("solicitado_em") or agora_iso()
        cur = self.conn.execute(
            """
            INSERT INTO solicitacao_retirada
                (produto_id, tipo, quantidade_solicitada, status, motivo, solicitado_por,
                 solicitado_em, resolvido_por, resolvido_em, quantidade_retirada)
            VALUES
                (:produto_id, :tipo, :quantidade_solicitada, :status, :motivo, :solicitado_por,
                 :solicitado_em, :resolvido_por, :resolvido_em, :quantidade_retirada)
            """,
            d,
        )
        log_database_operation("solicitacao_retirada", "INSERT", 1, produto_id=sol.produto_id)
        return SolicitacaoRetirada(**{**d, "id": cur.lastrowid})

    def obter(self, solicitacao_id: int) -> Optional[SolicitacaoRetirada]:
        row = self.conn.execute(
            "SELECT * FROM solicitacao_retirada WHERE id = ?", (solicitacao_id,)
        ).fetchone()
        return _solicitacao_from_row(row) if row else None

    def pendente_do_produto(self, produto_id: int) -> Optional[SolicitacaoRetirada]:
        row = self.conn.execute(
            "SELECT * FROM solicitacao_retirada WHERE produto_id = ? AND status = ?",
            (produto_id, StatusSolicitacao.PENDENTE),
        ).fetchone()
        return _solicitacao_from_row(row) if row else None

    def resolver(
        self,
        solicitacao_id: int,
        status: str,
        usuario_id: str,
        quantidade_retirada: Optional[int] = None,
    ) -> bool:
        """Fecha uma solicitação PENDENTE (uma única vez)."""
        cur = self.conn.execute(
            """
            UPDATE solicitacao_retirada
               SET status = ?, resolvido_por = ?, resolvido_em = ?, quantidade_retirada = ?
             WHERE id = ? AND status = ?
            """,
            (status, usuario_id, agora_iso(), quantidade_retirada,
             solicitacao_id, StatusSolicitacao.PENDENTE),
        )
        ok = cur.rowcount == 1
        log_database_operation(
            "solicitacao_retirada", "UPDATE" if ok else "CAS_FAILED", cur.rowcount,
            solicitacao_id=solicitacao_id, status=status,
        )
        return ok

    def listar(self, status: Optional[str] = None, produto_id: Optional[int] = None) -> List[SolicitacaoRetirada]:
        sql = "SELECT * FROM solicitacao_retirada WHERE 1 = 1"
        args: List[Any] = []
        if status:
            sql += " AND status = ?"
            args.append(status)
        if produto_id is not None:
            sql += " AND produto_id = ?"
            args.append(produto_id)
        sql += " ORDER BY solicitado_em, id"
        cur = self.conn.execute(sql, args)
        return [_solicitacao_from_row(r) for r in cur.fetchall()]


# -------------------------
# Movimentações (ledger)
# -------------------------

_MOV_COLS = (
    "id, tipo, produto_id, origem_id, destino_id, quantidade, peso, usuario_id, "
    "motivo, automatica, metadata, timestamp"
)


class MovimentacaoRepo:
    """Acesso ao ledger. Não existe método de atualização nem de remoção."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def inserir(self, mov: Movimentacao) -> Movimentacao:
        d = asdict(mov)
        d.pop("id")
        d["timestamp"] = d.get("timestamp") or agora_iso()
        cur = self.conn.execute(
            """
            INSERT INTO movimentacao
                (tipo, produto_id, origem_id, destino_id, quantidade, peso, usuario_id,
                 motivo, automatica, metadata, timestamp)
            VALUES
                (:tipo, :produto_id, :origem_id, :destino_id, :quantidade, :peso, :usuario_id,
                 :motivo, :automatica, :metadata, :timestamp)
            """,
            {
                **d,
                "automatica": int(bool(d["automatica"])),
                "metadata": json.dumps(d["metadata"], ensure_ascii=False),
            },
        )
        log_database_operation("movimentacao", "INSERT", 1, produto_id=mov.produto_id, tipo=mov.tipo)
        return Movimentacao(**{**d, "id": cur.lastrowid})

    def obter(self, movimentacao_id: int) -> Optional[Movimentacao]:
        row = self.conn.execute(
            f"SELECT {_MOV_COLS} FROM movimentacao WHERE id = ?", (movimentacao_id,)
        ).fetchone()
        return _movimentacao_from_row(row) if row else None

    def por_produto(self, produto_id: int) -> List[Movimentacao]:
        cur = self.conn.execute(
            f"SELECT {_MOV_COLS} FROM movimentacao WHERE produto_id = ? ORDER BY id",
            (produto_id,),
        )
        return [_movimentacao_from_row(r) for r in cur.fetchall()]

    def todas(self) -> List[Movimentacao]:
        cur = self.conn.execute(f"SELECT {_MOV_COLS} FROM movimentacao ORDER BY id")
        return [_movimentacao_from_row(r) for r in cur.fetchall()]

    def contar(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM movimentacao").fetchone()[0]

    def pendentes(self, ate: str) -> List[Dict[str, Any]]:
        """Movimentações sem verificação com timestamp <= ``ate``."""
        cur = self.conn.execute(
            f"""SELECT {_MOV_COLS}, produto_peso_por_unidade, produto_lote
                FROM vw_movimentacoes_pendentes
                WHERE timestamp <= ?
                ORDER BY timestamp, id""",
            (ate,),
        )
        out = []
        for row in cur.fetchall():
            d = dict(row)
            extra = {
                "produto_peso_por_unidade": d.pop("produto_peso_por_unidade"),
                "produto_lote": d.pop("produto_lote"),
            }
            out.append({"movimentacao": _movimentacao_from_row(d), **extra})
        return out

    def verificacao(self, movimentacao_id: int) -> Optional[Dict[str, Any]]:
        row = self.conn.execute(
            "SELECT * FROM verificacao_movimentacao WHERE movimentacao_id = ?",
            (movimentacao_id,),
        ).fetchone()
        return dict(row) if row else None

    def registrar_verificacao(
        self,
        movimentacao_id: int,
        verificado_por: Optional[str],
        automatica: bool,
        notas: Optional[str] = None,
    ) -> Dict[str, Any]:
        d = {
            "movimentacao_id": movimentacao_id,
            "verificado_por": verificado_por,
            "verificado_em": agora_iso(),
            "automatica": int(automatica),
            "notas": notas,
        }
        cur = self.conn.execute(
            """
            INSERT INTO verificacao_movimentacao
                (movimentacao_id, verificado_por, verificado_em, automatica, notas)
            VALUES (:movimentacao_id, :verificado_por, :verificado_em, :automatica, :notas)
            """,
            d,
        )
        log_database_operation("verificacao_movimentacao", "INSERT", 1, movimentacao_id=movimentacao_id)
        return {**d, "id": cur.lastrowid}
