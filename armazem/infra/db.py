# armazem/infra/db.py
"""
Utilidades de conexão SQLite.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from armazem.config import DEFAULTS


@contextmanager
def connect(db_path: str, timeout: float = DEFAULTS.busy_timeout_s) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - busy timeout (escritores concorrentes esperam o lock em vez de falhar)
    - commit ao sair (rollback em caso de exceção)
    """
    conn = sqlite3.connect(db_path, timeout=timeout)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
