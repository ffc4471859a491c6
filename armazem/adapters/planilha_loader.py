# armazem/adapters/planilha_loader.py
"""
Loader para planilhas (XLSX) de ENTRADA de lotes.

Esta função:
- lê a planilha usando pandas (engine openpyxl);
- normaliza cabeçalhos (acentos, variações, sinônimos);
- retorna uma lista de dicionários com as chaves esperadas por
  ``operacoes.criar_produto``.

Observações:
- Pesos e quantidades passam pelos parsers ("1.000,5 KG", "20 SC").
- Datas são normalizadas para ISO (YYYY-MM-DD) quando possível.
- Colunas sem sinônimo conhecido vão para ``atributos`` (atributos livres
  do tipo de semente).
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import pandas as pd

from armazem.adapters.parsers import normalizar_codigo, parse_peso_kg, parse_quantidade


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


ALIASES = {
    "lote": "lote",
    "numero lote": "lote",
    "n lote": "lote",

    "nome": "nome",
    "produto": "nome",
    "descricao": "nome",

    "tipo semente": "tipo_semente",
    "semente": "tipo_semente",
    "cultivar": "tipo_semente",

    "quantidade": "quantidade",
    "qtde": "quantidade",
    "qtd": "quantidade",

    "peso unidade": "peso_por_unidade",
    "peso por unidade": "peso_por_unidade",
    "peso unitario": "peso_por_unidade",
    "peso saco": "peso_por_unidade",
    "peso kg": "peso_por_unidade",

    "armazenamento": "tipo_armazenamento",
    "tipo armazenamento": "tipo_armazenamento",
    "embalagem": "tipo_armazenamento",

    "camara": "camara",
    "camara fria": "camara",

    "localizacao": "localizacao",
    "local": "localizacao",
    "posicao": "localizacao",
    "endereco": "localizacao",

    "data entrada": "data_entrada",
    "entrada": "data_entrada",
    "data de entrada": "data_entrada",
    "data": "data_entrada",

    "validade": "data_validade",
    "data validade": "data_validade",
    "data de validade": "data_validade",

    "motivo": "motivo",
    "observacao": "motivo",
    "obs": "motivo",
}

CAMPOS_CONHECIDOS = set(ALIASES.values())


def _safe_get(row, key):
    """Valor da linha, tratando NA do pandas como ``None``."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _to_date_iso(val: Any) -> Optional[str]:
    """Converte valor para data ISO (YYYY-MM-DD) se possível."""
    if val is None:
        return None
    s = str(val).strip()
    if not s:
        return None
    iso = re.match(r"^\d{4}-\d{2}-\d{2}", s)
    if iso:
        return iso.group(0)
    d = pd.to_datetime(s, dayfirst=True, errors="coerce")
    if pd.isna(d):
        return None
    return d.date().isoformat()


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    return df.rename(columns={col: ALIASES.get(_slug(col), _slug(col)) for col in df.columns})


def _tipo_armazenamento(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    s = _slug(val)
    if s.startswith("bag") or s.startswith("big bag"):
        return "bag"
    if s.startswith("saco") or s.startswith("sc"):
        return "saco"
    return s


# ---------------------------
# loader público (XLSX)
# ---------------------------

def load_lotes_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de entrada de lotes.

    Campos de saída (chaves do dict por linha):
      - linha: número da linha na planilha (cabeçalho = 1)
      - lote, nome, tipo_semente: str | None
      - quantidade: int | None
      - peso_por_unidade: float (kg) | None
      - tipo_armazenamento: 'saco' | 'bag' | None
      - camara: str | None (nome da câmara)
      - localizacao: código canônico | None; ``localizacao_raw`` guarda o texto original
      - data_entrada, data_validade: ISO date | None
      - motivo: str | None
      - atributos: dict com as demais colunas preenchidas
    """
    df = pd.read_excel(path, dtype="string", engine="openpyxl")
    df = _normalize_columns(df)
    out: List[Dict[str, Any]] = []
    for idx, row in df.iterrows():
        quantidade, _unidade = parse_quantidade(_safe_get(row, "quantidade"))
        local_raw = _safe_get(row, "localizacao")
        atributos = {
            col: _safe_get(row, col)
            for col in df.columns
            if col not in CAMPOS_CONHECIDOS and _safe_get(row, col) is not None
        }
        out.append(
            {
                "linha": int(idx) + 2,
                "lote": _safe_get(row, "lote"),
                "nome": _safe_get(row, "nome"),
                "tipo_semente": _safe_get(row, "tipo_semente"),
                "quantidade": quantidade,
                "peso_por_unidade": parse_peso_kg(_safe_get(row, "peso_por_unidade")),
                "tipo_armazenamento": _tipo_armazenamento(_safe_get(row, "tipo_armazenamento")),
                "camara": _safe_get(row, "camara"),
                "localizacao": normalizar_codigo(local_raw),
                "localizacao_raw": local_raw,
                "data_entrada": _to_date_iso(_safe_get(row, "data_entrada")),
                "data_validade": _to_date_iso(_safe_get(row, "data_validade")),
                "motivo": _safe_get(row, "motivo"),
                "atributos": atributos,
            }
        )
    return out
