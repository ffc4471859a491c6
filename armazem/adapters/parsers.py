"""
Utilidades de parsing para pesos, quantidades e códigos de localização.

Este módulo interpreta strings no formato tipicamente encontrado nas
planilhas de entrada de lotes (por exemplo, "1.000,5 KG", "20 SC - Sacos"
ou "Q1-LA-F2-A3"). O objetivo é extrair de forma robusta o valor
numérico, a unidade e as coordenadas da localização.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

_NUM_RE = re.compile(r"[-+]?\d[\d.,]*")
_MILHAR_RE = re.compile(r"^[-+]?\d{1,3}(?:\.\d{3})+$")
_CODIGO_RE = re.compile(r"^Q(\d+)-L([A-T])-F(\d+)-A(\d+)$")

# fatores para kg
_UNIDADES_PESO = {
    "KG": 1.0,
    "KGS": 1.0,
    "QUILO": 1.0,
    "QUILOS": 1.0,
    "G": 0.001,
    "GR": 0.001,
    "T": 1000.0,
    "TON": 1000.0,
}


def parse_numero(txt: Any) -> Optional[float]:
    """Converte um número em formato brasileiro ou internacional.

    Regras:
        - "1.000,5" → 1000.5 (ponto como milhar, vírgula decimal)
        - "25,5"    → 25.5
        - "1.000"   → 1000.0 (ponto seguido de grupos de 3 dígitos = milhar)
        - "25.5"    → 25.5
    """
    if txt is None:
        return None
    if isinstance(txt, (int, float)):
        return float(txt)
    s = str(txt).strip()
    m = _NUM_RE.search(s)
    if not m:
        return None
    num = m.group(0).rstrip(".,")
    if "," in num:
        num = num.replace(".", "").replace(",", ".")
    elif _MILHAR_RE.match(num):
        num = num.replace(".", "")
    try:
        return float(num)
    except ValueError:
        return None


def parse_peso_kg(txt: Any) -> Optional[float]:
    """Interpreta um peso com unidade opcional e devolve kg.

    Exemplos:
        "25 kg"      → 25.0
        "1.000,5 KG" → 1000.5
        "500 g"      → 0.5
        "1,2 t"      → 1200.0
        30           → 30.0
    """
    valor = parse_numero(txt)
    if valor is None:
        return None
    if isinstance(txt, (int, float)):
        return valor
    unidade = re.sub(r"[\d\s.,+-]+", " ", str(txt)).strip().upper().split()
    fator = _UNIDADES_PESO.get(unidade[0], 1.0) if unidade else 1.0
    return round(valor * fator, 3)


def parse_quantidade(txt: Any) -> Tuple[Optional[int], Optional[str]]:
    """Interpreta uma quantidade de unidades ("20 SC - Sacos" → (20, "SC")).

    Quantidades fracionárias não são aceitas: devolvem ``(None, unidade)``.
    """
    if txt is None:
        return None, None
    s = str(txt).strip()
    if not s:
        return None, None
    head = s.split("-", 1)[0].strip()
    parts = head.split()
    unidade = parts[1].strip().upper() if len(parts) >= 2 else None
    valor = parse_numero(parts[0]) if parts else None
    if valor is None or not float(valor).is_integer():
        return None, unidade
    return int(valor), unidade


def parse_codigo_localizacao(txt: Any) -> Optional[Tuple[int, str, int, int]]:
    """Extrai (quadra, lado, fila, andar) de um código como "Q1-LA-F2-A3"."""
    if txt is None:
        return None
    s = re.sub(r"\s+", "", str(txt)).upper()
    m = _CODIGO_RE.match(s)
    if not m:
        return None
    return int(m.group(1)), m.group(2), int(m.group(3)), int(m.group(4))


def normalizar_codigo(txt: Any) -> Optional[str]:
    """Código canônico (maiúsculas, sem espaços) ou ``None`` se inválido."""
    coords = parse_codigo_localizacao(txt)
    if coords is None:
        return None
    q, lado, f, a = coords
    return f"Q{q}-L{lado}-F{f}-A{a}"
