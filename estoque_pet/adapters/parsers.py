"""
Utilidades de parsing para valores vindos de planilhas e da linha de comando.

As planilhas de entradas e saídas chegam com quantidades no formato
"<valor> <unidade> - <descrição>" (por exemplo, "5 UN - Unidade"), números
em formato brasileiro ("1.234,50") e datas em DD/MM/AAAA ou ISO.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional, Tuple

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)*")


def parse_numero(txt: Any) -> Optional[float]:
    """Converte números em formato brasileiro ou internacional.

    Exemplos:
        "1.234,50" → 1234.5
        "12,5"     → 12.5
        "12.5"     → 12.5
        ""         → None

    Textos que não são números são devolvidos como None; quem chama decide
    se isso é erro (o razão valida a quantidade de novo).
    """
    if txt is None:
        return None
    if isinstance(txt, bool):
        return None
    if isinstance(txt, (int, float)):
        return float(txt)
    s = str(txt).strip().replace(" ", "")
    if not s:
        return None
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def parse_quantidade_raw(txt: Any) -> Tuple[Optional[float], Optional[str], Optional[str]]:
    """Interpreta uma string de quantidade com unidade.

    A string de entrada geralmente segue o padrão "<valor> <unidade> - <descrição>".
    O valor pode usar vírgula ou ponto como separador decimal. A unidade
    é a segunda palavra antes do hífen (em maiúsculas) e a descrição é o
    texto após o primeiro hífen.

    Exemplos:
        "5 UN - Unidade"      → (5.0, "UN", "Unidade")
        "2,5 kg - Quilograma" → (2.5, "KG", "Quilograma")
        "12"                  → (12.0, None, None)

    Returns:
        Uma tupla (numero, unidade, descricao). Qualquer valor que não
        possa ser determinado será retornado como None.
    """
    if txt is None:
        return None, None, None
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return float(txt), None, None
    s = str(txt).strip()
    if not s:
        return None, None, None
    head, desc = (s.split(" - ", 1) + [""])[:2]
    head = head.strip()
    desc = desc.strip() or None
    parts = head.split()
    num = None
    unidade = None
    if parts:
        m = _NUM_RE.fullmatch(parts[0])
        if m:
            num = parse_numero(m.group(0))
    if len(parts) >= 2:
        unidade = parts[1].strip().upper() or None
    return num, unidade, desc


def parse_data(txt: Any) -> Optional[date]:
    """Aceita date/datetime, ISO (AAAA-MM-DD) e DD/MM/AAAA."""
    if txt is None:
        return None
    if isinstance(txt, datetime):
        return txt.date()
    if isinstance(txt, date):
        return txt
    s = str(txt).strip()
    if not s:
        return None
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y"):
        try:
            return datetime.strptime(s[:10], fmt).date()
        except ValueError:
            continue
    return None
