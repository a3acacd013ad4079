# estoque_pet/adapters/planilhas.py
"""
Loaders para planilhas (XLSX ou CSV) de ENTRADAS e SAÍDAS.

Essas funções:
- leem a planilha usando pandas;
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com as chaves esperadas pelo razão.

Observações:
- A quantidade é preservada como `quantidade_raw`; o parse é feito no
  caso de uso, que reporta a linha com erro.
- `linha` é o número da linha na planilha (cabeçalho = linha 1).
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: Any) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key) -> Optional[str]:
    """Lê uma célula tratando NA e strings vazias como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


_ALIASES = {
    "sku": "sku",
    "codigo": "sku",
    "cod": "sku",
    "codigo sku": "sku",

    "quantidade": "quantidade_raw",
    "qtde": "quantidade_raw",
    "qtd": "quantidade_raw",

    "custo": "custo_unitario",
    "custo unitario": "custo_unitario",
    "valor unitario": "custo_unitario",
    "preco unitario": "custo_unitario",

    "motivo": "motivo",
    "motivo saida": "motivo",

    "documento": "documento",
    "nota fiscal": "documento",
    "nf": "documento",

    "observacao": "observacao",
    "obs": "observacao",
    "observacoes": "observacao",

    "usuario": "usuario",
    "responsavel": "usuario",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = _ALIASES.get(key, key)  # se não houver alias, mantém slug
    return df.rename(columns=new_cols)


def ler_planilha(path: str) -> pd.DataFrame:
    """Lê XLSX/XLS ou CSV preservando tudo como texto."""
    ext = Path(path).suffix.lower()
    if ext in {".xlsx", ".xlsm", ".xls"}:
        df = pd.read_excel(path, dtype="string")
    elif ext == ".csv":
        df = pd.read_csv(path, dtype="string", sep=None, engine="python")
    else:
        raise ValueError(f"Formato de planilha não suportado: {ext or path}")
    for c in df.columns:
        df[c] = df[c].astype("string")
    return _normalize_columns(df)


# ---------------------------
# loaders públicos
# ---------------------------

def _registros(path: str, campos: List[str]) -> List[Dict[str, Any]]:
    df = ler_planilha(path)
    if "sku" not in df.columns or "quantidade_raw" not in df.columns:
        raise ValueError("Planilha precisa das colunas 'SKU' (ou 'Código') e 'Quantidade'")
    out: List[Dict[str, Any]] = []
    for i, (_, row) in enumerate(df.iterrows(), start=2):
        rec: Dict[str, Any] = {"linha": i}
        for campo in campos:
            rec[campo] = _safe_get(row, campo)
        if all(rec[c] is None for c in campos):
            continue  # linha em branco
        out.append(rec)
    return out


def load_entradas(path: str) -> List[Dict[str, Any]]:
    """Lê planilha de ENTRADAS.

    Campos por linha: linha, sku, quantidade_raw, custo_unitario, documento,
    observacao, usuario (todos texto ou None).
    """
    return _registros(path, ["sku", "quantidade_raw", "custo_unitario", "documento", "observacao", "usuario"])


def load_saidas(path: str) -> List[Dict[str, Any]]:
    """Lê planilha de SAÍDAS.

    Campos por linha: linha, sku, quantidade_raw, motivo, custo_unitario,
    documento, observacao, usuario.
    """
    return _registros(path, ["sku", "quantidade_raw", "motivo", "custo_unitario", "documento", "observacao", "usuario"])
