"""
tables.py — Reading and writing stage artifacts.

  - CSV tables: UTF-8, header row, comma-separated, no index
  - lemma lists: one lemma per line, no header
  - stage statistics: JSON written with orjson
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

import orjson
import pandas as pd

from dimcorpus.errors import SchemaMismatchError


logger = logging.getLogger(__name__)


def read_table(path: Path, required: Sequence[str] = (), produced_by: str = None) -> pd.DataFrame:
    """
    Read a stage CSV.

    Args:
        path: CSV file
        required: Columns the caller depends on
        produced_by: Stage name used in the error hint when the file is missing
    """
    if not path.exists():
        hint = f" (run '{produced_by}' first)" if produced_by else ""
        raise FileNotFoundError(f"Input table not found: {path}{hint}")

    logger.info(f"Reading {path}")
    df = pd.read_csv(path, encoding='utf-8', dtype={'filename': str},
                     keep_default_na=False, na_values=[''])

    missing = [col for col in required if col not in df.columns]
    if missing:
        raise SchemaMismatchError(f"{path.name}: missing columns {missing}", missing=missing)

    logger.info(f"  -> {len(df):,} rows")
    return df


def write_table(df: pd.DataFrame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, encoding='utf-8')
    logger.info(f"Written: {path} ({len(df):,} rows)")


def write_lemma_list(lemmas: Iterable[str], path: Path) -> None:
    """Write a single-column lemma list, sorted, one per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    unique = sorted(set(lemmas))
    with open(path, 'w', encoding='utf-8') as f:
        for lemma in unique:
            f.write(f"{lemma}\n")
    logger.info(f"Written: {path} ({len(unique):,} lemmas)")


def read_lemma_list(path: Path) -> List[str]:
    """Read a lemma list. Only the first tab-separated field of a line counts."""
    lemmas = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            lemma = line.rstrip('\n').split('\t')[0].strip()
            if lemma:
                lemmas.append(lemma)
    return lemmas


def _str_keys(value):
    # Group-by keys can be NaN or numpy scalars; JSON object keys must be strings
    if isinstance(value, dict):
        return {k if isinstance(k, str) else str(k): _str_keys(v) for k, v in value.items()}
    return value


def write_stats(stats: Dict[str, Any], path: Path) -> None:
    """Write stage statistics as indented JSON with sorted keys."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = orjson.dumps(
        _str_keys(stats),
        option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS | orjson.OPT_SERIALIZE_NUMPY,
        default=str,
    )
    with open(path, 'wb') as f:
        f.write(payload + b'\n')
    logger.info(f"Written: {path}")
