"""
ingest.py — Load the learner and native essay tables and merge them.

Reads:
  - data/raw/learners.tsv
  - data/raw/natives.tsv

Both tables are tab-separated with a header row. Their schemas overlap but
are not identical: learners carry proficiency fields, natives carry the
Spanish variety. The merge is a full outer join on the shared columns, so a
subcorpus-specific field is missing for every row of the other subcorpus.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import pandas as pd

from dimcorpus.config import resolve_path
from dimcorpus.errors import JoinMismatchError, SchemaMismatchError
from dimcorpus.normalize import normalize_essays


logger = logging.getLogger(__name__)

SUBCORPORA = ('learner', 'native')


def load_essays(path: Path, column_map: Mapping[str, str], subcorpus: str) -> pd.DataFrame:
    """
    Read one essay table, keep the mapped columns and rename them.

    Args:
        path: Tab-separated essay table
        column_map: Raw header -> canonical column name
        subcorpus: 'learner' or 'native'

    Raises:
        SchemaMismatchError: a mapped raw column is absent from the file
    """
    if not path.exists():
        raise FileNotFoundError(f"Essay table not found: {path}")

    logger.info(f"Reading {subcorpus} essays from {path}")
    raw = pd.read_csv(path, sep='\t', dtype=str, keep_default_na=False, na_values=[''])

    missing = [col for col in column_map if col not in raw.columns]
    if missing:
        raise SchemaMismatchError(
            f"{path.name}: missing columns {missing}",
            missing=missing,
        )

    essays = raw[list(column_map)].rename(columns=dict(column_map))
    essays.insert(0, 'subcorpus', subcorpus)

    if 'proficiency_score' in essays.columns:
        essays['proficiency_score'] = pd.to_numeric(essays['proficiency_score'], errors='coerce')

    logger.info(f"  -> Loaded {len(essays):,} {subcorpus} essays")
    return essays


def column_difference(learners: pd.DataFrame, natives: pd.DataFrame) -> Dict[str, set]:
    """Columns only one of the two tables carries."""
    learner_cols = set(learners.columns)
    native_cols = set(natives.columns)
    return {
        'learner': learner_cols - native_cols,
        'native': native_cols - learner_cols,
    }


def check_schema(learners: pd.DataFrame, natives: pd.DataFrame,
                 expected: Mapping[str, Iterable[str]]) -> Dict[str, set]:
    """
    Verify the symmetric difference of columns is exactly the documented one.

    Raises:
        SchemaMismatchError: with the columns missing from / extra to the expectation
    """
    actual = column_difference(learners, natives)
    missing = set()
    unexpected = set()

    for side in SUBCORPORA:
        wanted = set(expected.get(side, []))
        missing |= {f"{side}:{col}" for col in wanted - actual[side]}
        unexpected |= {f"{side}:{col}" for col in actual[side] - wanted}

    if missing or unexpected:
        raise SchemaMismatchError(
            f"Unexpected column difference between subcorpora "
            f"(missing: {sorted(missing)}, unexpected: {sorted(unexpected)})",
            missing=missing,
            unexpected=unexpected,
        )
    return actual


def check_merge(merged: pd.DataFrame, exclusive: Mapping[str, Iterable[str]]) -> None:
    """
    Verify the missing-value pattern the outer join should produce.

    Each row must have a subcorpus and a filename, and must be missing every
    column exclusive to the other subcorpus.
    """
    if merged['subcorpus'].isna().any() or merged['filename'].isna().any():
        raise JoinMismatchError("Merged essays contain rows without subcorpus or filename")

    for side in SUBCORPORA:
        other = [s for s in SUBCORPORA if s != side][0]
        columns = list(exclusive.get(other, []))
        if not columns:
            continue
        rows = merged.loc[merged['subcorpus'] == side, columns]
        leaked = rows.notna().any(axis=1)
        if leaked.any():
            names = merged.loc[leaked[leaked].index, 'filename'].tolist()
            raise JoinMismatchError(
                f"{int(leaked.sum())} {side} essays carry {other}-only values: {names[:10]}"
            )


def merge_corpora(learners: pd.DataFrame, natives: pd.DataFrame,
                  expected_difference: Mapping[str, Iterable[str]]) -> pd.DataFrame:
    """
    Full outer join of the two subcorpora on their shared columns.

    Raises:
        SchemaMismatchError: column difference is not the expected one
        JoinMismatchError: duplicate filenames or a broken missing-value pattern
    """
    exclusive = check_schema(learners, natives, expected_difference)

    shared = [col for col in learners.columns if col in natives.columns]
    combined_names = pd.concat([learners['filename'], natives['filename']])
    duplicates = combined_names[combined_names.duplicated()].unique().tolist()
    if duplicates:
        raise JoinMismatchError(f"Filenames are not unique across subcorpora: {duplicates[:10]}")

    logger.info(f"Merging on {len(shared)} shared columns")
    logger.info(f"  Learner-only: {sorted(exclusive['learner'])}")
    logger.info(f"  Native-only:  {sorted(exclusive['native'])}")

    merged = learners.merge(natives, how='outer', on=shared, sort=False)
    check_merge(merged, exclusive)

    logger.info(f"  -> {len(merged):,} essays "
                f"({len(learners):,} learner, {len(natives):,} native)")
    return merged


def load_corpus(config: dict, learners_path: Optional[Path] = None,
                natives_path: Optional[Path] = None) -> pd.DataFrame:
    """Load, merge and normalize both essay tables as configured."""
    learners = load_essays(
        learners_path or resolve_path(config, 'learners'),
        config['columns']['learner'],
        'learner',
    )
    natives = load_essays(
        natives_path or resolve_path(config, 'natives'),
        config['columns']['native'],
        'native',
    )
    merged = merge_corpora(learners, natives, config['expected_difference'])

    norm = config['normalization']
    return normalize_essays(
        merged,
        marker=norm['line_break_marker'],
        strict_whitespace=norm['strict_whitespace'],
    )
