"""
diminutives.py — Regex candidate filter for Spanish diminutive suffixes.

The pattern matches a word ending in it/ill + o/a + optional s:

    -ito -ita -itos -itas -illo -illa -illos -illas

It is a coarse proxy. Any word that happens to end in the same segments
matches as well (bonito, maravilla), which is
why the cleaning stage exists.
"""

import re
from typing import Optional

import pandas as pd


DIMINUTIVE_PATTERN = re.compile(r"\b\w*(?P<suffix>it|ill)[oa]s?\b", re.IGNORECASE)

VARIANTS = {'it': 'ito', 'ill': 'illo'}


def has_candidate(text) -> bool:
    """True if the text contains at least one candidate word."""
    if not isinstance(text, str):
        return False
    return DIMINUTIVE_PATTERN.search(text) is not None


def is_candidate(token) -> bool:
    """True if the token itself matches the pattern."""
    return diminutive_variant(token) is not None


def diminutive_variant(token) -> Optional[str]:
    """
    Classify a token by the suffix segment it matched.

    Returns 'ito' for it + o/a(s), 'illo' for ill + o/a(s), None otherwise.
    """
    if not isinstance(token, str):
        return None
    match = DIMINUTIVE_PATTERN.search(token)
    if match is None:
        return None
    return VARIANTS[match.group('suffix').lower()]


def filter_essays(essays: pd.DataFrame, column: str = "text") -> pd.DataFrame:
    """Keep essays with at least one candidate word."""
    mask = essays[column].map(has_candidate).astype(bool)
    return essays.loc[mask].reset_index(drop=True)


def filter_tokens(tokens: pd.DataFrame, column: str = "token") -> pd.DataFrame:
    """Keep tokens matching the pattern and tag each with its variant."""
    variants = tokens[column].map(diminutive_variant)
    out = tokens.loc[variants.notna()].copy()
    out["variant"] = variants[variants.notna()]
    return out.reset_index(drop=True)
