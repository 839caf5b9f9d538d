"""
metrics.py — Accuracy labels and relative-frequency measures.

Accuracy compares two hand-supplied columns of the corrected diminutives
table: `token_corrected` (the form the writer should have used) and
`token_checked` (the form after spell-checking). Equal means Accurate.

Relative frequencies, all percentages in [0, 100]:
  (a) per L1: essays containing a diminutive / all essays
  (b) per L1: diminutive tokens / all word tokens
  (c) per essay (one essay per writer): diminutive tokens / word tokens,
      joined back onto the token table as `percent_used`
"""

import logging
import re

import numpy as np
import pandas as pd

from dimcorpus.errors import JoinMismatchError


logger = logging.getLogger(__name__)

ACCURATE = 'Accurate'
INACCURATE = 'Inaccurate'

ESSAY_COLUMNS = ['filename', 'subcorpus', 'l1', 'proficiency_score', 'proficiency_range', 'task']

_WORD = re.compile(r"\w+")


def label_accuracy(tokens: pd.DataFrame, corrected: str = 'token_corrected',
                   checked: str = 'token_checked') -> pd.DataFrame:
    """Add `accuracy` (Accurate/Inaccurate) and binary `accurate` columns."""
    a = tokens[corrected].fillna('').astype(str).str.strip()
    b = tokens[checked].fillna('').astype(str).str.strip()
    out = tokens.copy()
    out['accuracy'] = np.where(a == b, ACCURATE, INACCURATE)
    out['accurate'] = (a == b).astype(int)
    return out


def count_words(text) -> int:
    """Number of word tokens in an essay text."""
    if not isinstance(text, str):
        return 0
    return len(_WORD.findall(text))


def _percent(part, whole):
    part = np.asarray(part, dtype=float)
    whole = np.asarray(whole, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        pct = np.where(whole > 0, 100.0 * part / whole, 0.0)
    return pct


def essay_table(tokens: pd.DataFrame, corpus: pd.DataFrame) -> pd.DataFrame:
    """
    One row per essay: word count, diminutive count and `percent_used`.

    Tokens whose essay is not in `corpus` are an error, since they would
    inflate the ratios.
    """
    unknown = set(tokens['filename']) - set(corpus['filename'])
    if unknown:
        raise JoinMismatchError(
            f"{len(unknown)} diminutive essays missing from the corpus: {sorted(unknown)[:10]}"
        )

    columns = [col for col in ESSAY_COLUMNS if col in corpus.columns]
    essays = corpus[columns].copy()
    essays['words'] = corpus['text'].map(count_words).astype(int)

    per_essay = tokens.groupby('filename').size()
    essays['diminutives'] = essays['filename'].map(per_essay).fillna(0).astype(int)
    essays['percent_used'] = _percent(essays['diminutives'], essays['words'])
    return essays.reset_index(drop=True)


def relative_frequencies(essays: pd.DataFrame) -> pd.DataFrame:
    """
    Per-L1 ratios (a) and (b) from an essay table.

    Columns: l1, essays, essays_with_diminutive, percent_essays,
             words, diminutive_tokens, percent_tokens
    """
    grouped = essays.groupby('l1')
    table = pd.DataFrame({
        'essays': grouped.size(),
        'essays_with_diminutive': grouped['diminutives'].apply(lambda s: int((s > 0).sum())),
        'words': grouped['words'].sum(),
        'diminutive_tokens': grouped['diminutives'].sum(),
    }).reset_index()

    table['percent_essays'] = _percent(table['essays_with_diminutive'], table['essays'])
    table['percent_tokens'] = _percent(table['diminutive_tokens'], table['words'])

    columns = ['l1', 'essays', 'essays_with_diminutive', 'percent_essays',
               'words', 'diminutive_tokens', 'percent_tokens']
    return table[columns].sort_values('percent_essays', ascending=False).reset_index(drop=True)


def essays_with_diminutive(tokens: pd.DataFrame, corpus: pd.DataFrame) -> pd.Series:
    """(a) Percentage of essays per L1 with at least one diminutive."""
    table = relative_frequencies(essay_table(tokens, corpus))
    return table.set_index('l1')['percent_essays']


def diminutive_token_share(tokens: pd.DataFrame, corpus: pd.DataFrame) -> pd.Series:
    """(b) Diminutive tokens as a percentage of all word tokens, per L1."""
    table = relative_frequencies(essay_table(tokens, corpus))
    return table.set_index('l1')['percent_tokens']


def learner_percentages(tokens: pd.DataFrame, corpus: pd.DataFrame) -> pd.DataFrame:
    """(c) Per-essay diminutive percentage."""
    return essay_table(tokens, corpus)


def attach_percentages(tokens: pd.DataFrame, essays: pd.DataFrame) -> pd.DataFrame:
    """Join each token's essay `words` and `percent_used` onto the token table."""
    joined = tokens.merge(
        essays[['filename', 'words', 'percent_used']],
        on='filename',
        how='left',
        validate='many_to_one',
    )
    if joined['percent_used'].isna().any():
        missing = joined.loc[joined['percent_used'].isna(), 'filename'].unique().tolist()
        raise JoinMismatchError(f"No essay percentage for {missing[:10]}")
    return joined


def accuracy_by_l1(tokens: pd.DataFrame) -> pd.DataFrame:
    """Accurate / Inaccurate counts and percent accurate per L1."""
    if tokens.empty:
        return pd.DataFrame(columns=['l1', ACCURATE, INACCURATE, 'percent_accurate'])

    table = (
        pd.crosstab(tokens['l1'], tokens['accuracy'])
        .reindex(columns=[ACCURATE, INACCURATE], fill_value=0)
    )
    table['percent_accurate'] = _percent(table[ACCURATE], table[ACCURATE] + table[INACCURATE])
    table.columns.name = None
    return table.reset_index()
