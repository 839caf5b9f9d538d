"""
normalize.py — Essay text cleanup before segmentation.

Three fixed operations, in order:
  1. remove the literal line-break marker left by the corpus export
  2. replace triple spaces, then double spaces (one pass each)
  3. strip embedded double quotes

Step 2 is not a general whitespace collapse. Runs of two, three, four or six
spaces come out as one, but a run of five comes out as two (and longer runs
may keep two or more), so normalizing such text a second time changes it
again. `strict_whitespace=True` collapses every run of spaces instead.
"""

import re

import pandas as pd


DEFAULT_LINE_BREAK_MARKER = "\\n"

_SPACE_RUN = re.compile(r" {2,}")


def normalize_text(text: str, marker: str = DEFAULT_LINE_BREAK_MARKER,
                   strict_whitespace: bool = False) -> str:
    """Apply the corpus cleanup to one essay text."""
    if marker:
        text = text.replace(marker, "")

    if strict_whitespace:
        text = _SPACE_RUN.sub(" ", text)
    else:
        text = text.replace("   ", " ")
        text = text.replace("  ", " ")

    return text.replace('"', "")


def normalize_essays(essays: pd.DataFrame, marker: str = DEFAULT_LINE_BREAK_MARKER,
                     strict_whitespace: bool = False) -> pd.DataFrame:
    """Return a copy of `essays` with the `text` column normalized."""
    out = essays.copy()
    out["text"] = (
        out["text"]
        .fillna("")
        .astype(str)
        .map(lambda t: normalize_text(t, marker, strict_whitespace))
    )
    return out
