"""
curation.py — Manual classification of candidate lemmas.

The regex candidates contain many false positives. A human reviews the
lemma frequency table in two passes:

  - frequent: lemmas occurring more than `threshold` times (default 2)
  - hapax:    lemmas occurring exactly once

and marks each reviewed lemma as diminutive or not. Lemmas occurring
between 2 and `threshold` times are in neither pass and are kept as-is.

Decisions are stored by lemma name in a YAML file:

    frequent:
      diminutive: [gatito, perrito, ...]
      non_diminutive: [bonito, poquito, ...]
    hapax:
      diminutive: [...]
      non_diminutive: [...]

Each pass must be a partition of its review table: every reviewed lemma is
classified exactly once, and nothing outside the table is listed. Positional
curation (row numbers into a sorted review table) is still accepted through
split_by_indices, which converts the positions to names straight away.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd
import yaml

from dimcorpus.errors import CurationMismatchError


logger = logging.getLogger(__name__)

PASSES = ('frequent', 'hapax')


@dataclass
class CuratedList:
    """Diminutive / non-diminutive decision for one review pass."""
    diminutive: List[str] = field(default_factory=list)
    non_diminutive: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.diminutive) + len(self.non_diminutive)


@dataclass
class Curation:
    frequent: CuratedList = field(default_factory=CuratedList)
    hapax: CuratedList = field(default_factory=CuratedList)

    def get(self, pass_name: str) -> CuratedList:
        return getattr(self, pass_name)

    @property
    def diminutive_lemmas(self) -> List[str]:
        return sorted(set(self.frequent.diminutive) | set(self.hapax.diminutive))

    @property
    def non_diminutive_lemmas(self) -> List[str]:
        return sorted(set(self.frequent.non_diminutive) | set(self.hapax.non_diminutive))


def lemma_frequencies(tokens: pd.DataFrame, column: str = 'lemma') -> pd.DataFrame:
    """
    Count tokens per lemma.

    Sorted by count (descending) then lemma, so the table and any positions
    into it are reproducible for the same input.
    """
    counts = tokens[column].dropna().astype(str).value_counts()
    freq = pd.DataFrame({'lemma': counts.index, 'n': counts.to_numpy()})
    return freq.sort_values(['n', 'lemma'], ascending=[False, True]).reset_index(drop=True)


def review_tables(freq: pd.DataFrame, threshold: int = 2) -> Dict[str, pd.DataFrame]:
    """Split a frequency table into the frequent and hapax review tables."""
    return {
        'frequent': freq[freq['n'] > threshold].reset_index(drop=True),
        'hapax': freq[freq['n'] == 1].reset_index(drop=True),
    }


def load_curation(path: Path) -> Curation:
    """Load curation decisions from YAML."""
    if not path.exists():
        raise FileNotFoundError(f"Curation file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    passes = {}
    for pass_name in PASSES:
        section = data.get(pass_name) or {}
        passes[pass_name] = CuratedList(
            diminutive=[str(x) for x in section.get('diminutive') or []],
            non_diminutive=[str(x) for x in section.get('non_diminutive') or []],
        )

    curation = Curation(**passes)
    logger.info(f"Loaded curation from {path}: "
                f"{len(curation.frequent)} frequent, {len(curation.hapax)} hapax decisions")
    return curation


def save_curation(curation: Curation, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        pass_name: {
            'diminutive': list(curation.get(pass_name).diminutive),
            'non_diminutive': list(curation.get(pass_name).non_diminutive),
        }
        for pass_name in PASSES
    }
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)


def validate_partition(review: pd.DataFrame, curated: CuratedList, pass_name: str = 'review') -> None:
    """
    Check that `curated` classifies every lemma of `review` exactly once.

    Raises:
        CurationMismatchError: with the unclassified, unknown and duplicated lemmas
    """
    reviewed = set(review['lemma'])
    listed = curated.diminutive + curated.non_diminutive
    counts = Counter(listed)

    duplicated = {lemma for lemma, n in counts.items() if n > 1}
    unknown = set(counts) - reviewed
    unclassified = reviewed - set(counts)

    if duplicated or unknown or unclassified or len(listed) != len(review):
        raise CurationMismatchError(
            f"{pass_name}: {len(listed)} decisions for {len(review)} lemmas "
            f"(unclassified: {len(unclassified)}, unknown: {len(unknown)}, "
            f"duplicated: {len(duplicated)})",
            unclassified=unclassified,
            unknown=unknown,
            duplicated=duplicated,
        )


def split_by_indices(review: pd.DataFrame, diminutive_idx: Sequence[int],
                     non_diminutive_idx: Sequence[int]) -> CuratedList:
    """
    Convert positional decisions (0-based rows of `review`) into lemma names.

    The two index lists must together cover every row exactly once.
    """
    total = len(diminutive_idx) + len(non_diminutive_idx)
    if total != len(review):
        raise CurationMismatchError(
            f"{len(diminutive_idx)} + {len(non_diminutive_idx)} indices "
            f"for a review table of {len(review)} rows"
        )

    all_idx = list(diminutive_idx) + list(non_diminutive_idx)
    out_of_range = [i for i in all_idx if not 0 <= i < len(review)]
    if out_of_range:
        raise CurationMismatchError(f"Indices outside the review table: {out_of_range[:10]}")

    repeated = sorted(i for i, n in Counter(all_idx).items() if n > 1)
    if repeated:
        raise CurationMismatchError(f"Indices listed more than once: {repeated[:10]}")

    lemmas = review['lemma'].tolist()
    return CuratedList(
        diminutive=[lemmas[i] for i in diminutive_idx],
        non_diminutive=[lemmas[i] for i in non_diminutive_idx],
    )


def apply_curation(tokens: pd.DataFrame, curated: CuratedList) -> pd.DataFrame:
    """Drop tokens whose lemma was classified as non-diminutive."""
    drop = tokens['lemma'].isin(set(curated.non_diminutive))
    return tokens.loc[~drop].reset_index(drop=True)


def write_review_tables(reviews: Dict[str, pd.DataFrame], output_dir: Path) -> List[Path]:
    """Write each review table as CSV with its row position, for a human curator."""
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for pass_name, review in reviews.items():
        path = output_dir / f"review_{pass_name}.csv"
        table = review.copy()
        table.insert(0, 'position', range(len(table)))
        table.to_csv(path, index=False, encoding='utf-8')
        logger.info(f"Written: {path} ({len(table):,} lemmas)")
        paths.append(path)
    return paths


def unreviewed(review: pd.DataFrame, curated: CuratedList) -> List[str]:
    """Lemmas of `review` the curation does not mention yet."""
    listed = set(curated.diminutive) | set(curated.non_diminutive)
    return [lemma for lemma in review['lemma'] if lemma not in listed]
