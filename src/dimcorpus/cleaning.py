#!/usr/bin/env python3
"""
cleaning.py — Stage 2: remove non-diminutive false positives.

Reads:
  - data/intermediate/candidates.csv
  - data/manual/curation.yaml

Outputs:
  - data/intermediate/diminutives_clean.csv
  - data/intermediate/lemma_frequencies.csv
  - data/intermediate/l1_counts.csv
  - data/intermediate/diminutive_lemmas.txt
  - data/intermediate/non_diminutive_lemmas.txt
  - data/intermediate/cleaning_stats.json
  - data/output/plots/{lemma_frequencies,l1_counts}.png

Two passes, applied in order:
  1. frequent lemmas (count > threshold): drop the ones curated as non-diminutive
  2. hapax lemmas of what is left: same

Run with --write-review to dump the review tables a curator works from.

Usage:
    python -m dimcorpus.cleaning [--config config/dimcorpus.yaml] [--write-review]
"""

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import pandas as pd

from dimcorpus.config import load_config, resolve_path
from dimcorpus.curation import (
    Curation,
    apply_curation,
    lemma_frequencies,
    load_curation,
    review_tables,
    unreviewed,
    validate_partition,
    write_review_tables,
)
from dimcorpus.errors import CurationMismatchError, PipelineError
from dimcorpus.plots import frequency_bar_chart, grouped_bar_chart
from dimcorpus.tables import read_table, write_lemma_list, write_stats, write_table


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

CANDIDATE_COLUMNS = ['filename', 'l1', 'token', 'lemma', 'upos', 'variant']
VARIANT_ORDER = ['ito', 'illo']


@dataclass
class CleaningResult:
    cleaned: pd.DataFrame
    frequencies: pd.DataFrame
    l1_counts: pd.DataFrame
    diminutive_lemmas: list
    non_diminutive_lemmas: list
    stats: Dict[str, Any] = field(default_factory=dict)


def l1_variant_counts(tokens: pd.DataFrame) -> pd.DataFrame:
    """Diminutive tokens per L1 and variant, with a total column."""
    if tokens.empty:
        return pd.DataFrame(columns=['l1'] + VARIANT_ORDER + ['total'])

    counts = (
        tokens.groupby(['l1', 'variant']).size()
        .unstack(fill_value=0)
        .reindex(columns=VARIANT_ORDER, fill_value=0)
    )
    counts['total'] = counts.sum(axis=1)
    counts = counts.reset_index().sort_values(['total', 'l1'], ascending=[False, True])
    counts.columns.name = None
    return counts.reset_index(drop=True)


def run_cleaning(candidates: pd.DataFrame, curation: Curation, threshold: int = 2) -> CleaningResult:
    """
    Apply both curation passes to the stage 1 candidates.

    Raises:
        CurationMismatchError: a pass does not partition its review table
    """
    freq = lemma_frequencies(candidates)
    frequent = review_tables(freq, threshold)['frequent']
    logger.info(f"Frequent pass: {len(frequent):,} lemmas with more than {threshold} tokens")
    validate_partition(frequent, curation.frequent, 'frequent')
    after_frequent = apply_curation(candidates, curation.frequent)
    logger.info(f"  -> {len(candidates) - len(after_frequent):,} tokens removed")

    hapax = review_tables(lemma_frequencies(after_frequent), threshold)['hapax']
    logger.info(f"Hapax pass: {len(hapax):,} lemmas with a single token")
    validate_partition(hapax, curation.hapax, 'hapax')
    cleaned = apply_curation(after_frequent, curation.hapax)
    logger.info(f"  -> {len(after_frequent) - len(cleaned):,} tokens removed")

    final_freq = lemma_frequencies(cleaned)
    l1_counts = l1_variant_counts(cleaned)

    untouched = int(((freq['n'] > 1) & (freq['n'] <= threshold)).sum())
    stats = {
        'candidates': len(candidates),
        'candidate_lemmas': len(freq),
        'frequent_reviewed': len(frequent),
        'hapax_reviewed': len(hapax),
        'unreviewed_lemmas': untouched,
        'removed_frequent': len(candidates) - len(after_frequent),
        'removed_hapax': len(after_frequent) - len(cleaned),
        'diminutives': len(cleaned),
        'diminutive_lemmas': len(final_freq),
        'by_l1': dict(zip(l1_counts['l1'], l1_counts['total'].astype(int))),
        'by_variant': cleaned['variant'].value_counts().to_dict() if len(cleaned) else {},
    }

    return CleaningResult(
        cleaned=cleaned,
        frequencies=final_freq,
        l1_counts=l1_counts,
        diminutive_lemmas=curation.diminutive_lemmas,
        non_diminutive_lemmas=curation.non_diminutive_lemmas,
        stats=stats,
    )


def _report_mismatch(error: CurationMismatchError) -> None:
    logger.error(f"Curation does not match the candidates: {error}")
    if error.unclassified:
        logger.error(f"  Unclassified: {', '.join(error.unclassified[:20])}")
    if error.unknown:
        logger.error(f"  Not in review table: {', '.join(error.unknown[:20])}")
    if error.duplicated:
        logger.error(f"  Listed twice: {', '.join(error.duplicated[:20])}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Stage 2: clean diminutive candidates')
    parser.add_argument('--config', type=Path, default=None, help='YAML config file')
    parser.add_argument('--write-review', action='store_true',
                        help='Write review tables for curation and exit')
    args = parser.parse_args(argv)

    config = load_config(args.config)
    intermediate_dir = resolve_path(config, 'intermediate_dir')
    plots_dir = resolve_path(config, 'output_dir') / 'plots'
    threshold = int(config['curation']['threshold'])

    logger.info("=" * 80)
    logger.info("STAGE 2: CLEANING")
    logger.info("=" * 80)

    try:
        candidates = read_table(intermediate_dir / 'candidates.csv',
                                required=CANDIDATE_COLUMNS, produced_by='dimcorpus tag')
    except (PipelineError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1

    reviews = review_tables(lemma_frequencies(candidates), threshold)
    if args.write_review:
        write_review_tables(reviews, intermediate_dir)
        return 0

    curation_path = resolve_path(config, 'curation')
    try:
        curation = load_curation(curation_path)
        result = run_cleaning(candidates, curation, threshold)
    except FileNotFoundError as e:
        logger.error(str(e))
        logger.error("Write the review tables with --write-review and record decisions in the curation file")
        return 1
    except CurationMismatchError as e:
        _report_mismatch(e)
        pending = unreviewed(reviews['frequent'], curation.frequent)
        if pending:
            logger.error(f"  {len(pending):,} frequent lemmas still need a decision")
        write_review_tables(reviews, intermediate_dir)
        return 1

    write_table(result.cleaned, intermediate_dir / 'diminutives_clean.csv')
    write_table(result.frequencies, intermediate_dir / 'lemma_frequencies.csv')
    write_table(result.l1_counts, intermediate_dir / 'l1_counts.csv')
    write_lemma_list(result.diminutive_lemmas, intermediate_dir / 'diminutive_lemmas.txt')
    write_lemma_list(result.non_diminutive_lemmas, intermediate_dir / 'non_diminutive_lemmas.txt')
    write_stats(result.stats, intermediate_dir / 'cleaning_stats.json')

    if config['plots']['enabled'] and len(result.cleaned):
        frequency_bar_chart(result.frequencies, 'lemma', 'n', 'Most frequent diminutive lemmas',
                            plots_dir / 'lemma_frequencies.png',
                            top_n=int(config['plots']['top_n']), ylabel='tokens', horizontal=True)
        grouped_bar_chart(result.l1_counts[['l1'] + VARIANT_ORDER], 'l1',
                          'Diminutive tokens per L1 and variant', plots_dir / 'l1_counts.png',
                          ylabel='tokens')

    logger.info("")
    logger.info(f"  Candidates:  {result.stats['candidates']:,}")
    logger.info(f"  Diminutives: {result.stats['diminutives']:,}")
    logger.info("Cleaning complete")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
