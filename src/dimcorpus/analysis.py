#!/usr/bin/env python3
"""
analysis.py — Stage 3: accuracy, relative frequencies and regressions.

Reads:
  - data/manual/diminutives_corrected.csv  (stage 2 output, hand-corrected;
    adds token_corrected and token_checked columns)
  - data/raw/learners.tsv, data/raw/natives.tsv  (full texts, for word counts)

Outputs (data/output/):
  - diminutives_final.csv       token table with accuracy and percent_used
  - relative_frequencies.csv    per-L1 essay and token percentages
  - learner_percentages.csv     per-essay percentages
  - accuracy_by_l1.csv
  - model_coefficients.csv
  - model_summary.csv
  - analysis_stats.json
  - plots/*.png

Usage:
    python -m dimcorpus.analysis [--config config/dimcorpus.yaml]
"""

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from dimcorpus.config import load_config, resolve_path
from dimcorpus.errors import PipelineError
from dimcorpus.ingest import load_corpus
from dimcorpus.metrics import (
    accuracy_by_l1,
    attach_percentages,
    essay_table,
    label_accuracy,
    relative_frequencies,
)
from dimcorpus.modeling import (
    ModelResult,
    ModelSpec,
    RegressionBackend,
    StatsmodelsBackend,
    coefficient_table,
    fit_battery,
    model_summary,
)
from dimcorpus.plots import frequency_bar_chart
from dimcorpus.tables import read_table, write_stats, write_table


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

CORRECTED_COLUMNS = ['filename', 'l1', 'task', 'token', 'lemma', 'upos',
                     'token_corrected', 'token_checked']


@dataclass
class AnalysisResult:
    final: pd.DataFrame
    essays: pd.DataFrame
    relative: pd.DataFrame
    accuracy: pd.DataFrame
    models: List[ModelResult]
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def coefficients(self) -> pd.DataFrame:
        return coefficient_table(self.models)


def restrict_scope(df: pd.DataFrame, l1_groups: Iterable[str], prompts: Iterable[str]) -> pd.DataFrame:
    """Keep rows whose L1 and task are among the analysed ones."""
    mask = df['l1'].isin(list(l1_groups)) & df['task'].isin(list(prompts))
    return df.loc[mask].reset_index(drop=True)


def run_analysis(corrected: pd.DataFrame, corpus: pd.DataFrame, l1_groups: Iterable[str],
                 prompts: Iterable[str], specs: Iterable[ModelSpec],
                 backend: Optional[RegressionBackend] = None) -> AnalysisResult:
    """
    Run stage 3.

    Args:
        corrected: Hand-corrected diminutives table
        corpus: Merged, normalized essays with text
        l1_groups: L1 groups to analyse
        prompts: Essay tasks to analyse
        specs: Regression battery
        backend: Regression backend (statsmodels by default)
    """
    l1_groups = list(l1_groups)
    prompts = list(prompts)

    scoped_corpus = restrict_scope(corpus, l1_groups, prompts)
    tokens = restrict_scope(corrected, l1_groups, prompts)
    logger.info(f"Scope: {len(scoped_corpus):,} essays, {len(tokens):,} diminutive tokens "
                f"in {len(l1_groups)} L1 groups and {len(prompts)} prompts")

    tokens = label_accuracy(tokens)
    essays = essay_table(tokens, scoped_corpus)
    relative = relative_frequencies(essays)
    final = attach_percentages(tokens, essays)
    accuracy = accuracy_by_l1(final)

    logger.info("Fitting regression battery")
    models = fit_battery(final, specs, backend or StatsmodelsBackend())

    stats = {
        'essays': len(scoped_corpus),
        'diminutive_tokens': len(final),
        'accurate': int(final['accurate'].sum()) if len(final) else 0,
        'percent_essays': dict(zip(relative['l1'], relative['percent_essays'].round(3))),
        'percent_tokens': dict(zip(relative['l1'], relative['percent_tokens'].round(4))),
        'models_fitted': [m.name for m in models if m.fitted],
        'models_skipped': {m.name: m.skipped for m in models if not m.fitted},
    }
    return AnalysisResult(final=final, essays=essays, relative=relative,
                          accuracy=accuracy, models=models, stats=stats)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Stage 3: accuracy, relative frequencies and regressions')
    parser.add_argument('--config', type=Path, default=None, help='YAML config file')
    parser.add_argument('--corrected', type=Path, default=None,
                        help='Hand-corrected diminutives CSV (overrides config)')
    args = parser.parse_args(argv)

    config = load_config(args.config)
    output_dir = resolve_path(config, 'output_dir')
    plots_dir = output_dir / 'plots'
    settings = config['analysis']

    logger.info("=" * 80)
    logger.info("STAGE 3: ANALYSIS")
    logger.info("=" * 80)

    try:
        specs = [ModelSpec.from_dict(m) for m in settings['models']]
        corrected = read_table(args.corrected or resolve_path(config, 'corrected'),
                               required=CORRECTED_COLUMNS,
                               produced_by='dimcorpus clean, then manual spell-correction')
        corpus = load_corpus(config)
        result = run_analysis(corrected, corpus, settings['l1_groups'], settings['prompts'], specs)
    except (PipelineError, FileNotFoundError, ValueError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    write_table(result.final, output_dir / 'diminutives_final.csv')
    write_table(result.relative, output_dir / 'relative_frequencies.csv')
    write_table(result.essays, output_dir / 'learner_percentages.csv')
    write_table(result.accuracy, output_dir / 'accuracy_by_l1.csv')
    write_table(result.coefficients, output_dir / 'model_coefficients.csv')
    write_table(model_summary(result.models), output_dir / 'model_summary.csv')
    write_stats(result.stats, output_dir / 'analysis_stats.json')

    if config['plots']['enabled'] and len(result.relative):
        frequency_bar_chart(result.relative, 'l1', 'percent_essays',
                            'Essays with at least one diminutive', plots_dir / 'percent_essays.png',
                            ylabel='% of essays')
        frequency_bar_chart(result.relative.sort_values('percent_tokens', ascending=False),
                            'l1', 'percent_tokens', 'Diminutives among all word tokens',
                            plots_dir / 'percent_tokens.png', ylabel='% of tokens')
        if len(result.accuracy):
            frequency_bar_chart(result.accuracy, 'l1', 'percent_accurate',
                                'Accurate diminutive forms', plots_dir / 'percent_accurate.png',
                                ylabel='% accurate')

    logger.info("")
    logger.info("Relative frequencies:")
    for row in result.relative.itertuples(index=False):
        logger.info(f"  {row.l1:<12} essays {row.percent_essays:6.2f}%  tokens {row.percent_tokens:7.4f}%")
    logger.info(f"Models fitted: {len(result.stats['models_fitted'])}, "
                f"skipped: {len(result.stats['models_skipped'])}")
    logger.info("Analysis complete")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
