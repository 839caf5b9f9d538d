#!/usr/bin/env python3
"""
tagging.py — Stage 1: ingest, segment, annotate and extract diminutive candidates.

Reads:
  - data/raw/learners.tsv
  - data/raw/natives.tsv

Outputs:
  - data/intermediate/tokens.csv         (every annotated token)
  - data/intermediate/candidates.csv     (tokens matching the diminutive pattern, with variant)
  - data/intermediate/tagging_stats.json

Steps:
  1. load both essay tables, outer-join on shared columns, normalize text
  2. keep essays containing at least one candidate word
  3. split essays into sentences with global sentence ids
  4. annotate sentences (tokens, lemmas, UPOS) and join back on sentence id
  5. keep tokens matching the pattern and tag them ito / illo

Usage:
    python -m dimcorpus.tagging [--config config/dimcorpus.yaml]
"""

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import pandas as pd

from dimcorpus.annotation import Annotator, StanzaAnnotator, annotate_sentences, join_tokens
from dimcorpus.config import load_config, resolve_path
from dimcorpus.diminutives import filter_essays, filter_tokens
from dimcorpus.errors import PipelineError
from dimcorpus.ingest import load_corpus
from dimcorpus.segmentation import SentenceSplitter, get_sentence_splitter, segment_essays
from dimcorpus.tables import write_stats, write_table


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

TOKENS_FILE = "tokens.csv"
CANDIDATES_FILE = "candidates.csv"
STATS_FILE = "tagging_stats.json"


@dataclass
class TaggingResult:
    tokens: pd.DataFrame
    candidates: pd.DataFrame
    stats: Dict[str, Any] = field(default_factory=dict)


def run_tagging(corpus: pd.DataFrame, annotator: Annotator, splitter: SentenceSplitter,
                batch_size: int = 500, show_progress: bool = True) -> TaggingResult:
    """
    Run stage 1 over an already merged and normalized essay table.

    Args:
        corpus: Output of ingest.load_corpus (or merge_corpora + normalize_essays)
        annotator: Collaborator producing doc_id/token_id/token/lemma/upos rows
        splitter: Sentence splitter for essay text
    """
    logger.info(f"Filtering {len(corpus):,} essays for candidate words")
    essays = filter_essays(corpus)
    logger.info(f"  -> {len(essays):,} essays contain at least one candidate")

    logger.info("Segmenting sentences")
    sentences = segment_essays(essays, splitter)

    annotated = annotate_sentences(sentences, annotator, batch_size=batch_size,
                                   show_progress=show_progress)
    tokens = join_tokens(annotated, sentences)

    candidates = filter_tokens(tokens)
    logger.info(f"  -> {len(candidates):,} candidate tokens "
                f"({candidates['lemma'].nunique() if len(candidates) else 0:,} lemmas)")

    stats = {
        'essays_total': len(corpus),
        'essays_by_subcorpus': corpus['subcorpus'].value_counts().to_dict(),
        'essays_with_candidates': len(essays),
        'sentences': len(sentences),
        'tokens': len(tokens),
        'candidates': len(candidates),
        'candidates_by_variant': candidates['variant'].value_counts().to_dict() if len(candidates) else {},
        'candidate_lemmas': int(candidates['lemma'].nunique()) if len(candidates) else 0,
    }
    return TaggingResult(tokens=tokens, candidates=candidates, stats=stats)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Stage 1: tag essays and extract diminutive candidates')
    parser.add_argument('--config', type=Path, default=None, help='YAML config file')
    parser.add_argument('--no-progress', action='store_true', help='Disable the live progress panel')
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        intermediate_dir = resolve_path(config, 'intermediate_dir')

        logger.info("=" * 80)
        logger.info("STAGE 1: INGESTION & TAGGING")
        logger.info("=" * 80)

        corpus = load_corpus(config)

        ann = config['annotation']
        annotator = StanzaAnnotator(
            language=ann['language'],
            processors=ann['processors'],
            use_gpu=ann.get('use_gpu', False),
        )
        splitter = get_sentence_splitter(ann['language'])

        result = run_tagging(corpus, annotator, splitter,
                             batch_size=int(ann['batch_size']),
                             show_progress=not args.no_progress)
    except (PipelineError, FileNotFoundError) as e:
        logger.error(f"Tagging failed: {e}")
        return 1

    write_table(result.tokens, intermediate_dir / TOKENS_FILE)
    write_table(result.candidates, intermediate_dir / CANDIDATES_FILE)
    write_stats(result.stats, intermediate_dir / STATS_FILE)

    logger.info("")
    logger.info(f"  Essays with candidates: {result.stats['essays_with_candidates']:,}")
    logger.info(f"  Tokens:                 {result.stats['tokens']:,}")
    logger.info(f"  Candidates:             {result.stats['candidates']:,}")
    logger.info("Tagging complete")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
