#!/usr/bin/env python3
"""
dimcorpus - run the diminutive corpus pipeline.

Usage:
    dimcorpus tag      [--config PATH] [--no-progress]
    dimcorpus clean    [--config PATH] [--write-review]
    dimcorpus analyze  [--config PATH] [--corrected PATH]
    dimcorpus all      [--config PATH]

`all` runs tag and clean, then analyze when the hand-corrected diminutives
table exists. Stage options are passed through unchanged.
"""

import argparse
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

STAGES = ('tag', 'clean', 'analyze')


def _stage_main(stage: str):
    # Import here to keep CLI startup fast (stanza, statsmodels)
    if stage == 'tag':
        from dimcorpus.tagging import main
    elif stage == 'clean':
        from dimcorpus.cleaning import main
    else:
        from dimcorpus.analysis import main
    return main


def run_all(config_path) -> int:
    from dimcorpus.config import load_config, resolve_path

    passthrough = ['--config', str(config_path)] if config_path else []
    for stage in ('tag', 'clean'):
        status = _stage_main(stage)(passthrough)
        if status != 0:
            logger.error(f"Stage '{stage}' failed, stopping")
            return status

    corrected = resolve_path(load_config(config_path), 'corrected')
    if not corrected.exists():
        logger.warning(f"No corrected diminutives table at {corrected}")
        logger.warning("Spell-correct diminutives_clean.csv by hand, then run: dimcorpus analyze")
        return 0
    return _stage_main('analyze')(passthrough)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog='dimcorpus',
        description='Diminutive usage in learner Spanish essays',
    )
    parser.add_argument('stage', choices=STAGES + ('all',), help='Stage to run')
    args, rest = parser.parse_known_args(argv)

    if args.stage == 'all':
        all_parser = argparse.ArgumentParser(prog='dimcorpus all')
        all_parser.add_argument('--config', type=Path, default=None)
        all_args = all_parser.parse_args(rest)
        return run_all(all_args.config)

    return _stage_main(args.stage)(rest)


if __name__ == "__main__":
    sys.exit(main())
