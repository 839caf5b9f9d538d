"""
config.py — Pipeline configuration.

Built-in defaults live in DEFAULTS. A YAML file (config/dimcorpus.yaml by
default) is deep-merged over them, so a config file only needs the keys it
changes.

Relative paths are resolved against `paths.root`. When `paths.root` is not
set it is the project root; a relative `paths.root` is taken relative to the
directory holding the config file.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "dimcorpus.yaml"


DEFAULTS: Dict[str, Any] = {
    'paths': {
        'root': None,
        'learners': 'data/raw/learners.tsv',
        'natives': 'data/raw/natives.tsv',
        'intermediate_dir': 'data/intermediate',
        'output_dir': 'data/output',
        'curation': 'data/manual/curation.yaml',
        'corrected': 'data/manual/diminutives_corrected.csv',
    },
    # Raw header -> canonical column name
    'columns': {
        'learner': {
            'Filename': 'filename',
            'L1': 'l1',
            'Placement test score (%)': 'proficiency_score',
            'Proficiency': 'proficiency_range',
            'Age': 'age',
            'Sex': 'sex',
            'Task title': 'task',
            'Text': 'text',
        },
        'native': {
            'Filename': 'filename',
            'L1': 'l1',
            'Age': 'age',
            'Sex': 'sex',
            'Task title': 'task',
            'Spanish variety': 'variety',
            'Text': 'text',
        },
    },
    # Columns that only one subcorpus carries
    'expected_difference': {
        'learner': ['proficiency_score', 'proficiency_range'],
        'native': ['variety'],
    },
    'normalization': {
        'line_break_marker': '\\n',
        # Off: keep the triple/double-space passes of the original corpus cleaning
        'strict_whitespace': False,
    },
    'annotation': {
        'language': 'es',
        'processors': 'tokenize,mwt,pos,lemma',
        'batch_size': 500,
        'use_gpu': False,
    },
    'curation': {
        'threshold': 2,
    },
    'analysis': {
        'l1_groups': ['English', 'Arabic', 'Chinese', 'Greek', 'Japanese', 'Spanish'],
        'prompts': [
            'Chaplin film',
            'Childhood',
            'Famous person',
            'Last vacation',
            'Recent trip',
            'Special person',
        ],
        'models': [
            {'name': 'accuracy_l1', 'outcome': 'accurate', 'predictors': ['l1'], 'family': 'binomial'},
            {'name': 'accuracy_score', 'outcome': 'accurate', 'predictors': ['proficiency_score'], 'family': 'binomial'},
            {'name': 'accuracy_range', 'outcome': 'accurate', 'predictors': ['proficiency_range'], 'family': 'binomial'},
            {'name': 'accuracy_pos', 'outcome': 'accurate', 'predictors': ['upos'], 'family': 'binomial'},
            {'name': 'accuracy_l1_score', 'outcome': 'accurate', 'predictors': ['l1', 'proficiency_score'], 'family': 'binomial'},
            {'name': 'percent_l1', 'outcome': 'percent_used', 'predictors': ['l1'], 'family': 'gaussian'},
            {'name': 'percent_score', 'outcome': 'percent_used', 'predictors': ['proficiency_score'], 'family': 'gaussian'},
            {'name': 'percent_range', 'outcome': 'percent_used', 'predictors': ['proficiency_range'], 'family': 'gaussian'},
            {'name': 'percent_l1_score', 'outcome': 'percent_used', 'predictors': ['l1', 'proficiency_score'], 'family': 'gaussian'},
        ],
    },
    'plots': {
        'enabled': True,
        'top_n': 25,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base. Nested dicts merge; other values replace."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load the pipeline configuration.

    Args:
        path: YAML config file. None uses config/dimcorpus.yaml when present.

    Returns:
        Configuration dict with every default key present.
    """
    explicit = path is not None
    config_path = Path(path) if explicit else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        logger.info(f"No config file at {config_path}, using defaults")
        config = copy.deepcopy(DEFAULTS)
        config['_config_dir'] = str(PROJECT_ROOT)
        return config

    with open(config_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    logger.info(f"Loaded config from {config_path}")
    config = _deep_merge(DEFAULTS, data)
    config['_config_dir'] = str(config_path.parent.resolve())
    return config


def project_root(config: Dict[str, Any]) -> Path:
    root = config['paths'].get('root')
    if root is None:
        return PROJECT_ROOT
    root = Path(root)
    if not root.is_absolute():
        root = Path(config.get('_config_dir', PROJECT_ROOT)) / root
    return root


def resolve_path(config: Dict[str, Any], key: str) -> Path:
    """Return the absolute path configured under paths.<key>."""
    value = Path(config['paths'][key])
    if value.is_absolute():
        return value
    return project_root(config) / value
