"""Pytest configuration and shared fixtures."""
import re
import tempfile
from pathlib import Path

import pandas as pd
import pytest


LEARNER_HEADERS = ['Filename', 'L1', 'Placement test score (%)', 'Proficiency',
                   'Age', 'Sex', 'Task title', 'Text']
NATIVE_HEADERS = ['Filename', 'L1', 'Age', 'Sex', 'Task title', 'Spanish variety', 'Text']

_TOKEN = re.compile(r"\w+|[^\w\s]")


class FakeAnnotator:
    """Whitespace/punctuation tokenizer standing in for Stanza."""

    def __init__(self):
        self.calls = []

    def annotate(self, sentences):
        self.calls.append(list(sentences))
        rows = []
        for position, sentence in enumerate(sentences, start=1):
            for token_id, token in enumerate(_TOKEN.findall(sentence), start=1):
                rows.append({
                    'doc_id': f"doc{position}",
                    'token_id': token_id,
                    'token': token,
                    'lemma': token.lower(),
                    'upos': 'PUNCT' if not token[0].isalnum() else 'NOUN',
                })
        return pd.DataFrame(rows, columns=['doc_id', 'token_id', 'token', 'lemma', 'upos'])


def simple_splitter(text):
    return [s for s in re.split(r"(?<=[.!?])\s+", text) if s]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_annotator():
    return FakeAnnotator()


@pytest.fixture
def splitter():
    return simple_splitter


@pytest.fixture
def learner_essays():
    """Learner subcorpus with canonical column names."""
    return pd.DataFrame({
        'subcorpus': ['learner', 'learner', 'learner'],
        'filename': ['EN_WR_01', 'EN_WR_02', 'JA_WR_01'],
        'l1': ['English', 'English', 'Japanese'],
        'proficiency_score': [45.0, 80.0, 62.5],
        'proficiency_range': ['Lower intermediate', 'Upper advanced', 'Upper intermediate'],
        'age': ['21', '34', '25'],
        'sex': ['Female', 'Male', 'Female'],
        'task': ['Childhood', 'Recent trip', 'Childhood'],
        'text': [
            'Me compré un gatito pequeño.',
            'Fue un viaje bonito. Comimos en una casita.',
            'Mi abuela vivía en el campo.',
        ],
    })


@pytest.fixture
def native_essays():
    """Native subcorpus with canonical column names."""
    return pd.DataFrame({
        'subcorpus': ['native', 'native'],
        'filename': ['ES_WR_01', 'ES_WR_02'],
        'l1': ['Spanish', 'Spanish'],
        'age': ['30', '41'],
        'sex': ['Male', 'Female'],
        'task': ['Childhood', 'Recent trip'],
        'variety': ['Peninsular', 'Mexican'],
        'text': ['Vi un perrito ayer.', 'Llegamos a Oaxaca de noche.'],
    })


@pytest.fixture
def expected_difference():
    return {
        'learner': ['proficiency_score', 'proficiency_range'],
        'native': ['variety'],
    }


def write_raw_tables(directory: Path, learners, natives):
    """Write learner and native rows (lists of dicts keyed by raw header) as TSV."""
    directory.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(learners, columns=LEARNER_HEADERS).to_csv(
        directory / 'learners.tsv', sep='\t', index=False)
    pd.DataFrame(natives, columns=NATIVE_HEADERS).to_csv(
        directory / 'natives.tsv', sep='\t', index=False)


@pytest.fixture
def two_essay_project(temp_dir):
    """Project root with one learner and one native essay and a config file."""
    write_raw_tables(
        temp_dir / 'data' / 'raw',
        learners=[{
            'Filename': 'EN_WR_01', 'L1': 'English', 'Placement test score (%)': '52',
            'Proficiency': 'Lower intermediate', 'Age': '22', 'Sex': 'Female',
            'Task title': 'Childhood', 'Text': 'Me compré un gatito pequeño.',
        }],
        natives=[{
            'Filename': 'ES_WR_01', 'L1': 'Spanish', 'Age': '30', 'Sex': 'Male',
            'Task title': 'Childhood', 'Spanish variety': 'Peninsular',
            'Text': 'Vi un perrito ayer.',
        }],
    )
    config_dir = temp_dir / 'config'
    config_dir.mkdir()
    config_path = config_dir / 'dimcorpus.yaml'
    config_path.write_text("paths:\n  root: ..\nplots:\n  enabled: false\n", encoding='utf-8')
    return config_path
