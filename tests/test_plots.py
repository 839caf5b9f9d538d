"""Tests for the frequency charts."""
import pandas as pd

from dimcorpus.plots import frequency_bar_chart, grouped_bar_chart


def test_frequency_bar_chart(temp_dir):
    counts = pd.DataFrame({'lemma': ['gatito', 'perrito', 'casita'], 'n': [5, 3, 2]})
    path = frequency_bar_chart(counts, 'lemma', 'n', 'Lemmas', temp_dir / 'plots' / 'lemmas.png',
                               top_n=2, horizontal=True)
    assert path.exists()
    assert path.read_bytes()[:8] == b'\x89PNG\r\n\x1a\n'


def test_vertical_chart(temp_dir):
    counts = pd.DataFrame({'l1': ['English', 'Greek'], 'percent_essays': [40.0, 12.5]})
    path = frequency_bar_chart(counts, 'l1', 'percent_essays', 'Essays', temp_dir / 'essays.png',
                               ylabel='% of essays')
    assert path.stat().st_size > 0


def test_grouped_bar_chart(temp_dir):
    table = pd.DataFrame({'l1': ['English', 'Greek'], 'ito': [10, 2], 'illo': [1, 0]})
    path = grouped_bar_chart(table, 'l1', 'Variants', temp_dir / 'variants.png', ylabel='tokens')
    assert path.exists()
