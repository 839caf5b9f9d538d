"""
segmentation.py — Split essays into sentence records.

Each essay row expands to one row per sentence:

    filename, sentence_ordinal, sentence, sentence_id

`sentence_ordinal` counts from 1 within an essay. `sentence_id` counts from 1
over the whole table, in essay order, and is the key used to join the
annotator's per-document output back onto the sentences. The raw essay text
is not carried past this step.
"""

import logging
from typing import Callable, List

import pandas as pd
from nltk.tokenize.punkt import PunktSentenceTokenizer, PunktTokenizer


logger = logging.getLogger(__name__)

SentenceSplitter = Callable[[str], List[str]]

# Punkt model names differ from ISO codes
PUNKT_LANGUAGES = {
    'es': 'spanish',
    'en': 'english',
    'pt': 'portuguese',
}


def get_sentence_splitter(language: str = 'es') -> SentenceSplitter:
    """
    Return a Punkt sentence splitter for `language`.

    Uses the pretrained model when the NLTK punkt_tab data is installed and
    falls back to an untrained Punkt tokenizer otherwise.
    """
    name = PUNKT_LANGUAGES.get(language, language)
    try:
        tokenizer = PunktTokenizer(name)
    except LookupError:
        logger.warning(f"NLTK punkt_tab model for '{name}' not installed; "
                       f"using untrained Punkt. Run: python -m nltk.downloader punkt_tab")
        tokenizer = PunktSentenceTokenizer()
    return tokenizer.tokenize


def segment_essays(essays: pd.DataFrame, splitter: SentenceSplitter) -> pd.DataFrame:
    """
    Expand essays into sentence rows.

    Every column except `text` is carried onto each sentence row, so the
    sentence table holds the essay metadata needed for later joins.
    """
    meta_columns = [col for col in essays.columns if col != 'text']
    records = []
    sentence_id = 0

    for essay in essays.itertuples(index=False):
        row = essay._asdict()
        text = row.pop('text') or ''
        sentences = [s.strip() for s in splitter(text) if s and s.strip()]

        for ordinal, sentence in enumerate(sentences, start=1):
            sentence_id += 1
            record = {col: row[col] for col in meta_columns}
            record['sentence_ordinal'] = ordinal
            record['sentence'] = sentence
            record['sentence_id'] = sentence_id
            records.append(record)

    columns = meta_columns + ['sentence_ordinal', 'sentence', 'sentence_id']
    sentences = pd.DataFrame.from_records(records, columns=columns)

    logger.info(f"  -> {len(sentences):,} sentences from {len(essays):,} essays")
    return sentences
