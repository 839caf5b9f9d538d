"""
annotation.py — Token, lemma and POS annotation of sentence records.

The annotator is an external collaborator behind a small interface:

    annotate(sentences: Sequence[str]) -> DataFrame
        columns: doc_id, token_id, token, lemma, upos

`doc_id` is 'doc<N>' where N is the 1-based position of the sentence in the
input sequence. The sentence id is recovered by extracting the number from
`doc_id`, so ids that carry no number, or a number outside the batch, are
errors rather than silently dropped rows.

Failure policy: an annotator exception fails the whole batch (and so the
run). Nothing is skipped.
"""

import logging
import re
from contextlib import nullcontext
from typing import List, Protocol, Sequence

import pandas as pd

from dimcorpus.errors import AnnotationError, JoinMismatchError, MalformedDocIdError
from dimcorpus.progress_display import AnnotationProgress


logger = logging.getLogger(__name__)

ANNOTATION_COLUMNS = ['doc_id', 'token_id', 'token', 'lemma', 'upos']

_DOC_NUMBER = re.compile(r"\d+")


class Annotator(Protocol):
    def annotate(self, sentences: Sequence[str]) -> pd.DataFrame:
        ...


class StanzaAnnotator:
    """
    Stanza pipeline for Spanish tokenization, lemmatization and UPOS tagging.

    Each input string is processed as its own document with sentence
    splitting disabled, so one input sentence maps to one doc id. Tokens are
    Stanza syntactic words, which means contractions such as "del" appear
    as "de" + "el".
    """

    def __init__(self, language: str = 'es', processors: str = 'tokenize,mwt,pos,lemma',
                 use_gpu: bool = False, download: bool = True):
        self.language = language
        self.processors = processors
        self.use_gpu = use_gpu
        self.download = download
        self._pipeline = None

    def _load(self):
        import stanza

        logger.info(f"Loading Stanza pipeline ({self.language}: {self.processors})")
        try:
            if self.download:
                stanza.download(self.language, processors=self.processors, verbose=False)
            self._pipeline = stanza.Pipeline(
                self.language,
                processors=self.processors,
                tokenize_no_ssplit=True,
                use_gpu=self.use_gpu,
                verbose=False,
            )
        except Exception as e:
            raise AnnotationError(
                f"Failed to load Stanza pipeline for '{self.language}'. "
                f"Try: python -c \"import stanza; stanza.download('{self.language}')\""
            ) from e

    def annotate(self, sentences: Sequence[str]) -> pd.DataFrame:
        if self._pipeline is None:
            self._load()

        import stanza

        in_docs = [stanza.Document([], text=text) for text in sentences]
        try:
            out_docs = self._pipeline(in_docs)
        except Exception as e:
            raise AnnotationError(f"Stanza failed on a batch of {len(sentences)} sentences") from e

        rows = []
        for position, doc in enumerate(out_docs, start=1):
            token_id = 0
            for sentence in doc.sentences:
                for word in sentence.words:
                    token_id += 1
                    rows.append({
                        'doc_id': f"doc{position}",
                        'token_id': token_id,
                        'token': word.text,
                        'lemma': word.lemma,
                        'upos': word.upos,
                    })
        return pd.DataFrame.from_records(rows, columns=ANNOTATION_COLUMNS)


def parse_doc_id(doc_id) -> int:
    """Extract the sentence number from an annotator document id ('doc12' -> 12)."""
    if isinstance(doc_id, int):
        return doc_id
    match = _DOC_NUMBER.search(str(doc_id)) if doc_id is not None else None
    if match is None:
        raise MalformedDocIdError(doc_id)
    return int(match.group(0))


def _annotate_batch(annotator: Annotator, batch: pd.DataFrame) -> pd.DataFrame:
    texts = batch['sentence'].tolist()
    try:
        annotated = annotator.annotate(texts)
    except AnnotationError:
        raise
    except Exception as e:
        raise AnnotationError(f"Annotator failed on a batch of {len(texts)} sentences") from e

    missing = [col for col in ANNOTATION_COLUMNS if col not in annotated.columns]
    if missing:
        raise AnnotationError(f"Annotator output lacks columns {missing}")

    positions = annotated['doc_id'].map(parse_doc_id).astype(int)
    out_of_range = (positions < 1) | (positions > len(texts))
    if out_of_range.any():
        bad = annotated.loc[out_of_range, 'doc_id'].unique().tolist()
        raise JoinMismatchError(
            f"Annotator returned document ids outside a batch of {len(texts)}: {bad[:10]}"
        )

    ids = batch['sentence_id'].to_numpy()
    annotated = annotated.drop(columns=['doc_id'])
    annotated.insert(0, 'sentence_id', ids[positions.to_numpy() - 1])
    return annotated


def annotate_sentences(sentences: pd.DataFrame, annotator: Annotator,
                       batch_size: int = 500, show_progress: bool = True) -> pd.DataFrame:
    """
    Annotate every sentence and key the token rows by `sentence_id`.

    Returns:
        DataFrame with columns sentence_id, token_id, token, lemma, upos
    """
    ordered = sentences.sort_values('sentence_id')
    batches: List[pd.DataFrame] = [
        ordered.iloc[start:start + batch_size]
        for start in range(0, len(ordered), batch_size)
    ]
    logger.info(f"Annotating {len(ordered):,} sentences in {len(batches):,} batches")

    results: List[pd.DataFrame] = []
    display = AnnotationProgress(total_sentences=len(ordered)) if show_progress else nullcontext()
    with display as progress:
        for batch in batches:
            tokens = _annotate_batch(annotator, batch)
            results.append(tokens)
            if progress is not None:
                progress.advance(sentences=len(batch), tokens=len(tokens))

    columns = ['sentence_id'] + ANNOTATION_COLUMNS[1:]
    if not results:
        return pd.DataFrame(columns=columns)

    tokens = pd.concat(results, ignore_index=True)
    logger.info(f"  -> {len(tokens):,} tokens")
    return tokens[columns]


def join_tokens(tokens: pd.DataFrame, sentences: pd.DataFrame) -> pd.DataFrame:
    """
    Attach sentence and essay metadata to each token row.

    Raises:
        JoinMismatchError: token rows whose sentence_id has no sentence, or
            sentences the annotator returned no tokens for
    """
    joined = tokens.merge(
        sentences,
        on='sentence_id',
        how='left',
        validate='many_to_one',
        indicator=True,
    )
    orphans = joined['_merge'] != 'both'
    if orphans.any():
        bad = joined.loc[orphans, 'sentence_id'].unique().tolist()
        raise JoinMismatchError(f"{int(orphans.sum())} tokens reference unknown sentences: {bad[:10]}")

    untagged = sorted(int(i) for i in set(sentences['sentence_id']) - set(tokens['sentence_id']))
    if untagged:
        raise JoinMismatchError(f"{len(untagged)} sentences have no annotated tokens: {untagged[:10]}")

    sentence_columns = [col for col in sentences.columns if col != 'sentence_id']
    token_columns = ['token_id', 'token', 'lemma', 'upos']
    ordered = sentence_columns + ['sentence_id'] + token_columns
    return joined[ordered].sort_values(['sentence_id', 'token_id']).reset_index(drop=True)
