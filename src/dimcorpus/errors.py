"""
errors.py — Failure kinds raised by the pipeline stages.

All of these are fatal: a stage that raises one stops, and the run is
repeated by hand from the last intermediate file.
"""


class PipelineError(Exception):
    """Base class for all dimcorpus errors."""


class SchemaMismatchError(PipelineError):
    """Loaded or merged columns differ from the configured schema."""

    def __init__(self, message: str, missing=None, unexpected=None):
        super().__init__(message)
        self.missing = sorted(missing or [])
        self.unexpected = sorted(unexpected or [])


class JoinMismatchError(PipelineError):
    """A join produced rows that do not line up with their keys."""


class AnnotationError(PipelineError):
    """The external annotator failed on a batch of sentences."""


class MalformedDocIdError(AnnotationError):
    """An annotator document id carries no usable sentence number."""

    def __init__(self, doc_id):
        super().__init__(f"Cannot extract a sentence number from document id {doc_id!r}")
        self.doc_id = doc_id


class CurationMismatchError(PipelineError):
    """Curated lemma lists do not partition the review table."""

    def __init__(self, message: str, unclassified=None, unknown=None, duplicated=None):
        super().__init__(message)
        self.unclassified = sorted(unclassified or [])
        self.unknown = sorted(unknown or [])
        self.duplicated = sorted(duplicated or [])
