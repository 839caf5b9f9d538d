"""
dimcorpus — diminutive usage in learner Spanish.

Stages:
  1. tagging   — ingest essays, segment, annotate, extract diminutive candidates
  2. cleaning  — remove false positives with curated lemma lists
  3. analysis  — accuracy labels, relative frequencies, regressions
"""

__version__ = "0.3.0"
