"""
Command-line interface for dimcorpus.

Entry point:
- dimcorpus: run one pipeline stage (tag, clean, analyze) or all of them
"""
