"""
Rich live panel for the annotation loop.

Annotating a few thousand essays sentence by sentence takes minutes, so the
tagging stage shows batches, sentences, tokens and throughput in a panel that
updates in place instead of scrolling the log.
"""

import time
from typing import Optional

from rich import box
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text


class AnnotationProgress:
    """
    Context manager tracking annotation throughput.

    Usage:
        with AnnotationProgress(total_sentences=len(sentences)) as progress:
            for batch in batches:
                tokens = annotator.annotate(batch)
                progress.advance(sentences=len(batch), tokens=len(tokens))
    """

    def __init__(self, total_sentences: int, title: str = "Annotating sentences",
                 refresh_per_second: int = 4):
        self.total_sentences = total_sentences
        self.title = title
        self.refresh_per_second = refresh_per_second

        self.batches = 0
        self.sentences = 0
        self.tokens = 0
        self.start_time: float = 0.0
        self.live: Optional[Live] = None

    def __enter__(self):
        self.start_time = time.time()
        self.live = Live(self._make_panel(), refresh_per_second=self.refresh_per_second,
                         transient=False)
        self.live.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.live:
            self.live.update(self._make_panel())
            self.live.__exit__(exc_type, exc_val, exc_tb)
        return False

    def advance(self, sentences: int, tokens: int) -> None:
        """Record one finished batch."""
        self.batches += 1
        self.sentences += sentences
        self.tokens += tokens
        if self.live:
            self.live.update(self._make_panel())

    @property
    def elapsed(self) -> float:
        return time.time() - self.start_time if self.start_time else 0.0

    @property
    def percent(self) -> float:
        if not self.total_sentences:
            return 100.0
        return 100.0 * self.sentences / self.total_sentences

    def _make_panel(self) -> Panel:
        grid = Table.grid(padding=(0, 2))
        grid.add_column(justify="left", no_wrap=True)
        grid.add_column(justify="right", no_wrap=True)

        elapsed = self.elapsed
        rate = self.sentences / elapsed if elapsed > 0 else 0.0
        rows = [
            ("Batches", f"{self.batches:,}"),
            ("Sentences", f"{self.sentences:,} / {self.total_sentences:,} ({self.percent:.1f}%)"),
            ("Tokens", f"{self.tokens:,}"),
            ("Elapsed", _format_elapsed(elapsed)),
            ("Rate", f"{rate:,.1f} sent/s"),
        ]
        for label, value in rows:
            grid.add_row(Text(f"{label}:", style="bold grey50"),
                         Text(value, style="bright_cyan"))

        return Panel(grid, title=self.title, box=box.SIMPLE, border_style="bright_black")


def _format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"
