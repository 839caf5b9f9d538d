"""
plots.py — Frequency bar charts for the cleaning and analysis stages.

Presentation only: every chart is drawn from a counts table that is also
written as CSV, so a chart can always be regenerated from the same numbers.
"""

import logging
from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402


logger = logging.getLogger(__name__)


def frequency_bar_chart(counts: pd.DataFrame, label_col: str, value_col: str,
                        title: str, path: Path, top_n: Optional[int] = None,
                        ylabel: Optional[str] = None, horizontal: bool = False) -> Path:
    """
    Draw a bar chart of `value_col` per `label_col` and save it as PNG.

    Rows are drawn in the order given; `top_n` keeps the first N.
    """
    data = counts if top_n is None else counts.head(top_n)
    labels = data[label_col].astype(str).tolist()
    values = data[value_col].tolist()

    height = max(4, 0.3 * len(labels)) if horizontal else 5
    fig, ax = plt.subplots(figsize=(9, height))
    if horizontal:
        ax.barh(labels[::-1], values[::-1], color="#4c72b0")
        ax.set_xlabel(ylabel or value_col)
    else:
        ax.bar(labels, values, color="#4c72b0")
        ax.set_ylabel(ylabel or value_col)
        ax.tick_params(axis="x", labelrotation=45)
        for tick in ax.get_xticklabels():
            tick.set_horizontalalignment("right")
    ax.set_title(title)
    fig.tight_layout()

    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150)
    plt.close(fig)
    logger.info(f"Written: {path}")
    return path


def grouped_bar_chart(table: pd.DataFrame, index_col: str, title: str, path: Path,
                      ylabel: str = "count") -> Path:
    """Bar chart with one group per `index_col` value and one bar per remaining column."""
    wide = table.set_index(index_col)
    fig, ax = plt.subplots(figsize=(9, 5))
    wide.plot(kind="bar", ax=ax, rot=45)
    ax.set_title(title)
    ax.set_ylabel(ylabel)
    ax.set_xlabel(index_col)
    fig.tight_layout()

    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150)
    plt.close(fig)
    logger.info(f"Written: {path}")
    return path
