from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np

from .metrics import ContingencyMetrics, SummaryMetrics

logger = logging.getLogger(__name__)

_CONTINGENCY_FIELDS = [
    ("TP", "tp_count"),
    ("TN", "tn_count"),
    ("FP", "fp_count"),
    ("FN", "fn_count"),
    ("EMPTY", "empty_count"),
]


def plot_contingency_counts(
    *,
    rows: Sequence[ContingencyMetrics],
    out_png: str | Path,
    title: str = "Contingency counts by variant type",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    x = np.arange(len(_CONTINGENCY_FIELDS))
    width = 0.8 / max(1, len(rows))

    plt.figure()
    for i, row in enumerate(rows):
        values = [int(getattr(row, attr)) for _, attr in _CONTINGENCY_FIELDS]
        plt.bar(x + i * width, values, width=width, label=row.variant_type)
    plt.xticks(x + width * (len(rows) - 1) / 2.0, [label for label, _ in _CONTINGENCY_FIELDS])
    plt.ylabel("Site count")
    plt.title(title)
    if rows:
        plt.legend()
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_rates(
    *,
    rows: Sequence[SummaryMetrics],
    out_png: str | Path,
    title: str = "Concordance rates by variant type",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = ["Sensitivity", "PPV", "Specificity", "GT concordance"]
    x = np.arange(len(labels))
    width = 0.8 / max(1, len(rows))

    plt.figure()
    for i, row in enumerate(rows):
        values = [row.var_sensitivity, row.var_ppv, row.var_specificity, row.genotype_concordance]
        # undefined rates are drawn as empty bars
        values = [0.0 if np.isnan(v) else v for v in values]
        plt.bar(x + i * width, values, width=width, label=row.variant_type)
    plt.xticks(x + width * (len(rows) - 1) / 2.0, labels)
    plt.ylim(0.0, 1.05)
    plt.ylabel("Rate")
    plt.title(title)
    if rows:
        plt.legend()
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
