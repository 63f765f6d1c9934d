from __future__ import annotations

import gzip
import json
import logging
import math
from pathlib import Path
from typing import Any, Optional, TextIO

logger = logging.getLogger(__name__)


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or NaN when the denominator is zero."""
    if denominator == 0:
        return math.nan
    return numerator / denominator


def format_float(x: Optional[float], digits: int = 6) -> str:
    # metrics files write undefined values as '?'
    if x is None or math.isnan(x):
        return "?"
    return f"{x:.{digits}f}"


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def _nan_to_none(obj: Any) -> Any:
    if isinstance(obj, float) and math.isnan(obj):
        return None
    if isinstance(obj, dict):
        return {k: _nan_to_none(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_nan_to_none(v) for v in obj]
    return obj


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(_nan_to_none(obj), f, indent=2, sort_keys=True)
