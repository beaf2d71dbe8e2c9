from __future__ import annotations

import gzip
import json
import logging
import math
from pathlib import Path
from typing import Any, Sequence, TextIO

import numpy as np

logger = logging.getLogger(__name__)


def percentile(values: Sequence[int], q: float) -> float:
    """q-th percentile (0-100) of ``values`` using linear interpolation.

    Raises ValueError for an empty sequence or q outside [0, 100].
    """
    if len(values) == 0:
        raise ValueError("percentile of an empty sequence is undefined")
    if not 0.0 <= q <= 100.0:
        raise ValueError(f"percentile must be within [0, 100], got {q}")
    return float(np.percentile(np.asarray(values, dtype=np.float64), q))


def median(values: Sequence[int]) -> int:
    """Interpolated median truncated with floor, e.g. median([1, 2]) == 1."""
    return int(math.floor(percentile(values, 50.0)))


def percent(count: int, total: int) -> int:
    # truncated toward zero, like an int cast
    if total <= 0:
        return 0
    return int(100.0 * count / total)


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)
