from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_REGION_RE = re.compile(r"^(?P<chrom>[^:\s]+)(?::(?P<start>[\d,]+)(?:-(?P<end>[\d,]+))?)?$")


def check_alignment_index(path: str | Path) -> None:
    """Ensure a BAM/CRAM has an index; raise ConfigurationError with fix instructions."""
    aln = Path(path)
    candidates = [
        aln.with_suffix(aln.suffix + ".bai"),
        aln.with_suffix(".bai"),
        aln.with_suffix(aln.suffix + ".csi"),
        aln.with_suffix(aln.suffix + ".crai"),
        aln.with_suffix(".crai"),
    ]
    if any(c.exists() for c in candidates):
        return
    raise ConfigurationError(
        "--region requires an indexed input. Run: samtools index " + str(aln)
    )


def check_sequence_dictionary(references: Sequence[str]) -> None:
    """A translocation needs two contigs; fewer is a configuration error."""
    if len(references) < 2:
        raise ConfigurationError(
            f"Not enough contigs in sequence dictionary ({len(references)}). Expected at least 2."
        )


def parse_region(region: str) -> Tuple[str, Optional[int], Optional[int]]:
    """Parse ``chr``, ``chr:start`` or ``chr:start-end`` (1-based, inclusive)."""
    m = _REGION_RE.match(region.strip())
    if m is None:
        raise ConfigurationError(f"Cannot parse region '{region}'. Expected chr:start-end.")
    chrom = m.group("chrom")
    start = int(m.group("start").replace(",", "")) if m.group("start") else None
    end = int(m.group("end").replace(",", "")) if m.group("end") else None
    if start is not None and start < 1:
        raise ConfigurationError(f"Region start must be >= 1: '{region}'")
    if start is not None and end is not None and end < start:
        raise ConfigurationError(f"Region end is before start: '{region}'")
    return chrom, start, end


def check_region(
    region: str, references: Sequence[str]
) -> Tuple[str, Optional[int], Optional[int]]:
    """Validate a region against the dictionary.

    Returns (contig, start0, stop) as expected by ``AlignmentFile.fetch``.
    """
    chrom, start, end = parse_region(region)
    if chrom not in references:
        raise ConfigurationError(
            f"Region contig '{chrom}' is not in the sequence dictionary."
        )
    start0 = start - 1 if start is not None else None
    return chrom, start0, end
