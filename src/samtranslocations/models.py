from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

FALLBACK_PARTITION = "N/A"

BREAKPOINT_COLUMNS: List[str] = [
    "#chrom1",
    "chrom1-start",
    "chrom1-end",
    "middle1",
    "strand_plus_before_mid1_count",
    "strand_plus_before_mid1_percent",
    "strand_minus_after_mid1_count",
    "strand_minus_after_mid1_percent",
    "chrom2",
    "chrom2-start",
    "chrom2-end",
    "middle2",
    "strand_plus_before_mid2_count",
    "strand_plus_before_mid2_percent",
    "strand_minus_after_mid2_count",
    "strand_minus_after_mid2_percent",
    "count-reads",
    "count-clipped",
    "partition",
]


@dataclass(eq=False)
class AlignedRecord:
    """Decoded view of one alignment, as consumed by the clustering engine.

    Coordinates are 1-based; ``end`` is inclusive.

    Equality is object identity: the engine recognises a record it claimed
    earlier with ``is``/``==`` and two distinct reads at the same position
    must never compare equal.

    Attributes
    ----------
    reference_name:
        Contig of this alignment.
    start, end:
        1-based first and last aligned reference positions.
    is_reverse:
        True for reverse-strand alignments.
    mate_reference_name, mate_start:
        Contig and 1-based start of the mate.
    is_paired, is_mate_unmapped, is_unmapped:
        SAM flag bits.
    is_clipped:
        True if the CIGAR has a soft or hard clip.
    partition:
        Group label (sample, library, ...) or ``FALLBACK_PARTITION``.
    query_name, mapping_quality, flag:
        Only used by filter expressions.
    """

    reference_name: str
    start: int
    end: int
    is_reverse: bool
    mate_reference_name: str
    mate_start: int
    is_paired: bool = True
    is_mate_unmapped: bool = False
    is_unmapped: bool = False
    is_clipped: bool = False
    partition: str = FALLBACK_PARTITION
    query_name: str = "*"
    mapping_quality: int = 255
    flag: int = 0


@dataclass
class PartitionState:
    """Claim state of one partition; ``claimed`` is None while scanning."""

    name: str
    claimed: Optional[AlignedRecord] = None


@dataclass(frozen=True)
class BreakpointSite:
    """One side of a translocation: contig, cluster bounds and strand support."""

    chrom: str
    start: int
    end: int
    middle: int
    before_mid_count: int
    before_mid_percent: int
    after_mid_count: int
    after_mid_percent: int

    def as_fields(self) -> List[str]:
        return [
            self.chrom,
            str(self.start),
            str(self.end),
            str(self.middle),
            str(self.before_mid_count),
            str(self.before_mid_percent),
            str(self.after_mid_count),
            str(self.after_mid_percent),
        ]


@dataclass(frozen=True)
class BreakpointRecord:
    """One emitted cluster pair."""

    site1: BreakpointSite
    site2: BreakpointSite
    count_reads: int
    count_clipped: int
    partition: str

    def to_row(self) -> str:
        fields = self.site1.as_fields() + self.site2.as_fields()
        fields += [str(self.count_reads), str(self.count_clipped), self.partition]
        return "\t".join(fields)

    def as_dict(self) -> dict:
        return dict(zip(BREAKPOINT_COLUMNS, self.to_row().split("\t")))
