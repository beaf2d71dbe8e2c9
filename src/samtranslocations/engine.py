"""Breakpoint clustering of discordant read pairs.

The engine walks a coordinate-sorted stream of discordant reads. Every
forward-strand read that is not claimed by an earlier cluster becomes an
*anchor*: the reads just downstream of it are scanned twice through a
lookahead window, once for forward-strand reads ending near the anchor's end
and once for reverse-strand reads starting around it. When both clusters are
large enough, their medians locate the junction on each chromosome and one
:class:`~samtranslocations.models.BreakpointRecord` is emitted.

Precondition: records arrive sorted by coordinate within each contig. The
window stops at the first record further than ``max_distance`` from the
anchor, so unsorted input silently yields wrong clusters.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .config import ScanConfig
from .errors import ClusterInvariantError
from .models import AlignedRecord, BreakpointRecord, BreakpointSite
from .partition import PartitionClaims
from .peek import PeekIterator
from .utils import median, percent

logger = logging.getLogger(__name__)


def _median(values: Sequence[int], what: str) -> int:
    try:
        return median(values)
    except ValueError as e:
        raise ClusterInvariantError(f"cannot compute median of {what}: {e}") from e


class TranslocationClusterer:
    """Cluster discordant pairs into balanced-translocation breakpoints.

    One instance owns the per-partition claim states of one run; use a fresh
    instance (or call :meth:`scan` again, which resets them) per input.
    """

    def __init__(self, config: Optional[ScanConfig] = None) -> None:
        self.config = (config or ScanConfig()).validate()
        self.claims = PartitionClaims()
        self.stats: Dict[str, int] = {}
        self.clusters_by_partition: Dict[str, int] = {}
        self._reset()

    def _reset(self) -> None:
        self.claims = PartitionClaims()
        self.stats = {
            "records_discordant": 0,
            "records_skipped_claimed": 0,
            "records_reverse_not_anchor": 0,
            "anchors_tried": 0,
            "abandoned_forward": 0,
            "abandoned_reverse": 0,
            "clusters_emitted": 0,
        }
        self.clusters_by_partition = {}

    def _window(self, anchor: AlignedRecord, it: PeekIterator[AlignedRecord]) -> Iterator[AlignedRecord]:
        """Records after the anchor on the same contig, within max_distance of its end."""
        k = 0
        while True:
            rec = it.peek(k)
            if rec is None:
                return
            if rec.reference_name != anchor.reference_name:
                return
            if rec.start - anchor.end > self.config.max_distance:
                return
            yield rec
            k += 1

    def _foreign(self, anchor: AlignedRecord, rec: AlignedRecord) -> bool:
        return self.config.isolate_partitions and rec.partition != anchor.partition

    def forward_cluster(
        self, anchor: AlignedRecord, it: PeekIterator[AlignedRecord]
    ) -> List[AlignedRecord]:
        """Anchor plus downstream forward reads ending within fuzzy_distance of it."""
        fuzzy = self.config.fuzzy_distance
        cluster = [anchor]
        for rec in self._window(anchor, it):
            if rec.is_reverse or self._foreign(anchor, rec):
                continue
            if abs(rec.end - anchor.end) > fuzzy:
                continue
            if rec.mate_reference_name != anchor.mate_reference_name:
                continue
            cluster.append(rec)
        return cluster

    def reverse_cluster(
        self, anchor: AlignedRecord, it: PeekIterator[AlignedRecord]
    ) -> List[AlignedRecord]:
        """Downstream reverse reads starting after, or just before, the anchor's end."""
        fuzzy = self.config.fuzzy_distance
        cluster: List[AlignedRecord] = []
        for rec in self._window(anchor, it):
            if not rec.is_reverse or self._foreign(anchor, rec):
                continue
            if rec.start < anchor.end and anchor.end - rec.start > fuzzy:
                continue
            if rec.mate_reference_name != anchor.mate_reference_name:
                continue
            cluster.append(rec)
        return cluster

    def breakpoint(
        self,
        anchor: AlignedRecord,
        forward: Sequence[AlignedRecord],
        reverse: Sequence[AlignedRecord],
    ) -> BreakpointRecord:
        if not forward or not reverse:
            raise ClusterInvariantError(
                f"empty cluster at {anchor.reference_name}:{anchor.end} "
                f"(forward={len(forward)}, reverse={len(reverse)})"
            )
        n_fwd = len(forward)
        n_rev = len(reverse)

        fwd_ends = [r.end for r in forward]
        rev_starts = [r.start for r in reverse]
        mate_starts = [r.mate_start for r in reverse]

        mid1 = (_median(fwd_ends, "forward ends") + _median(rev_starts, "reverse starts")) // 2
        mid2 = _median(mate_starts, "mate starts")

        plus_before1 = sum(1 for e in fwd_ends if e <= mid1)
        minus_after1 = sum(1 for s in rev_starts if s >= mid1)
        before2 = sum(1 for s in mate_starts if s <= mid2)
        after2 = sum(1 for s in mate_starts if s >= mid2)

        site1 = BreakpointSite(
            chrom=anchor.reference_name,
            start=max(fwd_ends),
            end=min(rev_starts),
            middle=mid1,
            before_mid_count=plus_before1,
            before_mid_percent=percent(plus_before1, n_fwd),
            after_mid_count=minus_after1,
            after_mid_percent=percent(
                minus_after1, n_fwd if self.config.legacy_percentages else n_rev
            ),
        )
        site2 = BreakpointSite(
            chrom=anchor.mate_reference_name,
            start=min(mate_starts),
            end=max(mate_starts),
            middle=mid2,
            before_mid_count=before2,
            before_mid_percent=percent(before2, n_rev),
            after_mid_count=after2,
            after_mid_percent=percent(after2, n_rev),
        )
        clipped = sum(1 for r in forward if r.is_clipped) + sum(1 for r in reverse if r.is_clipped)
        return BreakpointRecord(
            site1=site1,
            site2=site2,
            count_reads=n_fwd + n_rev,
            count_clipped=clipped,
            partition=anchor.partition,
        )

    def scan(self, records: Iterable[AlignedRecord]) -> Iterator[BreakpointRecord]:
        """Yield breakpoints, in stream order, from already-filtered discordant records."""
        self._reset()
        min_count = self.config.min_count_forward
        claims = self.claims
        stats = self.stats

        with PeekIterator(records) as it:
            for rec in it:
                stats["records_discordant"] += 1
                state = claims.get_or_create(rec.partition)

                if state.claimed is not None:
                    if claims.is_claimed(state, rec):
                        claims.clear(state)
                    stats["records_skipped_claimed"] += 1
                    continue

                if rec.is_reverse:
                    stats["records_reverse_not_anchor"] += 1
                    continue

                stats["anchors_tried"] += 1
                forward = self.forward_cluster(rec, it)
                if len(forward) < min_count:
                    stats["abandoned_forward"] += 1
                    claims.clear(state)
                    continue

                reverse = self.reverse_cluster(rec, it)
                if len(reverse) < min_count:
                    stats["abandoned_reverse"] += 1
                    claims.clear(state)
                    continue

                bp = self.breakpoint(rec, forward, reverse)
                # the anchor itself is already consumed; only later members need skipping
                claims.claim(state, forward[-1] if len(forward) > 1 else None)
                stats["clusters_emitted"] += 1
                self.clusters_by_partition[bp.partition] = (
                    self.clusters_by_partition.get(bp.partition, 0) + 1
                )
                logger.debug(
                    "Cluster %s:%d <-> %s:%d (%d reads, partition %s)",
                    bp.site1.chrom,
                    bp.site1.middle,
                    bp.site2.chrom,
                    bp.site2.middle,
                    bp.count_reads,
                    bp.partition,
                )
                yield bp
