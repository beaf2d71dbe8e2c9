from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import pysam

from .errors import ConfigurationError, SourceError
from .models import AlignedRecord
from .partition import Partitioner
from .validation import check_alignment_index, check_region, check_sequence_dictionary

logger = logging.getLogger(__name__)

_CLIP_OPS = (4, 5)  # S, H
STDIN = "-"


def _is_clipped(seg: pysam.AlignedSegment) -> bool:
    cigar = seg.cigartuples
    if not cigar:
        return False
    return any(op in _CLIP_OPS for op, _ in cigar)


def record_from_segment(seg: pysam.AlignedSegment, partition: str) -> AlignedRecord:
    """Convert a pysam read into the 1-based facade used by the clustering engine."""
    start = int(seg.reference_start) + 1
    end = seg.reference_end
    return AlignedRecord(
        reference_name=seg.reference_name if seg.reference_name is not None else "*",
        start=start,
        end=int(end) if end is not None else start,
        is_reverse=bool(seg.is_reverse),
        mate_reference_name=(
            seg.next_reference_name if seg.next_reference_name is not None else "*"
        ),
        mate_start=int(seg.next_reference_start) + 1,
        is_paired=bool(seg.is_paired),
        is_mate_unmapped=bool(seg.mate_is_unmapped),
        is_unmapped=bool(seg.is_unmapped),
        is_clipped=_is_clipped(seg),
        partition=partition,
        query_name=str(seg.query_name),
        mapping_quality=int(seg.mapping_quality),
        flag=int(seg.flag),
    )


def _open_one(path: str) -> pysam.AlignmentFile:
    try:
        return pysam.AlignmentFile(path, "r")
    except (ValueError, OSError) as e:
        raise SourceError(f"Cannot read alignments from {path}: {e}", path=path) from e


class AlignmentInputs:
    """One or more alignment files read one after the other.

    All inputs must share the same sequence dictionary. An unreadable input
    is skipped with a warning when several are given; with a single input
    (or when nothing readable remains) a ``SourceError`` is raised.
    """

    def __init__(self, paths: Sequence[str], *, region: Optional[str] = None) -> None:
        if not paths:
            raise ConfigurationError("No alignment input given.")
        self.paths = [str(p) for p in paths]
        self.region = region
        self.handles: List[Tuple[str, pysam.AlignmentFile]] = []
        self.skipped: List[str] = []
        self.references: Tuple[str, ...] = ()
        self.lengths: Tuple[int, ...] = ()
        self._fetch_args: Optional[Tuple[str, Optional[int], Optional[int]]] = None

        if region is not None:
            for p in self.paths:
                if p == STDIN:
                    raise ConfigurationError("--region cannot be used when reading from stdin.")
                if Path(p).exists():
                    check_alignment_index(p)

        try:
            self._open_all()
            check_sequence_dictionary(self.references)
            if region is not None:
                self._fetch_args = check_region(region, self.references)
        except Exception:
            self.close()
            raise

    def _open_all(self) -> None:
        tolerant = len(self.paths) > 1
        for p in self.paths:
            try:
                handle = _open_one(p)
                refs = tuple(handle.references)
                lengths = tuple(int(x) for x in handle.lengths)
                if self.handles and (refs, lengths) != (self.references, self.lengths):
                    handle.close()
                    raise SourceError(
                        f"Sequence dictionary of {p} differs from {self.handles[0][0]}", path=p
                    )
            except SourceError as e:
                if not tolerant:
                    raise
                logger.warning("Skipping input: %s", e)
                self.skipped.append(p)
                continue
            if not self.handles:
                self.references, self.lengths = refs, lengths
            self.handles.append((p, handle))
            logger.info("Opened %s (%d contigs)", p, len(refs))

        if not self.handles:
            raise SourceError("None of the alignment inputs could be read.")

    def _segments(self, handle: pysam.AlignmentFile) -> Iterator[pysam.AlignedSegment]:
        if self._fetch_args is not None:
            contig, start0, stop = self._fetch_args
            return handle.fetch(contig, start0, stop)
        return handle.fetch(until_eof=True)

    def records(self, groupby: str = "sample") -> Iterator[AlignedRecord]:
        """Yield every read of every input as an ``AlignedRecord``."""
        for path, handle in self.handles:
            partitioner = Partitioner.from_header(handle.header.to_dict(), groupby)
            logger.debug("Reading %s", path)
            for seg in self._segments(handle):
                rg = seg.get_tag("RG") if seg.has_tag("RG") else None
                yield record_from_segment(seg, partitioner.label(rg))

    def close(self) -> None:
        for _, handle in self.handles:
            handle.close()
        self.handles = []

    def __enter__(self) -> "AlignmentInputs":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

