from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pysam

from .utils import ensure_outdir, write_json

_FLAG_PAIRED = 0x1
_FLAG_MATE_UNMAPPED = 0x8
_FLAG_REVERSE = 0x10
_FLAG_MATE_REVERSE = 0x20
_FLAG_READ1 = 0x40

_READ_LEN = 30

CONTIGS: List[Tuple[str, int]] = [("chr1", 2000), ("chr7", 2000)]
SAMPLE = "TUMOR"


def _make_read(
    name: str,
    start0: int,
    *,
    reverse: bool,
    mate_tid: int,
    mate_start0: int,
    mate_unmapped: bool = False,
    cigar: Optional[Sequence[Tuple[int, int]]] = None,
    tid: int = 0,
) -> pysam.AlignedSegment:
    cigartuples = list(cigar) if cigar is not None else [(0, _READ_LEN)]
    qlen = sum(n for op, n in cigartuples if op in (0, 1, 4, 7, 8))

    flag = _FLAG_PAIRED | _FLAG_READ1
    if reverse:
        flag |= _FLAG_REVERSE
    elif not mate_unmapped:
        flag |= _FLAG_MATE_REVERSE
    if mate_unmapped:
        flag |= _FLAG_MATE_UNMAPPED

    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = "ACGT" * (qlen // 4) + "ACGT"[: qlen % 4]
    a.flag = flag
    a.reference_id = tid
    a.reference_start = start0
    a.mapping_quality = 60
    a.cigartuples = cigartuples
    a.next_reference_id = mate_tid
    a.next_reference_start = mate_start0
    a.query_qualities = pysam.qualitystring_to_array("I" * qlen)
    a.set_tag("RG", "rg1", value_type="Z")
    return a


def make_toy_data(*, outdir: str | Path) -> Dict[str, object]:
    """Create a tiny coordinate-sorted BAM carrying one planted translocation.

    Only the chr1 end of each pair is written. The planted event is six
    forward reads ending at chr1:100-105 and six reverse reads starting at
    chr1:110-115, all with mates at chr7:500-505; two of the reverse reads
    are soft-clipped. Noise reads (a proper pair, an unmapped mate and a lone
    discordant read) must not produce a cluster.

    Returns
    -------
    dict
        Paths to the generated files and the expected number of clusters.
    """
    outdir_p = ensure_outdir(outdir)
    bam_path = outdir_p / "toy.bam"

    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": name, "LN": length} for name, length in CONTIGS],
        "RG": [{"ID": "rg1", "SM": SAMPLE, "LB": "lib1", "PL": "ILLUMINA"}],
    }

    reads: List[pysam.AlignedSegment] = []
    for i in range(6):
        # 1-based end = start0 + read length
        reads.append(
            _make_read(f"fwd_{i}", 70 + i, reverse=False, mate_tid=1, mate_start0=499 + i)
        )
    for i in range(6):
        cigar = [(4, 5), (0, _READ_LEN - 5)] if i < 2 else None
        reads.append(
            _make_read(
                f"rev_{i}", 109 + i, reverse=True, mate_tid=1, mate_start0=499 + i, cigar=cigar
            )
        )

    reads.append(_make_read("proper_0", 300, reverse=False, mate_tid=0, mate_start0=450))
    reads.append(
        _make_read("mate_unmapped_0", 400, reverse=False, mate_tid=0, mate_start0=400, mate_unmapped=True)
    )
    reads.append(_make_read("lone_0", 600, reverse=False, mate_tid=1, mate_start0=900))

    reads.sort(key=lambda r: (r.reference_id, r.reference_start))

    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in reads:
            bam.write(r)

    pysam.index(str(bam_path))

    summary: Dict[str, object] = {
        "bam": str(bam_path),
        "outdir": str(outdir_p),
        "sample": SAMPLE,
        "n_reads": len(reads),
        "expected_clusters": 1,
    }
    write_json(outdir_p / "toy_summary.json", summary)
    return summary
