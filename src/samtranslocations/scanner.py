from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, TextIO

from tqdm import tqdm

from .config import ScanConfig
from .engine import TranslocationClusterer
from .filters import DiscordantPairFilter
from .models import BREAKPOINT_COLUMNS, AlignedRecord
from .sources import AlignmentInputs
from .utils import open_textmaybe_gzip, write_json

logger = logging.getLogger(__name__)


def write_header(fh: TextIO) -> None:
    fh.write("\t".join(BREAKPOINT_COLUMNS) + "\n")


def _counted(records: Iterable[AlignedRecord], counts: Dict[str, int]) -> Iterator[AlignedRecord]:
    for rec in records:
        counts["records_total"] += 1
        yield rec


def scan_alignments(
    *,
    inputs: Sequence[str],
    config: ScanConfig,
    output: Optional[str | Path] = None,
    summary_json: Optional[str | Path] = None,
    progress: bool = True,
    keep_breakpoints: bool = False,
) -> Dict[str, object]:
    """Main workhorse: read inputs, cluster discordant pairs, write TSV, return summary dict.

    ``output`` of None (or ``-``) writes to stdout; a ``.gz`` suffix compresses.
    With ``keep_breakpoints`` the summary also carries the emitted rows
    (used by the HTML report).
    """
    t0 = time.time()
    config.validate()
    read_filter = DiscordantPairFilter(config.filter_expression)
    clusterer = TranslocationClusterer(config)

    counts = {"records_total": 0}
    kept: List[Dict[str, str]] = []

    with AlignmentInputs(inputs, region=config.region) as sources:
        logger.info(
            "Scanning %d input(s), max_distance=%d fuzzy_distance=%d min_count=%d groupby=%s",
            len(sources.handles),
            config.max_distance,
            config.fuzzy_distance,
            config.min_count_forward,
            config.groupby,
        )

        to_stdout = output is None or str(output) == "-"
        fh: TextIO = sys.stdout if to_stdout else open_textmaybe_gzip(output, "wt")
        records: Iterable[AlignedRecord] = _counted(sources.records(config.groupby), counts)
        bar = tqdm(records, unit="read", desc="Scanning reads", disable=not progress)
        discordant = (rec for rec in bar if read_filter.accepts(rec))
        try:
            write_header(fh)
            n_rows = 0
            for bp in clusterer.scan(discordant):
                fh.write(bp.to_row() + "\n")
                n_rows += 1
                if keep_breakpoints:
                    kept.append(bp.as_dict())
            fh.flush()
        finally:
            bar.close()
            if not to_stdout:
                fh.close()

        skipped_inputs = list(sources.skipped)
        references = list(sources.references)

    dt = time.time() - t0
    counts.update(clusterer.stats)
    logger.info(
        "Done: %d reads, %d discordant, %d clusters in %.1fs",
        counts["records_total"],
        counts["records_discordant"],
        n_rows,
        dt,
    )

    summary: Dict[str, object] = {
        "inputs": [str(p) for p in inputs],
        "skipped_inputs": skipped_inputs,
        "n_references": len(references),
        "output": "-" if output is None else str(output),
        "config": config.to_dict(),
        "counts": counts,
        "partitions": len(clusterer.claims),
        "clusters_by_partition": dict(sorted(clusterer.clusters_by_partition.items())),
        "runtime_seconds": float(dt),
    }
    if summary_json is not None:
        write_json(summary_json, summary)
    if keep_breakpoints:
        summary["breakpoints"] = kept
    return summary
