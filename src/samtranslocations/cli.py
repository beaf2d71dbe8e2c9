from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import ScanConfig
from .partition import GROUPBY_CHOICES
from .plotting import plot_chromosome_pairs, plot_reads_per_cluster
from .report import render_report
from .scanner import scan_alignments
from .toy_data import make_toy_data


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    msg = f"{err.__class__.__name__}: {err}"
    logging.getLogger("samtranslocations").debug("Run failed", exc_info=err)
    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="samtranslocations",
        description=(
            "samtranslocations: explore balanced translocations between two chromosomes "
            "using clusters of discordant paired-end reads."
        ),
    )
    p.add_argument("--version", action="version", version=f"samtranslocations {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny BAM with one planted translocation for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Print the target without writing files.")

    # -----------------
    # scan
    # -----------------
    s = sub.add_parser(
        "scan",
        help="Cluster discordant pairs of coordinate-sorted BAM/SAM/CRAM files into breakpoints.",
    )
    s.add_argument(
        "inputs",
        nargs="+",
        help="Coordinate-sorted alignment file(s); '-' reads stdin. Files are read one after the other.",
    )
    s.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output TSV (default: stdout). A .gz suffix writes gzip.",
    )
    s.add_argument(
        "--region",
        "--interval",
        dest="region",
        default=None,
        help="Limit analysis to this interval (chr, chr:start or chr:start-end). Needs an index.",
    )
    s.add_argument(
        "--filter",
        dest="filter_expression",
        default=None,
        help=(
            "Discard reads for which this expression is true, e.g. 'mapq < 20 or duplicate'. "
            "Names: read_name contig start end mate_contig mate_start reverse paired "
            "mate_unmapped unmapped clipped mapq flag duplicate secondary supplementary "
            "qcfail partition."
        ),
    )
    s.add_argument(
        "--groupby",
        choices=GROUPBY_CHOICES,
        default="sample",
        help="Group reads by this read-group property; each group is clustered independently.",
    )
    s.add_argument(
        "-md",
        "--max-distance",
        type=int,
        default=50,
        help="Max distance between the anchor's end and the start of a clustered read.",
    )
    s.add_argument(
        "-fd",
        "--fuzzy-distance",
        type=int,
        default=10,
        help="Max distance between two reads to test if they both end at the same ~ position.",
    )
    s.add_argument(
        "--min-count",
        dest="min_count_forward",
        type=int,
        default=5,
        help="Minimum number of reads in both the forward and the reverse cluster.",
    )
    s.add_argument(
        "--legacy-percentages",
        action="store_true",
        help="Divide strand_minus_after_mid1_percent by the forward cluster size (older output).",
    )
    s.add_argument(
        "--isolate-partitions",
        action="store_true",
        help="Build each cluster from reads of the anchor's partition only.",
    )
    s.add_argument("--summary-json", default=None, help="Write run counters as JSON.")
    s.add_argument(
        "--report-dir",
        default=None,
        help="Write report.html and plots into this directory.",
    )
    s.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    s.add_argument("--log-file", default=None, help="Also write log messages to this file.")
    s.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "samtranslocations quickstart (copy/paste):",
        "",
        "1) One BAM, breakpoints to a file:",
        "   samtranslocations scan sample.bam -o translocations.tsv",
        "",
        "2) Several BAMs, one partition per sample, with an HTML report:",
        "   samtranslocations scan s1.bam s2.bam \\",
        "     --groupby sample \\",
        "     --filter 'mapq < 20 or duplicate' \\",
        "     -o translocations.tsv.gz \\",
        "     --report-dir report/",
        "",
        "3) Try it on toy data:",
        "   samtranslocations make-toy-data --outdir toy/",
        "   samtranslocations scan toy/toy.bam",
        "",
        "Tip: input must be coordinate-sorted (samtools sort).",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _write_report(report_dir: Path, run: dict) -> Path:
    plots_dir = report_dir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    reads_png = plots_dir / "reads_per_cluster.png"
    pairs_png = plots_dir / "chromosome_pairs.png"
    plot_reads_per_cluster(breakpoints=run["breakpoints"], out_png=reads_png)
    plot_chromosome_pairs(breakpoints=run["breakpoints"], out_png=pairs_png)

    plots_rel = {
        "reads_per_cluster": str(Path("plots") / reads_png.name),
        "chromosome_pairs": str(Path("plots") / pairs_png.name),
    }
    return render_report(outdir=report_dir, version=__version__, run=run, plots=plots_rel)


def cmd_scan(args: argparse.Namespace) -> int:
    log_path = Path(args.log_file).expanduser().resolve() if args.log_file else None
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("samtranslocations")
    logger.info("samtranslocations %s", __version__)

    try:
        config = ScanConfig(
            max_distance=int(args.max_distance),
            fuzzy_distance=int(args.fuzzy_distance),
            min_count_forward=int(args.min_count_forward),
            region=args.region,
            filter_expression=args.filter_expression,
            groupby=str(args.groupby),
            legacy_percentages=bool(args.legacy_percentages),
            isolate_partitions=bool(args.isolate_partitions),
        ).validate()

        report_dir = Path(args.report_dir).expanduser().resolve() if args.report_dir else None

        run = scan_alignments(
            inputs=args.inputs,
            config=config,
            output=args.output,
            summary_json=args.summary_json,
            progress=not bool(args.no_progress),
            keep_breakpoints=report_dir is not None,
        )

        if report_dir is not None:
            report_path = _write_report(report_dir, run)
            logger.info("Report written: %s", report_path)
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "scan":
        return cmd_scan(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
