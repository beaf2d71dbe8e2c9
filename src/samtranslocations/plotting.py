from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_reads_per_cluster(
    *,
    breakpoints: List[Mapping[str, str]],
    out_png: str | Path,
    title: str = "Reads per cluster",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    values = [int(bp["count-reads"]) for bp in breakpoints]

    plt.figure()
    if values:
        plt.hist(values, bins=min(30, max(1, len(set(values)))))
    else:
        plt.text(0.5, 0.5, "No clusters", ha="center", va="center")
    plt.xlabel("Reads supporting the cluster (forward + reverse)")
    plt.ylabel("Cluster count")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_chromosome_pairs(
    *,
    breakpoints: List[Mapping[str, str]],
    out_png: str | Path,
    title: str = "Clusters per chromosome pair",
    max_pairs: int = 20,
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    pairs: Dict[str, int] = {}
    for bp in breakpoints:
        key = f"{bp['#chrom1']}-{bp['chrom2']}"
        pairs[key] = pairs.get(key, 0) + 1
    top = sorted(pairs.items(), key=lambda kv: (-kv[1], kv[0]))[:max_pairs]

    plt.figure()
    if top:
        plt.bar([k for k, _ in top], [v for _, v in top])
    else:
        plt.text(0.5, 0.5, "No clusters", ha="center", va="center")
    plt.ylabel("Cluster count")
    plt.title(title)
    plt.xticks(rotation=45, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
