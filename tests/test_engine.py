from typing import List

import pytest

from samtranslocations.config import ScanConfig
from samtranslocations.engine import TranslocationClusterer
from samtranslocations.errors import ClusterInvariantError, ConfigurationError
from samtranslocations.models import AlignedRecord

READ_LEN = 30


def fwd(end: int, *, chrom: str = "chr1", mate: str = "chr7", partition: str = "S1", clipped: bool = False) -> AlignedRecord:
    return AlignedRecord(
        reference_name=chrom,
        start=end - READ_LEN + 1,
        end=end,
        is_reverse=False,
        mate_reference_name=mate,
        mate_start=1000,
        is_clipped=clipped,
        partition=partition,
    )


def rev(start: int, mate_start: int, *, chrom: str = "chr1", mate: str = "chr7", partition: str = "S1", clipped: bool = False) -> AlignedRecord:
    return AlignedRecord(
        reference_name=chrom,
        start=start,
        end=start + READ_LEN - 1,
        is_reverse=True,
        mate_reference_name=mate,
        mate_start=mate_start,
        is_clipped=clipped,
        partition=partition,
    )


def sorted_records(records: List[AlignedRecord]) -> List[AlignedRecord]:
    return sorted(records, key=lambda r: (r.reference_name, r.start))


def scenario(n_forward: int = 6, n_reverse: int = 6, **kw) -> List[AlignedRecord]:
    forward = [fwd(100 + i, **kw) for i in range(n_forward)]
    reverse = [rev(110 + i, 500 + i, **kw) for i in range(n_reverse)]
    return sorted_records(forward + reverse)


def run(records, **config):
    clusterer = TranslocationClusterer(ScanConfig(**config))
    return clusterer, list(clusterer.scan(records))


def test_planted_translocation_emits_one_cluster():
    clusterer, bps = run(scenario(), max_distance=50, fuzzy_distance=10, min_count_forward=5)
    assert len(bps) == 1
    bp = bps[0]
    assert bp.site1.chrom == "chr1"
    assert bp.site2.chrom == "chr7"
    assert bp.count_reads == 12
    assert bp.count_clipped == 0
    assert bp.partition == "S1"
    assert bp.to_row().split("\t") == [
        "chr1", "105", "110", "107", "6", "100", "6", "100",
        "chr7", "500", "505", "502", "3", "50", "4", "66",
        "12", "0", "S1",
    ]
    assert clusterer.stats["clusters_emitted"] == 1
    assert clusterer.stats["anchors_tried"] == 1


def test_too_few_forward_reads_abandon_every_anchor():
    records = scenario(n_forward=4)
    clusterer, bps = run(records)
    assert bps == []
    # every forward read was retried as an anchor and abandoned
    assert clusterer.stats["anchors_tried"] == 4
    assert clusterer.stats["abandoned_forward"] == 4
    assert clusterer.stats["records_skipped_claimed"] == 0
    state = clusterer.claims.get_or_create("S1")
    assert state.claimed is None


def test_too_few_reverse_reads():
    clusterer, bps = run(scenario(n_reverse=4))
    assert bps == []
    assert clusterer.stats["abandoned_reverse"] >= 1


def test_reverse_read_is_not_an_anchor():
    records = [rev(110, 500)]
    clusterer, bps = run(records)
    assert bps == []
    assert clusterer.stats["anchors_tried"] == 0
    assert clusterer.stats["records_reverse_not_anchor"] == 1
    assert clusterer.claims.get_or_create("S1").claimed is None


def test_claimed_reads_are_not_reused_as_anchors():
    # 12 forward reads: the first anchor absorbs all of them
    forward = [fwd(100 + (i % 6)) for i in range(12)]
    reverse = [rev(110 + i, 500 + i) for i in range(6)]
    clusterer, bps = run(sorted_records(forward + reverse))
    assert len(bps) == 1
    assert bps[0].count_reads == 18
    assert clusterer.stats["records_skipped_claimed"] == 11


def test_no_record_in_two_forward_clusters():
    class RecordingClusterer(TranslocationClusterer):
        def __init__(self, config):
            super().__init__(config)
            self.emitted = []

        def breakpoint(self, anchor, forward, reverse):
            self.emitted.append(list(forward))
            return super().breakpoint(anchor, forward, reverse)

    # forward reads spread so that later reads could seed their own clusters
    forward = [fwd(100 + i) for i in range(16)]
    reverse = [rev(120 + i, 500 + i) for i in range(12)]
    records = sorted_records(forward + reverse)
    clusterer = RecordingClusterer(ScanConfig(fuzzy_distance=4))
    bps = list(clusterer.scan(records))
    assert len(bps) == len(clusterer.emitted) >= 2
    seen = set()
    for cluster in clusterer.emitted:
        ids = {id(r) for r in cluster}
        assert not (ids & seen)
        seen |= ids


def test_clusters_respect_mate_contig_and_reference():
    records = scenario() + [rev(112, 700, mate="chr9")] + [fwd(101, mate="chr9")]
    records = sorted_records(records)
    _, bps = run(records)
    assert len(bps) == 1
    assert bps[0].count_reads == 12
    assert bps[0].site2.chrom == "chr7"


def test_window_stops_at_other_contig():
    # reverse reads on another contig never join the chr1 clusters
    records = sorted_records([fwd(100 + i) for i in range(6)]) + [
        rev(110 + i, 500 + i, chrom="chr2") for i in range(6)
    ]
    _, bps = run(records)
    assert bps == []


def test_window_stops_beyond_max_distance():
    _, bps = run(scenario(), max_distance=5)
    assert bps == []


def test_fuzzy_distance_limits_forward_cluster():
    forward = [fwd(100), fwd(101), fwd(102), fwd(120), fwd(121), fwd(122)]
    reverse = [rev(130 + i, 500 + i) for i in range(6)]
    _, bps = run(sorted_records(forward + reverse), fuzzy_distance=2)
    assert bps == []


def test_reverse_read_before_anchor_end_within_fuzzy_distance():
    forward = [fwd(100 + i) for i in range(5)]
    reverse = [rev(95 + i, 500 + i) for i in range(5)]
    _, bps = run(sorted_records(forward + reverse), min_count_forward=5)
    assert len(bps) == 1
    assert bps[0].site1.end == 95


def test_isolated_partitions_are_independent():
    records = scenario(partition="S1") + scenario(partition="S2")
    records = sorted_records(records)
    clusterer, bps = run(records, isolate_partitions=True)
    assert sorted(bp.partition for bp in bps) == ["S1", "S2"]
    assert all(bp.count_reads == 12 for bp in bps)
    assert clusterer.clusters_by_partition == {"S1": 1, "S2": 1}


def interleaved_partitions() -> List[AlignedRecord]:
    forward = [
        fwd(100, partition="S1"),
        fwd(101, partition="S1"),
        fwd(102, partition="S2"),
        fwd(103, partition="S1"),
        fwd(104, partition="S2"),
        fwd(105, partition="S2"),
    ]
    reverse = [rev(110 + i, 500 + i, partition="S1" if i % 2 == 0 else "S2") for i in range(6)]
    return sorted_records(forward + reverse)


def test_clusters_take_reads_from_every_partition():
    clusterer, bps = run(interleaved_partitions())
    assert len(bps) == 1
    assert bps[0].count_reads == 12
    # the row and the claim belong to the anchor's partition
    assert bps[0].partition == "S1"
    claimed = clusterer.claims.get_or_create("S1").claimed
    assert claimed is not None and claimed.partition == "S2"
    assert clusterer.stats["records_skipped_claimed"] == 5
    # later S2 anchors only see what is left of the window
    assert clusterer.stats["abandoned_forward"] == 3


def test_isolated_partitions_ignore_foreign_reads():
    clusterer, bps = run(interleaved_partitions(), isolate_partitions=True)
    assert bps == []
    assert clusterer.stats["abandoned_forward"] == 6


def test_clipped_reads_are_counted():
    forward = [fwd(100 + i, clipped=(i == 0)) for i in range(6)]
    reverse = [rev(110 + i, 500 + i, clipped=(i < 2)) for i in range(6)]
    _, bps = run(sorted_records(forward + reverse))
    assert bps[0].count_clipped == 3


def test_percentages_are_bounded_and_midpoints_integers():
    forward = [fwd(100 + i) for i in range(5)]
    reverse = [rev(110 + i, 500 + 3 * i) for i in range(9)]
    _, bps = run(sorted_records(forward + reverse))
    assert len(bps) == 1
    for site in (bps[0].site1, bps[0].site2):
        assert isinstance(site.middle, int)
        for pct in (site.before_mid_percent, site.after_mid_percent):
            assert isinstance(pct, int)
            assert 0 <= pct <= 100


def test_legacy_percentages_divide_by_forward_size():
    forward = [fwd(100 + i) for i in range(5)]
    reverse = [rev(110 + i, 500 + i) for i in range(10)]
    records = sorted_records(forward + reverse)
    _, bps = run(records, legacy_percentages=True)
    assert bps[0].site1.after_mid_count == 10
    assert bps[0].site1.after_mid_percent == 200
    _, bps = run(records)
    assert bps[0].site1.after_mid_percent == 100


def test_rerun_is_identical():
    records = scenario() + [fwd(600 + i) for i in range(6)] + [rev(610 + i, 900 + i) for i in range(6)]
    records = sorted_records(records)
    clusterer = TranslocationClusterer(ScanConfig())
    first = [bp.to_row() for bp in clusterer.scan(records)]
    second = [bp.to_row() for bp in clusterer.scan(records)]
    assert first == second
    assert len(first) == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_distance": 0},
        {"max_distance": -3},
        {"fuzzy_distance": -1},
        {"min_count_forward": 0},
        {"groupby": "nope"},
    ],
)
def test_invalid_configuration_refuses_to_run(kwargs):
    with pytest.raises(ConfigurationError):
        TranslocationClusterer(ScanConfig(**kwargs))


def test_empty_cluster_is_an_invariant_violation():
    clusterer = TranslocationClusterer(ScanConfig())
    anchor = fwd(100)
    with pytest.raises(ClusterInvariantError):
        clusterer.breakpoint(anchor, [anchor], [])
