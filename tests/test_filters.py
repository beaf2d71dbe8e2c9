import pytest

from samtranslocations.errors import ConfigurationError
from samtranslocations.filters import DiscordantPairFilter, FilterExpression, is_discordant
from samtranslocations.models import AlignedRecord


def make_rec(**kw) -> AlignedRecord:
    fields = dict(
        reference_name="chr1",
        start=100,
        end=129,
        is_reverse=False,
        mate_reference_name="chr7",
        mate_start=500,
        mapping_quality=60,
        flag=0x1 | 0x20 | 0x40,
        partition="S1",
    )
    fields.update(kw)
    return AlignedRecord(**fields)


def test_is_discordant():
    assert is_discordant(make_rec())
    assert not is_discordant(make_rec(mate_reference_name="chr1"))
    assert not is_discordant(make_rec(is_unmapped=True))
    assert not is_discordant(make_rec(is_paired=False))
    assert not is_discordant(make_rec(is_mate_unmapped=True))


def test_expression_discards_matching_reads():
    f = DiscordantPairFilter("mapq < 20 or duplicate")
    assert f.accepts(make_rec())
    assert not f.accepts(make_rec(mapping_quality=10))
    assert not f.accepts(make_rec(flag=0x1 | 0x400))
    assert f(make_rec())


def test_expression_features():
    rec = make_rec()
    assert FilterExpression("contig in ('chr1', 'chr2')").matches(rec)
    assert FilterExpression("mate_contig not in ['chr1']").matches(rec)
    assert FilterExpression("100 <= start < 101").matches(rec)
    assert FilterExpression("end - start + 1 == 30").matches(rec)
    assert FilterExpression("not reverse and partition == 'S1'").matches(rec)
    assert FilterExpression("flag % 2 == 1").matches(rec)
    assert not FilterExpression("secondary or supplementary or qcfail").matches(rec)
    assert FilterExpression("-mapq < 0").matches(rec)
    assert FilterExpression("true").matches(rec)


def test_empty_expression_means_no_filter():
    assert DiscordantPairFilter("   ").expression is None
    assert DiscordantPairFilter(None).accepts(make_rec())


@pytest.mark.parametrize(
    "expr",
    [
        "mapq <",
        "unknown_field > 3",
        "__import__('os')",
        "read_name.upper() == 'X'",
        "mapq ** 2 > 1",
        "[x for x in (1, 2)]",
    ],
)
def test_invalid_expressions_are_configuration_errors(expr):
    with pytest.raises(ConfigurationError):
        FilterExpression(expr)
