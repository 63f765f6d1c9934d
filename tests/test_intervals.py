from pathlib import Path

import pytest

from gtconcord.errors import ConfigurationError
from gtconcord.intervals import Interval, IntervalSet, load_intervals, read_interval_file, restrict_to_intervals
from gtconcord.models import VariantSite


def test_bed_is_converted_to_one_based(tmp_path: Path) -> None:
    bed = tmp_path / "regions.bed"
    bed.write_text("track name=x\n# comment\nchr1\t9\t20\n", encoding="utf-8")
    assert read_interval_file(bed) == [Interval("chr1", 10, 20)]

    scope = load_intervals([bed])
    assert not scope.contains("chr1", 9)
    assert scope.contains("chr1", 10)
    assert scope.contains("chr1", 20)
    assert not scope.contains("chr1", 21)
    assert not scope.contains("chr2", 15)


def test_interval_list_is_one_based(tmp_path: Path) -> None:
    il = tmp_path / "regions.interval_list"
    il.write_text("@HD\tVN:1.6\n@SQ\tSN:chr1\tLN:1000\nchr1\t10\t20\t+\ttarget\n", encoding="utf-8")
    assert read_interval_file(il) == [Interval("chr1", 10, 20)]


def test_overlapping_and_adjacent_intervals_merge() -> None:
    scope = IntervalSet([Interval("chr1", 11, 20), Interval("chr1", 1, 10), Interval("chr1", 15, 30)])
    assert list(scope) == [Interval("chr1", 1, 30)]
    assert len(scope) == 1
    assert scope.last_end("chr1") == 30


def test_contigs_keep_first_seen_order() -> None:
    scope = IntervalSet([Interval("chr2", 1, 5), Interval("chr1", 1, 5)])
    assert scope.contigs == ["chr2", "chr1"]


def test_empty_interval_files_are_rejected(tmp_path: Path) -> None:
    bed = tmp_path / "empty.bed"
    bed.write_text("", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_intervals([bed])


def test_reversed_interval_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        IntervalSet([Interval("chr1", 20, 10)])


def test_malformed_line(tmp_path: Path) -> None:
    bed = tmp_path / "bad.bed"
    bed.write_text("chr1\tten\t20\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        read_interval_file(bed)


def test_overlaps_uses_the_whole_span() -> None:
    scope = IntervalSet([Interval("chr1", 10, 20), Interval("chr1", 40, 50)])
    assert scope.overlaps("chr1", 8, 12)
    assert scope.overlaps("chr1", 20, 20)
    assert scope.overlaps("chr1", 15, 45)
    assert not scope.overlaps("chr1", 21, 39)
    assert not scope.overlaps("chr1", 1, 9)
    assert not scope.overlaps("chr2", 10, 20)


def test_restriction_without_stream_order_reads_everything() -> None:
    scope = IntervalSet([Interval("chr2", 1, 100), Interval("chr1", 1, 100)])
    sites = [
        VariantSite(contig="chr1", pos=10, ref="A"),
        VariantSite(contig="chr1", pos=500, ref="A"),
        VariantSite(contig="chr2", pos=10, ref="A"),
    ]
    assert [(s.contig, s.pos) for s in restrict_to_intervals(sites, scope)] == [("chr1", 10), ("chr2", 10)]


def test_on_contig() -> None:
    scope = IntervalSet([Interval("chr2", 1, 100), Interval("chr1", 5, 9)])
    assert list(scope.on_contig("chr1")) == [Interval("chr1", 5, 9)]
    assert scope.on_contig("chr1").contigs == ["chr1"]
