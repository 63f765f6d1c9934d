from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .errors import ConfigurationError
from .models import VariantSite
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Interval:
    """A genomic interval in 1-based closed coordinates."""

    contig: str
    start: int
    end: int


class IntervalSet:
    """Sorted, non-overlapping intervals with per-contig bisect lookup."""

    def __init__(self, intervals: Iterable[Interval]) -> None:
        by_contig: Dict[str, List[Interval]] = {}
        self.contig_order: List[str] = []
        for iv in intervals:
            if iv.end < iv.start:
                raise ConfigurationError(f"Interval end before start: {iv}")
            if iv.contig not in by_contig:
                by_contig[iv.contig] = []
                self.contig_order.append(iv.contig)
            by_contig[iv.contig].append(iv)

        self._starts: Dict[str, List[int]] = {}
        self._ends: Dict[str, List[int]] = {}
        for contig, lst in by_contig.items():
            merged: List[Interval] = []
            for iv in sorted(lst, key=lambda x: x.start):
                if merged and iv.start <= merged[-1].end + 1:
                    last = merged[-1]
                    merged[-1] = Interval(contig, last.start, max(last.end, iv.end))
                else:
                    merged.append(iv)
            self._starts[contig] = [iv.start for iv in merged]
            self._ends[contig] = [iv.end for iv in merged]

    def __len__(self) -> int:
        return sum(len(v) for v in self._starts.values())

    def __iter__(self) -> Iterator[Interval]:
        for contig in self.contig_order:
            for start, end in zip(self._starts[contig], self._ends[contig]):
                yield Interval(contig, start, end)

    @property
    def contigs(self) -> List[str]:
        return list(self.contig_order)

    def contains(self, contig: str, pos: int) -> bool:
        return self.overlaps(contig, pos, pos)

    def on_contig(self, contig: str) -> "IntervalSet":
        """The intervals of a single contig."""
        return IntervalSet(iv for iv in self if iv.contig == contig)

    def overlaps(self, contig: str, start: int, end: int) -> bool:
        """True when any interval shares a position with ``start..end`` (1-based, closed)."""
        starts = self._starts.get(contig)
        if not starts:
            return False
        i = bisect.bisect_right(starts, end) - 1
        return i >= 0 and self._ends[contig][i] >= start

    def last_end(self, contig: str) -> Optional[int]:
        ends = self._ends.get(contig)
        return ends[-1] if ends else None


def _parse_line(line: str, *, bed: bool, path: Path, lineno: int) -> Optional[Interval]:
    line = line.rstrip("\n")
    if not line.strip() or line.startswith(("#", "@", "track", "browser")):
        return None
    fields = line.split("\t")
    if len(fields) < 3:
        raise ConfigurationError(f"{path}:{lineno}: expected at least 3 tab-separated columns")
    try:
        start = int(fields[1])
        end = int(fields[2])
    except ValueError as e:
        raise ConfigurationError(f"{path}:{lineno}: non-integer coordinate") from e
    if bed:
        # BED is 0-based half-open
        start += 1
    return Interval(fields[0], start, end)


def read_interval_file(path: str | Path) -> List[Interval]:
    """Read a BED file or a Picard-style ``.interval_list`` (1-based closed, ``@`` header)."""
    p = Path(path)
    name = p.name.lower()
    bed = not (name.endswith(".interval_list") or name.endswith(".intervals"))
    out: List[Interval] = []
    with open_textmaybe_gzip(p, "rt") as fh:
        for lineno, line in enumerate(fh, start=1):
            iv = _parse_line(line, bed=bed, path=p, lineno=lineno)
            if iv is not None:
                out.append(iv)
    return out


def load_intervals(paths: Sequence[str | Path]) -> IntervalSet:
    """Union of the intervals in ``paths``; raises ConfigurationError when empty."""
    intervals: List[Interval] = []
    for p in paths:
        intervals.extend(read_interval_file(p))
    if not intervals:
        raise ConfigurationError(f"No intervals found in: {[str(p) for p in paths]}")
    iset = IntervalSet(intervals)
    logger.info("Loaded %d intervals on %d contigs", len(iset), len(iset.contigs))
    return iset


def restrict_to_intervals(
    sites: Iterable[VariantSite],
    intervals: IntervalSet,
    *,
    contig_order: Optional[Sequence[str]] = None,
) -> Iterator[VariantSite]:
    """Yield only the sites whose reference span overlaps ``intervals``.

    With ``contig_order`` (the stream's own contig ordering), iteration stops once
    the stream has moved past the last interval, without reading the rest of it.
    Without it, or when an interval contig is missing from it, the whole stream
    is read.
    """
    rank: Dict[str, int] = {c: i for i, c in enumerate(contig_order)} if contig_order else {}
    if any(c not in rank for c in intervals.contigs):
        rank = {}
    last_rank = max((rank[c] for c in intervals.contigs), default=-1) if rank else -1

    for site in sites:
        if rank:
            site_rank = rank.get(site.contig)
            if site_rank is not None and site_rank > last_rank:
                logger.debug("Interval scope exhausted at %s:%d", site.contig, site.pos)
                return
            end = intervals.last_end(site.contig)
            if site_rank == last_rank and end is not None and site.pos > end:
                logger.debug("Interval scope exhausted at %s:%d", site.contig, site.pos)
                return
        if intervals.overlaps(site.contig, site.pos, site.end):
            yield site
