"""Lock-step merge of a truth and a call variant stream.

Both streams must be sorted by (contig, position). The walker keeps one
look-ahead record per stream and emits a :class:`ComparisonUnit` per position:
paired when both streams have a record there, one-sided otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple

from .alleles import is_spanning_allele
from .errors import StreamOrderError
from .intervals import IntervalSet
from .models import Genotype, VariantSite

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonUnit:
    """Truth and call records describing the same position; either may be None."""

    truth: Optional[VariantSite]
    call: Optional[VariantSite]

    @property
    def site(self) -> VariantSite:
        s = self.truth if self.truth is not None else self.call
        assert s is not None
        return s

    @property
    def contig(self) -> str:
        return self.site.contig

    @property
    def pos(self) -> int:
        return self.site.pos

    @property
    def is_paired(self) -> bool:
        return self.truth is not None and self.call is not None


@dataclass
class WalkerStats:
    truth_records: int = 0
    call_records: int = 0
    paired: int = 0
    truth_only: int = 0
    call_only: int = 0
    spanning_skipped: int = 0
    synthesized_hom_ref: int = 0
    normalization_failures: int = 0
    unclassified: int = 0

    def as_dict(self) -> Dict[str, int]:
        return dict(self.__dict__)


class _ContigOrder:
    """Contig ranks shared by both streams; unknown contigs are appended as first seen."""

    def __init__(self, contigs: Optional[Sequence[str]] = None) -> None:
        self._rank: Dict[str, int] = {}
        for c in contigs or ():
            self._rank.setdefault(c, len(self._rank))

    def rank(self, contig: str) -> int:
        if contig not in self._rank:
            self._rank[contig] = len(self._rank)
        return self._rank[contig]


class _Stream:
    def __init__(self, sites: Iterable[VariantSite], name: str, order: _ContigOrder) -> None:
        self._it = iter(sites)
        self.name = name
        self._order = order
        self._head: Optional[VariantSite] = None
        self._done = False
        self._last_key: Optional[Tuple[int, int]] = None
        self.count = 0
        # (contig, start, end) of the record reaching furthest on the current contig
        self.span: Optional[Tuple[str, int, int]] = None

    def key(self, site: VariantSite) -> Tuple[int, int]:
        return self._order.rank(site.contig), site.pos

    def peek(self) -> Optional[VariantSite]:
        if self._head is None and not self._done:
            try:
                self._head = next(self._it)
            except StopIteration:
                self._done = True
        return self._head

    def pop(self) -> VariantSite:
        site = self.peek()
        assert site is not None
        self._head = None

        key = self.key(site)
        if self._last_key is not None and key < self._last_key:
            raise StreamOrderError(
                f"{self.name} stream is not sorted: {site.contig}:{site.pos} follows an earlier record "
                "at a later position (sort the VCF, e.g. bcftools sort)"
            )
        self._last_key = key
        self.count += 1

        if self.span is None or self.span[0] != site.contig:
            self.span = None
        if len(site.ref) > 1 and (self.span is None or site.end > self.span[2]):
            self.span = (site.contig, site.pos, site.end)
        return site


def _covers(span: Optional[Tuple[str, int, int]], site: VariantSite) -> bool:
    if span is None:
        return False
    contig, start, end = span
    return contig == site.contig and start < site.pos <= end


def _carries_spanning_allele(site: Optional[VariantSite]) -> bool:
    if site is None or site.genotype is None:
        return False
    return any(is_spanning_allele(a) for a in site.genotype.alleles)


def walk(
    truth_sites: Iterable[VariantSite],
    call_sites: Iterable[VariantSite],
    *,
    contig_order: Optional[Sequence[str]] = None,
    stats: Optional[WalkerStats] = None,
) -> Iterator[ComparisonUnit]:
    """Merge two ordered site streams into comparison units.

    A one-sided record that falls inside a multi-base reference span of the
    other stream's previous record, or any unit whose genotypes carry the
    spanning-deletion allele ``*``, is skipped without being emitted.

    Raises
    ------
    StreamOrderError
        When either stream goes backwards.
    """
    if stats is None:
        stats = WalkerStats()
    order = _ContigOrder(contig_order)
    truth = _Stream(truth_sites, "truth", order)
    call = _Stream(call_sites, "call", order)

    try:
        while True:
            t = truth.peek()
            c = call.peek()
            if t is None and c is None:
                break

            if c is None or (t is not None and truth.key(t) < call.key(c)):
                site = truth.pop()
                if _covers(call.span, site) or _carries_spanning_allele(site):
                    stats.spanning_skipped += 1
                    logger.debug("Skipping truth record inside a call-side deletion: %s", site.label())
                    continue
                stats.truth_only += 1
                yield ComparisonUnit(truth=site, call=None)

            elif t is None or call.key(c) < truth.key(t):
                site = call.pop()
                if _covers(truth.span, site) or _carries_spanning_allele(site):
                    stats.spanning_skipped += 1
                    logger.debug("Skipping call record inside a truth-side deletion: %s", site.label())
                    continue
                stats.call_only += 1
                yield ComparisonUnit(truth=None, call=site)

            else:
                tsite = truth.pop()
                csite = call.pop()
                if _carries_spanning_allele(tsite) or _carries_spanning_allele(csite):
                    stats.spanning_skipped += 1
                    logger.debug("Skipping spanning-deletion record pair at %s:%d", tsite.contig, tsite.pos)
                    continue
                stats.paired += 1
                yield ComparisonUnit(truth=tsite, call=csite)
    finally:
        stats.truth_records = truth.count
        stats.call_records = call.count


def synthesize_hom_ref(call_site: VariantSite) -> VariantSite:
    """A truth record at the call site's position with the call's alleles and a 0/0 genotype."""
    return replace(
        call_site,
        filters=(),
        genotype=Genotype(alleles=(call_site.ref, call_site.ref)),
        qual=None,
        id=None,
        synthetic=True,
    )


def missing_sites_as_hom_ref(
    units: Iterable[ComparisonUnit],
    scope: IntervalSet,
    *,
    stats: Optional[WalkerStats] = None,
) -> Iterator[ComparisonUnit]:
    """Fill in a homozygous-reference truth record for in-scope call-only units."""
    for unit in units:
        call = unit.call
        if unit.truth is None and call is not None and scope.overlaps(call.contig, call.pos, call.end):
            if stats is not None:
                stats.synthesized_hom_ref += 1
            yield ComparisonUnit(truth=synthesize_hom_ref(unit.call), call=unit.call)
        else:
            yield unit
