"""Allele typing and truth/call allele normalization.

Two records can describe the same event with different reference padding, e.g. a
deletion written as ``AT -> A`` in one file and ``ATT -> AT`` in another. Before
alleles are compared, the shorter reference is extended with the suffix of the
longer one and every called allele on that side receives the same suffix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .errors import AlleleNormalizationError
from .models import SPANNING_DELETION, VariantSite
from .states import VariantType

logger = logging.getLogger(__name__)

AllelePair = Tuple[Optional[str], Optional[str]]


@dataclass(frozen=True)
class NormalizedAlleles:
    """Truth and call genotype alleles expressed against a common reference allele.

    ``ref`` is the canonical reference shared by both sides, or the reference of
    whichever side is present. Alleles are ``None`` for no-calls.
    """

    ref: Optional[str]
    truth_allele1: Optional[str]
    truth_allele2: Optional[str]
    call_allele1: Optional[str]
    call_allele2: Optional[str]

    @property
    def truth_alleles(self) -> AllelePair:
        return self.truth_allele1, self.truth_allele2

    @property
    def call_alleles(self) -> AllelePair:
        return self.call_allele1, self.call_allele2

    def swapped(self) -> "NormalizedAlleles":
        return NormalizedAlleles(
            ref=self.ref,
            truth_allele1=self.call_allele1,
            truth_allele2=self.call_allele2,
            call_allele1=self.truth_allele1,
            call_allele2=self.truth_allele2,
        )


def is_spanning_allele(allele: Optional[str]) -> bool:
    return allele == SPANNING_DELETION


def is_symbolic_allele(allele: Optional[str]) -> bool:
    """True for alleles that are not base strings (``<DEL>``, breakends, ``*``, ``.``)."""
    if allele is None:
        return False
    if allele in (SPANNING_DELETION, "."):
        return True
    return allele.startswith("<") or "[" in allele or "]" in allele


def allele_type(ref: str, allele: str) -> Optional[VariantType]:
    """Type of a single alternate allele relative to ``ref``.

    Equal-length alleles are substitutions and typed SNP; length changes are INDEL.
    Returns None for the reference itself and for symbolic alleles.
    """
    if allele == ref or is_symbolic_allele(allele):
        return None
    if len(allele) == len(ref):
        return VariantType.SNP
    return VariantType.INDEL


def combine_types(types: Iterable[Optional[VariantType]]) -> Optional[VariantType]:
    seen = {t for t in types if t is not None}
    if not seen:
        return None
    if len(seen) == 1:
        return seen.pop()
    return VariantType.MIXED


def variant_type(ref: str, alts: Iterable[str]) -> Optional[VariantType]:
    """Site type from its reference and alternate alleles; None when there is no variation."""
    return combine_types(allele_type(ref, alt) for alt in alts)


def _suffix(long_ref: str, short_ref: str, truth: VariantSite, call: VariantSite) -> str:
    if not long_ref.startswith(short_ref):
        raise AlleleNormalizationError(
            f"Reference alleles disagree between truth {truth.label()} and call {call.label()}",
            contig=truth.contig,
            pos=truth.pos,
        )
    return long_ref[len(short_ref) :]


def _pad(alleles: AllelePair, suffix: str) -> AllelePair:
    if not suffix:
        return alleles
    return tuple(  # type: ignore[return-value]
        a if a is None or is_symbolic_allele(a) else a + suffix for a in alleles
    )


def _canonical_order(alleles: AllelePair, ref: Optional[str]) -> AllelePair:
    """Order a pair reference-first, then by allele string, with no-calls last."""

    def key(a: Optional[str]) -> Tuple[int, str]:
        if a is None:
            return 2, ""
        return (0 if a == ref else 1), a

    a1, a2 = sorted(alleles, key=key)
    return a1, a2


def _genotype_pair(site: Optional[VariantSite]) -> AllelePair:
    if site is None or site.genotype is None:
        return None, None
    return site.genotype.diploid()


def normalize_alleles(
    truth: Optional[VariantSite],
    call: Optional[VariantSite],
) -> NormalizedAlleles:
    """Express truth and call genotype alleles against a common reference.

    Whenever both sites are present their references are reconciled, whatever
    their filter or genotype quality.

    Raises
    ------
    AlleleNormalizationError
        When both sites are present and neither reference allele is a prefix of
        the other.
    """
    truth_alleles = _genotype_pair(truth)
    call_alleles = _genotype_pair(call)

    ref: Optional[str] = None
    if truth is not None and call is not None:
        truth_ref, call_ref = truth.ref, call.ref
        if truth_ref == call_ref:
            ref = truth_ref
        elif len(truth_ref) < len(call_ref):
            suffix = _suffix(call_ref, truth_ref, truth, call)
            truth_alleles = _pad(truth_alleles, suffix)
            ref = call_ref
        elif len(call_ref) < len(truth_ref):
            suffix = _suffix(truth_ref, call_ref, truth, call)
            call_alleles = _pad(call_alleles, suffix)
            ref = truth_ref
        else:
            raise AlleleNormalizationError(
                f"Reference alleles disagree between truth {truth.label()} and call {call.label()}",
                contig=truth.contig,
                pos=truth.pos,
            )
    elif truth is not None:
        ref = truth.ref
    elif call is not None:
        ref = call.ref

    truth_alleles = _canonical_order(truth_alleles, ref)
    call_alleles = _canonical_order(call_alleles, ref)

    return NormalizedAlleles(
        ref=ref,
        truth_allele1=truth_alleles[0],
        truth_allele2=truth_alleles[1],
        call_allele1=call_alleles[0],
        call_allele2=call_alleles[1],
    )
