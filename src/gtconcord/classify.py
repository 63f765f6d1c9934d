"""Genotype state classification.

The order of the checks in :func:`classify` is part of its contract:

1. no record -> MISSING
2. site FILTER -> VC_FILTERED
3. genotype FILTER -> GT_FILTERED
4. GQ below threshold -> LOW_GQ
5. DP below threshold -> LOW_DP
6. any no-call allele -> NO_CALL
7. SNP-type and indel-type alleles in one genotype -> IS_MIXED
8. allele pattern (HOM_REF, HET_REF_VARn, HOM_VARn, HET_VARi_VARj)

Allele ranks are scoped to a single comparison unit (one truth/call site pair).
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .alleles import AllelePair, NormalizedAlleles, allele_type, combine_types, normalize_alleles
from .models import VariantSite
from .states import (
    CallState,
    Classification,
    Gate,
    TruthAndCallStates,
    TruthState,
    VariantType,
    call_state_for,
    truth_state_for,
)

logger = logging.getLogger(__name__)

MAX_VARIANT_RANK = 4


def _gate(
    alleles: AllelePair,
    *,
    present: bool,
    site_filter_passed: bool,
    genotype_filter_passed: bool,
    gq: Optional[int],
    dp: Optional[int],
    min_gq: int,
    min_dp: int,
) -> Optional[Gate]:
    if not present:
        return Gate.MISSING
    if not site_filter_passed:
        return Gate.VC_FILTERED
    if not genotype_filter_passed:
        return Gate.GT_FILTERED
    if gq is not None and gq < min_gq:
        return Gate.LOW_GQ
    if dp is not None and dp < min_dp:
        return Gate.LOW_DP
    if alleles[0] is None or alleles[1] is None:
        return Gate.NO_CALL
    return None


def classify(
    alleles: AllelePair,
    *,
    present: bool = True,
    site_filter_passed: bool = True,
    genotype_filter_passed: bool = True,
    gq: Optional[int] = None,
    dp: Optional[int] = None,
    min_gq: int = 0,
    min_dp: int = 0,
    ref: Optional[str] = None,
    ranks: Optional[Mapping[str, int]] = None,
) -> Classification:
    """Classify one diploid genotype.

    Parameters
    ----------
    alleles:
        The genotype's two alleles (``None`` for a no-call allele), already
        normalized against ``ref``.
    ref:
        Reference allele the alleles are expressed against.
    ranks:
        Allele -> rank map for the comparison unit; the reference is rank 0 and
        need not be present. Built with :func:`allele_ranks` when omitted.

    Returns
    -------
    Classification
        Either a gate (MISSING, VC_FILTERED, ..., IS_MIXED) or a sorted rank pair.
    """
    gate = _gate(
        alleles,
        present=present,
        site_filter_passed=site_filter_passed,
        genotype_filter_passed=genotype_filter_passed,
        gq=gq,
        dp=dp,
        min_gq=min_gq,
        min_dp=min_dp,
    )
    if gate is not None:
        return Classification(gate=gate)

    a1, a2 = alleles
    assert a1 is not None and a2 is not None
    if ref is None:
        raise ValueError("ref is required to classify a called genotype")

    if _is_mixed(ref, (a1, a2)):
        return Classification(gate=Gate.IS_MIXED)

    if ranks is None:
        ranks = allele_ranks(ref, (a1, a2))

    r1 = 0 if a1 == ref else ranks.get(a1)
    r2 = 0 if a2 == ref else ranks.get(a2)
    if r1 is None or r2 is None or max(r1, r2) > MAX_VARIANT_RANK:
        return Classification(gate=Gate.IS_MIXED)
    lo, hi = sorted((r1, r2))
    return Classification(ranks=(lo, hi))


def _is_mixed(ref: str, alleles: Iterable[str]) -> bool:
    return combine_types(allele_type(ref, a) for a in alleles) is VariantType.MIXED


def allele_ranks(
    ref: str,
    truth_alleles: Iterable[Optional[str]],
    call_alleles: Iterable[Optional[str]] = (),
) -> Dict[str, int]:
    """Number the distinct non-reference alleles of one comparison unit.

    Truth alleles come first, those also present in the call genotype ahead of
    truth-only ones; call-only alleles follow. Ties are broken by allele string,
    so the numbering does not depend on the order alleles are written in a
    genotype.
    """
    truth_set = {a for a in truth_alleles if a is not None and a != ref}
    call_set = {a for a in call_alleles if a is not None and a != ref}

    ordered: List[str] = sorted(truth_set & call_set)
    ordered += sorted(truth_set - call_set)
    ordered += sorted(call_set - truth_set)
    return {allele: i + 1 for i, allele in enumerate(ordered)}


def _site_gate(
    site: Optional[VariantSite],
    alleles: AllelePair,
    *,
    min_gq: int,
    min_dp: int,
    ignore_filter_status: bool,
) -> Optional[Gate]:
    genotype = site.genotype if site is not None else None
    return _gate(
        alleles,
        present=site is not None,
        site_filter_passed=ignore_filter_status or (site is not None and site.passed_filters),
        genotype_filter_passed=ignore_filter_status or genotype is None or genotype.passed_filters,
        gq=genotype.gq if genotype is not None else None,
        dp=genotype.dp if genotype is not None else None,
        min_gq=min_gq,
        min_dp=min_dp,
    )


def _raw_pair(site: Optional[VariantSite]) -> AllelePair:
    if site is None or site.genotype is None:
        return None, None
    return site.genotype.diploid()


def determine_state(
    truth: Optional[VariantSite],
    call: Optional[VariantSite],
    *,
    min_gq: int = 0,
    min_dp: int = 0,
    ignore_filter_status: bool = False,
) -> Tuple[TruthAndCallStates, NormalizedAlleles]:
    """Classify the truth and call genotypes of one comparison unit.

    Both sides are expressed against one reference allele before either is
    classified, so gated sides are checked for consistency too.

    Raises
    ------
    AlleleNormalizationError
        When both sites are present and their reference alleles cannot be reconciled.
    """
    truth_gate = _site_gate(
        truth, _raw_pair(truth), min_gq=min_gq, min_dp=min_dp, ignore_filter_status=ignore_filter_status
    )
    call_gate = _site_gate(
        call, _raw_pair(call), min_gq=min_gq, min_dp=min_dp, ignore_filter_status=ignore_filter_status
    )

    alleles = normalize_alleles(truth, call)
    ref = alleles.ref

    # mixed genotypes take no part in numbering the other side's alleles
    truth_pair: AllelePair = (None, None)
    call_pair: AllelePair = (None, None)
    if truth_gate is None and not _is_mixed(ref, alleles.truth_alleles):
        truth_pair = alleles.truth_alleles
    if call_gate is None and not _is_mixed(ref, alleles.call_alleles):
        call_pair = alleles.call_alleles
    ranks = allele_ranks(ref, truth_pair, call_pair) if ref is not None else {}

    if truth_gate is not None:
        truth_class = Classification(gate=truth_gate)
    else:
        truth_class = classify(alleles.truth_alleles, ref=ref, ranks=ranks)

    if call_gate is not None:
        call_class = Classification(gate=call_gate)
    else:
        call_class = classify(alleles.call_alleles, ref=ref, ranks=ranks)

    states = TruthAndCallStates(truth_state_for(truth_class), call_state_for(call_class))
    logger.debug(
        "%s vs %s -> %s/%s",
        truth.label() if truth is not None else "-",
        call.label() if call is not None else "-",
        states.truth_state.name,
        states.call_state.name,
    )
    return states, alleles


def classify_truth(site: Optional[VariantSite], **kwargs) -> TruthState:
    """Truth state of a site considered on its own."""
    return determine_state(site, None, **kwargs)[0].truth_state


def classify_call(site: Optional[VariantSite], **kwargs) -> CallState:
    """Call state of a site considered on its own."""
    return determine_state(None, site, **kwargs)[0].call_state
