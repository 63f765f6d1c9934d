from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from .states import (
    CallState,
    Category,
    ContingencyState,
    TruthAndCallStates,
    TruthState,
    VariantType,
    state_category,
    variant_ranks,
)

logger = logging.getLogger(__name__)

_VARIANT_TYPES: List[VariantType] = list(VariantType)
_TRUTH_STATES: List[TruthState] = list(TruthState)
_CALL_STATES: List[CallState] = list(CallState)

_VT_INDEX: Dict[VariantType, int] = {v: i for i, v in enumerate(_VARIANT_TYPES)}
_TRUTH_INDEX: Dict[TruthState, int] = {s: i for i, s in enumerate(_TRUTH_STATES)}
_CALL_INDEX: Dict[CallState, int] = {s: i for i, s in enumerate(_CALL_STATES)}

_SCHEME: Dict[Tuple[Category, Category], ContingencyState] = {
    (Category.REF, Category.REF): ContingencyState.TN,
    (Category.REF, Category.VAR): ContingencyState.FP,
    (Category.REF, Category.ABSENT): ContingencyState.TN,
    (Category.REF, Category.UNCOMPARABLE): ContingencyState.EMPTY,
    (Category.VAR, Category.REF): ContingencyState.FN,
    (Category.VAR, Category.ABSENT): ContingencyState.FN,
    (Category.VAR, Category.UNCOMPARABLE): ContingencyState.EMPTY,
    (Category.ABSENT, Category.REF): ContingencyState.EMPTY,
    (Category.ABSENT, Category.VAR): ContingencyState.FP,
    (Category.ABSENT, Category.ABSENT): ContingencyState.EMPTY,
    (Category.ABSENT, Category.UNCOMPARABLE): ContingencyState.EMPTY,
    (Category.UNCOMPARABLE, Category.REF): ContingencyState.EMPTY,
    (Category.UNCOMPARABLE, Category.VAR): ContingencyState.EMPTY,
    (Category.UNCOMPARABLE, Category.ABSENT): ContingencyState.EMPTY,
    (Category.UNCOMPARABLE, Category.UNCOMPARABLE): ContingencyState.EMPTY,
}


def contingency_state(truth_state: TruthState, call_state: CallState) -> ContingencyState:
    """Contingency outcome of one (truth, call) cell.

    When both sides are variant, the call is a TP if it names exactly the truth's
    variant alleles, an FP if it names any allele the truth does not, and an FN
    if it names only part of them.
    """
    truth_cat = state_category(truth_state)
    call_cat = state_category(call_state)
    if truth_cat is Category.VAR and call_cat is Category.VAR:
        truth_ranks = variant_ranks(truth_state)
        call_ranks = variant_ranks(call_state)
        if call_ranks == truth_ranks:
            return ContingencyState.TP
        if call_ranks - truth_ranks:
            return ContingencyState.FP
        return ContingencyState.FN
    return _SCHEME[(truth_cat, call_cat)]


def resolve_variant_type(
    truth_type: Optional[VariantType],
    call_type: Optional[VariantType],
) -> Optional[VariantType]:
    """Pick the matrix bucket for a unit from the truth and call site types."""
    if truth_type is None:
        return call_type
    if call_type is None or call_type is truth_type:
        return truth_type
    if truth_type is VariantType.MIXED:
        return call_type
    if call_type is VariantType.MIXED:
        return truth_type
    return VariantType.MIXED


@dataclass(frozen=True)
class ContingencyCounts:
    tp: int = 0
    tn: int = 0
    fp: int = 0
    fn: int = 0
    empty: int = 0

    @property
    def total(self) -> int:
        return self.tp + self.tn + self.fp + self.fn + self.empty


class ConcordanceCounts:
    """Count matrix keyed by (variant type, truth state, call state).

    Counts only grow. Partial matrices built over disjoint parts of the genome
    can be combined with :meth:`merge` or ``+``.
    """

    def __init__(self) -> None:
        self._counts = np.zeros(
            (len(_VARIANT_TYPES), len(_TRUTH_STATES), len(_CALL_STATES)), dtype=np.int64
        )

    def increment(
        self,
        variant_type: VariantType,
        truth_state: TruthState,
        call_state: CallState,
        n: int = 1,
    ) -> None:
        if n < 0:
            raise ValueError("counts can only be incremented")
        self._counts[_VT_INDEX[variant_type], _TRUTH_INDEX[truth_state], _CALL_INDEX[call_state]] += n

    def increment_states(self, variant_type: VariantType, states: TruthAndCallStates) -> None:
        self.increment(variant_type, states.truth_state, states.call_state)

    def get_count(self, variant_type: VariantType, truth_state: TruthState, call_state: CallState) -> int:
        return int(
            self._counts[_VT_INDEX[variant_type], _TRUTH_INDEX[truth_state], _CALL_INDEX[call_state]]
        )

    def merge(self, other: "ConcordanceCounts") -> "ConcordanceCounts":
        """Add another matrix into this one, cell by cell; returns self."""
        self._counts += other._counts
        return self

    def __add__(self, other: "ConcordanceCounts") -> "ConcordanceCounts":
        out = ConcordanceCounts()
        out._counts = self._counts + other._counts
        return out

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConcordanceCounts):
            return NotImplemented
        return bool(np.array_equal(self._counts, other._counts))

    def total(self, variant_type: Optional[VariantType] = None) -> int:
        if variant_type is None:
            return int(self._counts.sum())
        return int(self._counts[_VT_INDEX[variant_type]].sum())

    def variant_types_observed(self) -> List[VariantType]:
        return [vt for vt in _VARIANT_TYPES if self.total(vt) > 0]

    def iter_cells(self, variant_type: VariantType) -> Iterator[Tuple[TruthState, CallState, int]]:
        """All cells of one variant type in enum order, zeros included."""
        plane = self._counts[_VT_INDEX[variant_type]]
        for ti, truth_state in enumerate(_TRUTH_STATES):
            for ci, call_state in enumerate(_CALL_STATES):
                yield truth_state, call_state, int(plane[ti, ci])

    def iter_nonzero(self, variant_type: VariantType) -> Iterator[Tuple[TruthState, CallState, int]]:
        for truth_state, call_state, count in self.iter_cells(variant_type):
            if count > 0:
                yield truth_state, call_state, count

    def truth_positive_count(self, variant_type: VariantType) -> int:
        """Positions where the truth genotype is non-reference."""
        return sum(
            count
            for truth_state, _, count in self.iter_nonzero(variant_type)
            if state_category(truth_state) is Category.VAR
        )

    def call_positive_count(self, variant_type: VariantType) -> int:
        """Positions where the call genotype is non-reference."""
        return sum(
            count
            for _, call_state, count in self.iter_nonzero(variant_type)
            if state_category(call_state) is Category.VAR
        )

    def contingency(self, variant_type: VariantType) -> ContingencyCounts:
        tallies = {s: 0 for s in ContingencyState}
        for truth_state, call_state, count in self.iter_nonzero(variant_type):
            tallies[contingency_state(truth_state, call_state)] += count
        return ContingencyCounts(
            tp=tallies[ContingencyState.TP],
            tn=tallies[ContingencyState.TN],
            fp=tallies[ContingencyState.FP],
            fn=tallies[ContingencyState.FN],
            empty=tallies[ContingencyState.EMPTY],
        )

    def genotype_concordance_counts(
        self, variant_type: VariantType, *, non_ref_only: bool = False
    ) -> Tuple[int, int]:
        """Return (agreeing, comparable) genotype counts.

        Comparable cells have a called genotype on both sides (REF or VAR).
        Agreeing cells have identically named truth and call states. With
        ``non_ref_only`` cells where both sides are HOM_REF are left out.
        """
        agreeing = 0
        comparable = 0
        for truth_state, call_state, count in self.iter_nonzero(variant_type):
            truth_cat = state_category(truth_state)
            call_cat = state_category(call_state)
            if truth_cat not in (Category.REF, Category.VAR) or call_cat not in (Category.REF, Category.VAR):
                continue
            if non_ref_only and truth_cat is Category.REF and call_cat is Category.REF:
                continue
            comparable += count
            if truth_state.name == call_state.name:
                agreeing += count
        return agreeing, comparable
