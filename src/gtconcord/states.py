"""Closed state enumerations used as keys of the concordance matrix.

``TruthState`` and ``CallState`` describe one sample's genotype at one site.
Genotype-shaped states carry the ranks of the alleles they name (0 is the
reference, 1..4 are the distinct non-reference alleles of one comparison unit).
Every table over these enums is checked for completeness at import time.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Mapping, NamedTuple, Optional, Tuple, Type, TypeVar

E = TypeVar("E", bound=Enum)

RankPair = Tuple[int, int]


class VariantType(Enum):
    SNP = "SNP"
    INDEL = "INDEL"
    MIXED = "MIXED"


class Gate(Enum):
    """Outcomes of the classifier that are decided before allele identity is examined."""

    MISSING = "MISSING"
    VC_FILTERED = "VC_FILTERED"
    GT_FILTERED = "GT_FILTERED"
    LOW_GQ = "LOW_GQ"
    LOW_DP = "LOW_DP"
    NO_CALL = "NO_CALL"
    IS_MIXED = "IS_MIXED"


class Category(Enum):
    """Coarse grouping of states used by the contingency scheme."""

    REF = "REF"
    VAR = "VAR"
    ABSENT = "ABSENT"
    UNCOMPARABLE = "UNCOMPARABLE"


class ContingencyState(Enum):
    TP = "TP"
    TN = "TN"
    FP = "FP"
    FN = "FN"
    EMPTY = "EMPTY"


class TruthState(Enum):
    MISSING = "MISSING"
    HOM_REF = "HOM_REF"
    HET_REF_VAR1 = "HET_REF_VAR1"
    HET_VAR1_VAR2 = "HET_VAR1_VAR2"
    HOM_VAR1 = "HOM_VAR1"
    NO_CALL = "NO_CALL"
    LOW_GQ = "LOW_GQ"
    LOW_DP = "LOW_DP"
    VC_FILTERED = "VC_FILTERED"
    GT_FILTERED = "GT_FILTERED"
    IS_MIXED = "IS_MIXED"


class CallState(Enum):
    MISSING = "MISSING"
    HOM_REF = "HOM_REF"
    HET_REF_VAR1 = "HET_REF_VAR1"
    HET_REF_VAR2 = "HET_REF_VAR2"
    HET_REF_VAR3 = "HET_REF_VAR3"
    HET_VAR1_VAR2 = "HET_VAR1_VAR2"
    HET_VAR1_VAR3 = "HET_VAR1_VAR3"
    HET_VAR2_VAR3 = "HET_VAR2_VAR3"
    HET_VAR3_VAR4 = "HET_VAR3_VAR4"
    HOM_VAR1 = "HOM_VAR1"
    HOM_VAR2 = "HOM_VAR2"
    HOM_VAR3 = "HOM_VAR3"
    NO_CALL = "NO_CALL"
    LOW_GQ = "LOW_GQ"
    LOW_DP = "LOW_DP"
    VC_FILTERED = "VC_FILTERED"
    GT_FILTERED = "GT_FILTERED"
    IS_MIXED = "IS_MIXED"


class TruthAndCallStates(NamedTuple):
    truth_state: TruthState
    call_state: CallState


class Classification(NamedTuple):
    """Result of classifying one genotype: either a gate or a sorted rank pair."""

    gate: Optional[Gate] = None
    ranks: Optional[RankPair] = None


_TRUTH_BY_RANKS: Dict[RankPair, TruthState] = {
    (0, 0): TruthState.HOM_REF,
    (0, 1): TruthState.HET_REF_VAR1,
    (1, 2): TruthState.HET_VAR1_VAR2,
    (1, 1): TruthState.HOM_VAR1,
}

_CALL_BY_RANKS: Dict[RankPair, CallState] = {
    (0, 0): CallState.HOM_REF,
    (0, 1): CallState.HET_REF_VAR1,
    (0, 2): CallState.HET_REF_VAR2,
    (0, 3): CallState.HET_REF_VAR3,
    (1, 2): CallState.HET_VAR1_VAR2,
    (1, 3): CallState.HET_VAR1_VAR3,
    (2, 3): CallState.HET_VAR2_VAR3,
    (3, 4): CallState.HET_VAR3_VAR4,
    (1, 1): CallState.HOM_VAR1,
    (2, 2): CallState.HOM_VAR2,
    (3, 3): CallState.HOM_VAR3,
}

_GATE_CATEGORY: Dict[Gate, Category] = {
    Gate.MISSING: Category.ABSENT,
    Gate.VC_FILTERED: Category.ABSENT,
    Gate.GT_FILTERED: Category.ABSENT,
    Gate.LOW_GQ: Category.ABSENT,
    Gate.LOW_DP: Category.ABSENT,
    Gate.NO_CALL: Category.UNCOMPARABLE,
    Gate.IS_MIXED: Category.UNCOMPARABLE,
}


def _assert_exhaustive(enum_cls: Type[E], covered: Iterable[E]) -> None:
    missing = set(enum_cls) - set(covered)
    if missing:
        names = sorted(m.name for m in missing)
        raise AssertionError(f"{enum_cls.__name__} members without a mapping: {names}")


def _rank_table(by_ranks: Mapping[RankPair, E]) -> Dict[E, RankPair]:
    return {state: ranks for ranks, state in by_ranks.items()}


TRUTH_STATE_RANKS: Dict[TruthState, RankPair] = _rank_table(_TRUTH_BY_RANKS)
CALL_STATE_RANKS: Dict[CallState, RankPair] = _rank_table(_CALL_BY_RANKS)

_assert_exhaustive(
    TruthState, list(_TRUTH_BY_RANKS.values()) + [TruthState[g.name] for g in Gate]
)
_assert_exhaustive(CallState, list(_CALL_BY_RANKS.values()) + [CallState[g.name] for g in Gate])
_assert_exhaustive(Gate, _GATE_CATEGORY)


def truth_state_for(classification: Classification) -> TruthState:
    """Map a classification onto the truth state space.

    Rank pairs the truth state space cannot express resolve to ``IS_MIXED``.
    """
    if classification.gate is not None:
        return TruthState[classification.gate.name]
    assert classification.ranks is not None
    return _TRUTH_BY_RANKS.get(classification.ranks, TruthState.IS_MIXED)


def call_state_for(classification: Classification) -> CallState:
    """Map a classification onto the call state space (``IS_MIXED`` when unrepresentable)."""
    if classification.gate is not None:
        return CallState[classification.gate.name]
    assert classification.ranks is not None
    return _CALL_BY_RANKS.get(classification.ranks, CallState.IS_MIXED)


def state_category(state: Enum) -> Category:
    """Return the contingency category of a TruthState or CallState."""
    if isinstance(state, TruthState):
        ranks = TRUTH_STATE_RANKS.get(state)
    elif isinstance(state, CallState):
        ranks = CALL_STATE_RANKS.get(state)
    else:
        raise TypeError(f"Not a genotype state: {state!r}")
    if ranks is None:
        return _GATE_CATEGORY[Gate[state.name]]
    if ranks == (0, 0):
        return Category.REF
    return Category.VAR


def variant_ranks(state: Enum) -> frozenset:
    """Non-reference allele ranks named by a genotype-shaped state (empty otherwise)."""
    if isinstance(state, TruthState):
        ranks = TRUTH_STATE_RANKS.get(state, (0, 0))
    else:
        ranks = CALL_STATE_RANKS.get(state, (0, 0))
    return frozenset(r for r in ranks if r > 0)
