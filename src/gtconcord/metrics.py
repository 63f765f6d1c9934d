from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Tuple

from .counts import ConcordanceCounts, contingency_state
from .states import Category, ContingencyState, TruthState, VariantType, state_category
from .utils import safe_ratio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryMetrics:
    """Per-variant-type concordance rates. Undefined rates are NaN."""

    variant_type: str
    truth_sample: str
    call_sample: str
    het_sensitivity: float
    het_ppv: float
    het_specificity: float
    hom_var_sensitivity: float
    hom_var_ppv: float
    hom_var_specificity: float
    var_sensitivity: float
    var_ppv: float
    var_specificity: float
    genotype_concordance: float
    non_ref_genotype_concordance: float


@dataclass(frozen=True)
class DetailMetrics:
    variant_type: str
    truth_sample: str
    call_sample: str
    truth_state: str
    call_state: str
    count: int
    contingency_value: str


@dataclass(frozen=True)
class ContingencyMetrics:
    variant_type: str
    truth_sample: str
    call_sample: str
    tp_count: int
    tn_count: int
    fp_count: int
    fn_count: int
    empty_count: int


_HET_TRUTH = frozenset({TruthState.HET_REF_VAR1, TruthState.HET_VAR1_VAR2})
_HOM_VAR_TRUTH = frozenset({TruthState.HOM_VAR1})
_VAR_TRUTH = _HET_TRUTH | _HOM_VAR_TRUTH


def _rates(
    counts: ConcordanceCounts,
    variant_type: VariantType,
    truth_states: FrozenSet[TruthState],
) -> Tuple[float, float, float]:
    """(sensitivity, ppv, specificity) with truth-variant rows limited to ``truth_states``.

    Rows with a reference or absent truth always contribute their FP/TN counts.
    """
    tallies = {s: 0 for s in ContingencyState}
    for truth_state, call_state, n in counts.iter_nonzero(variant_type):
        if state_category(truth_state) is Category.VAR and truth_state not in truth_states:
            continue
        tallies[contingency_state(truth_state, call_state)] += n
    tp = tallies[ContingencyState.TP]
    tn = tallies[ContingencyState.TN]
    fp = tallies[ContingencyState.FP]
    fn = tallies[ContingencyState.FN]
    return safe_ratio(tp, tp + fn), safe_ratio(tp, tp + fp), safe_ratio(tn, tn + fp)


def summary_metrics(
    counts: ConcordanceCounts,
    *,
    truth_sample: str,
    call_sample: str,
) -> List[SummaryMetrics]:
    """One summary row per observed variant type.

    Sensitivity is TP/(TP+FN), PPV is TP/(TP+FP), specificity is TN/(TN+FP).
    The ``het_`` and ``hom_var_`` rates restrict the truth-variant rows to
    heterozygous or homozygous-variant truth genotypes.
    """
    out: List[SummaryMetrics] = []
    for vt in counts.variant_types_observed():
        het = _rates(counts, vt, _HET_TRUTH)
        hom = _rates(counts, vt, _HOM_VAR_TRUTH)
        var = _rates(counts, vt, _VAR_TRUTH)
        agreeing, comparable = counts.genotype_concordance_counts(vt)
        nr_agreeing, nr_comparable = counts.genotype_concordance_counts(vt, non_ref_only=True)
        out.append(
            SummaryMetrics(
                variant_type=vt.value,
                truth_sample=truth_sample,
                call_sample=call_sample,
                het_sensitivity=het[0],
                het_ppv=het[1],
                het_specificity=het[2],
                hom_var_sensitivity=hom[0],
                hom_var_ppv=hom[1],
                hom_var_specificity=hom[2],
                var_sensitivity=var[0],
                var_ppv=var[1],
                var_specificity=var[2],
                genotype_concordance=safe_ratio(agreeing, comparable),
                non_ref_genotype_concordance=safe_ratio(nr_agreeing, nr_comparable),
            )
        )
    return out


def detail_metrics(
    counts: ConcordanceCounts,
    *,
    truth_sample: str,
    call_sample: str,
    output_all_rows: bool = False,
) -> List[DetailMetrics]:
    """One row per (variant type, truth state, call state) cell.

    Zero cells are omitted unless ``output_all_rows``; with it every variant type
    gets the full grid.
    """
    types = list(VariantType) if output_all_rows else counts.variant_types_observed()
    out: List[DetailMetrics] = []
    for vt in types:
        cells = counts.iter_cells(vt) if output_all_rows else counts.iter_nonzero(vt)
        for truth_state, call_state, n in cells:
            out.append(
                DetailMetrics(
                    variant_type=vt.value,
                    truth_sample=truth_sample,
                    call_sample=call_sample,
                    truth_state=truth_state.name,
                    call_state=call_state.name,
                    count=n,
                    contingency_value=contingency_state(truth_state, call_state).value,
                )
            )
    return out


def contingency_metrics(
    counts: ConcordanceCounts,
    *,
    truth_sample: str,
    call_sample: str,
) -> List[ContingencyMetrics]:
    out: List[ContingencyMetrics] = []
    for vt in counts.variant_types_observed():
        c = counts.contingency(vt)
        out.append(
            ContingencyMetrics(
                variant_type=vt.value,
                truth_sample=truth_sample,
                call_sample=call_sample,
                tp_count=c.tp,
                tn_count=c.tn,
                fp_count=c.fp,
                fn_count=c.fn,
                empty_count=c.empty,
            )
        )
    return out
