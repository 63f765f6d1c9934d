import math

import pytest

from gtconcord.counts import ConcordanceCounts, contingency_state, resolve_variant_type
from gtconcord.metrics import contingency_metrics, detail_metrics, summary_metrics
from gtconcord.states import CallState, ContingencyState, TruthState, VariantType
from gtconcord.utils import format_float

T = TruthState
C = CallState
SNP = VariantType.SNP
INDEL = VariantType.INDEL
MIXED = VariantType.MIXED


@pytest.mark.parametrize(
    "truth, call, expected",
    [
        (T.HOM_REF, C.HOM_REF, ContingencyState.TN),
        (T.HOM_REF, C.HET_REF_VAR1, ContingencyState.FP),
        (T.HOM_REF, C.MISSING, ContingencyState.TN),
        (T.HOM_REF, C.NO_CALL, ContingencyState.EMPTY),
        (T.HET_REF_VAR1, C.HOM_REF, ContingencyState.FN),
        (T.HET_REF_VAR1, C.HET_REF_VAR1, ContingencyState.TP),
        (T.HET_REF_VAR1, C.HET_REF_VAR2, ContingencyState.FP),
        (T.HET_REF_VAR1, C.HET_VAR1_VAR2, ContingencyState.FP),
        (T.HET_VAR1_VAR2, C.HOM_VAR1, ContingencyState.FN),
        (T.HOM_VAR1, C.HET_REF_VAR1, ContingencyState.TP),
        (T.HET_REF_VAR1, C.LOW_GQ, ContingencyState.FN),
        (T.HET_REF_VAR1, C.MISSING, ContingencyState.FN),
        (T.HET_REF_VAR1, C.IS_MIXED, ContingencyState.EMPTY),
        (T.MISSING, C.HET_REF_VAR1, ContingencyState.FP),
        (T.VC_FILTERED, C.HOM_VAR1, ContingencyState.FP),
        (T.MISSING, C.HOM_REF, ContingencyState.EMPTY),
        (T.NO_CALL, C.HET_REF_VAR1, ContingencyState.EMPTY),
        (T.IS_MIXED, C.HOM_REF, ContingencyState.EMPTY),
    ],
)
def test_contingency_scheme(truth, call, expected):
    assert contingency_state(truth, call) is expected


def test_every_cell_has_a_contingency_state():
    for t in TruthState:
        for c in CallState:
            assert isinstance(contingency_state(t, c), ContingencyState)


@pytest.mark.parametrize(
    "truth_type, call_type, expected",
    [
        (SNP, None, SNP),
        (None, INDEL, INDEL),
        (SNP, SNP, SNP),
        (MIXED, SNP, SNP),
        (INDEL, MIXED, INDEL),
        (SNP, INDEL, MIXED),
        (None, None, None),
    ],
)
def test_resolve_variant_type(truth_type, call_type, expected):
    assert resolve_variant_type(truth_type, call_type) is expected


def _example_counts():
    counts = ConcordanceCounts()
    counts.increment(SNP, T.HET_REF_VAR1, C.HET_REF_VAR1, 2)
    counts.increment(SNP, T.HOM_VAR1, C.HOM_VAR1)
    counts.increment(SNP, T.HET_REF_VAR1, C.MISSING)
    counts.increment(SNP, T.MISSING, C.HET_REF_VAR1)
    counts.increment(SNP, T.HOM_REF, C.HOM_REF, 2)
    counts.increment(SNP, T.HET_REF_VAR1, C.NO_CALL)
    counts.increment(INDEL, T.HOM_REF, C.HOM_REF)
    return counts


def test_matrix_totals_match_contingency_totals():
    counts = _example_counts()
    for vt in counts.variant_types_observed():
        assert counts.contingency(vt).total == counts.total(vt)
    assert counts.total() == 9
    assert counts.get_count(SNP, T.HET_REF_VAR1, C.HET_REF_VAR1) == 2


def test_contingency_counts():
    c = _example_counts().contingency(SNP)
    assert (c.tp, c.tn, c.fp, c.fn, c.empty) == (3, 2, 1, 1, 1)


def test_positive_counts():
    counts = _example_counts()
    assert counts.truth_positive_count(SNP) == 5
    assert counts.call_positive_count(SNP) == 4


def test_increment_rejects_negative():
    with pytest.raises(ValueError):
        ConcordanceCounts().increment(SNP, T.HOM_REF, C.HOM_REF, -1)


def test_merge_is_cellwise_and_commutative():
    a = ConcordanceCounts()
    a.increment(SNP, T.HOM_REF, C.HOM_REF)
    b = ConcordanceCounts()
    b.increment(SNP, T.HOM_REF, C.HOM_REF)
    b.increment(INDEL, T.HOM_VAR1, C.HOM_VAR1)

    assert a + b == b + a
    merged = ConcordanceCounts().merge(a).merge(b)
    assert merged == a + b
    assert merged.get_count(SNP, T.HOM_REF, C.HOM_REF) == 2
    assert merged.variant_types_observed() == [SNP, INDEL]


def test_summary_rates():
    [snp, indel] = summary_metrics(_example_counts(), truth_sample="t", call_sample="c")
    assert snp.variant_type == "SNP"
    assert snp.var_sensitivity == pytest.approx(3 / 4)
    assert snp.var_ppv == pytest.approx(3 / 4)
    assert snp.var_specificity == pytest.approx(2 / 3)
    assert snp.hom_var_sensitivity == pytest.approx(1.0)
    assert snp.het_sensitivity == pytest.approx(2 / 3)
    # comparable: 2 het/het, 1 hom/hom, 2 ref/ref
    assert snp.genotype_concordance == pytest.approx(1.0)
    assert snp.non_ref_genotype_concordance == pytest.approx(1.0)

    assert math.isnan(indel.var_sensitivity)
    assert math.isnan(indel.var_ppv)
    assert indel.var_specificity == pytest.approx(1.0)
    assert math.isnan(indel.non_ref_genotype_concordance)


def test_genotype_concordance_is_exact_genotype_match():
    counts = ConcordanceCounts()
    counts.increment(SNP, T.HET_REF_VAR1, C.HOM_VAR1)
    counts.increment(SNP, T.HOM_REF, C.HOM_REF)
    [m] = summary_metrics(counts, truth_sample="t", call_sample="c")
    assert m.genotype_concordance == pytest.approx(0.5)
    assert m.non_ref_genotype_concordance == pytest.approx(0.0)


def test_detail_rows():
    counts = _example_counts()
    rows = detail_metrics(counts, truth_sample="t", call_sample="c")
    assert len(rows) == 7
    assert rows[0].variant_type == "SNP"
    assert {r.contingency_value for r in rows} >= {"TP", "FN", "FP", "TN", "EMPTY"}

    all_rows = detail_metrics(counts, truth_sample="t", call_sample="c", output_all_rows=True)
    assert len(all_rows) == len(VariantType) * len(TruthState) * len(CallState)
    assert sum(r.count for r in all_rows) == counts.total()


def test_contingency_metrics_rows():
    rows = contingency_metrics(_example_counts(), truth_sample="t", call_sample="c")
    assert [(r.variant_type, r.tp_count, r.tn_count) for r in rows] == [("SNP", 3, 2), ("INDEL", 0, 1)]


def test_format_float():
    assert format_float(float("nan")) == "?"
    assert format_float(0.5) == "0.500000"
