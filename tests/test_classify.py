import pytest

from gtconcord.classify import allele_ranks, classify, classify_call, classify_truth, determine_state
from gtconcord.errors import AlleleNormalizationError
from gtconcord.models import Genotype, VariantSite
from gtconcord.states import CallState, Classification, Gate, TruthState, call_state_for


def site(
    pos=100,
    ref="A",
    alts=("C",),
    gt=("A", "C"),
    filters=(),
    ft=(),
    gq=None,
    dp=None,
    contig="chr1",
):
    return VariantSite(
        contig=contig,
        pos=pos,
        ref=ref,
        alts=tuple(alts),
        filters=tuple(filters),
        genotype=Genotype(alleles=tuple(gt), filters=tuple(ft), gq=gq, dp=dp),
    )


def test_hom_ref_vs_hom_ref():
    states, _ = determine_state(site(gt=("A", "A")), site(gt=("A", "A")))
    assert states == (TruthState.HOM_REF, CallState.HOM_REF)


def test_distinct_alternates_are_ranked_separately():
    truth = site(alts=("C",), gt=("A", "C"))
    call = site(alts=("G",), gt=("A", "G"))
    states, _ = determine_state(truth, call)
    assert states.truth_state is TruthState.HET_REF_VAR1
    assert states.call_state is CallState.HET_REF_VAR2


def test_low_dp_wins_over_allele_content():
    truth = site(gt=(None, None), dp=2)
    assert classify_truth(truth, min_dp=20) is TruthState.LOW_DP
    assert classify_truth(site(dp=2), min_dp=20) is TruthState.LOW_DP


def test_call_only_alleles_follow_truth_alleles():
    truth = site(alts=("C",), gt=("A", "C"))
    call = site(alts=("G", "T"), gt=("G", "T"))
    states, _ = determine_state(truth, call)
    assert states == (TruthState.HET_REF_VAR1, CallState.HET_VAR2_VAR3)


def test_ranks_do_not_depend_on_genotype_order():
    truth = site(alts=("C",), gt=("C", "A"))
    call = site(alts=("T", "G"), gt=("T", "G"))
    states, _ = determine_state(truth, call)
    assert states == (TruthState.HET_REF_VAR1, CallState.HET_VAR2_VAR3)


def test_shared_alleles_rank_first():
    truth = site(alts=("C", "G"), gt=("C", "G"))
    call = site(alts=("G",), gt=("G", "G"))
    states, _ = determine_state(truth, call)
    assert states == (TruthState.HET_VAR1_VAR2, CallState.HOM_VAR1)


def test_allele_ranks():
    ranks = allele_ranks("A", ("C", "T"), ("T", "G"))
    assert ranks == {"T": 1, "C": 2, "G": 3}


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        (dict(present=False, site_filter_passed=False, gq=1, min_gq=10), Gate.MISSING),
        (dict(site_filter_passed=False, genotype_filter_passed=False), Gate.VC_FILTERED),
        (dict(genotype_filter_passed=False, gq=1, min_gq=10), Gate.GT_FILTERED),
        (dict(gq=1, min_gq=10, dp=1, min_dp=10), Gate.LOW_GQ),
        (dict(gq=10, min_gq=10, dp=1, min_dp=10), Gate.LOW_DP),
    ],
)
def test_gate_priority(kwargs, expected):
    assert classify((None, "C"), ref="A", **kwargs) == Classification(gate=expected)


def test_no_call_before_mixed():
    assert classify((None, "AT"), ref="A") == Classification(gate=Gate.NO_CALL)


def test_snp_and_indel_in_one_genotype_is_mixed():
    assert classify(("C", "AT"), ref="A") == Classification(gate=Gate.IS_MIXED)


def test_undefined_thresholds_pass():
    assert classify(("A", "C"), ref="A", min_gq=50, min_dp=50) == Classification(ranks=(0, 1))


def test_rank_above_four_is_mixed():
    assert classify(("A", "C"), ref="A", ranks={"C": 5}) == Classification(gate=Gate.IS_MIXED)


def test_unrepresentable_call_pair_is_mixed():
    assert call_state_for(Classification(ranks=(2, 4))) is CallState.IS_MIXED


def test_called_genotype_requires_ref():
    with pytest.raises(ValueError):
        classify(("A", "C"))


@pytest.mark.parametrize(
    "gt, expected",
    [
        (("A", "A"), CallState.HOM_REF),
        (("A", "C"), CallState.HET_REF_VAR1),
        (("C", "C"), CallState.HOM_VAR1),
        (("C",), CallState.HOM_VAR1),
        (("A",), CallState.HOM_REF),
        ((), CallState.NO_CALL),
        (("A", None), CallState.NO_CALL),
    ],
)
def test_call_genotype_shapes(gt, expected):
    assert classify_call(site(gt=gt)) is expected


def test_missing_call():
    states, _ = determine_state(site(), None)
    assert states == (TruthState.HET_REF_VAR1, CallState.MISSING)


def test_site_and_genotype_filters():
    assert classify_call(site(filters=("LowQual",))) is CallState.VC_FILTERED
    assert classify_call(site(filters=("PASS",))) is CallState.HET_REF_VAR1
    assert classify_call(site(ft=("dpFilter",))) is CallState.GT_FILTERED
    assert classify_call(site(ft=("PASS",))) is CallState.HET_REF_VAR1


def test_ignore_filter_status():
    call = site(filters=("LowQual",), ft=("dpFilter",))
    assert classify_call(call, ignore_filter_status=True) is CallState.HET_REF_VAR1


def test_differently_padded_deletions_agree():
    truth = site(ref="AT", alts=("A",), gt=("AT", "A"))
    call = site(ref="ATT", alts=("AT",), gt=("AT", "ATT"))
    states, alleles = determine_state(truth, call)
    assert states == (TruthState.HET_REF_VAR1, CallState.HET_REF_VAR1)
    assert alleles.ref == "ATT"


def test_mixed_truth_takes_no_rank():
    truth = site(alts=("C", "AT"), gt=("C", "AT"))
    call = site(alts=("G",), gt=("A", "G"))
    states, _ = determine_state(truth, call)
    assert states == (TruthState.IS_MIXED, CallState.HET_REF_VAR1)


def test_inconsistent_references_raise():
    with pytest.raises(AlleleNormalizationError):
        determine_state(site(ref="AC", alts=("A",), gt=("AC", "A")), site(ref="AG", alts=("A",), gt=("AG", "A")))


@pytest.mark.parametrize(
    "truth_kw",
    [dict(filters=("LowQual",)), dict(gt=(None, None)), dict(gq=1)],
)
def test_gated_side_with_inconsistent_reference_raises(truth_kw):
    kw = dict(ref="AC", alts=("A",), gt=("AC", "A"))
    kw.update(truth_kw)
    call = site(ref="AG", alts=("A",), gt=("AG", "A"))
    with pytest.raises(AlleleNormalizationError):
        determine_state(site(**kw), call, min_gq=10)


def test_call_is_padded_against_filtered_truth():
    truth = site(ref="AT", alts=("A",), gt=("AT", "A"), filters=("LowQual",))
    call = site(ref="A", alts=("C",), gt=("A", "C"))
    states, alleles = determine_state(truth, call)
    assert states == (TruthState.VC_FILTERED, CallState.HET_REF_VAR1)
    assert alleles.ref == "AT"
    assert alleles.call_alleles == ("AT", "CT")
