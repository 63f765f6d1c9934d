from pathlib import Path

import pytest

from gtconcord.errors import ConfigurationError
from gtconcord.toy_data import ToyRecord, make_toy_data, write_toy_vcf
from gtconcord.validation import check_contig_compatibility, check_vcf_index, detect_contig_style
from gtconcord.vcf_io import header_contigs, iter_sites, resolve_sample


def test_iter_sites_reads_genotype_fields(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    sites = {s.pos: s for s in iter_sites(toy["call_vcf"], "NA12878_call")}

    assert sites[10].genotype.alleles == (sites[10].ref, sites[10].alts[0])
    assert sites[10].genotype.gq == 50
    assert sites[10].genotype.dp == 30
    assert sites[10].passed_filters
    assert sites[120].genotype.is_no_call
    assert sites[140].filters == ("LowQual",)
    assert not sites[140].passed_filters
    assert sites[40].ref == "AACG"
    assert sites[40].end == 43


def test_iter_sites_single_contig(tmp_path: Path) -> None:
    records = [ToyRecord(5, ("A", "C"), (0, 1)), ToyRecord(7, ("A", "C"), (0, 1), contig="chr2")]
    vcf = write_toy_vcf(tmp_path / "two.vcf.gz", "S1", records)
    assert [(s.contig, s.pos) for s in iter_sites(vcf, "S1", contig="chr2")] == [("chr2", 7)]
    assert header_contigs(vcf) == [("chr1", 200), ("chr2", None)]


def test_resolve_sample(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    assert resolve_sample(toy["truth_vcf"], None, role="truth") == "NA12878"
    assert resolve_sample(toy["truth_vcf"], "NA12878", role="truth") == "NA12878"
    with pytest.raises(ConfigurationError, match="Available samples"):
        resolve_sample(toy["truth_vcf"], "nobody", role="truth")


def test_check_vcf_index(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    assert check_vcf_index(toy["truth_vcf"], required=True)

    plain = write_toy_vcf(tmp_path / "plain.vcf", "S1", [ToyRecord(5, ("A", "C"), (0, 1))])
    assert not check_vcf_index(plain)
    with pytest.raises(ConfigurationError):
        check_vcf_index(plain, required=True)


def test_contig_styles() -> None:
    assert detect_contig_style(["chr1", "chr2"]) == "ucsc"
    assert detect_contig_style(["1", "2", "X"]) == "ensembl"
    assert detect_contig_style([]) == "unknown"
    check_contig_compatibility(["chr1"], ["chr1", "chr2"])
    with pytest.raises(ConfigurationError, match="Contig naming differs"):
        check_contig_compatibility(["chr1", "chr2"], ["1", "2"])
