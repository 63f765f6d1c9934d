from __future__ import annotations

from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

import pysam

from .utils import ensure_outdir, write_json

TOY_CONTIG = "chr1"
TOY_TRUTH_SAMPLE = "NA12878"
TOY_CALL_SAMPLE = "NA12878_call"

_REF_SEQ = ("ACGTTGCA" * 25)[:200]

Gt = Tuple[Optional[int], Optional[int]]


class ToyRecord(NamedTuple):
    pos: int
    alleles: Tuple[str, ...]
    gt: Gt
    gq: int = 50
    dp: int = 30
    filter: str = "PASS"
    contig: str = TOY_CONTIG


def _base(pos: int, n: int = 1) -> str:
    return _REF_SEQ[pos - 1 : pos - 1 + n]


def _mutate_base(base: str, k: int = 0) -> str:
    alts = [b for b in "ACGT" if b != base]
    return alts[k % len(alts)]


def _toy_records() -> Tuple[List[ToyRecord], List[ToyRecord]]:
    """Truth and call records exercising each contingency outcome."""
    truth: List[ToyRecord] = []
    call: List[ToyRecord] = []

    def snp(pos: int, k: int = 0) -> Tuple[str, str]:
        return _base(pos), _mutate_base(_base(pos), k)

    # het SNP called correctly: TP
    truth.append(ToyRecord(10, snp(10), (0, 1)))
    call.append(ToyRecord(10, snp(10), (0, 1)))
    # hom-var truth called het: allele found, genotype discordant
    truth.append(ToyRecord(20, snp(20), (1, 1)))
    call.append(ToyRecord(20, snp(20), (0, 1)))
    # truth variant absent from the calls: FN
    truth.append(ToyRecord(30, snp(30), (0, 1)))
    # deletion with different right padding on each side: TP after normalization
    truth.append(ToyRecord(40, (_base(40, 3), _base(40)), (0, 1)))
    call.append(ToyRecord(40, (_base(40, 4), _base(40) + _base(43)), (0, 1)))
    # insertion, low GQ call
    truth.append(ToyRecord(60, (_base(60), _base(60) + "TT"), (1, 1)))
    call.append(ToyRecord(60, (_base(60), _base(60) + "TT"), (1, 1), gq=5))
    # hom-ref truth called het: FP
    truth.append(ToyRecord(80, snp(80), (0, 0)))
    call.append(ToyRecord(80, snp(80), (0, 1)))
    # call-only variant: FP
    call.append(ToyRecord(100, snp(100), (0, 1)))
    # no-call
    truth.append(ToyRecord(120, snp(120), (0, 1)))
    call.append(ToyRecord(120, snp(120), (None, None)))
    # site-filtered call: FN
    truth.append(ToyRecord(140, snp(140), (0, 1)))
    call.append(ToyRecord(140, snp(140), (0, 1), filter="LowQual"))
    # multi-allelic het-var: TP
    ref, a1 = snp(160, 0)
    a2 = _mutate_base(ref, 1)
    truth.append(ToyRecord(160, (ref, a1, a2), (1, 2)))
    call.append(ToyRecord(160, (ref, a2, a1), (1, 2)))
    return truth, call


def _header(sample: str, records: List[ToyRecord]) -> pysam.VariantHeader:
    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    header.add_sample(sample)
    for r in records:
        if r.contig not in header.contigs:
            header.contigs.add(r.contig, length=len(_REF_SEQ) if r.contig == TOY_CONTIG else None)
    for name in sorted({r.filter for r in records} - {"PASS", "."}):
        header.filters.add(name, None, None, "Toy filter")
    header.formats.add("GT", number=1, type="String", description="Genotype")
    header.formats.add("GQ", number=1, type="Integer", description="Genotype quality")
    header.formats.add("DP", number=1, type="Integer", description="Depth")
    return header


def write_toy_vcf(path: str | Path, sample: str, records: List[ToyRecord]) -> Path:
    """Write ``records`` as a bgzipped, tabix-indexed single-sample VCF; return the .vcf.gz path."""
    path = Path(path)
    plain = path.with_suffix("") if path.suffix == ".gz" else path
    with pysam.VariantFile(str(plain), "w", header=_header(sample, records)) as vcf:
        for r in records:
            rec = vcf.new_record(
                contig=r.contig,
                start=r.pos - 1,
                stop=r.pos - 1 + len(r.alleles[0]),
                alleles=r.alleles,
                qual=60,
                filter=r.filter,
            )
            rec.samples[0]["GT"] = r.gt
            rec.samples[0]["GQ"] = r.gq
            rec.samples[0]["DP"] = r.dp
            vcf.write(rec)

    if plain == path:
        return path
    pysam.tabix_compress(str(plain), str(path), force=True)
    pysam.tabix_index(str(path), preset="vcf", force=True)
    plain.unlink()
    return path


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny truth/call VCF pair and an interval file for quick demos/tests.

    The outputs include:
    - truth.vcf.gz (+ .tbi), sample NA12878
    - call.vcf.gz (+ .tbi), sample NA12878_call
    - toy.bed covering the whole toy contig

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    truth_records, call_records = _toy_records()

    truth_vcf = write_toy_vcf(outdir_p / "truth.vcf.gz", TOY_TRUTH_SAMPLE, truth_records)
    call_vcf = write_toy_vcf(outdir_p / "call.vcf.gz", TOY_CALL_SAMPLE, call_records)

    bed = outdir_p / "toy.bed"
    bed.write_text(f"{TOY_CONTIG}\t0\t{len(_REF_SEQ)}\n", encoding="utf-8")

    summary = {
        "truth_vcf": str(truth_vcf),
        "call_vcf": str(call_vcf),
        "truth_sample": TOY_TRUTH_SAMPLE,
        "call_sample": TOY_CALL_SAMPLE,
        "intervals": str(bed),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
