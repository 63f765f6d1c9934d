from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import pysam

from .alleles import NormalizedAlleles
from .errors import ConfigurationError
from .models import Genotype, VariantSite
from .states import TruthAndCallStates

logger = logging.getLogger(__name__)

CONC_STATE_INFO = "CONC_ST"
OUTPUT_TRUTH_SAMPLE = "TRUTH"
OUTPUT_CALL_SAMPLE = "CALL"


def vcf_samples(vcf_path: str | Path) -> List[str]:
    with pysam.VariantFile(str(vcf_path)) as vcf:
        return list(vcf.header.samples)


def vcf_contigs(vcf_path: str | Path) -> List[str]:
    with pysam.VariantFile(str(vcf_path)) as vcf:
        return list(vcf.header.contigs)


def resolve_sample(vcf_path: str | Path, sample: Optional[str], *, role: str) -> str:
    """Return ``sample`` after checking it exists; default to the first sample of the file."""
    samples = vcf_samples(vcf_path)
    if sample is None:
        if not samples:
            raise ConfigurationError(f"{role} VCF has no samples: {vcf_path}")
        logger.info("No %s sample provided; using first VCF sample: %s", role, samples[0])
        return samples[0]
    if sample not in samples:
        raise ConfigurationError(
            f"{role.capitalize()} sample '{sample}' not found in {vcf_path}. Available samples: {samples}"
        )
    return sample


def _optional_int(sample: pysam.libcbcf.VariantRecordSample, key: str) -> Optional[int]:
    if key not in sample:
        return None
    value = sample[key]
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    return int(value)


def _genotype_filters(sample: pysam.libcbcf.VariantRecordSample) -> Tuple[str, ...]:
    if "FT" not in sample or sample["FT"] is None:
        return ()
    ft = sample["FT"]
    if isinstance(ft, (list, tuple)):
        return tuple(str(x) for x in ft if x is not None)
    return tuple(x for x in str(ft).split(";") if x and x != ".")


def record_to_site(rec: pysam.VariantRecord, sample: str) -> VariantSite:
    """Reduce a pysam record to a VariantSite holding one sample's genotype."""
    s = rec.samples[sample]
    genotype = Genotype(
        alleles=tuple(s.alleles) if "GT" in s else (),
        filters=_genotype_filters(s),
        dp=_optional_int(s, "DP"),
        gq=_optional_int(s, "GQ"),
    )
    return VariantSite(
        contig=str(rec.contig),
        pos=int(rec.pos),
        ref=str(rec.ref),
        alts=tuple(rec.alts or ()),
        filters=tuple(rec.filter.keys()),
        genotype=genotype,
        qual=float(rec.qual) if rec.qual is not None else None,
        id=rec.id,
    )


def iter_sites(
    vcf_path: str | Path,
    sample: str,
    *,
    contig: Optional[str] = None,
) -> Iterator[VariantSite]:
    """Stream VariantSites for ``sample`` in file order.

    With ``contig`` only that contig is read; this requires an index.
    Read errors from pysam propagate.
    """
    with pysam.VariantFile(str(vcf_path)) as vcf:
        if sample not in vcf.header.samples:
            raise ConfigurationError(f"Sample '{sample}' not found in {vcf_path}")
        if contig is None:
            iterator = vcf
        else:
            try:
                iterator = vcf.fetch(contig)
            except ValueError:
                # contig declared in the header but absent from the index
                logger.debug("No indexed records for %s in %s", contig, vcf_path)
                return
        for rec in iterator:
            yield record_to_site(rec, sample)


def is_indexed(vcf_path: str | Path) -> bool:
    p = str(vcf_path)
    return any(os.path.exists(p + ext) for ext in (".tbi", ".csi"))


def _output_alleles(alleles: NormalizedAlleles) -> Tuple[str, ...]:
    ref = alleles.ref or "N"
    out: List[str] = [ref]
    for a in (alleles.truth_allele1, alleles.truth_allele2, alleles.call_allele1, alleles.call_allele2):
        if a is not None and a not in out:
            out.append(a)
    return tuple(out)


def _gt_indices(pair: Tuple[Optional[str], Optional[str]], alleles: Sequence[str]) -> Tuple[Optional[int], ...]:
    return tuple(alleles.index(a) if a is not None else None for a in pair)


class AnnotatedVcfWriter:
    """Write one record per compared site with truth and call genotypes and their states.

    The VCF is written uncompressed and bgzip+tabix'd on :meth:`close`.
    """

    def __init__(self, out_vcf_gz: str | Path, contigs: Sequence[Tuple[str, Optional[int]]]) -> None:
        self.path = Path(out_vcf_gz)
        self._plain = self.path.with_suffix("") if self.path.suffix == ".gz" else self.path
        header = pysam.VariantHeader()
        header.add_meta("fileformat", "VCFv4.2")
        for name, length in contigs:
            header.contigs.add(name, length=length)
        header.info.add(
            CONC_STATE_INFO,
            number=".",
            type="String",
            description="Genotype concordance states: truth state, call state",
        )
        header.formats.add("GT", number=1, type="String", description="Genotype")
        header.add_sample(OUTPUT_TRUTH_SAMPLE)
        header.add_sample(OUTPUT_CALL_SAMPLE)
        self._vcf = pysam.VariantFile(str(self._plain), "w", header=header)
        self.records_written = 0

    def write(self, contig: str, pos: int, alleles: NormalizedAlleles, states: TruthAndCallStates) -> None:
        out_alleles = _output_alleles(alleles)
        rec = self._vcf.new_record(
            contig=contig,
            start=pos - 1,
            stop=pos - 1 + len(out_alleles[0]),
            alleles=out_alleles,
        )
        rec.info[CONC_STATE_INFO] = (states.truth_state.name, states.call_state.name)
        rec.samples[OUTPUT_TRUTH_SAMPLE]["GT"] = _gt_indices(alleles.truth_alleles, out_alleles)
        rec.samples[OUTPUT_CALL_SAMPLE]["GT"] = _gt_indices(alleles.call_alleles, out_alleles)
        self._vcf.write(rec)
        self.records_written += 1

    def close(self) -> Path:
        self._vcf.close()
        if self._plain != self.path:
            pysam.tabix_compress(str(self._plain), str(self.path), force=True)
            pysam.tabix_index(str(self.path), preset="vcf", force=True)
            self._plain.unlink()
        logger.info("Wrote %d annotated records to %s", self.records_written, self.path)
        return self.path

    def __enter__(self) -> "AnnotatedVcfWriter":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def header_contigs(*vcf_paths: str | Path) -> List[Tuple[str, Optional[int]]]:
    """Contigs with lengths from the given VCF headers, first file's order first."""
    seen: List[Tuple[str, Optional[int]]] = []
    names = set()
    for p in vcf_paths:
        with pysam.VariantFile(str(p)) as vcf:
            for name, contig in vcf.header.contigs.items():
                if name not in names:
                    names.add(name)
                    seen.append((name, contig.length))
    return seen
