from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from .errors import ConfigurationError
from .intervals import IntervalSet

logger = logging.getLogger(__name__)


_UCSC_PREFIX = "chr"


def check_vcf_index(vcf_path: str | Path, *, required: bool = False) -> bool:
    """Report whether a VCF has a tabix/CSI index.

    Streaming comparison works without one; per-contig parallel mode does not.
    With ``required`` a missing index raises ConfigurationError with fix instructions.
    """
    vcf = Path(vcf_path)
    indexed = any(vcf.with_suffix(vcf.suffix + ext).exists() for ext in (".tbi", ".csi"))
    if indexed:
        return True

    if vcf.suffixes[-2:] == [".vcf", ".gz"]:
        fix = "tabix -p vcf " + str(vcf)
    elif vcf.suffix == ".bcf":
        fix = "bcftools index " + str(vcf)
    else:
        fix = "bgzip -c " + str(vcf) + " > " + str(vcf) + ".gz; tabix -p vcf " + str(vcf) + ".gz"

    if required:
        raise ConfigurationError(f"VCF is not indexed: {vcf}. Run: {fix}")
    logger.info("VCF is not indexed (%s); reading it as a single stream. To index: %s", vcf, fix)
    return False


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def check_contig_compatibility(truth_contigs: Sequence[str], call_contigs: Sequence[str]) -> None:
    """Fail early when truth and call name their contigs differently (e.g. chr1 vs 1)."""
    if not truth_contigs or not call_contigs:
        return
    if set(truth_contigs) & set(call_contigs):
        return
    truth_style = detect_contig_style(truth_contigs)
    call_style = detect_contig_style(call_contigs)
    if truth_style != call_style:
        raise ConfigurationError(
            f"Contig naming differs between truth ({truth_style}) and call ({call_style}) VCFs "
            "(e.g., chr1 vs 1); rename contigs in one file (bcftools annotate --rename-chrs)."
        )
    logger.warning("Truth and call VCF headers share no contigs; no sites will pair")


def check_interval_contigs(intervals: IntervalSet, contigs: Sequence[str]) -> None:
    """Warn about interval contigs that neither VCF header declares."""
    if not contigs:
        return
    known = set(contigs)
    unknown = [c for c in intervals.contigs if c not in known]
    if unknown:
        logger.warning("Interval contigs not present in either VCF header: %s", ", ".join(unknown))
