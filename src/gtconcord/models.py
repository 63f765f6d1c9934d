from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

SPANNING_DELETION = "*"
PASS_FILTER = "PASS"


@dataclass(frozen=True)
class Genotype:
    """One sample's genotype at one site.

    Attributes
    ----------
    alleles:
        Allele base strings in genotype order; ``None`` is the no-call sentinel.
        An empty tuple is a full no-call (``./.`` or a missing GT field).
    filters:
        Genotype-level FILTER values (FORMAT/FT). Empty or ``("PASS",)`` means passed.
    dp, gq:
        Depth and genotype quality, ``None`` when absent.
    """

    alleles: Tuple[Optional[str], ...]
    filters: Tuple[str, ...] = ()
    dp: Optional[int] = None
    gq: Optional[int] = None

    @property
    def passed_filters(self) -> bool:
        return _filters_pass(self.filters)

    @property
    def is_no_call(self) -> bool:
        return len(self.alleles) == 0 or any(a is None for a in self.alleles)

    def diploid(self) -> Tuple[Optional[str], Optional[str]]:
        """Return the genotype as an allele pair; haploid calls are treated as homozygous."""
        if len(self.alleles) == 0:
            return None, None
        if len(self.alleles) == 1:
            return self.alleles[0], self.alleles[0]
        return self.alleles[0], self.alleles[1]


@dataclass(frozen=True)
class VariantSite:
    """A variant record reduced to what the comparison needs.

    ``pos`` is 1-based, as in VCF. ``genotype`` is the designated sample's
    genotype, or ``None`` when the record carries no data for that sample.
    """

    contig: str
    pos: int
    ref: str
    alts: Tuple[str, ...] = ()
    filters: Tuple[str, ...] = ()
    genotype: Optional[Genotype] = None
    qual: Optional[float] = None
    id: Optional[str] = None
    synthetic: bool = field(default=False, compare=False)

    @property
    def end(self) -> int:
        """Last reference position covered by the record (1-based, inclusive)."""
        return self.pos + max(len(self.ref), 1) - 1

    @property
    def passed_filters(self) -> bool:
        return _filters_pass(self.filters)

    @property
    def alleles(self) -> Tuple[str, ...]:
        return (self.ref,) + tuple(self.alts)

    def label(self) -> str:
        return f"{self.contig}:{self.pos}:{self.ref}:{','.join(self.alts) or '.'}"


def _filters_pass(filters: Tuple[str, ...]) -> bool:
    return len(filters) == 0 or (len(filters) == 1 and filters[0] == PASS_FILTER)
