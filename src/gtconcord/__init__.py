"""gtconcord: genotype concordance between a truth and a call VCF.

Public API is intentionally small; most users should use the CLI:

    gtconcord compare --truth-vcf ... --call-vcf ... --output ...

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
