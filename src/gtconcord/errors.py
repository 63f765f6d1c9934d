from __future__ import annotations


class ConcordanceError(Exception):
    """Base class for errors raised by gtconcord."""


class ConfigurationError(ConcordanceError, ValueError):
    """Invalid run configuration or input that must abort before any comparison."""


class StreamOrderError(ConcordanceError, ValueError):
    """A variant stream is not sorted by (contig, position)."""


class AlleleNormalizationError(ConcordanceError):
    """Truth and call reference alleles cannot be reconciled at a matching coordinate.

    Raised per site; the run recovers by excluding the site.
    """

    def __init__(self, message: str, *, contig: str = "", pos: int = 0) -> None:
        super().__init__(message)
        self.contig = contig
        self.pos = pos
