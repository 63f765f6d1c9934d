"""Run orchestration: feed two site streams through the walker into a count matrix."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from tqdm import tqdm

from .alleles import variant_type
from .classify import determine_state
from .counts import ConcordanceCounts, resolve_variant_type
from .errors import AlleleNormalizationError, ConfigurationError
from .intervals import IntervalSet, restrict_to_intervals
from .models import VariantSite
from .states import TruthAndCallStates, VariantType
from .vcf_io import AnnotatedVcfWriter, header_contigs, is_indexed, iter_sites, resolve_sample
from .walker import ComparisonUnit, WalkerStats, missing_sites_as_hom_ref, walk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConcordanceConfig:
    """Thresholds and switches for one comparison run."""

    min_gq: int = 0
    min_dp: int = 0
    output_all_rows: bool = False
    missing_sites_hom_ref: bool = False
    ignore_filter_status: bool = False
    output_vcf: bool = False
    threads: int = 1

    def validate(self, *, has_intervals: bool) -> None:
        if self.min_gq < 0:
            raise ConfigurationError(f"min_gq must be >= 0 (got {self.min_gq})")
        if self.min_dp < 0:
            raise ConfigurationError(f"min_dp must be >= 0 (got {self.min_dp})")
        if self.threads < 1:
            raise ConfigurationError(f"threads must be >= 1 (got {self.threads})")
        if self.missing_sites_hom_ref and not has_intervals:
            raise ConfigurationError(
                "Treating missing sites as hom-ref requires intervals (--intervals): "
                "without them every call-only site would count against the truth"
            )


@dataclass
class ConcordanceResult:
    counts: ConcordanceCounts
    stats: WalkerStats
    truth_sample: str = ""
    call_sample: str = ""
    unclassified_types: Dict[str, int] = field(default_factory=dict)
    runtime_seconds: float = 0.0

    def merge(self, other: "ConcordanceResult") -> "ConcordanceResult":
        self.counts.merge(other.counts)
        for f in fields(WalkerStats):
            setattr(self.stats, f.name, getattr(self.stats, f.name) + getattr(other.stats, f.name))
        for k, v in other.unclassified_types.items():
            self.unclassified_types[k] = self.unclassified_types.get(k, 0) + v
        return self


def _site_type(site: Optional[VariantSite]) -> Optional[VariantType]:
    if site is None:
        return None
    return variant_type(site.ref, site.alts)


class _Accumulator:
    """Classify comparison units one at a time into a ConcordanceCounts."""

    def __init__(
        self,
        config: ConcordanceConfig,
        stats: WalkerStats,
        writer: Optional[AnnotatedVcfWriter] = None,
    ) -> None:
        self.config = config
        self.stats = stats
        self.writer = writer
        self.counts = ConcordanceCounts()
        self.unclassified_types: Dict[str, int] = {}

    def add(self, unit: ComparisonUnit) -> Optional[TruthAndCallStates]:
        try:
            states, alleles = determine_state(
                unit.truth,
                unit.call,
                min_gq=self.config.min_gq,
                min_dp=self.config.min_dp,
                ignore_filter_status=self.config.ignore_filter_status,
            )
        except AlleleNormalizationError as e:
            self.stats.normalization_failures += 1
            logger.warning("Skipping site: %s", e)
            return None

        vt = resolve_variant_type(_site_type(unit.truth), _site_type(unit.call))
        if vt is None:
            self.stats.unclassified += 1
            key = f"{states.truth_state.name}/{states.call_state.name}"
            self.unclassified_types[key] = self.unclassified_types.get(key, 0) + 1
            logger.debug("No variant type for %s:%d (%s)", unit.contig, unit.pos, key)
            return states

        self.counts.increment_states(vt, states)
        if self.writer is not None:
            self.writer.write(unit.contig, unit.pos, alleles, states)
        return states


def compare_sites(
    truth_sites: Iterable[VariantSite],
    call_sites: Iterable[VariantSite],
    *,
    config: ConcordanceConfig = ConcordanceConfig(),
    intervals: Optional[IntervalSet] = None,
    contig_order: Optional[Sequence[str]] = None,
    writer: Optional[AnnotatedVcfWriter] = None,
    progress: bool = False,
) -> ConcordanceResult:
    """Compare two ordered site streams and return the filled count matrix.

    Configuration is validated before any site is read.
    """
    config.validate(has_intervals=intervals is not None)

    if intervals is not None:
        truth_sites = restrict_to_intervals(truth_sites, intervals, contig_order=contig_order)
        call_sites = restrict_to_intervals(call_sites, intervals, contig_order=contig_order)

    stats = WalkerStats()
    units: Iterable[ComparisonUnit] = walk(truth_sites, call_sites, contig_order=contig_order, stats=stats)
    if config.missing_sites_hom_ref:
        assert intervals is not None
        units = missing_sites_as_hom_ref(units, intervals, stats=stats)
    if progress:
        units = tqdm(units, unit="site", desc="Comparing genotypes")

    acc = _Accumulator(config, stats, writer)
    for unit in units:
        acc.add(unit)

    if stats.normalization_failures:
        logger.warning("%d sites skipped: alleles could not be normalized", stats.normalization_failures)
    if stats.unclassified:
        logger.warning(
            "%d compared sites had no variant type on either side and were not counted: %s",
            stats.unclassified,
            acc.unclassified_types,
        )
    return ConcordanceResult(counts=acc.counts, stats=stats, unclassified_types=acc.unclassified_types)


def _compare_contig(
    truth_vcf: str,
    call_vcf: str,
    truth_sample: str,
    call_sample: str,
    contig: str,
    config: ConcordanceConfig,
    intervals: Optional[IntervalSet],
) -> ConcordanceResult:
    return compare_sites(
        iter_sites(truth_vcf, truth_sample, contig=contig),
        iter_sites(call_vcf, call_sample, contig=contig),
        config=config,
        intervals=intervals.on_contig(contig) if intervals is not None else None,
        contig_order=[contig],
    )


def _scatter_contigs(
    contigs: List[str],
    intervals: Optional[IntervalSet],
) -> List[str]:
    if intervals is None:
        return contigs
    in_scope = set(intervals.contigs)
    return [c for c in contigs if c in in_scope]


def compare_vcfs(
    truth_vcf: str | Path,
    call_vcf: str | Path,
    *,
    truth_sample: Optional[str] = None,
    call_sample: Optional[str] = None,
    config: ConcordanceConfig = ConcordanceConfig(),
    intervals: Optional[IntervalSet] = None,
    output_vcf_path: Optional[str | Path] = None,
    progress: bool = False,
) -> ConcordanceResult:
    """Compare one sample of ``truth_vcf`` against one sample of ``call_vcf``.

    With ``config.threads > 1`` and indexed inputs the work is split by contig
    across worker processes and the partial matrices are summed. Writing an
    annotated VCF always runs in a single pass.

    Raises
    ------
    ConfigurationError
        Unknown sample or invalid configuration.
    StreamOrderError
        Either VCF is not sorted.
    """
    t0 = time.time()
    config.validate(has_intervals=intervals is not None)
    truth_vcf = str(truth_vcf)
    call_vcf = str(call_vcf)
    truth_sample = resolve_sample(truth_vcf, truth_sample, role="truth")
    call_sample = resolve_sample(call_vcf, call_sample, role="call")

    contigs = header_contigs(truth_vcf, call_vcf)
    contig_names = [name for name, _ in contigs]

    if config.output_vcf and output_vcf_path is None:
        raise ConfigurationError("output_vcf is set but no annotated VCF path was given")

    parallel = config.threads > 1
    if parallel and output_vcf_path is not None:
        logger.info("Annotated VCF output requested; running in a single pass")
        parallel = False
    if parallel and not (is_indexed(truth_vcf) and is_indexed(call_vcf)):
        logger.warning("Per-contig parallel mode needs indexed VCFs; running in a single pass")
        parallel = False

    if parallel:
        result = _compare_parallel(
            truth_vcf,
            call_vcf,
            truth_sample,
            call_sample,
            _scatter_contigs(contig_names, intervals),
            config,
            intervals,
        )
    else:
        writer: Optional[AnnotatedVcfWriter] = None
        if output_vcf_path is not None:
            writer = AnnotatedVcfWriter(output_vcf_path, contigs)
        try:
            result = compare_sites(
                iter_sites(truth_vcf, truth_sample),
                iter_sites(call_vcf, call_sample),
                config=config,
                intervals=intervals,
                contig_order=contig_names or None,
                writer=writer,
                progress=progress,
            )
        finally:
            if writer is not None:
                writer.close()

    result.truth_sample = truth_sample
    result.call_sample = call_sample
    result.runtime_seconds = float(time.time() - t0)
    logger.info(
        "Compared %s:%s vs %s:%s: %d truth / %d call records, %d paired, %d truth-only, %d call-only",
        truth_vcf,
        truth_sample,
        call_vcf,
        call_sample,
        result.stats.truth_records,
        result.stats.call_records,
        result.stats.paired,
        result.stats.truth_only,
        result.stats.call_only,
    )
    return result


def _compare_parallel(
    truth_vcf: str,
    call_vcf: str,
    truth_sample: str,
    call_sample: str,
    contigs: List[str],
    config: ConcordanceConfig,
    intervals: Optional[IntervalSet],
) -> ConcordanceResult:
    partials: Dict[str, ConcordanceResult] = {}
    with ProcessPoolExecutor(max_workers=config.threads) as executor:
        future_to_contig = {
            executor.submit(
                _compare_contig, truth_vcf, call_vcf, truth_sample, call_sample, contig, config, intervals
            ): contig
            for contig in contigs
        }
        for future in as_completed(future_to_contig):
            contig = future_to_contig[future]
            # worker errors propagate and abort the run
            partials[contig] = future.result()
            logger.info("Completed contig %s (%d/%d)", contig, len(partials), len(contigs))

    merged = ConcordanceResult(counts=ConcordanceCounts(), stats=WalkerStats())
    for contig in contigs:
        merged.merge(partials[contig])
    return merged


def run_summary(result: ConcordanceResult, *, config: ConcordanceConfig) -> Dict[str, object]:
    """JSON-ready description of a run: settings, walker statistics and matrix totals."""
    return {
        "truth_sample": result.truth_sample,
        "call_sample": result.call_sample,
        "config": {f.name: getattr(config, f.name) for f in fields(ConcordanceConfig)},
        "stats": result.stats.as_dict(),
        "unclassified_types": dict(sorted(result.unclassified_types.items())),
        "totals": {vt.value: result.counts.total(vt) for vt in result.counts.variant_types_observed()},
        "contingency": {
            vt.value: asdict(result.counts.contingency(vt)) for vt in result.counts.variant_types_observed()
        },
        "runtime_seconds": result.runtime_seconds,
    }
