from __future__ import annotations

import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Sequence, Type

from .concordance import ConcordanceConfig, ConcordanceResult, run_summary
from .metrics import (
    ContingencyMetrics,
    DetailMetrics,
    SummaryMetrics,
    contingency_metrics,
    detail_metrics,
    summary_metrics,
)
from .utils import ensure_outdir, format_float, write_json

logger = logging.getLogger(__name__)

SUMMARY_METRICS_EXT = ".genotype_concordance_summary_metrics"
DETAIL_METRICS_EXT = ".genotype_concordance_detail_metrics"
CONTINGENCY_METRICS_EXT = ".genotype_concordance_contingency_metrics"
SUMMARY_JSON_EXT = ".genotype_concordance.json"
OUTPUT_VCF_EXT = ".genotype_concordance.vcf.gz"
REPORT_HTML_EXT = ".genotype_concordance.html"


def output_path(prefix: str | Path, ext: str) -> Path:
    return Path(str(prefix) + ext)


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return format_float(value)
    return str(value)


def write_metrics_tsv(path: str | Path, rows: Sequence[Any], row_type: Type[Any]) -> Path:
    """Write dataclass rows as TSV: a header of field names, then one line per row."""
    path = Path(path)
    ensure_outdir(path.parent)
    names = [f.name for f in fields(row_type)]
    with open(path, "wt", encoding="utf-8") as fh:
        fh.write("\t".join(n.upper() for n in names) + "\n")
        for row in rows:
            fh.write("\t".join(_format_value(getattr(row, n)) for n in names) + "\n")
    logger.info("Wrote %d rows to %s", len(rows), path)
    return path


def write_outputs(
    prefix: str | Path,
    result: ConcordanceResult,
    *,
    config: ConcordanceConfig,
) -> Dict[str, Path]:
    """Write the three metrics files and the JSON run summary; return their paths by name."""
    kw = dict(truth_sample=result.truth_sample, call_sample=result.call_sample)
    summary = summary_metrics(result.counts, **kw)
    detail = detail_metrics(result.counts, output_all_rows=config.output_all_rows, **kw)
    contingency = contingency_metrics(result.counts, **kw)

    paths = {
        "summary_metrics": write_metrics_tsv(output_path(prefix, SUMMARY_METRICS_EXT), summary, SummaryMetrics),
        "detail_metrics": write_metrics_tsv(output_path(prefix, DETAIL_METRICS_EXT), detail, DetailMetrics),
        "contingency_metrics": write_metrics_tsv(
            output_path(prefix, CONTINGENCY_METRICS_EXT), contingency, ContingencyMetrics
        ),
    }

    doc = run_summary(result, config=config)
    doc["summary_metrics"] = [{f.name: getattr(m, f.name) for f in fields(SummaryMetrics)} for m in summary]
    json_path = output_path(prefix, SUMMARY_JSON_EXT)
    write_json(json_path, doc)
    paths["summary_json"] = json_path
    return paths
