from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict, Sequence

from jinja2 import Template

from .metrics import ContingencyMetrics, SummaryMetrics
from .utils import format_float

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Genotype Concordance Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>Genotype Concordance Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>Truth VCF</th><td><code>{{ truth_vcf }}</code></td></tr>
      <tr><th>Truth sample</th><td><code>{{ truth_sample }}</code></td></tr>
      <tr><th>Call VCF</th><td><code>{{ call_vcf }}</code></td></tr>
      <tr><th>Call sample</th><td><code>{{ call_sample }}</code></td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Settings</h3>
    <table>
      {% for key, value in config.items() %}
      <tr><th>{{ key }}</th><td>{{ value }}</td></tr>
      {% endfor %}
    </table>
  </div>
</div>

<h2>Records</h2>
<table>
  <tr><th>Truth records read</th><td>{{ stats.truth_records }}</td></tr>
  <tr><th>Call records read</th><td>{{ stats.call_records }}</td></tr>
  <tr><th>Paired sites</th><td>{{ stats.paired }}</td></tr>
  <tr><th>Truth-only sites</th><td>{{ stats.truth_only }}</td></tr>
  <tr><th>Call-only sites</th><td>{{ stats.call_only }}</td></tr>
  <tr><th>Skipped inside deletions</th><td>{{ stats.spanning_skipped }}</td></tr>
  <tr><th>Missing truth filled as hom-ref</th><td>{{ stats.synthesized_hom_ref }}</td></tr>
  <tr><th>Normalization failures</th><td>{{ stats.normalization_failures }}</td></tr>
  <tr><th>Sites without a variant type</th><td>{{ stats.unclassified }}</td></tr>
</table>

<h2>Summary metrics</h2>
<table>
  <tr>
    <th>Type</th><th>Sensitivity</th><th>PPV</th><th>Specificity</th>
    <th>Het sens.</th><th>Hom-var sens.</th><th>GT concordance</th><th>Non-ref GT concordance</th>
  </tr>
  {% for m in summary %}
  <tr>
    <td>{{ m.variant_type }}</td>
    <td>{{ fmt(m.var_sensitivity) }}</td><td>{{ fmt(m.var_ppv) }}</td><td>{{ fmt(m.var_specificity) }}</td>
    <td>{{ fmt(m.het_sensitivity) }}</td><td>{{ fmt(m.hom_var_sensitivity) }}</td>
    <td>{{ fmt(m.genotype_concordance) }}</td><td>{{ fmt(m.non_ref_genotype_concordance) }}</td>
  </tr>
  {% endfor %}
</table>

<h2>Contingency</h2>
<table>
  <tr><th>Type</th><th>TP</th><th>TN</th><th>FP</th><th>FN</th><th>EMPTY</th></tr>
  {% for c in contingency %}
  <tr>
    <td>{{ c.variant_type }}</td><td>{{ c.tp_count }}</td><td>{{ c.tn_count }}</td>
    <td>{{ c.fp_count }}</td><td>{{ c.fn_count }}</td><td>{{ c.empty_count }}</td>
  </tr>
  {% endfor %}
</table>

{% if plots %}
<h2>Plots</h2>
<div class="grid">
  {% for title, src in plots.items() %}
  <div class="card">
    <h3>{{ title }}</h3>
    <img src="{{ src }}" alt="{{ title }}">
  </div>
  {% endfor %}
</div>
{% endif %}

<h2>Notes</h2>
<ul>
  <li>Undefined rates (zero denominator) are shown as <code>?</code>.</li>
  <li>Sites filtered or below the GQ/DP thresholds count as absent, never as variant.</li>
  <li>No-calls and mixed SNP/indel genotypes are tallied but do not enter TP/FP/FN/TN.</li>
</ul>

<hr>
<p class="small">gtconcord {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    out_html: str | Path,
    version: str,
    truth_vcf: str,
    call_vcf: str,
    run: Dict[str, Any],
    summary: Sequence[SummaryMetrics],
    contingency: Sequence[ContingencyMetrics],
    plots: Dict[str, str],
) -> Path:
    out_html = Path(out_html)
    out_html.parent.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        truth_vcf=truth_vcf,
        call_vcf=call_vcf,
        truth_sample=run.get("truth_sample"),
        call_sample=run.get("call_sample"),
        config=run.get("config", {}),
        stats=run.get("stats", {}),
        summary=summary,
        contingency=contingency,
        plots=plots,
        fmt=format_float,
    )

    out_html.write_text(html, encoding="utf-8")
    logger.info("Wrote report to %s", out_html)
    return out_html
