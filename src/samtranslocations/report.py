from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

from jinja2 import Template

from .models import BREAKPOINT_COLUMNS

logger = logging.getLogger(__name__)

_MAX_ROWS = 500


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>samtranslocations report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 6px; font-size: 0.9em; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>Balanced translocation clusters</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      {% for p in inputs %}
      <tr><th>Input</th><td><code>{{ p }}</code></td></tr>
      {% endfor %}
      {% for p in skipped_inputs %}
      <tr><th>Skipped</th><td><code>{{ p }}</code></td></tr>
      {% endfor %}
      <tr><th>Output</th><td><code>{{ output }}</code></td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Parameters</h3>
    <table>
      <tr><th>Max distance</th><td>{{ config.max_distance }}</td></tr>
      <tr><th>Fuzzy distance</th><td>{{ config.fuzzy_distance }}</td></tr>
      <tr><th>Min reads per strand</th><td>{{ config.min_count_forward }}</td></tr>
      <tr><th>Region</th><td>{{ config.region or "-" }}</td></tr>
      <tr><th>Filter</th><td><code>{{ config.filter_expression or "-" }}</code></td></tr>
      <tr><th>Group by</th><td>{{ config.groupby }}</td></tr>
    </table>
  </div>
</div>

<h2>Reads</h2>
<table>
  <tr><th>Reads seen</th><td>{{ counts.records_total }}</td></tr>
  <tr><th>Discordant reads kept</th><td>{{ counts.records_discordant }}</td></tr>
  <tr><th>Skipped (claimed by a cluster)</th><td>{{ counts.records_skipped_claimed }}</td></tr>
  <tr><th>Anchors tried</th><td>{{ counts.anchors_tried }}</td></tr>
  <tr><th>Abandoned (forward cluster too small)</th><td>{{ counts.abandoned_forward }}</td></tr>
  <tr><th>Abandoned (reverse cluster too small)</th><td>{{ counts.abandoned_reverse }}</td></tr>
  <tr><th>Clusters</th><td>{{ counts.clusters_emitted }}</td></tr>
</table>

<h2>Clusters by partition</h2>
<table>
  {% for name, n in clusters_by_partition.items() %}
  <tr><th>{{ name }}</th><td>{{ n }}</td></tr>
  {% else %}
  <tr><td>No clusters</td></tr>
  {% endfor %}
</table>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Reads per cluster</h3>
    <img src="{{ plots.reads_per_cluster }}" alt="reads per cluster">
  </div>
  <div class="card">
    <h3>Chromosome pairs</h3>
    <img src="{{ plots.chromosome_pairs }}" alt="chromosome pairs">
  </div>
</div>

<h2>Breakpoints</h2>
{% if truncated %}
<p class="small">Showing the first {{ rows|length }} of {{ n_breakpoints }} clusters; see the TSV for all.</p>
{% endif %}
<table>
  <tr>{% for c in columns %}<th>{{ c }}</th>{% endfor %}</tr>
  {% for row in rows %}
  <tr>{% for c in columns %}<td>{{ row[c] }}</td>{% endfor %}</tr>
  {% endfor %}
</table>

<hr>
<p class="small">samtranslocations {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    run: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    breakpoints: List[Mapping[str, str]] = list(run.get("breakpoints", []))

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        inputs=run.get("inputs", []),
        skipped_inputs=run.get("skipped_inputs", []),
        output=run.get("output"),
        config=run.get("config", {}),
        counts=run.get("counts", {}),
        clusters_by_partition=run.get("clusters_by_partition", {}),
        plots=plots,
        columns=BREAKPOINT_COLUMNS,
        rows=breakpoints[:_MAX_ROWS],
        n_breakpoints=len(breakpoints),
        truncated=len(breakpoints) > _MAX_ROWS,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.info("Report written: %s", out_path)
    return out_path
