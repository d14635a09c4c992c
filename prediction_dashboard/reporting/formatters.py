"""
ASCII terminal formatters for CLI commands.

All formatters accept parsed response models / dicts and return plain
multi-line strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``tabulate``).

Output conventions
------------------
Predicted values are shown the way each dataset reads naturally::

  Car Price         $12,345            (whole dollars, thousands separators)
  Movie Rating      7.3/10
  Titanic Survival  Survived (87.5%)   (confidence of the predicted class)

Confidence levels bucket a probability: High >= 0.8, Medium >= 0.6, else Low.

Trading payloads (risk, system health, news, account) are backend-owned
dicts; formatters read them with ``.get()`` and print ``--`` for anything
absent rather than failing.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Optional, Sequence

from pydantic import BaseModel

from prediction_dashboard.catalog.model_requirements import Dataset
from prediction_dashboard.models.prediction import (
    ClassificationPrediction,
    ModelSummary,
    PredictionHistory,
    RegressionPrediction,
)
from prediction_dashboard.validation.csv_header import HeaderValidationResult

_MISSING = "--"


# ── Scalar values ─────────────────────────────────────────────────────────────


def format_price(value: float) -> str:
    """``12345.6`` -> ``"$12,346"``."""
    return f"${value:,.0f}"


def format_rating(value: float) -> str:
    """``7.25`` -> ``"7.2/10"`` (one decimal)."""
    return f"{value:.1f}/10"


def format_survival(prediction: int) -> str:
    return "Survived" if prediction == 1 else "Not Survived"


def format_confidence(confidence: float) -> str:
    """``0.875`` -> ``"87.5%"``."""
    return f"{confidence * 100:.1f}%"


def confidence_level(confidence: float) -> str:
    """Bucket a probability into ``High`` / ``Medium`` / ``Low``."""
    if confidence >= 0.8:
        return "High"
    if confidence >= 0.6:
        return "Medium"
    return "Low"


def resolve_dataset(name: str) -> Optional[Dataset]:
    """Map a dataset id (``"car-price"``) or display name (``"Car Price"``)
    to a ``Dataset``; ``None`` for anything else."""
    for dataset in Dataset:
        if name in (dataset.value, dataset.display_name):
            return dataset
    return None


def format_output(dataset: str, output: float, confidence: Optional[float] = None) -> str:
    """Format one history record's output for its dataset."""
    ds = resolve_dataset(dataset)
    if ds == Dataset.CAR_PRICE:
        return format_price(output)
    if ds == Dataset.MOVIE_RATING:
        return format_rating(output)
    if ds == Dataset.TITANIC:
        text = format_survival(int(output))
    else:
        text = f"{output:g}"
    if confidence:
        text += f" ({format_confidence(confidence)})"
    return text


def format_average_output(dataset: str, value: float) -> str:
    """Format a per-model average. Titanic averages are survival rates."""
    ds = resolve_dataset(dataset)
    if ds == Dataset.TITANIC:
        return f"{value * 100:.2f}%"
    if ds == Dataset.CAR_PRICE:
        return format_price(value)
    if ds == Dataset.MOVIE_RATING:
        return format_rating(value)
    return f"{value:.2f}"


# ── Single prediction ─────────────────────────────────────────────────────────


def format_single_prediction(label: str, dataset: Dataset, result: BaseModel) -> str:
    """Format the response of one single-row prediction.

    Args:
        label:   Endpoint label shown as the header.
        dataset: Dataset of the endpoint (selects the value format).
        result:  ``RegressionPrediction`` or ``ClassificationPrediction``.
    """
    lines = ["", f"=== {label} ==="]
    if isinstance(result, ClassificationPrediction):
        lines.append(f"  Prediction:  {format_survival(result.prediction)}")
        lines.append(
            f"  Confidence:  {format_confidence(result.confidence)} "
            f"({confidence_level(result.confidence)})"
        )
        lines.append(f"  P(survive):  {format_confidence(result.survival_probability)}")
    elif isinstance(result, RegressionPrediction):
        if dataset == Dataset.CAR_PRICE:
            value = format_price(result.prediction)
        elif dataset == Dataset.MOVIE_RATING:
            value = format_rating(result.prediction)
        else:
            value = f"{result.prediction:.2f}"
        lines.append(f"  Prediction:  {value}")
    else:
        lines.append(f"  {result!r}")
    return "\n".join(lines)


# ── CSV validation ────────────────────────────────────────────────────────────


def format_validation_report(result: HeaderValidationResult, filename: str = "") -> str:
    """Format a header validation result.

    Example::

        === CSV Validation: cars.csv ===
          Status:   INVALID
          Required: 17 column(s)   Found: 16 column(s)
          [missing_columns] Missing required columns: Airbags
    """
    title = f"=== CSV Validation: {filename} ===" if filename else "=== CSV Validation ==="
    lines = ["", title]
    lines.append(f"  Status:   {'VALID' if result.is_valid else 'INVALID'}")
    if result.required:
        lines.append(
            f"  Required: {len(result.required)} column(s)   "
            f"Found: {len(result.headers)} column(s)"
        )
    for finding in result.findings:
        text = f"  [{finding.kind.value}] {finding.message}"
        if finding.columns:
            text += ": " + ", ".join(finding.columns)
        lines.append(text)
    if result.is_valid:
        lines.append("  CSV format is valid. Ready to upload.")
    elif not result.findings:
        lines.append("  (no file attached)")
    return "\n".join(lines)


# ── Batch predictions ─────────────────────────────────────────────────────────


def _cell(value: Any) -> str:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        return f"{value:.2f}"
    if value is None:
        return _MISSING
    return str(value)


def format_batch_predictions(rows: Sequence[dict[str, Any]], max_width: int = 24) -> str:
    """Format batch-upload predictions as a table.

    Columns are the keys of the first row, preceded by a 1-based row number.
    Floats are shown to 2 decimal places; cells are truncated to ``max_width``.
    """
    lines = ["", f"=== Batch Predictions ({len(rows)} row(s)) ==="]
    if not rows:
        lines.append("  (no predictions returned)")
        return "\n".join(lines)

    columns = list(rows[0].keys())
    table = [[str(i)] + [_cell(row.get(c))[:max_width] for c in columns]
             for i, row in enumerate(rows, start=1)]
    header = ["#"] + [c[:max_width] for c in columns]
    widths = [max(len(header[j]), *(len(r[j]) for r in table)) for j in range(len(header))]

    header_line = "  " + "  ".join(h.ljust(w) for h, w in zip(header, widths))
    lines.append(header_line)
    lines.append("  " + "-" * (len(header_line) - 2))
    for r in table:
        lines.append("  " + "  ".join(c.ljust(w) for c, w in zip(r, widths)))
    return "\n".join(lines)


# ── History / comparison ──────────────────────────────────────────────────────


def format_prediction_history(history: PredictionHistory) -> str:
    """Format the user's predictions grouped by dataset (alphabetical)."""
    lines = ["", "=== Prediction History ==="]
    lines.append(f"  Total records: {history.total_records or len(history.data)}")
    if not history.data:
        lines.append("")
        lines.append("  (no predictions yet — make one with 'predict' or 'predict-batch')")
        return "\n".join(lines)

    grouped: dict[str, list] = defaultdict(list)
    for record in history.data:
        grouped[record.dataset].append(record)

    for dataset in sorted(grouped):
        records = grouped[dataset]
        lines.append("")
        lines.append(f"  [{dataset}]  {len(records)} prediction(s)")
        lines.append(f"    {'Model':<24}  {'Output':>22}  {'Created':<20}")
        lines.append("    " + "-" * 70)
        for r in records:
            output = format_output(r.dataset, r.output, r.confidence)
            lines.append(f"    {r.model_name[:24]:<24}  {output:>22}  {r.created_at[:19]:<20}")
    return "\n".join(lines)


def group_model_summaries(summaries: Sequence[ModelSummary]) -> dict[str, list[ModelSummary]]:
    """Group summaries by dataset, each group sorted by ``avg_output`` descending."""
    grouped: dict[str, list[ModelSummary]] = defaultdict(list)
    for s in summaries:
        grouped[s.dataset].append(s)
    return {
        ds: sorted(rows, key=lambda s: s.avg_output, reverse=True)
        for ds, rows in sorted(grouped.items())
    }


def format_model_comparison(summaries: Sequence[ModelSummary]) -> str:
    """Format per-model averages; the first model of each dataset is marked best."""
    lines = ["", "=== Model Comparison ==="]
    if not summaries:
        lines.append("")
        lines.append("  (no model data available)")
        return "\n".join(lines)

    for dataset, rows in group_model_summaries(summaries).items():
        lines.append("")
        lines.append(f"  [{dataset}]")
        lines.append(
            f"    {'Rank':>4}  {'Model':<24}  {'Avg output':>12}  "
            f"{'Records':>7}  {'Status':<8}"
        )
        lines.append("    " + "-" * 63)
        for rank, s in enumerate(rows, start=1):
            best = "  <- best" if rank == 1 else ""
            lines.append(
                f"    {rank:>4}  {s.model_name[:24]:<24}  "
                f"{format_average_output(s.dataset, s.avg_output):>12}  "
                f"{s.records:>7}  {s.status[:8]:<8}{best}"
            )
    return "\n".join(lines)


# ── Trading monitor ───────────────────────────────────────────────────────────


def _num(value: Any, fmt: str = "{:,.2f}") -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return fmt.format(value)
    return _MISSING if value is None else str(value)


def format_risk_summary(data: dict[str, Any]) -> str:
    """Format ``/api/risk`` data: overall level, key metrics, alerts."""
    overall = data.get("overallRisk") or {}
    metrics = data.get("portfolioMetrics") or data.get("metrics") or {}
    lines = ["", "=== Risk ==="]
    lines.append(
        f"  Level:  {str(overall.get('level', 'unknown')).upper()}   "
        f"Score: {_num(overall.get('score'), '{:.0f}')}/100   "
        f"Status: {str(overall.get('status', 'unknown')).upper()}"
    )
    for key, label in (
        ("var95", "VaR 95%"),
        ("var99", "VaR 99%"),
        ("expectedShortfall", "Exp. shortfall"),
        ("maxDrawdown", "Max drawdown"),
        ("sharpeRatio", "Sharpe ratio"),
        ("volatility", "Volatility"),
    ):
        if key in metrics:
            lines.append(f"  {label:<15} {_num(metrics[key])}")

    recommendations = data.get("recommendations") or []
    if recommendations:
        lines.append("")
        lines.append("  Recommendations:")
        for rec in recommendations:
            lines.append(
                f"    [{str(rec.get('priority', '')).upper():<6}] "
                f"{rec.get('description', rec.get('type', ''))}"
            )
    return "\n".join(lines)


def format_system_health(data: dict[str, Any]) -> str:
    """Format ``/api/system/health`` data (or the realtime-status fallback)."""
    overall = data.get("overall") or {}
    lines = ["", "=== System Health ==="]
    if overall:
        lines.append(
            f"  Overall: {str(overall.get('status', 'unknown')).upper()}   "
            f"Health: {_num(overall.get('health'), '{:.0f}')}%   "
            f"Uptime: {overall.get('uptime', _MISSING)}"
        )

    components = data.get("components") or {
        k: v for k, v in data.items() if isinstance(v, dict) and "status" in v and k != "overall"
    }
    if components:
        lines.append(f"    {'Component':<20}  {'Status':<12}")
        lines.append("    " + "-" * 34)
        for name in sorted(components):
            entry = components[name]
            status = entry.get("status", "unknown") if isinstance(entry, dict) else entry
            lines.append(f"    {name[:20]:<20}  {str(status)[:12]:<12}")
    elif not overall:
        for key in sorted(data):
            lines.append(f"  {key}: {data[key]}")
    return "\n".join(lines)


def format_news_summary(data: dict[str, Any], limit: int = 10) -> str:
    """Format news intelligence: overall sentiment then the latest headlines."""
    sentiment = data.get("sentiment") or {}
    articles = data.get("articles") or data.get("news") or []
    lines = ["", "=== News ==="]
    lines.append(
        f"  Sentiment: {str(sentiment.get('overall', 'neutral')).upper()} "
        f"(score {_num(sentiment.get('score', 0), '{:+.2f}')})   "
        f"Articles: {len(articles)}"
    )
    if not articles:
        lines.append("  (no articles)")
        return "\n".join(lines)
    for a in articles[:limit]:
        impact = str(a.get("impact", "")).upper()
        tag = f"[{impact}] " if impact else ""
        lines.append(f"  - {tag}{a.get('title', '(untitled)')}")
        meta = ", ".join(
            str(a[k]) for k in ("currency", "source", "timestamp") if a.get(k)
        )
        if meta:
            lines.append(f"      {meta}")
    return "\n".join(lines)


def format_account_summary(data: dict[str, Any]) -> str:
    lines = ["", "=== Account ==="]
    if data.get("currency"):
        lines.append(f"  {'Currency':<14} {data['currency']}")
    for key, label in (
        ("balance", "Balance"),
        ("equity", "Equity"),
        ("marginUsed", "Margin used"),
        ("marginAvailable", "Margin avail."),
        ("dailyPnL", "Daily P&L"),
        ("weeklyPnL", "Weekly P&L"),
        ("monthlyPnL", "Monthly P&L"),
    ):
        if key in data:
            lines.append(f"  {label:<14} {_num(data[key])}")
    if "winRate" in data:
        lines.append(f"  {'Win rate':<14} {_num(data['winRate'], '{:.1f}')}%")
    if "totalTrades" in data:
        lines.append(f"  {'Trades':<14} {data['totalTrades']}")
    if not data:
        lines.append("  (no account data)")
    return "\n".join(lines)


def format_positions_table(positions: Sequence[dict[str, Any]]) -> str:
    lines = ["", f"=== Open Positions ({len(positions)}) ==="]
    if not positions:
        lines.append("  (no open positions)")
        return "\n".join(lines)
    lines.append(
        f"    {'ID':<10}  {'Symbol':<8}  {'Side':<5}  {'Volume':>10}  "
        f"{'Entry':>10}  {'Current':>10}  {'P/L':>10}"
    )
    lines.append("    " + "-" * 73)
    for p in positions:
        lines.append(
            f"    {str(p.get('id', ''))[:10]:<10}  {str(p.get('symbol', ''))[:8]:<8}  "
            f"{str(p.get('type', p.get('side', '')))[:5]:<5}  "
            f"{_num(p.get('volume'), '{:,.0f}'):>10}  "
            f"{_num(p.get('entryPrice'), '{:.5f}'):>10}  "
            f"{_num(p.get('currentPrice'), '{:.5f}'):>10}  "
            f"{_num(p.get('profit'), '{:+,.2f}'):>10}"
        )
    return "\n".join(lines)
