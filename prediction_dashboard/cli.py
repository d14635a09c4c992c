"""
ML Prediction Dashboard — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs (model key, CSV header, JSON form).
  4. Send one request through ``run_remote()``.
  5. Format the result to stdout, or print ``[ERROR] ...`` and exit 1.

Install and run::

    pip install -e .
    prediction-dashboard --help
    prediction-dashboard validate-config
    prediction-dashboard list-models
    prediction-dashboard validate-csv cars.csv --model car-price-linear
    prediction-dashboard predict-batch cars.csv --model car-price-linear
    prediction-dashboard predict titanic-logistic --input passenger.json
    prediction-dashboard history
    prediction-dashboard compare
    prediction-dashboard monitor risk --watch
    prediction-dashboard trade open --symbol EUR_USD --side buy --volume 1000
"""

from __future__ import annotations

import json
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Callable, Optional, TypeVar

import typer
from pydantic import ValidationError

from prediction_dashboard.exceptions import DashboardError

T = TypeVar("T")

app = typer.Typer(
    name="prediction-dashboard",
    help="ML Prediction Dashboard — prediction and trading-monitor CLI.",
    add_completion=False,
)
trade_app = typer.Typer(help="Open, close or cancel trades on the trading backend.")
app.add_typer(trade_app, name="trade")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from prediction_dashboard.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except DashboardError as exc:
        typer.echo(f"[ERROR] {exc.message}", err=True)
        raise typer.Exit(code=1)
    except (ValidationError, tomllib.TOMLDecodeError, OSError) as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from prediction_dashboard.utils.logging import configure_logging
    configure_logging(config.logging, secrets=(config.auth.token,))


def _inference_client(config):
    from prediction_dashboard.clients.inference_client import InferenceClient
    return InferenceClient.from_config(config)


def _trading_client(config):
    from prediction_dashboard.clients.trading_client import TradingClient
    return TradingClient.from_config(config)


def _fetch_or_exit(fn: Callable[[], T]) -> T:
    """Run one remote call; on failure print ``[ERROR]`` and exit 1."""
    from prediction_dashboard.clients.remote import run_remote

    result = run_remote(fn)
    if not result.ok:
        typer.echo(f"[ERROR] {result.error_message}", err=True)
        raise typer.Exit(code=1)
    return result.value


def _read_upload_or_exit(csv_file: str):
    from prediction_dashboard.validation.csv_header import UploadedFile

    path = Path(csv_file)
    try:
        return UploadedFile(filename=path.name, content=path.read_bytes())
    except OSError as exc:
        typer.echo(f"[ERROR] Cannot read {csv_file}: {exc}", err=True)
        raise typer.Exit(code=1)


_CONFIG_OPTION_HELP = "Path to TOML config file (default: config/default.toml)."


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    The bearer token is never printed, only whether one is set.
    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Inference API:    {config.inference.base_url}")
    typer.echo(f"  Trading API:      {config.trading.base_url}")
    typer.echo(f"  Token set:        {'yes' if config.auth.token else 'no'}")
    typer.echo(f"  User email:       {config.auth.user_email or '(not set)'}")
    typer.echo(
        f"  Poll intervals:   risk={config.polling.risk_s:g}s "
        f"system={config.polling.system_health_s:g}s "
        f"account={config.polling.account_s:g}s "
        f"news={config.polling.news_s:g}s "
        f"positions={config.polling.positions_s:g}s"
    )
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        dumped = config.model_dump()
        if dumped["auth"].get("token"):
            dumped["auth"]["token"] = "***"
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(dumped, indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("list-models")
def list_models() -> None:
    """List batch (CSV) model keys and single-prediction endpoints."""
    from prediction_dashboard.catalog.model_requirements import MODEL_REQUIREMENTS
    from prediction_dashboard.clients.inference_client import PREDICTION_ENDPOINTS

    typer.echo("")
    typer.echo("=== Batch models (predict-batch --model KEY) ===")
    typer.echo(f"  {'Key':<28}  {'Dataset':<13}  {'Cols':>4}  Label")
    typer.echo("  " + "-" * 80)
    for key, req in MODEL_REQUIREMENTS.items():
        typer.echo(f"  {key:<28}  {req.dataset.value:<13}  {len(req.columns):>4}  {req.label}")

    typer.echo("")
    typer.echo("=== Single-prediction endpoints (predict ENDPOINT) ===")
    typer.echo(f"  {'Key':<28}  {'Path':<44}")
    typer.echo("  " + "-" * 80)
    for key, ep in PREDICTION_ENDPOINTS.items():
        typer.echo(f"  {key:<28}  {ep.path:<44}")


@app.command("validate-csv")
def validate_csv_cmd(
    csv_file: str = typer.Argument(..., help="CSV file whose header row is checked."),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Model key (see list-models).",
    ),
) -> None:
    """Check a CSV header against the columns a model requires.

    No request is sent. Exits with code 1 if the header is invalid.
    """
    from prediction_dashboard.reporting.formatters import format_validation_report
    from prediction_dashboard.validation.csv_header import validate_csv

    upload = _read_upload_or_exit(csv_file)
    result = validate_csv(upload, model)
    typer.echo(format_validation_report(result, upload.filename))
    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command("predict-batch")
def predict_batch(
    csv_file: str = typer.Argument(..., help="CSV file to upload."),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Model key (see list-models).",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Validate a CSV and upload it for batch predictions.

    Nothing is uploaded unless the header validates for ``--model``.
    """
    from prediction_dashboard.reporting.formatters import (
        format_batch_predictions,
        format_validation_report,
    )
    from prediction_dashboard.validation.csv_header import validate_csv

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    upload = _read_upload_or_exit(csv_file)
    validation = validate_csv(upload, model)
    if not validation.is_valid:
        typer.echo(format_validation_report(validation, upload.filename))
        typer.echo(
            "[ERROR] CSV file validation failed. Please fix the errors and try again.",
            err=True,
        )
        raise typer.Exit(code=1)

    with _inference_client(config) as client:
        response = _fetch_or_exit(lambda: client.upload_batch(upload, model, validation))

    if response.message:
        typer.echo(response.message)
    typer.echo(format_batch_predictions(response.predictions))
    typer.echo("")
    typer.echo(f"[OK] {len(response.predictions)} prediction(s).")


@app.command("predict")
def predict(
    endpoint: str = typer.Argument(..., help="Endpoint key (see list-models)."),
    input_file: Optional[str] = typer.Option(
        None,
        "--input",
        "-i",
        help="JSON file with form fields; omitted fields use form defaults.",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Send one row to a single-prediction endpoint."""
    from prediction_dashboard.clients.inference_client import get_endpoint
    from prediction_dashboard.reporting.formatters import format_single_prediction

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        ep = get_endpoint(endpoint)
    except DashboardError as exc:
        typer.echo(f"[ERROR] {exc.message}", err=True)
        raise typer.Exit(code=1)

    fields: dict = {}
    if input_file:
        try:
            fields = json.loads(Path(input_file).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            typer.echo(f"[ERROR] Cannot read {input_file}: {exc}", err=True)
            raise typer.Exit(code=1)
    try:
        form = ep.input_model.model_validate(fields)
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid input for {ep.key}: {exc}", err=True)
        raise typer.Exit(code=1)

    with _inference_client(config) as client:
        result = _fetch_or_exit(lambda: client.predict(ep.key, form))

    typer.echo(format_single_prediction(ep.label, ep.dataset, result))


@app.command("history")
def history(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Show every prediction you have made, grouped by dataset."""
    from prediction_dashboard.reporting.formatters import format_prediction_history

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _inference_client(config) as client:
        records = _fetch_or_exit(client.prediction_history)
    typer.echo(format_prediction_history(records))


@app.command("compare")
def compare(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Compare average model output per dataset (best first)."""
    from prediction_dashboard.reporting.formatters import format_model_comparison

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _inference_client(config) as client:
        summaries = _fetch_or_exit(client.models_summary)
    typer.echo(format_model_comparison(summaries))


class MonitorView(StrEnum):
    RISK = "risk"
    SYSTEM = "system"
    NEWS = "news"
    ACCOUNT = "account"
    POSITIONS = "positions"


@app.command("monitor")
def monitor(
    view: MonitorView = typer.Argument(..., help="What to show."),
    watch: bool = typer.Option(
        False,
        "--watch",
        "-w",
        help="Keep polling at the configured interval until Ctrl-C.",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Override the poll interval in seconds (with --watch).",
    ),
    count: Optional[int] = typer.Option(
        None,
        "--count",
        help="Stop after this many polls (with --watch).",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Show a trading-monitor view once, or keep refreshing it with --watch."""
    from prediction_dashboard.polling import Poller
    from prediction_dashboard.reporting import formatters as fmt

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _trading_client(config) as client:
        views = {
            MonitorView.RISK: (client.risk, fmt.format_risk_summary, config.polling.risk_s),
            MonitorView.SYSTEM: (
                client.system_health, fmt.format_system_health, config.polling.system_health_s
            ),
            MonitorView.NEWS: (
                client.news_intelligence, fmt.format_news_summary, config.polling.news_s
            ),
            MonitorView.ACCOUNT: (
                client.account, fmt.format_account_summary, config.polling.account_s
            ),
            MonitorView.POSITIONS: (
                client.positions, fmt.format_positions_table, config.polling.positions_s
            ),
        }
        fetch, formatter, default_interval = views[view]

        if not watch:
            typer.echo(formatter(_fetch_or_exit(fetch)))
            return

        if interval is not None and interval <= 0:
            typer.echo("[ERROR] --interval must be positive.", err=True)
            raise typer.Exit(code=1)

        def _render(result) -> None:
            if result.ok:
                typer.echo(formatter(result.value))
            else:
                typer.echo(f"[ERROR] {result.error_message}", err=True)

        poller = Poller(fetch, interval or default_interval, on_result=_render, name=view.value)
        poller.run(max_ticks=count)


# ── Trade commands ────────────────────────────────────────────────────────────

@trade_app.command("open")
def trade_open(
    symbol: str = typer.Option("EUR_USD", "--symbol", help="Currency pair, e.g. EUR_USD."),
    side: str = typer.Option("buy", "--side", help="buy or sell."),
    volume: float = typer.Option(1000, "--volume", help="Units to trade."),
    stop_loss: Optional[float] = typer.Option(None, "--stop-loss", help="Stop-loss price."),
    take_profit: Optional[float] = typer.Option(
        None, "--take-profit", help="Take-profit price."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Open a market trade."""
    from prediction_dashboard.models.trading import TradeRequest

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        ticket = TradeRequest(
            symbol=symbol.upper(),
            type=side.lower(),
            volume=volume,
            stop_loss=stop_loss,
            take_profit=take_profit,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid trade: {exc}", err=True)
        raise typer.Exit(code=1)

    if not yes:
        typer.confirm(
            f"Open {ticket.type} {ticket.symbol} x{ticket.volume:g}?", abort=True
        )

    with _trading_client(config) as client:
        data = _fetch_or_exit(lambda: client.create_trade(ticket))
    typer.echo(f"[OK] Trade opened: {json.dumps(data, default=str)}")


@trade_app.command("close")
def trade_close(
    trade_id: str = typer.Argument(..., help="Trade ID to close."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Close an open trade."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if not yes:
        typer.confirm(f"Close trade {trade_id}?", abort=True)

    with _trading_client(config) as client:
        _fetch_or_exit(lambda: client.close_trade(trade_id))
    typer.echo(f"[OK] Trade {trade_id} closed.")


@trade_app.command("cancel")
def trade_cancel(
    order_id: str = typer.Argument(..., help="Pending order ID to cancel."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Cancel a pending order."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if not yes:
        typer.confirm(f"Cancel order {order_id}?", abort=True)

    with _trading_client(config) as client:
        _fetch_or_exit(lambda: client.cancel_order(order_id))
    typer.echo(f"[OK] Order {order_id} cancelled.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
