"""
ML Prediction Dashboard — Streamlit Dashboard
=============================================

Optional web UI over the same clients the CLI uses. Every action sends one
request to the external backends; nothing is computed or cached locally
apart from the loaded configuration.

App structure (5 tabs)
----------------------
  1. Predict          — Single-row form per prediction endpoint.
  2. CSV Batch        — Header validation against the selected model, then
                        upload for batch predictions (blocked until valid).
  3. History          — Your past predictions grouped by dataset.
  4. Compare          — Average output per model, best first.
  5. Trading Monitor  — Risk, system health, news, account and positions,
                        each refreshed on its own interval; trade actions.

Auth
----
The bearer token and user email come from configuration
(``PREDICTION_DASHBOARD_TOKEN`` / ``PREDICTION_DASHBOARD_USER_EMAIL`` in
``.env``). Without a token every prediction view shows
"Authentication required" and sends nothing.

Usage
-----
    pip install -e ".[dashboard]"
    streamlit run dashboard/app.py

    # Use another config file (passed after the double-dash):
    streamlit run dashboard/app.py -- --config config/local.toml
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Literal, get_args, get_origin

# ── Ensure project root is importable ────────────────────────────────────────
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st

# ── Must be the first Streamlit call ─────────────────────────────────────────
st.set_page_config(
    page_title="ML Prediction Dashboard",
    layout="wide",
    initial_sidebar_state="expanded",
)

import pandas as pd
from pydantic import ValidationError

from dashboard import data_loader
from prediction_dashboard.catalog.model_requirements import MODEL_REQUIREMENTS
from prediction_dashboard.clients.inference_client import PREDICTION_ENDPOINTS
from prediction_dashboard.clients.remote import run_remote
from prediction_dashboard.exceptions import DashboardError
from prediction_dashboard.models.prediction import ClassificationPrediction
from prediction_dashboard.models.trading import CURRENCY_PAIRS, TradeRequest
from prediction_dashboard.reporting import formatters as fmt
from prediction_dashboard.validation.csv_header import UploadedFile, validate_csv

# ── Config ────────────────────────────────────────────────────────────────────

_parser = argparse.ArgumentParser()
_parser.add_argument("--config", default=None)
_args, _ = _parser.parse_known_args()

try:
    config = data_loader.get_config(_args.config)
except (DashboardError, ValidationError) as exc:
    st.error(f"Config validation failed: {exc}")
    st.stop()


# ── Sidebar ───────────────────────────────────────────────────────────────────

with st.sidebar:
    st.title("ML Prediction Dashboard")
    st.caption("Client for external prediction and trading APIs")
    st.divider()

    st.markdown(f"**Inference API**  \n`{config.inference.base_url}`")
    st.markdown(f"**Trading API**  \n`{config.trading.base_url}`")
    if config.auth.token:
        st.success(f"Signed in as {config.auth.user_email or 'unknown user'}")
    else:
        st.warning("No token configured. Set PREDICTION_DASHBOARD_TOKEN in .env.")

    if st.button("Reload config", help="Re-read config files and .env."):
        st.cache_data.clear()
        st.rerun()


def _show_error(message: str | None) -> None:
    st.error(message or "An error occurred")


# ── Tabs ──────────────────────────────────────────────────────────────────────

tab_predict, tab_csv, tab_history, tab_compare, tab_trading = st.tabs(
    ["Predict", "CSV Batch", "History", "Compare", "Trading Monitor"]
)


# ══════════════════════════════════════════════════════════════════════════════
# Tab 1: Predict
# ══════════════════════════════════════════════════════════════════════════════

def _field_input(name: str, field, key: str):
    """Render one form widget from a pydantic field."""
    label = field.alias or name
    default = field.get_default(call_default_factory=True)
    annotation = field.annotation
    if get_origin(annotation) is Literal:
        options = list(get_args(annotation))
        return st.selectbox(label, options, index=options.index(default), key=key)
    if annotation is int:
        return st.number_input(label, value=int(default), step=1, key=key)
    if annotation is float:
        return st.number_input(label, value=float(default), key=key)
    return st.text_input(label, value=str(default), key=key)


with tab_predict:
    st.header("Single Prediction")

    endpoint_key = st.selectbox(
        "Model",
        options=list(PREDICTION_ENDPOINTS),
        key="predict-model",
        format_func=lambda k: PREDICTION_ENDPOINTS[k].label,
    )
    endpoint = PREDICTION_ENDPOINTS[endpoint_key]
    fields = {
        name: f for name, f in endpoint.input_model.model_fields.items() if name != "email"
    }

    with st.form(f"form-{endpoint_key}"):
        values = {}
        cols = st.columns(3)
        for i, (name, field) in enumerate(fields.items()):
            with cols[i % 3]:
                values[name] = _field_input(name, field, key=f"{endpoint_key}-{name}")
        submitted = st.form_submit_button("Predict")

    if submitted:
        try:
            form = endpoint.input_model.model_validate(values)
        except ValidationError as exc:
            st.error(f"Invalid input: {exc}")
        else:
            with st.spinner("Requesting prediction..."):
                with data_loader.inference_client(config) as client:
                    result = run_remote(lambda: client.predict(endpoint.key, form))
            if not result.ok:
                _show_error(result.error_message)
            elif isinstance(result.value, ClassificationPrediction):
                pred = result.value
                c1, c2, c3 = st.columns(3)
                c1.metric("Prediction", fmt.format_survival(pred.prediction))
                c2.metric("Confidence", fmt.format_confidence(pred.confidence))
                c3.metric("Confidence level", fmt.confidence_level(pred.confidence))
                st.progress(pred.survival_probability, text="Survival probability")
            else:
                st.text(fmt.format_single_prediction(endpoint.label, endpoint.dataset, result.value))


# ══════════════════════════════════════════════════════════════════════════════
# Tab 2: CSV Batch
# ══════════════════════════════════════════════════════════════════════════════

with tab_csv:
    st.header("CSV Batch Predictions")
    st.caption("The header row must contain exactly the columns the model requires.")

    model_key = st.selectbox(
        "Model",
        options=[None] + list(MODEL_REQUIREMENTS),
        key="csv-model",
        format_func=lambda k: "Select a model" if k is None else MODEL_REQUIREMENTS[k].label,
    )
    if model_key:
        with st.expander("Required columns"):
            st.code(", ".join(MODEL_REQUIREMENTS[model_key].columns), language=None)

    uploaded = st.file_uploader("CSV file", accept_multiple_files=False)
    upload = UploadedFile(uploaded.name, uploaded.getvalue()) if uploaded else None
    validation = validate_csv(upload, model_key)

    for finding in validation.findings:
        text = finding.message
        if finding.columns:
            text += ": " + ", ".join(finding.columns)
        st.error(text)
    if validation.is_valid:
        st.success("CSV format is valid. Ready to upload.")

    if st.button("Upload and predict", disabled=not validation.is_valid):
        with st.spinner("Uploading..."):
            with data_loader.inference_client(config) as client:
                result = run_remote(lambda: client.upload_batch(upload, model_key, validation))
        if not result.ok:
            _show_error(result.error_message)
        else:
            if result.value.message:
                st.info(result.value.message)
            df = data_loader.predictions_frame(result.value.predictions)
            st.dataframe(df, use_container_width=True, hide_index=True)
            if not df.empty:
                st.download_button(
                    "Download predictions",
                    df.to_csv(index=False).encode("utf-8"),
                    file_name=f"predictions_{model_key}.csv",
                    mime="text/csv",
                )


# ══════════════════════════════════════════════════════════════════════════════
# Tab 3: History
# ══════════════════════════════════════════════════════════════════════════════

with tab_history:
    st.header("Prediction History")

    if st.button("Load history"):
        with data_loader.inference_client(config) as client:
            result = run_remote(client.prediction_history)
        if not result.ok:
            _show_error(result.error_message)
        elif not result.value.data:
            st.info("No predictions yet.")
        else:
            st.metric("Total records", result.value.total_records or len(result.value.data))
            for dataset, df in data_loader.history_frames(result.value).items():
                st.subheader(f"{dataset} ({len(df)})")
                st.dataframe(df, use_container_width=True, hide_index=True)


# ══════════════════════════════════════════════════════════════════════════════
# Tab 4: Compare
# ══════════════════════════════════════════════════════════════════════════════

with tab_compare:
    st.header("Model Comparison")
    st.caption("Average output per model; the first row of each dataset is the best.")

    if st.button("Load comparison"):
        with data_loader.inference_client(config) as client:
            result = run_remote(client.models_summary)
        if not result.ok:
            _show_error(result.error_message)
        elif not result.value:
            st.info("No model data available.")
        else:
            for dataset, df in data_loader.comparison_frames(result.value).items():
                st.subheader(dataset)
                st.dataframe(
                    df.drop(columns=["avg_output"]), use_container_width=True, hide_index=True
                )
                st.bar_chart(df.set_index("Model")["avg_output"])


# ══════════════════════════════════════════════════════════════════════════════
# Tab 5: Trading Monitor
# ══════════════════════════════════════════════════════════════════════════════

def _poll_panel(title: str, method: str, formatter, interval_s: float) -> None:
    """Render a panel that refetches itself every ``interval_s`` seconds."""

    @st.fragment(run_every=interval_s)
    def _panel() -> None:
        with data_loader.trading_client(config) as client:
            result = run_remote(getattr(client, method))
        st.caption(f"{title} · refreshes every {interval_s:g}s")
        if not result.ok:
            _show_error(result.error_message)
        elif method == "positions":
            if result.value:
                st.dataframe(
                    data_loader.positions_frame(result.value),
                    use_container_width=True,
                    hide_index=True,
                )
            else:
                st.info("No open positions.")
        else:
            st.text(formatter(result.value))

    _panel()


with tab_trading:
    st.header("Trading Monitor")
    polling = config.polling

    sub_risk, sub_sys, sub_news, sub_acct, sub_pos, sub_trade = st.tabs(
        ["Risk", "System", "News", "Account", "Positions", "Trade"]
    )
    with sub_risk:
        _poll_panel("Risk", "risk", fmt.format_risk_summary, polling.risk_s)
    with sub_sys:
        _poll_panel("System health", "system_health", fmt.format_system_health,
                    polling.system_health_s)
    with sub_news:
        _poll_panel("News", "news_intelligence", fmt.format_news_summary, polling.news_s)
    with sub_acct:
        _poll_panel("Account", "account", fmt.format_account_summary, polling.account_s)
    with sub_pos:
        _poll_panel("Positions", "positions", fmt.format_positions_table, polling.positions_s)

    with sub_trade:
        with st.form("open-trade"):
            c1, c2, c3 = st.columns(3)
            symbol = c1.selectbox("Symbol", CURRENCY_PAIRS)
            side = c2.selectbox("Side", ["buy", "sell"])
            volume = c3.number_input("Volume", min_value=1.0, value=1000.0, step=100.0)
            c4, c5 = st.columns(2)
            stop_loss = c4.number_input("Stop loss (0 = none)", min_value=0.0, format="%.5f")
            take_profit = c5.number_input("Take profit (0 = none)", min_value=0.0, format="%.5f")
            open_clicked = st.form_submit_button("Open trade")

        if open_clicked:
            try:
                ticket = TradeRequest(
                    symbol=symbol,
                    type=side,
                    volume=volume,
                    stop_loss=stop_loss or None,
                    take_profit=take_profit or None,
                )
            except ValidationError as exc:
                st.error(f"Invalid trade: {exc}")
            else:
                with data_loader.trading_client(config) as client:
                    result = run_remote(lambda: client.create_trade(ticket))
                if result.ok:
                    st.success("Trade opened.")
                    st.json(result.value)
                else:
                    _show_error(result.error_message)

        st.divider()
        c1, c2 = st.columns(2)
        with c1:
            trade_id = st.text_input("Trade ID")
            if st.button("Close trade", disabled=not trade_id):
                with data_loader.trading_client(config) as client:
                    result = run_remote(lambda: client.close_trade(trade_id))
                if result.ok:
                    st.success(f"Trade {trade_id} closed.")
                else:
                    _show_error(result.error_message)
        with c2:
            order_id = st.text_input("Order ID")
            if st.button("Cancel order", disabled=not order_id):
                with data_loader.trading_client(config) as client:
                    result = run_remote(lambda: client.cancel_order(order_id))
                if result.ok:
                    st.success(f"Order {order_id} cancelled.")
                else:
                    _show_error(result.error_message)

        with st.expander("Recent trades"):
            with data_loader.trading_client(config) as client:
                result = run_remote(client.trade_history)
            if result.ok:
                st.dataframe(pd.DataFrame(result.value), use_container_width=True, hide_index=True)
            else:
                _show_error(result.error_message)
