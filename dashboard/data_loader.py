"""
Dashboard data loader.

Configuration is loaded once per session with ``@st.cache_data``; clients are
built per request and closed straight after, so backend responses are never
cached: every button press or poll tick makes exactly one request.

The ``*_frame`` helpers turn response models into display-ready pandas
DataFrames (formatted values, friendly column names) so the page code only
has to lay them out.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Sequence

import pandas as pd
import streamlit as st

from prediction_dashboard.clients.inference_client import InferenceClient
from prediction_dashboard.clients.trading_client import TradingClient
from prediction_dashboard.config import AppConfig, load_config
from prediction_dashboard.models.prediction import ModelSummary, PredictionHistory
from prediction_dashboard.reporting.formatters import (
    format_average_output,
    format_output,
    group_model_summaries,
)


# ── Config & clients ──────────────────────────────────────────────────────────

@st.cache_data
def get_config(config_path: Optional[str] = None) -> AppConfig:
    return load_config(Path(config_path) if config_path else None)


def inference_client(config: AppConfig) -> InferenceClient:
    """Fresh client; use as a context manager so it is closed after one view."""
    return InferenceClient.from_config(config)


def trading_client(config: AppConfig) -> TradingClient:
    return TradingClient.from_config(config)


# ── DataFrames ────────────────────────────────────────────────────────────────

def history_frames(history: PredictionHistory) -> dict[str, pd.DataFrame]:
    """Return one DataFrame per dataset, newest prediction first."""
    grouped: dict[str, list[dict[str, Any]]] = {}
    for r in history.data:
        grouped.setdefault(r.dataset, []).append(
            {
                "Model": r.model_name,
                "Prediction": format_output(r.dataset, r.output, r.confidence),
                "Created": pd.to_datetime(r.created_at, errors="coerce"),
            }
        )
    frames = {}
    for dataset in sorted(grouped):
        df = pd.DataFrame(grouped[dataset])
        frames[dataset] = df.sort_values("Created", ascending=False, na_position="last")
    return frames


def comparison_frames(summaries: Sequence[ModelSummary]) -> dict[str, pd.DataFrame]:
    """Return one DataFrame per dataset, best (highest ``avg_output``) first."""
    frames = {}
    for dataset, rows in group_model_summaries(summaries).items():
        frames[dataset] = pd.DataFrame(
            [
                {
                    "Rank": rank,
                    "Model": s.model_name,
                    "Average output": format_average_output(s.dataset, s.avg_output),
                    "avg_output": s.avg_output,
                    "Records": s.records,
                    "Status": s.status,
                    "Updated": s.updated_at,
                }
                for rank, s in enumerate(rows, start=1)
            ]
        )
    return frames


def predictions_frame(rows: Sequence[dict[str, Any]]) -> pd.DataFrame:
    """Batch predictions with a 1-based ``#`` column; floats rounded to 2 dp."""
    df = pd.DataFrame(list(rows))
    if df.empty:
        return df
    df.insert(0, "#", range(1, len(df) + 1))
    return df.round(2)


def positions_frame(positions: Sequence[dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(list(positions))
    wanted = [c for c in ("id", "symbol", "type", "volume", "entryPrice",
                          "currentPrice", "profit", "openTime") if c in df.columns]
    return df[wanted] if wanted else df
