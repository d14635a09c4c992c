"""
prediction_dashboard.clients — HTTP clients for the external backends.

Every call makes exactly one request: no retries, no caching.

Modules:
  inference_client — single-row predictions, CSV batch upload, history, summaries.
  trading_client   — trading-monitor reads and order actions.
  remote           — ``RemoteResult`` / ``run_remote()`` request-state wrapper.
"""
