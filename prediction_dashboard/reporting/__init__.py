"""
prediction_dashboard.reporting — Plain-text formatting for CLI output.

Modules:
  formatters — ASCII tables and summaries for predictions and trading views.
"""
