"""
prediction_dashboard.validation — Client-side checks run before any upload.

Modules:
  csv_header — header-row validation of uploaded CSVs against model columns.
"""
