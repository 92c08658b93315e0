"""
Reporting helpers for the CLI.

Modules
-------
export     : JSON report, recommendations CSV and forecasts Parquet writers.
formatters : ASCII tables for terminal output.
"""
