"""
Report output for Usage Cost.

Serializes aggregation results to JSON and console tables.
"""

from .report import build_summary_table, render_report, usage_to_dict, write_report

__all__ = ["build_summary_table", "render_report", "usage_to_dict", "write_report"]
