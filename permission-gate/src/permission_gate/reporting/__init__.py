from permission_gate.reporting.report import render_update_summary, render_validation_report

__all__ = ["render_update_summary", "render_validation_report"]
