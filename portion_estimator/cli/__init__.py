"""CLI commands for the portion estimator."""

from .estimate import format_summary, run_estimation

__all__ = ["format_summary", "run_estimation"]
