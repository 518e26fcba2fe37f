"""
Investment projection engine — per-box daily simulation, aggregation and chart downsampling.
"""

from .runner import ALL_BOXES, ProjectionResult, ProjectionSummary, run_projection
from .sampling import downsample_series
from .simulation import BoxBalance, box_annual_rate, simulate_box_to_date

__all__ = [
    "ALL_BOXES",
    "ProjectionResult",
    "ProjectionSummary",
    "run_projection",
    "downsample_series",
    "BoxBalance",
    "box_annual_rate",
    "simulate_box_to_date",
]
