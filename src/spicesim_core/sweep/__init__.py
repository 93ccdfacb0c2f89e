# src/spicesim_core/sweep/__init__.py
"""
Exposes the public interface of the parameter sweep package.
"""
from .executor import SweepExecutor
from .aggregator import ResultAggregator
from .report import (
    SweepReport,
    SweepStatus,
    PointError,
    AcCurveData,
    TransientCurveData,
    CurveData,
)
from .values import step_values, generate_sweep_values, SWEEP_SCALES
from .exceptions import AxisMismatchError, SweepInProgressError

__all__ = [
    "SweepExecutor",
    "ResultAggregator",
    "SweepReport",
    "SweepStatus",
    "PointError",
    "AcCurveData",
    "TransientCurveData",
    "CurveData",
    "step_values",
    "generate_sweep_values",
    "SWEEP_SCALES",
    "AxisMismatchError",
    "SweepInProgressError",
]
