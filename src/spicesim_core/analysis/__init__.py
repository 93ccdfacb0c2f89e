# src/spicesim_core/analysis/__init__.py
"""
Exposes the public interface of the analysis package: analysis kinds and
settings, the engine contract, the dispatcher and its tagged outcomes.
"""
from .kinds import (
    AnalysisKind,
    AcSweepType,
    AnalysisSettings,
    OperatingPointSettings,
    DcSweepSettings,
    AcSettings,
    TransientSettings,
    SETTINGS_TYPES,
)
from .config import parse_analysis_settings, ConfigParsingError
from .exports import ExportExpression, parse_export, parse_exports, unit_for_export
from .engine import SimulationEngine, EngineSolution
from .outcomes import (
    AnalysisOutcome,
    OperatingPointOutcome,
    DcSweepOutcome,
    AcOutcome,
    TransientOutcome,
)
from .dispatcher import AnalysisDispatcher
from .exceptions import AnalysisExecutionError, AnalysisTimeoutError, SolverError

__all__ = [
    "AnalysisKind",
    "AcSweepType",
    "AnalysisSettings",
    "OperatingPointSettings",
    "DcSweepSettings",
    "AcSettings",
    "TransientSettings",
    "SETTINGS_TYPES",
    "parse_analysis_settings",
    "ConfigParsingError",
    "ExportExpression",
    "parse_export",
    "parse_exports",
    "unit_for_export",
    "SimulationEngine",
    "EngineSolution",
    "AnalysisOutcome",
    "OperatingPointOutcome",
    "DcSweepOutcome",
    "AcOutcome",
    "TransientOutcome",
    "AnalysisDispatcher",
    "AnalysisExecutionError",
    "AnalysisTimeoutError",
    "SolverError",
]
