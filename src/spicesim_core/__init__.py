# src/spicesim_core/__init__.py
import logging
from .log_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
logger.info("SpiceSim Core package initialized.")

from .units import ureg, pint, Quantity
from .data_structures import Circuit, Component, Model, ComponentType, ModelType
from .store import CircuitStore
from .parameters import TEMPERATURE_PATH, ParameterResolver, ResolvedTarget, TargetKind
from .analysis import (
    AnalysisKind, AnalysisDispatcher, SimulationEngine, EngineSolution, SolverError,
    OperatingPointSettings, DcSweepSettings, AcSettings, TransientSettings, parse_analysis_settings,
)
from .sweep import SweepExecutor, ResultAggregator, SweepReport, SweepStatus, PointError, generate_sweep_values, step_values
from .cache import ResultsCache, CachedAnalysisResult
from .validation import CircuitValidator
from .parser import CircuitDefinitionParser, load_circuit
from .gateway import SweepGateway, SweepJob
from .errors import SpiceSimError, CircuitDefinitionError, SweepRunError, GatewayInputError

__all__ = [
    # Units
    "ureg", "pint", "Quantity",
    # Data Structures
    "Circuit", "Component", "Model", "ComponentType", "ModelType",
    # Store
    "CircuitStore",
    # Parameters
    "TEMPERATURE_PATH", "ParameterResolver", "ResolvedTarget", "TargetKind",
    # Analysis
    "AnalysisKind", "AnalysisDispatcher", "SimulationEngine", "EngineSolution", "SolverError",
    "OperatingPointSettings", "DcSweepSettings", "AcSettings", "TransientSettings", "parse_analysis_settings",
    # Sweeps
    "SweepExecutor", "ResultAggregator", "SweepReport", "SweepStatus", "PointError",
    "generate_sweep_values", "step_values",
    # Cache
    "ResultsCache", "CachedAnalysisResult",
    # Validation
    "CircuitValidator",
    # Parser
    "CircuitDefinitionParser", "load_circuit",
    # Gateway
    "SweepGateway", "SweepJob",
    # Top-Level Errors (Actionable Diagnostics)
    "SpiceSimError", "CircuitDefinitionError", "SweepRunError", "GatewayInputError",
]
