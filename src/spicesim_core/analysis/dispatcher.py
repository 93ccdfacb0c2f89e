# src/spicesim_core/analysis/dispatcher.py
"""
Runs one analysis through the simulation engine and normalizes the raw
solution into a tagged, validated outcome.
"""
import concurrent.futures
import copy
import logging
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np

from ..data_structures import Circuit
from .engine import EngineSolution, SimulationEngine
from .exceptions import AnalysisExecutionError, AnalysisTimeoutError, SolverError
from .kinds import SETTINGS_TYPES, AnalysisKind, AnalysisSettings
from .outcomes import (
    AcOutcome,
    AnalysisOutcome,
    DcSweepOutcome,
    OperatingPointOutcome,
    TransientOutcome,
)

logger = logging.getLogger(__name__)


class AnalysisDispatcher:
    """
    Delegates analyses to a `SimulationEngine`.

    Args:
        engine: The solver backend.
        default_timeout_s: Time budget applied when `execute` is called without
                           one. None means no limit.
    """

    def __init__(self, engine: SimulationEngine, default_timeout_s: Optional[float] = None):
        self._engine = engine
        self.default_timeout_s = default_timeout_s

    @property
    def engine(self) -> SimulationEngine:
        return self._engine

    def execute(
        self,
        circuit: Circuit,
        kind: Union[AnalysisKind, str],
        settings: AnalysisSettings,
        timeout_s: Optional[float] = None,
    ) -> AnalysisOutcome:
        """
        Runs the analysis `kind` on `circuit` and returns its outcome.

        With a timeout, the engine works on a deep copy of the circuit in a
        worker thread; the call returns (or raises) once the budget expires,
        even if the engine is still busy.

        Raises:
            AnalysisExecutionError: The engine failed, or its solution was unusable.
            AnalysisTimeoutError: The time budget expired first.
        """
        kind = self._coerce_kind(kind, circuit)
        expected_type = SETTINGS_TYPES[kind]
        if not isinstance(settings, expected_type):
            raise AnalysisExecutionError(
                analysis_kind=kind.value,
                details=f"Expected {expected_type.__name__} for a {kind.value} analysis, got {type(settings).__name__}.",
                circuit_id=circuit.circuit_id,
            )
        if not settings.exports:
            raise AnalysisExecutionError(
                analysis_kind=kind.value,
                details="No export expressions were requested.",
                circuit_id=circuit.circuit_id,
            )

        budget = timeout_s if timeout_s is not None else self.default_timeout_s
        logger.debug(f"Dispatching {kind.value} analysis of '{circuit.circuit_id}' (timeout: {budget}).")
        if budget is None:
            solution = self._call_engine(circuit, kind, settings)
        else:
            solution = self._call_engine_with_timeout(circuit, kind, settings, budget)
        return self._normalize(circuit.circuit_id, kind, settings, solution)

    @staticmethod
    def _coerce_kind(kind: Union[AnalysisKind, str], circuit: Circuit) -> AnalysisKind:
        try:
            return AnalysisKind.from_string(kind)
        except ValueError as e:
            raise AnalysisExecutionError(analysis_kind=str(kind), details=str(e), circuit_id=circuit.circuit_id) from e

    def _call_engine(self, circuit: Circuit, kind: AnalysisKind, settings: AnalysisSettings) -> Any:
        try:
            return self._engine.solve(circuit, kind, settings, list(settings.exports))
        except AnalysisExecutionError:
            raise
        except SolverError as e:
            raise AnalysisExecutionError(
                analysis_kind=kind.value, details=str(e), circuit_id=circuit.circuit_id
            ) from e
        except Exception as e:
            logger.warning(f"Engine raised {type(e).__name__} during {kind.value} analysis: {e}")
            raise AnalysisExecutionError(
                analysis_kind=kind.value,
                details=f"Engine error ({type(e).__name__}): {e}",
                circuit_id=circuit.circuit_id,
            ) from e

    def _call_engine_with_timeout(
        self, circuit: Circuit, kind: AnalysisKind, settings: AnalysisSettings, timeout_s: float
    ) -> Any:
        snapshot = copy.deepcopy(circuit)
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="analysis")
        try:
            future = pool.submit(self._call_engine, snapshot, kind, settings)
            try:
                return future.result(timeout=timeout_s)
            except concurrent.futures.TimeoutError as e:
                future.cancel()
                logger.warning(
                    f"{kind.value} analysis of '{circuit.circuit_id}' exceeded {timeout_s:g} s; abandoning it."
                )
                raise AnalysisTimeoutError(
                    analysis_kind=kind.value,
                    details="The simulation engine did not return in time.",
                    circuit_id=circuit.circuit_id,
                    timeout_s=timeout_s,
                ) from e
        finally:
            # The worker may still be inside the engine; it runs on the snapshot and is left to finish.
            pool.shutdown(wait=False)

    def _normalize(
        self, circuit_id: str, kind: AnalysisKind, settings: AnalysisSettings, solution: Any
    ) -> AnalysisOutcome:
        def fail(details: str) -> AnalysisExecutionError:
            return AnalysisExecutionError(analysis_kind=kind.value, details=details, circuit_id=circuit_id)

        if not isinstance(solution, EngineSolution) or not isinstance(solution.signals, Mapping):
            raise fail(f"Engine returned {type(solution).__name__} instead of an EngineSolution.")

        is_complex = kind is AnalysisKind.AC
        signals: Dict[str, np.ndarray] = {}
        for export in settings.exports:
            if export not in solution.signals:
                raise fail(f"Export '{export}' is missing from the engine solution.")
            signals[export] = self._as_vector(solution.signals[export], is_complex, export, fail)

        if kind is AnalysisKind.OPERATING_POINT:
            for export, array in signals.items():
                if array.size == 0:
                    raise fail(f"Export '{export}' has no operating-point value.")
                signals[export] = array[-1:]
            return OperatingPointOutcome(signals=signals)

        if solution.axis is None:
            raise fail(f"Engine returned no independent axis for a {kind.value} analysis.")
        axis = self._as_vector(solution.axis, False, "axis", fail)
        if axis.size == 0:
            raise fail("Engine returned an empty independent axis.")
        for export, array in signals.items():
            if array.shape != axis.shape:
                raise fail(
                    f"Export '{export}' has {array.size} samples but the axis has {axis.size}."
                )

        if kind is AnalysisKind.DC_SWEEP:
            return DcSweepOutcome(sweep_values=axis, signals=signals)
        if kind is AnalysisKind.AC:
            return AcOutcome(frequencies=axis, signals=signals)
        return TransientOutcome(time=axis, signals=signals)

    @staticmethod
    def _as_vector(raw: Any, is_complex: bool, label: str, fail) -> np.ndarray:
        try:
            array = np.atleast_1d(np.array(raw))
        except (TypeError, ValueError) as e:
            raise fail(f"'{label}' is not an array of numbers: {e}") from e
        if array.ndim != 1:
            raise fail(f"'{label}' must be one-dimensional, got shape {array.shape}.")
        if not np.issubdtype(array.dtype, np.number):
            raise fail(f"'{label}' holds non-numeric data ({array.dtype}).")
        if is_complex:
            return array.astype(complex)
        if np.iscomplexobj(array):
            raise fail(f"'{label}' holds complex values where real values are expected.")
        return array.astype(float)
