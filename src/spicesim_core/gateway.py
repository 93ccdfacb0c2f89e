# src/spicesim_core/gateway.py
"""
The request boundary of SpiceSim Core.

`SweepGateway` is the facade that RPC handlers call. It validates raw request
arguments, looks up the circuit, guards it against concurrent sweeps, runs the
sweep or analysis, and caches the result for the renderer.

Error contract:

- Malformed requests raise `GatewayInputError`.
- A second sweep on a circuit that is already being swept raises `SweepInProgressError`.
- Any other diagnosable failure that prevents the run (unknown circuit,
  circuit validation errors, a failed single analysis) is re-raised as a
  `SweepRunError` carrying the formatted diagnostic report.
- Failures of individual sweep points, and a parameter path that does not
  resolve, are reported inside the returned `SweepReport`; they do not raise.
"""
import concurrent.futures
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import cerberus
import numpy as np

from .analysis.config import ConfigParsingError, parse_analysis_settings
from .analysis.dispatcher import AnalysisDispatcher
from .analysis.engine import SimulationEngine
from .analysis.kinds import AnalysisKind, AnalysisSettings, DcSweepSettings
from .analysis.outcomes import AnalysisOutcome
from .cache.service import CachedAnalysisResult, ResultsCache
from .constants import DEFAULT_MAX_PARALLEL_WORKERS, DEFAULT_SWEEP_POINTS
from .data_structures import Circuit
from .errors import DiagnosableError, GatewayInputError, SweepRunError, format_diagnostic_report
from .parameters.resolver import TEMPERATURE_PATH, ParameterResolver
from .parser.parser import SweepRequest
from .store.circuit_store import CircuitStore
from .sweep.exceptions import SweepInProgressError
from .sweep.executor import SweepExecutor
from .sweep.report import SweepReport
from .sweep.values import SWEEP_SCALES, generate_sweep_values, step_values
from .validation.circuit_validator import CircuitValidator
from .validation.exceptions import CircuitValidationError
from .validation.issues import ValidationIssueLevel

logger = logging.getLogger(__name__)


def _check_analysis_kind(field: str, value: Any, error):
    try:
        AnalysisKind.from_string(value)
    except ValueError as e:
        error(field, str(e))


_ANALYSIS_REQUEST_SCHEMA = {
    "circuit_id": {"type": "string", "nullable": True, "empty": False},
    "analysis_kind": {"type": "string", "required": True, "empty": False, "check_with": _check_analysis_kind},
    "analysis_settings": {"type": "dict", "nullable": True},
    "export_expressions": {"type": "list", "required": True, "minlength": 1,
                           "schema": {"type": "string", "empty": False}},
    "timeout_s": {"type": "number", "nullable": True, "min": 0},
}

_SWEEP_REQUEST_SCHEMA = {
    **_ANALYSIS_REQUEST_SCHEMA,
    "parameter_path": {"type": "string", "required": True, "empty": False},
    "values": {"type": "list", "required": True, "minlength": 1},
    "max_workers": {"type": "integer", "min": 1},
}

_RANGE_SCHEMA = {
    "start": {"type": "number", "required": True},
    "stop": {"type": "number", "required": True},
    "points": {"type": "integer", "required": True, "min": 2},
    "scale": {"type": "string", "required": True, "allowed": list(SWEEP_SCALES)},
}


def _check_positive(field: str, value: Any, error):
    if value <= 0:
        error(field, "must be greater than zero")


_TEMPERATURE_RANGE_SCHEMA = {
    "start": {"type": "number", "required": True},
    "stop": {"type": "number", "required": True},
    "step": {"type": "number", "required": True, "check_with": _check_positive},
}


@dataclass
class _ValidatedSweep:
    parameter_path: str
    values: List[Any]
    kind: AnalysisKind
    settings: AnalysisSettings
    point_timeout_s: Optional[float]
    parallel: bool
    max_workers: int


@dataclass
class SweepJob:
    """
    Handle on a sweep running in the background.

    `cancel()` asks the sweep to stop before its next point; the points already
    completed are kept and the report's status becomes 'cancelled'.
    """
    circuit_id: str
    parameter_path: str
    future: concurrent.futures.Future
    cancel_event: threading.Event

    def cancel(self):
        self.cancel_event.set()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> SweepReport:
        return self.future.result(timeout=timeout)


class SweepGateway:
    """
    Facade over the circuit store, the sweep executor and the results cache.

    Args:
        store: The session's circuits.
        engine: The simulation backend.
        cache: Where results are kept for the renderer. A fresh cache by default.
        max_background_sweeps: Worker threads for `start_parameter_sweep`.
    """

    def __init__(
        self,
        store: CircuitStore,
        engine: SimulationEngine,
        cache: Optional[ResultsCache] = None,
        max_background_sweeps: int = 2,
    ):
        self.store = store
        self.cache = cache if cache is not None else ResultsCache()
        self._dispatcher = AnalysisDispatcher(engine)
        self._resolver = ParameterResolver()
        self._executor = SweepExecutor(self._dispatcher, resolver=self._resolver)
        self._pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_background_sweeps, thread_name_prefix="sweep-job"
        )
        logger.info("SweepGateway initialized.")

    # --- Sweeps ---

    def run_parameter_sweep(
        self,
        circuit_id: Optional[str],
        parameter_path: str,
        values: Iterable[Any],
        analysis_kind: Union[AnalysisKind, str],
        analysis_settings: Optional[Dict[str, Any]] = None,
        export_expressions: Optional[Sequence[str]] = None,
        point_timeout_s: Optional[float] = None,
        parallel: bool = False,
        max_workers: int = DEFAULT_MAX_PARALLEL_WORKERS,
        cancel_event: Optional[threading.Event] = None,
    ) -> SweepReport:
        """
        Sweeps one parameter of a stored circuit and caches the result.

        Args:
            circuit_id: The circuit to sweep; None selects the active circuit.
            parameter_path: 'Component.value', 'Component.<parameter>' or 'Model.<coefficient>'.
            values: Values in sweep order; numbers or strings such as '4.7 kohm'.
            analysis_kind: 'operating_point' (or 'op'), 'dc', 'ac' or 'transient'.
            analysis_settings: Raw settings for the analysis; omitted fields take defaults.
            export_expressions: Signals to record, e.g. ['v(out)', 'i(R1)'].
            point_timeout_s: Time budget for each point's analysis.
            parallel: Run points concurrently on private copies of the circuit.
            max_workers: Worker threads for the parallel mode.
            cancel_event: Set it to stop the sweep before its next point.

        Returns:
            The sweep report. Point failures and an unresolvable parameter path
            are reported in it, not raised.

        Raises:
            GatewayInputError: The request is malformed.
            SweepInProgressError: Another sweep holds the circuit.
            SweepRunError: The circuit does not exist or fails validation.
        """
        request = self._validate_sweep_request(
            circuit_id, parameter_path, values, analysis_kind, analysis_settings, export_expressions,
            point_timeout_s, parallel, max_workers,
        )
        circuit, lock = self._acquire(circuit_id)
        return self._run_locked(circuit, lock, request, cancel_event)

    def run_parameter_sweep_range(
        self,
        circuit_id: Optional[str],
        parameter_path: str,
        start: float,
        stop: float,
        analysis_kind: Union[AnalysisKind, str],
        points: int = DEFAULT_SWEEP_POINTS,
        scale: str = "linear",
        analysis_settings: Optional[Dict[str, Any]] = None,
        export_expressions: Optional[Sequence[str]] = None,
        **kwargs,
    ) -> SweepReport:
        """
        Like `run_parameter_sweep`, with `points` values generated between
        `start` and `stop` on a 'linear', 'log' or 'decade' scale.
        """
        values = self._range_values(start, stop, points, scale)
        return self.run_parameter_sweep(
            circuit_id, parameter_path, values, analysis_kind, analysis_settings, export_expressions, **kwargs
        )

    def run_temperature_sweep(
        self,
        circuit_id: Optional[str],
        start: float,
        stop: float,
        step: float,
        analysis_kind: Union[AnalysisKind, str],
        analysis_settings: Optional[Dict[str, Any]] = None,
        export_expressions: Optional[Sequence[str]] = None,
        **kwargs,
    ) -> SweepReport:
        """
        Sweeps the circuit's operating temperature (degrees Celsius) from
        `start` to `stop` inclusive in increments of `step`.

        The report's `parameter_path` is 'temperature'. The circuit's
        temperature is restored afterwards, like any other swept field.

        Raises:
            GatewayInputError: The range or the rest of the request is malformed.
            SweepInProgressError: Another sweep holds the circuit.
            SweepRunError: The circuit does not exist or fails validation.
        """
        document = {"start": start, "stop": stop, "step": step}
        validator = cerberus.Validator(_TEMPERATURE_RANGE_SCHEMA)
        if not validator.validate(document):
            raise GatewayInputError(f"Invalid temperature range: {validator.errors}", validator.errors)
        if start > stop:
            raise GatewayInputError(
                f"Start temperature ({start}) must not exceed stop temperature ({stop}).",
                {"start": ["must be less than or equal to stop"]},
            )
        values = step_values(start, stop, step)
        logger.info(f"Temperature sweep requested: {len(values)} points from {start} to {stop} degC.")
        return self.run_parameter_sweep(
            circuit_id, TEMPERATURE_PATH, values, analysis_kind, analysis_settings, export_expressions, **kwargs
        )

    def run_declared_sweep(self, circuit_id: Optional[str], request: SweepRequest, **kwargs) -> SweepReport:
        """Runs the sweep block of a YAML circuit definition."""
        return self.run_parameter_sweep(
            circuit_id,
            request.parameter_path,
            request.values,
            request.analysis_kind,
            request.analysis_settings,
            request.export_expressions,
            **kwargs,
        )

    def start_parameter_sweep(
        self,
        circuit_id: Optional[str],
        parameter_path: str,
        values: Iterable[Any],
        analysis_kind: Union[AnalysisKind, str],
        analysis_settings: Optional[Dict[str, Any]] = None,
        export_expressions: Optional[Sequence[str]] = None,
        point_timeout_s: Optional[float] = None,
        parallel: bool = False,
        max_workers: int = DEFAULT_MAX_PARALLEL_WORKERS,
    ) -> SweepJob:
        """
        Starts a sweep on a background thread and returns at once.

        Input validation and the circuit lock happen before returning, so a
        malformed request or a busy circuit raises here, not from the job.
        """
        request = self._validate_sweep_request(
            circuit_id, parameter_path, values, analysis_kind, analysis_settings, export_expressions,
            point_timeout_s, parallel, max_workers,
        )
        circuit, lock = self._acquire(circuit_id)
        cancel_event = threading.Event()
        try:
            future = self._pool.submit(self._run_locked, circuit, lock, request, cancel_event)
        except Exception:
            lock.release()
            raise
        logger.info(f"Started background sweep of '{parameter_path}' on circuit '{circuit.circuit_id}'.")
        return SweepJob(
            circuit_id=circuit.circuit_id,
            parameter_path=parameter_path,
            future=future,
            cancel_event=cancel_event,
        )

    # --- Single analyses ---

    def run_analysis(
        self,
        circuit_id: Optional[str],
        analysis_kind: Union[AnalysisKind, str],
        analysis_settings: Optional[Dict[str, Any]] = None,
        export_expressions: Optional[Sequence[str]] = None,
        timeout_s: Optional[float] = None,
    ) -> AnalysisOutcome:
        """
        Runs one analysis of a stored circuit and caches it for the renderer.

        Raises:
            GatewayInputError: The request is malformed.
            SweepInProgressError: A sweep holds the circuit.
            SweepRunError: The circuit does not exist, fails validation, or the analysis failed.
        """
        kind, settings = self._validate_analysis_request(
            _ANALYSIS_REQUEST_SCHEMA,
            {
                "circuit_id": circuit_id,
                "analysis_kind": self._kind_text(analysis_kind),
                "analysis_settings": analysis_settings,
                "export_expressions": self._as_list(export_expressions),
                "timeout_s": timeout_s,
            },
        )
        circuit, lock = self._acquire(circuit_id)
        try:
            self._check_circuit(circuit)
            outcome = self._dispatcher.execute(circuit, kind, settings, timeout_s=timeout_s)
            x_label = settings.source if isinstance(settings, DcSweepSettings) else None
            self.cache.store(circuit.circuit_id, CachedAnalysisResult.from_outcome(outcome, x_label=x_label))
            return outcome
        except DiagnosableError as e:
            logger.error(f"{kind.value} analysis of '{circuit.circuit_id}' failed: {e}")
            raise SweepRunError(e.get_diagnostic_report()) from e
        except Exception as e:
            raise self._unexpected(e, circuit.circuit_id) from e
        finally:
            lock.release()

    # --- Results and introspection ---

    def get_cached_result(self, circuit_id: str) -> Optional[CachedAnalysisResult]:
        return self.cache.get(circuit_id)

    def clear_cached_result(self, circuit_id: str) -> bool:
        return self.cache.clear(circuit_id)

    def list_sweepable_parameters(self, circuit_id: Optional[str] = None) -> List[str]:
        """Every parameter path of the circuit that a sweep can target."""
        try:
            circuit = self.store.require_circuit(circuit_id)
        except DiagnosableError as e:
            raise SweepRunError(e.get_diagnostic_report()) from e
        return self._resolver.list_paths(circuit)

    def shutdown(self, wait: bool = True):
        """Stops accepting background sweeps; with `wait`, blocks until running ones finish."""
        self._pool.shutdown(wait=wait)
        logger.info("SweepGateway shut down.")

    # --- Internals ---

    def _run_locked(
        self,
        circuit: Circuit,
        lock: threading.Lock,
        request: _ValidatedSweep,
        cancel_event: Optional[threading.Event],
    ) -> SweepReport:
        try:
            self._check_circuit(circuit)
            report = self._executor.run(
                circuit,
                request.parameter_path,
                request.values,
                request.kind,
                request.settings,
                cancel_event=cancel_event,
                point_timeout_s=request.point_timeout_s,
                parallel=request.parallel,
                max_workers=request.max_workers,
            )
            if report.fatal_error is None:
                self.cache.store(circuit.circuit_id, CachedAnalysisResult.from_sweep_report(report))
            return report
        except DiagnosableError as e:
            logger.error(f"Sweep of '{request.parameter_path}' on '{circuit.circuit_id}' could not run: {e}")
            raise SweepRunError(e.get_diagnostic_report()) from e
        except Exception as e:
            raise self._unexpected(e, circuit.circuit_id) from e
        finally:
            lock.release()

    def _acquire(self, circuit_id: Optional[str]) -> Tuple[Circuit, threading.Lock]:
        try:
            circuit = self.store.require_circuit(circuit_id)
        except DiagnosableError as e:
            logger.error(f"Request rejected: {e}")
            raise SweepRunError(e.get_diagnostic_report()) from e
        lock = self.store.sweep_lock(circuit.circuit_id)
        if not lock.acquire(blocking=False):
            logger.warning(f"Rejected request: circuit '{circuit.circuit_id}' is already being swept.")
            raise SweepInProgressError(circuit.circuit_id)
        return circuit, lock

    @staticmethod
    def _check_circuit(circuit: Circuit):
        issues = CircuitValidator(circuit).validate()
        for issue in issues:
            if issue.level == ValidationIssueLevel.WARNING:
                logger.warning(f"Circuit '{circuit.circuit_id}': {issue}")
        if any(issue.level == ValidationIssueLevel.ERROR for issue in issues):
            raise CircuitValidationError(circuit.circuit_id, issues)

    def _validate_sweep_request(
        self,
        circuit_id: Optional[str],
        parameter_path: str,
        values: Iterable[Any],
        analysis_kind: Union[AnalysisKind, str],
        analysis_settings: Optional[Dict[str, Any]],
        export_expressions: Optional[Sequence[str]],
        point_timeout_s: Optional[float],
        parallel: bool,
        max_workers: int,
    ) -> _ValidatedSweep:
        value_list = self._as_list(values)
        kind, settings = self._validate_analysis_request(
            _SWEEP_REQUEST_SCHEMA,
            {
                "circuit_id": circuit_id,
                "parameter_path": parameter_path,
                "values": value_list,
                "analysis_kind": self._kind_text(analysis_kind),
                "analysis_settings": analysis_settings,
                "export_expressions": self._as_list(export_expressions),
                "timeout_s": point_timeout_s,
                "max_workers": max_workers,
            },
        )
        return _ValidatedSweep(
            parameter_path=parameter_path,
            values=value_list,
            kind=kind,
            settings=settings,
            point_timeout_s=point_timeout_s,
            parallel=bool(parallel),
            max_workers=max_workers,
        )

    @staticmethod
    def _validate_analysis_request(schema: Dict[str, Any], document: Dict[str, Any]) -> Tuple[AnalysisKind, AnalysisSettings]:
        validator = cerberus.Validator(schema)
        validator.allow_unknown = False
        if not validator.validate(document):
            logger.warning(f"Rejected malformed request: {validator.errors}")
            raise GatewayInputError(f"Invalid request: {validator.errors}", validator.errors)

        kind = AnalysisKind.from_string(document["analysis_kind"])
        try:
            settings = parse_analysis_settings(kind, document.get("analysis_settings"), document["export_expressions"])
        except ConfigParsingError as e:
            logger.warning(f"Rejected request with invalid analysis settings: {e}")
            raise GatewayInputError(str(e), {"analysis_settings": [str(e)]}) from e
        return kind, settings

    @staticmethod
    def _range_values(start: float, stop: float, points: int, scale: str) -> List[float]:
        document = {"start": start, "stop": stop, "points": points, "scale": scale}
        validator = cerberus.Validator(_RANGE_SCHEMA)
        if not validator.validate(document):
            raise GatewayInputError(f"Invalid sweep range: {validator.errors}", validator.errors)
        try:
            return generate_sweep_values(start, stop, points, scale)
        except ValueError as e:
            raise GatewayInputError(str(e), {"range": [str(e)]}) from e

    @staticmethod
    def _kind_text(kind: Union[AnalysisKind, str]) -> Any:
        return kind.value if isinstance(kind, AnalysisKind) else kind

    @staticmethod
    def _as_list(items: Any) -> Any:
        if items is None:
            return []
        if isinstance(items, np.ndarray):
            return items.tolist()
        if isinstance(items, (str, bytes, dict)):
            # Left as-is so that the schema reports the wrong type.
            return items
        try:
            return list(items)
        except TypeError:
            return items

    @staticmethod
    def _unexpected(error: Exception, circuit_id: str) -> SweepRunError:
        logger.critical(f"An unexpected internal error occurred for circuit '{circuit_id}': {error}", exc_info=True)
        report = format_diagnostic_report(
            error_type=f"An Unexpected Error Occurred ({type(error).__name__})",
            details=f"The request failed with an unexpected internal error: {error}",
            suggestion="This may be a bug. Review the traceback and consider filing a bug report.",
            context={'circuit_id': circuit_id}
        )
        return SweepRunError(report)
