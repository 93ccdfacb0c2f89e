# src/spicesim_core/sweep/executor.py
"""
Drives a parameter sweep: resolve the target once, then for each value set
it, run the analysis and fold the outcome into the report.

A failing point never stops the sweep; its error is recorded and the loop
moves on. The swept field is written back to its original value on every
exit path, including cancellation and unexpected exceptions.
"""
import concurrent.futures
import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Union

from ..constants import DEFAULT_MAX_PARALLEL_WORKERS
from ..data_structures import Circuit
from ..analysis.dispatcher import AnalysisDispatcher
from ..analysis.exceptions import AnalysisExecutionError
from ..analysis.kinds import AnalysisKind, AnalysisSettings
from ..analysis.outcomes import AnalysisOutcome
from ..parameters.exceptions import ParameterError, ParameterTypeMismatchError
from ..parameters.resolver import ParameterResolver, ResolvedTarget
from .aggregator import ResultAggregator
from .exceptions import AxisMismatchError
from .report import PointError, SweepReport, SweepStatus

logger = logging.getLogger(__name__)


@dataclass
class _PointResult:
    index: int
    value: Any
    outcome: Optional[AnalysisOutcome] = None
    error: Optional[PointError] = None
    skipped: bool = False


def _point_error(index: int, value: Any, error: Exception) -> PointError:
    return PointError(index=index, value=value, message=str(error), error_type=type(error).__name__)


class SweepExecutor:
    """
    Runs parameter sweeps against an `AnalysisDispatcher`.

    Args:
        dispatcher: Runs each point's analysis.
        resolver: Resolves parameter paths. A fresh `ParameterResolver` by default.
        aggregator: Folds outcomes into reports. A fresh `ResultAggregator` by default.
    """

    def __init__(
        self,
        dispatcher: AnalysisDispatcher,
        resolver: Optional[ParameterResolver] = None,
        aggregator: Optional[ResultAggregator] = None,
    ):
        self._dispatcher = dispatcher
        self._resolver = resolver or ParameterResolver()
        self._aggregator = aggregator or ResultAggregator()

    def run(
        self,
        circuit: Circuit,
        path: str,
        values: Iterable[Any],
        kind: Union[AnalysisKind, str],
        settings: AnalysisSettings,
        cancel_event: Optional[threading.Event] = None,
        point_timeout_s: Optional[float] = None,
        parallel: bool = False,
        max_workers: int = DEFAULT_MAX_PARALLEL_WORKERS,
    ) -> SweepReport:
        """
        Sweeps `path` over `values` and returns the report. Never raises for
        point-level failures.

        Args:
            circuit: The circuit to sweep. In sequential mode its field is
                     mutated during the run and restored afterwards; in
                     parallel mode it is never touched.
            path: Parameter path, e.g. 'R1.value'.
            values: Values in sweep order. Duplicates are run again.
            kind: Analysis kind to run at each point.
            settings: Settings of `kind`, including the export expressions.
            cancel_event: Checked between points; once set, no further point starts.
            point_timeout_s: Time budget for each point's analysis.
            parallel: Run points concurrently on private copies of the circuit.
            max_workers: Worker threads for the parallel mode.

        Raises:
            ValueError: `kind` is not a known analysis kind.
        """
        started = time.perf_counter()
        kind = AnalysisKind.from_string(kind)
        values = list(values)
        report = SweepReport(parameter_path=path, analysis_kind=kind)
        self._aggregator.begin(report, settings.exports)

        logger.info(
            f"Starting {kind.value} sweep of '{path}' on circuit '{circuit.circuit_id}' "
            f"over {len(values)} value(s){' in parallel' if parallel else ''}."
        )

        try:
            target = self._resolver.resolve(circuit, path)
        except ParameterError as e:
            logger.error(f"Sweep of '{path}' aborted before any point ran: {e}")
            return self._finish(report, started, SweepStatus.FAILED, fatal_error=str(e))

        if not values:
            logger.warning(f"Sweep of '{path}' was given no values.")
            return self._finish(report, started, SweepStatus.FAILED, fatal_error="No sweep values were given.")

        if parallel:
            cancelled = self._consume(
                self._run_parallel(circuit, path, values, kind, settings, cancel_event, point_timeout_s, max_workers),
                report,
            )
        else:
            with target.exclusive():
                cancelled = self._consume(
                    self._run_sequential(circuit, target, values, kind, settings, cancel_event, point_timeout_s),
                    report,
                )

        if cancelled:
            logger.warning(f"Sweep of '{path}' cancelled after {report.point_count} of {len(values)} point(s).")
            status = SweepStatus.CANCELLED
        elif len(report.point_errors) == report.point_count:
            status = SweepStatus.FAILED
        elif report.point_errors:
            status = SweepStatus.PARTIAL_SUCCESS
        else:
            status = SweepStatus.SUCCESS
        return self._finish(report, started, status)

    def _run_sequential(
        self,
        circuit: Circuit,
        target: ResolvedTarget,
        values: List[Any],
        kind: AnalysisKind,
        settings: AnalysisSettings,
        cancel_event: Optional[threading.Event],
        timeout_s: Optional[float],
    ) -> Iterator[_PointResult]:
        for index, raw in enumerate(values):
            if cancel_event is not None and cancel_event.is_set():
                yield _PointResult(index=index, value=raw, skipped=True)
                return
            yield self._run_point(circuit, target, index, raw, kind, settings, timeout_s)

    def _run_parallel(
        self,
        circuit: Circuit,
        path: str,
        values: List[Any],
        kind: AnalysisKind,
        settings: AnalysisSettings,
        cancel_event: Optional[threading.Event],
        timeout_s: Optional[float],
        max_workers: int,
    ) -> Iterator[_PointResult]:
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="sweep")
        try:
            futures = [
                pool.submit(self._run_isolated_point, copy.deepcopy(circuit), path, index, raw, kind, settings,
                            cancel_event, timeout_s)
                for index, raw in enumerate(values)
            ]
            for future in futures:
                result = future.result()
                yield result
                if result.skipped:
                    return
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

    def _run_isolated_point(
        self,
        snapshot: Circuit,
        path: str,
        index: int,
        raw: Any,
        kind: AnalysisKind,
        settings: AnalysisSettings,
        cancel_event: Optional[threading.Event],
        timeout_s: Optional[float],
    ) -> _PointResult:
        if cancel_event is not None and cancel_event.is_set():
            return _PointResult(index=index, value=raw, skipped=True)
        try:
            target = self._resolver.resolve(snapshot, path)
        except ParameterError as e:
            return _PointResult(index=index, value=raw, error=_point_error(index, raw, e))
        return self._run_point(snapshot, target, index, raw, kind, settings, timeout_s)

    def _run_point(
        self,
        circuit: Circuit,
        target: ResolvedTarget,
        index: int,
        raw: Any,
        kind: AnalysisKind,
        settings: AnalysisSettings,
        timeout_s: Optional[float],
    ) -> _PointResult:
        value = raw
        try:
            value = target.apply(raw)
            logger.debug(f"Point {index}: '{target.path}' = {value}")
            outcome = self._dispatcher.execute(circuit, kind, settings, timeout_s=timeout_s)
            return _PointResult(index=index, value=value, outcome=outcome)
        except (ParameterTypeMismatchError, AnalysisExecutionError) as e:
            return _PointResult(index=index, value=value, error=_point_error(index, value, e))
        except Exception as e:
            logger.critical(f"Unexpected error at sweep point {index} of '{target.path}': {e}", exc_info=True)
            return _PointResult(index=index, value=value, error=_point_error(index, value, e))

    def _consume(self, results: Iterator[_PointResult], report: SweepReport) -> bool:
        """Folds point results in index order. Returns True if the sweep was cancelled."""
        try:
            for result in results:
                if result.skipped:
                    return True
                self._fold(result, report)
            return False
        finally:
            results.close()

    def _fold(self, result: _PointResult, report: SweepReport):
        report.parameter_values.append(result.value)
        error = result.error
        if error is None:
            try:
                self._aggregator.fold_point(result.index, result.outcome, report)
            except AxisMismatchError as e:
                error = _point_error(result.index, result.value, e)
            except Exception as e:
                logger.critical(f"Unexpected error while folding sweep point {result.index}: {e}", exc_info=True)
                error = _point_error(result.index, result.value, e)
        if error is not None:
            logger.warning(f"Sweep point {error.index} (value {error.value!r}) failed: {error.error_type}: {error.message}")
            report.point_errors.append(error)
            self._aggregator.fold_failure(result.index, report)

    @staticmethod
    def _finish(
        report: SweepReport, started: float, status: SweepStatus, fatal_error: Optional[str] = None
    ) -> SweepReport:
        report.status = status
        report.fatal_error = fatal_error
        report.elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info(
            f"Sweep of '{report.parameter_path}' finished with status '{status.value}' "
            f"({report.point_count - len(report.point_errors)}/{report.point_count} point(s) ok, "
            f"{report.elapsed_ms:.1f} ms)."
        )
        return report
