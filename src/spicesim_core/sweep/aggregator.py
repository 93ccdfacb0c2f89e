# src/spicesim_core/sweep/aggregator.py
"""
Folds per-point analysis outcomes into a `SweepReport`.

Reduction to one scalar per export and point:

- operating point, DC sweep: the last element of the export's array
- AC: magnitude at the last frequency; the full magnitude curve is kept,
  along with the same curve in dB
- transient: the final sample; the full waveform is kept

AC and transient points must all share the axis of the first folded point.
"""
import logging
from typing import Any, Iterable, List

import numpy as np

from ..analysis.exports import unit_for_export
from ..analysis.kinds import AnalysisKind
from ..analysis.outcomes import AnalysisOutcome
from .exceptions import AxisMismatchError
from .report import AcCurveData, SweepReport, TransientCurveData

logger = logging.getLogger(__name__)

_EMPTY_CURVE = np.array([], dtype=float)


def _place(series: List[Any], index: int, value: Any, filler: Any):
    while len(series) < index:
        series.append(filler)
    if len(series) == index:
        series.append(value)
    else:
        series[index] = value


class ResultAggregator:
    """Stateless; all state lives in the report being filled."""

    def begin(self, report: SweepReport, exports: Iterable[str]):
        """Prepares empty per-export storage and units on a fresh report."""
        kind = report.analysis_kind
        if kind is AnalysisKind.AC:
            report.curves = AcCurveData()
        elif kind is AnalysisKind.TRANSIENT:
            report.curves = TransientCurveData()
        else:
            report.curves = None
        for export in exports:
            report.results.setdefault(export, [])
            report.units.setdefault(export, unit_for_export(export))
            if report.curves is not None:
                report.curves.curves.setdefault(export, [])
            if isinstance(report.curves, AcCurveData):
                report.curves.magnitude_db.setdefault(export, [])

    def fold(
        self,
        kind: AnalysisKind,
        export_name: str,
        point_index: int,
        raw_outcome: AnalysisOutcome,
        report: SweepReport,
    ):
        """
        Reduces one export of one point's outcome and stores it at `point_index`.

        Raises:
            AxisMismatchError: The outcome's axis differs from the recorded one.
            KeyError: The outcome has no signal named `export_name`.
        """
        if raw_outcome.kind is not kind:
            raise ValueError(f"Cannot fold a {raw_outcome.kind.value} outcome into a {kind.value} sweep.")
        self._check_axis(kind, point_index, raw_outcome, report)

        signal = np.asarray(raw_outcome.signals[export_name])
        if export_name not in report.units:
            report.units[export_name] = unit_for_export(export_name)

        if kind is AnalysisKind.AC:
            magnitudes = np.abs(signal)
            reduced = float(magnitudes[-1])
            self._place_curve(report, export_name, point_index, magnitudes.astype(float))
            with np.errstate(divide="ignore"):
                db = 20.0 * np.log10(magnitudes)
            _place(report.curves.magnitude_db.setdefault(export_name, []), point_index, db, _EMPTY_CURVE)
        elif kind is AnalysisKind.TRANSIENT:
            reduced = float(signal[-1])
            self._place_curve(report, export_name, point_index, signal.astype(float).copy())
        else:
            reduced = float(signal[-1])

        _place(report.results.setdefault(export_name, []), point_index, reduced, float("nan"))

    def fold_point(self, point_index: int, outcome: AnalysisOutcome, report: SweepReport):
        """Folds every export of one point. An axis mismatch leaves the point unfolded."""
        self._check_axis(report.analysis_kind, point_index, outcome, report)
        for export in report.exports:
            self.fold(report.analysis_kind, export, point_index, outcome, report)
        logger.debug(f"Folded sweep point {point_index} of '{report.parameter_path}'.")

    def fold_failure(self, point_index: int, report: SweepReport):
        """Marks a point as failed: NaN in every result series, an empty curve in every curve series."""
        for export in report.exports:
            _place(report.results[export], point_index, float("nan"), float("nan"))
            if report.curves is not None:
                self._place_curve(report, export, point_index, _EMPTY_CURVE)
            if isinstance(report.curves, AcCurveData):
                _place(report.curves.magnitude_db.setdefault(export, []), point_index, _EMPTY_CURVE, _EMPTY_CURVE)

    @staticmethod
    def _place_curve(report: SweepReport, export: str, point_index: int, curve: np.ndarray):
        _place(report.curves.curves.setdefault(export, []), point_index, curve, _EMPTY_CURVE)

    @staticmethod
    def _check_axis(kind: AnalysisKind, point_index: int, outcome: AnalysisOutcome, report: SweepReport):
        if not kind.produces_curves:
            return
        axis = np.asarray(outcome.axis, dtype=float)
        recorded = report.axis
        if recorded is None:
            if isinstance(report.curves, AcCurveData):
                report.curves.frequencies = axis.copy()
            else:
                report.curves.time = axis.copy()
            return
        if recorded.shape != axis.shape:
            raise AxisMismatchError(
                analysis_kind=kind.value,
                point_index=point_index,
                details=f"Expected {recorded.size} axis points, got {axis.size}.",
            )
        if not np.allclose(recorded, axis, rtol=1e-9, atol=0.0):
            raise AxisMismatchError(
                analysis_kind=kind.value,
                point_index=point_index,
                details="Axis values differ from those of the first folded point.",
            )
