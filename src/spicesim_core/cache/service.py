# src/spicesim_core/cache/service.py
"""
Keeps the most recent analysis or sweep result of each circuit for the renderer.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..analysis.outcomes import AcOutcome, AnalysisOutcome, OperatingPointOutcome
from ..sweep.report import SweepReport

logger = logging.getLogger(__name__)

PARAMETER_SWEEP_TYPE = "parameter_sweep"

_X_LABELS = {
    "dc": "sweep",
    "ac": "frequency",
    "transient": "time",
}


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


@dataclass
class CachedAnalysisResult:
    """
    A renderer-ready snapshot of one analysis.

    Attributes:
        analysis_type: 'operating_point', 'dc', 'ac', 'transient' or 'parameter_sweep'.
        x_data: The independent axis (empty for an operating point).
        x_label: What `x_data` measures; the parameter path for sweeps.
        signals: Export -> values on `x_data`. Real parts for AC.
        imaginary_signals: Export -> imaginary parts (AC only).
        operating_point_data: Export -> value (operating point only).
    """
    analysis_type: str
    x_data: List[float] = field(default_factory=list)
    x_label: str = ""
    signals: Dict[str, List[float]] = field(default_factory=dict)
    imaginary_signals: Optional[Dict[str, List[float]]] = None
    operating_point_data: Optional[Dict[str, float]] = None

    @classmethod
    def from_sweep_report(cls, report: SweepReport) -> "CachedAnalysisResult":
        """Swept values on x, one reduced series per export."""
        return cls(
            analysis_type=PARAMETER_SWEEP_TYPE,
            x_data=[_as_float(v) for v in report.parameter_values],
            x_label=report.parameter_path,
            signals={name: list(series) for name, series in report.results.items()},
        )

    @classmethod
    def from_outcome(cls, outcome: AnalysisOutcome, x_label: Optional[str] = None) -> "CachedAnalysisResult":
        kind = outcome.kind.value
        if isinstance(outcome, OperatingPointOutcome):
            op_data = {name: float(np.real(values[-1])) for name, values in outcome.signals.items()}
            return cls(
                analysis_type=kind,
                signals={name: [value] for name, value in op_data.items()},
                operating_point_data=op_data,
            )
        result = cls(
            analysis_type=kind,
            x_data=np.asarray(outcome.axis, dtype=float).tolist(),
            x_label=x_label or _X_LABELS[kind],
            signals={name: np.real(values).astype(float).tolist() for name, values in outcome.signals.items()},
        )
        if isinstance(outcome, AcOutcome):
            result.imaginary_signals = {
                name: np.imag(values).astype(float).tolist() for name, values in outcome.signals.items()
            }
        return result

    def to_renderer_payload(self) -> Dict[str, Any]:
        return {
            "signals": {name: list(series) for name, series in self.signals.items()},
            "x_axis": list(self.x_data),
            "x_label": self.x_label,
            "analysis_type": self.analysis_type,
        }


class ResultsCache:
    """
    At most one `CachedAnalysisResult` per circuit id. A new store for the same
    circuit replaces the previous entry. All operations are thread-safe.
    """

    def __init__(self):
        self._entries: Dict[str, CachedAnalysisResult] = {}
        self._lock = threading.Lock()
        self._stats = {'hits': 0, 'misses': 0}
        logger.debug("ResultsCache instance created.")

    def store(self, circuit_id: str, result: CachedAnalysisResult):
        with self._lock:
            if circuit_id in self._entries:
                logger.debug(f"Replacing cached '{self._entries[circuit_id].analysis_type}' result of '{circuit_id}'.")
            self._entries[circuit_id] = result
        logger.info(f"Cached '{result.analysis_type}' result for circuit '{circuit_id}'.")

    def get(self, circuit_id: str) -> Optional[CachedAnalysisResult]:
        with self._lock:
            result = self._entries.get(circuit_id)
            self._stats['hits' if result is not None else 'misses'] += 1
        return result

    def clear(self, circuit_id: str) -> bool:
        """Drops the entry of one circuit. Returns False if there was none."""
        with self._lock:
            removed = self._entries.pop(circuit_id, None) is not None
        if removed:
            logger.debug(f"Cleared cached result of circuit '{circuit_id}'.")
        return removed

    def clear_all(self):
        with self._lock:
            self._entries.clear()
        logger.info("Cleared all cached analysis results.")

    def get_stats(self) -> Dict[str, int]:
        """Returns a copy of the hit/miss counters."""
        with self._lock:
            return dict(self._stats)

    def clear_stats(self):
        with self._lock:
            self._stats = {'hits': 0, 'misses': 0}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
