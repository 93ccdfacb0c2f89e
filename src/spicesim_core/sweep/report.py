# src/spicesim_core/sweep/report.py
"""
The result contract of a parameter sweep.

`results[export]`, `parameter_values` and (for AC and transient sweeps)
`curves.curves[export]` always have the same length: one entry per sweep
point that was attempted, in input order. A failed point holds `nan` in
`results` and an empty array in `curves`.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import numpy as np

from ..analysis.kinds import AnalysisKind


class SweepStatus(Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class PointError:
    """Why one sweep point produced no result."""
    index: int
    value: Any
    message: str
    error_type: str


@dataclass
class AcCurveData:
    """
    Magnitude curves per export, one per sweep point, on a shared frequency axis.
    `magnitude_db` holds the same curves as 20*log10(magnitude).
    """
    frequencies: Optional[np.ndarray] = None
    curves: Dict[str, List[np.ndarray]] = field(default_factory=dict)
    magnitude_db: Dict[str, List[np.ndarray]] = field(default_factory=dict)


@dataclass
class TransientCurveData:
    """Waveforms per export, one per sweep point, on a shared time axis."""
    time: Optional[np.ndarray] = None
    curves: Dict[str, List[np.ndarray]] = field(default_factory=dict)


CurveData = Union[AcCurveData, TransientCurveData]


@dataclass
class SweepReport:
    parameter_path: str
    analysis_kind: AnalysisKind
    parameter_values: List[Any] = field(default_factory=list)
    results: Dict[str, List[float]] = field(default_factory=dict)
    curves: Optional[CurveData] = None
    units: Dict[str, str] = field(default_factory=dict)
    elapsed_ms: float = 0.0
    status: SweepStatus = SweepStatus.FAILED
    point_errors: List[PointError] = field(default_factory=list)
    fatal_error: Optional[str] = None

    @property
    def exports(self) -> List[str]:
        return list(self.results)

    @property
    def point_count(self) -> int:
        return len(self.parameter_values)

    @property
    def failed_indices(self) -> List[int]:
        return [error.index for error in self.point_errors]

    @property
    def axis(self) -> Optional[np.ndarray]:
        """The shared frequency or time axis of the curves, if any."""
        if isinstance(self.curves, AcCurveData):
            return self.curves.frequencies
        if isinstance(self.curves, TransientCurveData):
            return self.curves.time
        return None

    def to_dict(self) -> Dict[str, Any]:
        """A JSON-friendly rendering of the report (NaN and infinities become None)."""
        def clean(value: float) -> Optional[float]:
            return None if value is None or not np.isfinite(value) else float(value)

        payload: Dict[str, Any] = {
            "parameter_path": self.parameter_path,
            "parameter_values": [v if isinstance(v, (int, float, str)) else repr(v) for v in self.parameter_values],
            "analysis_kind": self.analysis_kind.value,
            "results": {name: [clean(v) for v in series] for name, series in self.results.items()},
            "units": dict(self.units),
            "elapsed_ms": self.elapsed_ms,
            "status": self.status.value,
            "point_errors": [
                {"index": e.index, "value": repr(e.value), "message": e.message, "error_type": e.error_type}
                for e in self.point_errors
            ],
            "fatal_error": self.fatal_error,
        }
        axis = self.axis
        if self.curves is not None:
            payload["curves"] = {
                "axis": axis.tolist() if axis is not None else [],
                "data": {name: [curve.tolist() for curve in series] for name, series in self.curves.curves.items()},
            }
            if isinstance(self.curves, AcCurveData):
                payload["curves"]["magnitude_db"] = {
                    name: [[clean(v) for v in curve] for curve in series]
                    for name, series in self.curves.magnitude_db.items()
                }
        return payload
