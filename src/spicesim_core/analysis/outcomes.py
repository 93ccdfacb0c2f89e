# src/spicesim_core/analysis/outcomes.py
"""
Tagged analysis outcomes.

The dispatcher returns exactly one of these per analysis run. Each carries the
signals of every requested export as numpy arrays, aligned with the kind's
independent axis (if it has one).
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

import numpy as np

from .kinds import AnalysisKind


@dataclass(frozen=True)
class OperatingPointOutcome:
    """One-element array per export."""
    signals: Dict[str, np.ndarray] = field(default_factory=dict)
    kind: AnalysisKind = field(default=AnalysisKind.OPERATING_POINT, init=False)

    @property
    def axis(self) -> Optional[np.ndarray]:
        return None


@dataclass(frozen=True)
class DcSweepOutcome:
    """Real arrays indexed by the swept source level."""
    sweep_values: np.ndarray
    signals: Dict[str, np.ndarray] = field(default_factory=dict)
    kind: AnalysisKind = field(default=AnalysisKind.DC_SWEEP, init=False)

    @property
    def axis(self) -> np.ndarray:
        return self.sweep_values


@dataclass(frozen=True)
class AcOutcome:
    """Complex phasors indexed by frequency in Hz."""
    frequencies: np.ndarray
    signals: Dict[str, np.ndarray] = field(default_factory=dict)
    kind: AnalysisKind = field(default=AnalysisKind.AC, init=False)

    @property
    def axis(self) -> np.ndarray:
        return self.frequencies


@dataclass(frozen=True)
class TransientOutcome:
    """Real samples indexed by time in seconds."""
    time: np.ndarray
    signals: Dict[str, np.ndarray] = field(default_factory=dict)
    kind: AnalysisKind = field(default=AnalysisKind.TRANSIENT, init=False)

    @property
    def axis(self) -> np.ndarray:
        return self.time


AnalysisOutcome = Union[OperatingPointOutcome, DcSweepOutcome, AcOutcome, TransientOutcome]
