# src/spicesim_core/analysis/engine.py
"""
The contract between the sweep core and the circuit solver.

The solver itself lives outside this package. Anything that implements
`SimulationEngine.solve` can be plugged into the dispatcher: a SPICE binding,
a remote service, or a scripted fake in tests.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from ..data_structures import Circuit
from .kinds import AnalysisKind, AnalysisSettings


@dataclass
class EngineSolution:
    """
    Raw solver output.

    Attributes:
        signals: Export expression -> array of values. Complex for AC.
        axis: The independent axis (sweep levels, frequencies or time points).
              None for an operating point.
    """
    signals: Dict[str, np.ndarray] = field(default_factory=dict)
    axis: Optional[np.ndarray] = None


@runtime_checkable
class SimulationEngine(Protocol):
    """Solves one analysis of one circuit, synchronously."""

    def solve(
        self,
        circuit: Circuit,
        kind: AnalysisKind,
        settings: AnalysisSettings,
        exports: Sequence[str],
    ) -> EngineSolution:
        """
        Runs the analysis and returns the requested exports.

        Raises:
            SolverError: The circuit could not be solved.
        """
        ...
