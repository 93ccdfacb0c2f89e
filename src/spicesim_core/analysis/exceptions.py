# src/spicesim_core/analysis/exceptions.py
"""
Diagnosable exceptions for running a single analysis.

Everything that can go wrong between "hand a circuit to the engine" and "get a
validated outcome back" surfaces as an `AnalysisExecutionError`: the engine
raising, an export the engine did not produce, arrays that do not line up with
the axis, or a settings object of the wrong kind. The sweep executor records
these against the failing point and moves on.
"""
from dataclasses import dataclass
from typing import Optional

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class SolverError(DiagnosableError):
    """Raised by a simulation engine when it cannot solve the circuit (non-convergence, singular system, ...)."""
    details: str

    def __str__(self):
        return self.details

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Solver Failure",
            details=self.details,
            suggestion="Check the circuit for floating nodes, loops of ideal sources and unrealistic component values.",
            context={}
        )


@dataclass()
class AnalysisExecutionError(DiagnosableError):
    """One analysis run failed and produced no usable outcome."""
    analysis_kind: str
    details: str
    circuit_id: Optional[str] = None

    def __str__(self):
        return f"{self.analysis_kind} analysis failed: {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Analysis Execution Failed",
            details=self.details,
            suggestion="Review the analysis settings and export expressions, and check that the circuit solves on its own.",
            context={'circuit_id': self.circuit_id, 'analysis_kind': self.analysis_kind}
        )


@dataclass()
class AnalysisTimeoutError(AnalysisExecutionError):
    """The analysis did not finish within its time budget."""
    timeout_s: float = 0.0

    def __str__(self):
        return f"{self.analysis_kind} analysis timed out after {self.timeout_s:g} s."

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Analysis Timeout",
            details=f"{self.details} (limit: {self.timeout_s:g} s)",
            suggestion="Reduce the number of analysis points, or raise the per-point timeout.",
            context={'circuit_id': self.circuit_id, 'analysis_kind': self.analysis_kind}
        )
