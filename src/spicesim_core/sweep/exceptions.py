# src/spicesim_core/sweep/exceptions.py
from dataclasses import dataclass

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class AxisMismatchError(DiagnosableError):
    """
    Raised when a sweep point's independent axis (frequencies or time points)
    differs from the axis recorded for the first folded point. Curves on
    different axes cannot share one report.
    """
    analysis_kind: str
    point_index: int
    details: str

    def __str__(self):
        return f"Axis mismatch at sweep point {self.point_index}: {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Analysis Axis Mismatch",
            details=self.details,
            suggestion="Keep the analysis settings fixed across the sweep so every point is solved on the same axis.",
            context={'analysis_kind': self.analysis_kind, 'point_index': self.point_index}
        )


@dataclass()
class SweepInProgressError(DiagnosableError):
    """Raised when a sweep is requested for a circuit that is already being swept."""
    circuit_id: str

    def __str__(self):
        return f"A parameter sweep is already running on circuit '{self.circuit_id}'."

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Sweep Already In Progress",
            details=str(self),
            suggestion="Wait for the running sweep to finish, or cancel it, before starting another one.",
            context={'circuit_id': self.circuit_id}
        )
