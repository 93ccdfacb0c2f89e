# src/spicesim_core/validation/exceptions.py
"""
Defines the diagnosable exception raised when circuit validation finds
error-level issues. Warnings never raise; they are returned to the caller.
"""
from typing import List

from .issues import ValidationIssue, ValidationIssueLevel
from ..errors import DiagnosableError, format_diagnostic_report


class CircuitValidationError(DiagnosableError):
    """Carries every ERROR-level `ValidationIssue` of one validation pass."""

    def __init__(self, circuit_id: str, issues: List[ValidationIssue]):
        self.circuit_id = circuit_id
        self.issues: List[ValidationIssue] = [
            issue for issue in issues if issue.level == ValidationIssueLevel.ERROR
        ]
        if not self.issues:
            summary_message = "CircuitValidationError was raised with no error-level issues."
        else:
            summary_message = (
                f"Circuit validation failed with {len(self.issues)} error(s):\n"
                + "\n".join(f"  - {issue}" for issue in self.issues)
            )
        super().__init__(summary_message)

    def get_diagnostic_report(self) -> str:
        details = (
            f"Found {len(self.issues)} error(s) in the circuit definition:\n\n"
            + "\n".join(f"  - {issue}" for issue in self.issues)
        )
        return format_diagnostic_report(
            error_type="Circuit Validation Error",
            details=details,
            suggestion="Define the missing models, or point each component at a model of a compatible type.",
            context={'circuit_id': self.circuit_id}
        )
