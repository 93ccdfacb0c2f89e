# src/spicesim_core/parameters/exceptions.py
"""
Defines the diagnosable exceptions for parameter path resolution and mutation.

- `ParameterNotFoundError` and `ParameterNotMutableError` are raised while a
  sweep target is resolved. A sweep that hits either of them does not run at all.
- `ParameterTypeMismatchError` is raised when a single swept value cannot be
  applied. The sweep records it against that point and carries on.
"""
from dataclasses import dataclass, field
from typing import Any, List

from ..errors import DiagnosableError, format_diagnostic_report


class ParameterError(DiagnosableError):
    """
    A concrete base class for all parameter-related errors, catchable with a
    single `except ParameterError:` clause.
    """
    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Generic Parameter Error",
            details=str(self),
            suggestion="Review the parameter path and the swept values.",
            context={}
        )


@dataclass(frozen=True)
class ParameterNotFoundError(ParameterError):
    """The path does not name an existing component/model property."""
    circuit_id: str
    path: str
    details: str
    candidates: List[str] = field(default_factory=list)

    def __str__(self):
        return f"Parameter '{self.path}' not found in circuit '{self.circuit_id}': {self.details}"

    def get_diagnostic_report(self) -> str:
        details = self.details
        if self.candidates:
            details += "\nAvailable properties: " + ", ".join(self.candidates)
        return format_diagnostic_report(
            error_type="Parameter Not Found",
            details=details,
            suggestion=(
                "Use 'ComponentName.value', 'ComponentName.<parameter>' or "
                "'ModelName.<coefficient>' with names that exist in the circuit."
            ),
            context={'circuit_id': self.circuit_id, 'parameter_path': self.path}
        )


@dataclass(frozen=True)
class ParameterNotMutableError(ParameterError):
    """The path exists but does not hold a numeric value that can be swept."""
    circuit_id: str
    path: str
    details: str

    def __str__(self):
        return f"Parameter '{self.path}' in circuit '{self.circuit_id}' cannot be swept: {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Parameter Not Mutable",
            details=self.details,
            suggestion="Sweep a scalar property instead, e.g. the component's primary value or a model coefficient.",
            context={'circuit_id': self.circuit_id, 'parameter_path': self.path}
        )


@dataclass(frozen=True)
class ParameterTypeMismatchError(ParameterError):
    """A swept value cannot be coerced to the target's numeric type."""
    path: str
    value: Any
    details: str

    def __str__(self):
        return f"Value {self.value!r} cannot be applied to '{self.path}': {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Parameter Type Mismatch",
            details=self.details,
            suggestion="Provide finite numbers, or strings such as '1.5' or '10 mV'.",
            context={'parameter_path': self.path, 'user_input': self.value}
        )
