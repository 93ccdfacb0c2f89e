# src/spicesim_core/validation/__init__.py
"""
Exposes the public interface of the circuit validation package.
"""
from .circuit_validator import CircuitValidator
from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import CircuitIssueCode
from .exceptions import CircuitValidationError

__all__ = [
    "CircuitValidator",
    "ValidationIssue",
    "ValidationIssueLevel",
    "CircuitIssueCode",
    "CircuitValidationError",
]
