# src/spicesim_core/store/exceptions.py
"""
Defines the diagnosable exceptions raised by the circuit store.

All of them derive from `CircuitStoreError`, so a facade can catch the whole
family with one clause and turn it into a user-facing `CircuitDefinitionError`.
"""
from dataclasses import dataclass
from typing import List

from ..errors import DiagnosableError, format_diagnostic_report


class CircuitStoreError(DiagnosableError):
    """Base class for all circuit store errors."""
    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Circuit Store Error",
            details=str(self),
            suggestion="Review the requested circuit operation.",
            context={}
        )


@dataclass(frozen=True)
class CircuitNotFoundError(CircuitStoreError):
    """Raised when a circuit id is not present in the store."""
    circuit_id: str
    available_ids: List[str]

    def __str__(self):
        return f"Circuit '{self.circuit_id}' not found."

    def get_diagnostic_report(self) -> str:
        available = ", ".join(self.available_ids) if self.available_ids else "(none)"
        return format_diagnostic_report(
            error_type="Circuit Not Found",
            details=f"No circuit with id '{self.circuit_id}' exists.\nAvailable circuits: {available}",
            suggestion="Create the circuit first, or check the spelling of the circuit id.",
            context={'circuit_id': self.circuit_id}
        )


@dataclass(frozen=True)
class DuplicateNameError(CircuitStoreError):
    """Raised when a circuit, component or model name is already taken."""
    circuit_id: str
    kind: str
    name: str

    def __str__(self):
        return f"A {self.kind} named '{self.name}' already exists in circuit '{self.circuit_id}'."

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type=f"Duplicate {self.kind.capitalize()} Name",
            details=f"{self}\nNames are compared case-insensitively.",
            suggestion=f"Choose a different {self.kind} name, or remove the existing one first.",
            context={'circuit_id': self.circuit_id, 'user_input': self.name}
        )


@dataclass(frozen=True)
class InvalidDefinitionError(CircuitStoreError):
    """Raised when a component or model definition is structurally invalid."""
    circuit_id: str
    name: str
    details: str

    def __str__(self):
        return f"Invalid definition for '{self.name}' in circuit '{self.circuit_id}': {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Invalid Component or Model Definition",
            details=self.details,
            suggestion="Check the type tag, node list and values of the definition.",
            context={'circuit_id': self.circuit_id, 'user_input': self.name}
        )


@dataclass(frozen=True)
class EntityNotFoundError(CircuitStoreError):
    """Raised when removing or fetching a component or model that does not exist."""
    circuit_id: str
    kind: str
    name: str

    def __str__(self):
        return f"No {self.kind} named '{self.name}' in circuit '{self.circuit_id}'."

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type=f"{self.kind.capitalize()} Not Found",
            details=str(self),
            suggestion=f"List the circuit's {self.kind}s to find the correct name.",
            context={'circuit_id': self.circuit_id, 'user_input': self.name}
        )


@dataclass(frozen=True)
class ModelInUseError(CircuitStoreError):
    """Raised when removing a model that components still reference."""
    circuit_id: str
    model_name: str
    referencing_components: List[str]

    def __str__(self):
        return (f"Model '{self.model_name}' is still referenced by: "
                f"{', '.join(self.referencing_components)}.")

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Model Still In Use",
            details=str(self),
            suggestion="Remove or re-point the referencing components before removing the model.",
            context={'circuit_id': self.circuit_id, 'user_input': self.model_name}
        )
