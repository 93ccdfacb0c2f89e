# src/spicesim_core/store/__init__.py
"""
Exposes the public interface of the circuit store package.
"""
from .circuit_store import CircuitStore
from .exceptions import (
    CircuitStoreError,
    CircuitNotFoundError,
    DuplicateNameError,
    InvalidDefinitionError,
    EntityNotFoundError,
    ModelInUseError,
)

__all__ = [
    "CircuitStore",
    "CircuitStoreError",
    "CircuitNotFoundError",
    "DuplicateNameError",
    "InvalidDefinitionError",
    "EntityNotFoundError",
    "ModelInUseError",
]
