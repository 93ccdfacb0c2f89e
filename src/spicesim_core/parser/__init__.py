# src/spicesim_core/parser/__init__.py
"""
Exposes the public interface of the circuit definition parser package.
"""
from .parser import CircuitDefinitionParser, CircuitDefinition, SweepRequest, load_circuit
from .exceptions import BaseParsingError, ParsingError, SchemaValidationError

__all__ = [
    "CircuitDefinitionParser",
    "CircuitDefinition",
    "SweepRequest",
    "load_circuit",
    "BaseParsingError",
    "ParsingError",
    "SchemaValidationError",
]
