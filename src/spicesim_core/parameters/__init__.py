# src/spicesim_core/parameters/__init__.py
from .resolver import (
    TEMPERATURE_PATH,
    ParameterResolver,
    ResolvedTarget,
    TargetKind,
    coerce_sweep_value,
)
from .exceptions import (
    ParameterError,
    ParameterNotFoundError,
    ParameterNotMutableError,
    ParameterTypeMismatchError,
)

__all__ = [
    "TEMPERATURE_PATH",
    "ParameterResolver",
    "ResolvedTarget",
    "TargetKind",
    "coerce_sweep_value",
    "ParameterError",
    "ParameterNotFoundError",
    "ParameterNotMutableError",
    "ParameterTypeMismatchError",
]
