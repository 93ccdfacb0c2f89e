# src/spicesim_core/parameters/resolver.py
"""
Turns a textual parameter path into a handle that can read, write and restore
one numeric field of a circuit.

Path grammar: ``<name>.<property>``

- ``R1.value``      primary scalar of component R1
- ``V1.acmag``      secondary parameter 'acmag' of component V1
- ``D_MODEL.IS``    coefficient 'IS' of model D_MODEL

The reserved path ``temperature`` names the circuit's operating temperature
in degrees Celsius.

Names are looked up among components first, then among models, both
case-insensitively. The set of reachable fields is a closed table: each
`TargetKind` has exactly one getter/setter pair. No attribute reflection is
involved.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from ..data_structures import Circuit, Component, Model
from ..units import to_magnitude
from .exceptions import (
    ParameterNotFoundError,
    ParameterNotMutableError,
    ParameterTypeMismatchError,
)

logger = logging.getLogger(__name__)

PRIMARY_PROPERTY = "value"
TEMPERATURE_PATH = "temperature"


class TargetKind(Enum):
    """Which field of which owner a resolved path points at."""
    PRIMARY_VALUE = "primary_value"
    SECONDARY_PARAMETER = "secondary_parameter"
    MODEL_COEFFICIENT = "model_coefficient"
    CIRCUIT_TEMPERATURE = "circuit_temperature"


Owner = Union[Component, Model, Circuit]
_Getter = Callable[[Owner, str], Any]
_Setter = Callable[[Owner, str, Any], None]


def _get_primary(owner: Component, _key: str) -> Any:
    return owner.value

def _set_primary(owner: Component, _key: str, value: Any) -> None:
    owner.value = value

def _get_entry(owner: Owner, key: str) -> Any:
    return owner.parameters[key]

def _set_entry(owner: Owner, key: str, value: Any) -> None:
    owner.parameters[key] = value

def _get_temperature(owner: Circuit, _key: str) -> Any:
    return owner.temperature

def _set_temperature(owner: Circuit, _key: str, value: Any) -> None:
    owner.temperature = value


_ACCESSORS: Dict[TargetKind, Tuple[_Getter, _Setter]] = {
    TargetKind.PRIMARY_VALUE: (_get_primary, _set_primary),
    TargetKind.SECONDARY_PARAMETER: (_get_entry, _set_entry),
    TargetKind.MODEL_COEFFICIENT: (_get_entry, _set_entry),
    TargetKind.CIRCUIT_TEMPERATURE: (_get_temperature, _set_temperature),
}


@dataclass
class ResolvedTarget:
    """
    A bound handle on one numeric field, valid for a single sweep.

    Attributes:
        path: The path as given by the caller.
        owner: The matched Component or Model, or the Circuit for its temperature.
        kind: The field family; selects the getter/setter pair.
        property_name: The actual key of the field (after case-insensitive matching).
        original_value: The field's value when the target was resolved.
        unit: The physical unit of the field, if known.
    """
    path: str
    owner: Owner
    kind: TargetKind
    property_name: str
    original_value: Any
    unit: Optional[str] = None

    def get(self) -> Any:
        getter, _ = _ACCESSORS[self.kind]
        return getter(self.owner, self.property_name)

    def set(self, value: Any):
        _, setter = _ACCESSORS[self.kind]
        setter(self.owner, self.property_name, value)

    def apply(self, raw: Any) -> float:
        """
        Coerces `raw` to a float and writes it to the field.

        Raises:
            ParameterTypeMismatchError: `raw` is not a finite number (or a string
                                        convertible to one in the field's unit).
        """
        number = coerce_sweep_value(raw, self.path, self.unit)
        self.set(number)
        return number

    def restore(self):
        """Writes back the value captured at resolution time."""
        self.set(self.original_value)
        logger.debug(f"Restored '{self.path}' to {self.original_value!r}.")

    def exclusive(self) -> "_RestoringScope":
        """Holds the target for a block and restores it on every exit path."""
        return _RestoringScope(self)


class _RestoringScope:
    # Class-based so that frozen exception types pass through __exit__ untouched.
    def __init__(self, target: ResolvedTarget):
        self._target = target

    def __enter__(self) -> ResolvedTarget:
        return self._target

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        self._target.restore()
        return False


def coerce_sweep_value(raw: Any, path: str, unit: Optional[str] = None) -> float:
    """Converts one swept value to a finite float, or raises ParameterTypeMismatchError."""
    if isinstance(raw, np.generic):
        raw = raw.item()
    try:
        number = to_magnitude(raw, unit)
    except ValueError as e:
        raise ParameterTypeMismatchError(path=path, value=raw, details=str(e)) from e
    if not math.isfinite(number):
        raise ParameterTypeMismatchError(path=path, value=raw, details=f"Value {number} is not finite.")
    return number


def _is_scalar(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if value is None or isinstance(value, (int, float, np.number)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def _match_key(keys: List[str], wanted: str) -> Optional[str]:
    if wanted in keys:
        return wanted
    folded = wanted.casefold()
    for key in keys:
        if key.casefold() == folded:
            return key
    return None


class ParameterResolver:
    """Resolves parameter paths against a circuit."""

    def resolve(self, circuit: Circuit, path: str) -> ResolvedTarget:
        """
        Resolves `path` to a mutable handle and captures its current value.

        Raises:
            ParameterNotFoundError: The path is malformed, or names no existing
                                    component/model property.
            ParameterNotMutableError: The property exists but cannot hold a swept number.
        """
        if isinstance(path, str) and path.strip().casefold() == TEMPERATURE_PATH:
            target = ResolvedTarget(
                path=path,
                owner=circuit,
                kind=TargetKind.CIRCUIT_TEMPERATURE,
                property_name=TEMPERATURE_PATH,
                original_value=circuit.temperature,
                unit="degC",
            )
            logger.debug(f"Resolved '{path}' -> temperature of {circuit} (currently {circuit.temperature!r} degC).")
            return target

        owner_name, property_name = self._split(circuit, path)

        component = circuit.find_component(owner_name)
        if component is not None:
            target = self._resolve_component(circuit, path, component, property_name)
        else:
            model = circuit.find_model(owner_name)
            if model is None:
                raise ParameterNotFoundError(
                    circuit_id=circuit.circuit_id,
                    path=path,
                    details=f"No component or model named '{owner_name}'.",
                    candidates=sorted(list(circuit.components) + list(circuit.models)),
                )
            target = self._resolve_model(circuit, path, model, property_name)

        logger.debug(
            f"Resolved '{path}' -> {target.kind.value} '{target.property_name}' of "
            f"{target.owner} (current value {target.original_value!r})."
        )
        return target

    def list_paths(self, circuit: Circuit) -> List[str]:
        """Every path in `circuit` that resolves to a sweepable scalar."""
        paths = []
        for component in circuit.components.values():
            if component.component_type.has_primary_value:
                paths.append(f"{component.name}.{PRIMARY_PROPERTY}")
            paths.extend(
                f"{component.name}.{key}" for key, value in component.parameters.items() if _is_scalar(value)
            )
        for model in circuit.models.values():
            paths.extend(f"{model.name}.{key}" for key in model.parameters)
        return paths

    @staticmethod
    def _split(circuit: Circuit, path: str) -> Tuple[str, str]:
        if not isinstance(path, str):
            raise ParameterNotFoundError(circuit.circuit_id, str(path), "Parameter path must be a string.")
        owner_name, dot, property_name = path.strip().partition(".")
        if not dot or not owner_name or not property_name:
            raise ParameterNotFoundError(
                circuit.circuit_id, path,
                "Expected the form 'ComponentName.property' or 'ModelName.parameter'."
            )
        return owner_name, property_name

    def _resolve_component(
        self, circuit: Circuit, path: str, component: Component, property_name: str
    ) -> ResolvedTarget:
        if property_name.casefold() == PRIMARY_PROPERTY:
            if not component.component_type.has_primary_value:
                raise ParameterNotMutableError(
                    circuit.circuit_id, path,
                    f"Component '{component.name}' ({component.component_type.value}) has no primary value."
                )
            return ResolvedTarget(
                path=path,
                owner=component,
                kind=TargetKind.PRIMARY_VALUE,
                property_name=PRIMARY_PROPERTY,
                original_value=component.value,
                unit=component.component_type.primary_unit,
            )

        key = _match_key(list(component.parameters), property_name)
        if key is None:
            candidates = ([PRIMARY_PROPERTY] if component.component_type.has_primary_value else []) + sorted(component.parameters)
            raise ParameterNotFoundError(
                circuit.circuit_id, path,
                f"Component '{component.name}' has no property '{property_name}'.",
                candidates=candidates,
            )
        current = component.parameters[key]
        if not _is_scalar(current):
            raise ParameterNotMutableError(
                circuit.circuit_id, path,
                f"Parameter '{key}' of '{component.name}' holds structured data ({type(current).__name__}), not a scalar."
            )
        return ResolvedTarget(
            path=path,
            owner=component,
            kind=TargetKind.SECONDARY_PARAMETER,
            property_name=key,
            original_value=current,
        )

    def _resolve_model(self, circuit: Circuit, path: str, model: Model, property_name: str) -> ResolvedTarget:
        key = _match_key(list(model.parameters), property_name)
        if key is None:
            raise ParameterNotFoundError(
                circuit.circuit_id, path,
                f"Model '{model.name}' has no parameter '{property_name}'.",
                candidates=sorted(model.parameters),
            )
        return ResolvedTarget(
            path=path,
            owner=model,
            kind=TargetKind.MODEL_COEFFICIENT,
            property_name=key,
            original_value=model.parameters[key],
        )
