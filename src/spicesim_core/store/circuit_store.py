# src/spicesim_core/store/circuit_store.py
"""
Owns the named circuits of a session and every mutation applied to them.

The store is the single place where component and model definitions are
checked before they enter a circuit: type tags come from the closed
`ComponentType`/`ModelType` sets, pin counts match the component type, and
names stay unique (case-insensitively) within a circuit.
"""
import logging
import math
import threading
from typing import Any, Dict, Iterable, List, Optional, Union

from ..data_structures import Circuit, Component, ComponentType, Model, ModelType
from ..units import to_magnitude
from .exceptions import (
    CircuitNotFoundError,
    DuplicateNameError,
    EntityNotFoundError,
    InvalidDefinitionError,
    ModelInUseError,
)

logger = logging.getLogger(__name__)


class CircuitStore:
    """
    In-memory registry of circuits, keyed by circuit id.

    The first circuit created becomes the active one. Removing the active
    circuit activates the first remaining circuit, if any.
    """

    def __init__(self):
        self._circuits: Dict[str, Circuit] = {}
        self._active_id: Optional[str] = None
        self._sweep_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # --- Circuit lifecycle ---

    def create_circuit(self, circuit_id: str, description: str = "") -> Circuit:
        if not circuit_id or not circuit_id.strip():
            raise InvalidDefinitionError(circuit_id or "", circuit_id or "", "Circuit id cannot be empty.")
        if circuit_id in self._circuits:
            raise DuplicateNameError(circuit_id, "circuit", circuit_id)

        circuit = Circuit(circuit_id=circuit_id, description=description or "")
        self._circuits[circuit_id] = circuit
        if self._active_id is None:
            self._active_id = circuit_id
        logger.info(f"Created circuit '{circuit_id}'.")
        return circuit

    def get_circuit(self, circuit_id: str) -> Optional[Circuit]:
        if not circuit_id:
            return None
        return self._circuits.get(circuit_id)

    def require_circuit(self, circuit_id: Optional[str] = None) -> Circuit:
        """
        Returns the circuit with the given id, or the active circuit when the id
        is omitted.

        Raises:
            CircuitNotFoundError: No such circuit (or no active circuit).
        """
        effective_id = circuit_id or self._active_id
        circuit = self._circuits.get(effective_id) if effective_id else None
        if circuit is None:
            raise CircuitNotFoundError(effective_id or "<active>", sorted(self._circuits))
        return circuit

    def list_circuits(self) -> List[Circuit]:
        return list(self._circuits.values())

    def delete_circuit(self, circuit_id: str) -> bool:
        """Removes a circuit and everything it owns. Returns False if it did not exist."""
        circuit = self._circuits.pop(circuit_id, None)
        if circuit is None:
            return False
        circuit.components.clear()
        circuit.models.clear()
        with self._locks_guard:
            self._sweep_locks.pop(circuit_id, None)
        if self._active_id == circuit_id:
            self._active_id = next(iter(self._circuits), None)
        logger.info(f"Deleted circuit '{circuit_id}'.")
        return True

    def clear_all(self):
        self._circuits.clear()
        self._active_id = None
        with self._locks_guard:
            self._sweep_locks.clear()
        logger.info("Cleared all circuits.")

    @property
    def active_circuit_id(self) -> Optional[str]:
        return self._active_id

    def get_active_circuit(self) -> Optional[Circuit]:
        return self._circuits.get(self._active_id) if self._active_id else None

    def set_active_circuit(self, circuit_id: str):
        self.require_circuit(circuit_id)
        self._active_id = circuit_id

    def sweep_lock(self, circuit_id: str) -> threading.Lock:
        """The lock that serializes sweeps against one circuit."""
        with self._locks_guard:
            return self._sweep_locks.setdefault(circuit_id, threading.Lock())

    # --- Components ---

    def add_component(
        self,
        circuit_id: str,
        component_type: Union[ComponentType, str],
        name: str,
        nodes: Iterable[str],
        value: Optional[Any] = None,
        model: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> Component:
        circuit = self.require_circuit(circuit_id)
        if not name or not name.strip():
            raise InvalidDefinitionError(circuit.circuit_id, name or "", "Component name cannot be empty.")
        try:
            ctype = component_type if isinstance(component_type, ComponentType) else ComponentType.from_string(component_type)
        except ValueError as e:
            raise InvalidDefinitionError(circuit.circuit_id, name, str(e)) from e

        if circuit.find_component(name) is not None:
            raise DuplicateNameError(circuit.circuit_id, "component", name)

        node_list = [str(n) for n in nodes]
        if not ctype.accepts_node_count(len(node_list)):
            expected = ctype.expected_node_count
            expected_str = f"exactly {expected}" if expected is not None else "at least 1"
            raise InvalidDefinitionError(
                circuit.circuit_id, name,
                f"A {ctype.value} needs {expected_str} node(s), got {len(node_list)}: {node_list}."
            )

        numeric_value: Optional[float] = None
        if value is not None:
            if not ctype.has_primary_value:
                raise InvalidDefinitionError(
                    circuit.circuit_id, name, f"A {ctype.value} does not take a primary value."
                )
            numeric_value = _as_finite_float(circuit.circuit_id, name, value, ctype.primary_unit)

        if model is not None and not ctype.compatible_model_types:
            raise InvalidDefinitionError(circuit.circuit_id, name, f"A {ctype.value} does not take a model.")

        component = Component(
            component_type=ctype,
            name=name,
            nodes=node_list,
            value=numeric_value,
            model=model,
            parameters=dict(parameters or {}),
        )
        circuit.components[name] = component
        circuit.touch()
        logger.info(f"Added {component} to circuit '{circuit.circuit_id}' on nodes {node_list}.")
        return component

    def get_component(self, circuit_id: str, name: str) -> Component:
        circuit = self.require_circuit(circuit_id)
        component = circuit.find_component(name)
        if component is None:
            raise EntityNotFoundError(circuit.circuit_id, "component", name)
        return component

    def remove_component(self, circuit_id: str, name: str) -> Component:
        circuit = self.require_circuit(circuit_id)
        component = circuit.find_component(name)
        if component is None:
            raise EntityNotFoundError(circuit.circuit_id, "component", name)
        del circuit.components[component.name]
        circuit.touch()
        logger.info(f"Removed {component} from circuit '{circuit.circuit_id}'.")
        return component

    # --- Models ---

    def define_model(
        self,
        circuit_id: str,
        model_type: Union[ModelType, str],
        name: str,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> Model:
        circuit = self.require_circuit(circuit_id)
        if not name or not name.strip():
            raise InvalidDefinitionError(circuit.circuit_id, name or "", "Model name cannot be empty.")
        try:
            mtype = model_type if isinstance(model_type, ModelType) else ModelType.from_string(model_type)
        except ValueError as e:
            raise InvalidDefinitionError(circuit.circuit_id, name, str(e)) from e

        if circuit.find_model(name) is not None:
            raise DuplicateNameError(circuit.circuit_id, "model", name)

        coefficients = {
            key: _as_finite_float(circuit.circuit_id, f"{name}.{key}", raw)
            for key, raw in (parameters or {}).items()
        }
        model = Model(model_type=mtype, name=name, parameters=coefficients)
        circuit.models[name] = model
        circuit.touch()
        logger.info(f"Defined {model} in circuit '{circuit.circuit_id}' with {len(coefficients)} parameter(s).")
        return model

    def get_model(self, circuit_id: str, name: str) -> Model:
        circuit = self.require_circuit(circuit_id)
        model = circuit.find_model(name)
        if model is None:
            raise EntityNotFoundError(circuit.circuit_id, "model", name)
        return model

    def remove_model(self, circuit_id: str, name: str) -> Model:
        circuit = self.require_circuit(circuit_id)
        model = circuit.find_model(name)
        if model is None:
            raise EntityNotFoundError(circuit.circuit_id, "model", name)

        users = sorted(
            c.name for c in circuit.components.values()
            if c.model is not None and c.model.casefold() == model.name.casefold()
        )
        if users:
            raise ModelInUseError(circuit.circuit_id, model.name, users)

        del circuit.models[model.name]
        circuit.touch()
        logger.info(f"Removed {model} from circuit '{circuit.circuit_id}'.")
        return model


def _as_finite_float(circuit_id: str, owner: str, raw: Any, unit: Optional[str] = None) -> float:
    try:
        number = to_magnitude(raw, unit)
    except ValueError as e:
        raise InvalidDefinitionError(circuit_id, owner, str(e)) from e
    if not math.isfinite(number):
        raise InvalidDefinitionError(circuit_id, owner, f"Value '{raw}' is not finite.")
    return number
