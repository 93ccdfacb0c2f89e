# src/spicesim_core/data_structures.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .constants import DEFAULT_TEMPERATURE_C, GROUND_NODE

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ComponentType(Enum):
    """The closed set of component kinds a circuit may contain."""
    RESISTOR = "resistor"
    CAPACITOR = "capacitor"
    INDUCTOR = "inductor"
    MUTUAL_INDUCTANCE = "mutual_inductance"
    DIODE = "diode"
    BJT_NPN = "bjt_npn"
    BJT_PNP = "bjt_pnp"
    MOSFET_N = "mosfet_n"
    MOSFET_P = "mosfet_p"
    JFET_N = "jfet_n"
    JFET_P = "jfet_p"
    VOLTAGE_SOURCE = "voltage_source"
    CURRENT_SOURCE = "current_source"
    VCVS = "vcvs"
    VCCS = "vccs"
    CCVS = "ccvs"
    CCCS = "cccs"
    BEHAVIORAL_VOLTAGE_SOURCE = "behavioral_voltage_source"
    BEHAVIORAL_CURRENT_SOURCE = "behavioral_current_source"
    VOLTAGE_SWITCH = "voltage_switch"
    CURRENT_SWITCH = "current_switch"
    SUBCIRCUIT = "subcircuit"

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, raw: str) -> "ComponentType":
        """Looks up a type by its tag, tolerating case and hyphens ('Voltage-Source')."""
        normalized = raw.strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown component type '{raw}'. Available types: {sorted(t.value for t in cls)}."
            ) from None

    @property
    def has_primary_value(self) -> bool:
        """True for types whose behavior is set by a single scalar (resistance, gain, ...)."""
        return self in _PRIMARY_VALUE_TYPES

    @property
    def compatible_model_types(self) -> Set["ModelType"]:
        """The model types this component may reference; empty when it takes no model."""
        return _COMPATIBLE_MODELS.get(self, set())

    def accepts_node_count(self, count: int) -> bool:
        expected = _PIN_COUNTS.get(self)
        if expected is None:
            # Subcircuit instances expose whatever pins their definition declares.
            return count >= 1
        return count == expected

    @property
    def expected_node_count(self) -> Optional[int]:
        return _PIN_COUNTS.get(self)

    @property
    def primary_unit(self) -> Optional[str]:
        """The pint unit name of the primary value ('ohm', 'farad', ...), if the type has one."""
        return _PRIMARY_UNITS.get(self)


class ModelType(Enum):
    """The closed set of device model kinds."""
    DIODE = "diode"
    BJT_NPN = "bjt_npn"
    BJT_PNP = "bjt_pnp"
    MOSFET_N = "mosfet_n"
    MOSFET_P = "mosfet_p"
    JFET_N = "jfet_n"
    JFET_P = "jfet_p"
    VOLTAGE_SWITCH = "voltage_switch"
    CURRENT_SWITCH = "current_switch"

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, raw: str) -> "ModelType":
        normalized = raw.strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown model type '{raw}'. Available types: {sorted(t.value for t in cls)}."
            ) from None


_PRIMARY_VALUE_TYPES = {
    ComponentType.RESISTOR, ComponentType.CAPACITOR, ComponentType.INDUCTOR,
    ComponentType.MUTUAL_INDUCTANCE,
    ComponentType.VOLTAGE_SOURCE, ComponentType.CURRENT_SOURCE,
    ComponentType.VCVS, ComponentType.VCCS, ComponentType.CCVS, ComponentType.CCCS,
}

_PIN_COUNTS: Dict[ComponentType, int] = {
    ComponentType.RESISTOR: 2,
    ComponentType.CAPACITOR: 2,
    ComponentType.INDUCTOR: 2,
    ComponentType.DIODE: 2,
    ComponentType.VOLTAGE_SOURCE: 2,
    ComponentType.CURRENT_SOURCE: 2,
    ComponentType.VOLTAGE_SWITCH: 2,
    ComponentType.CURRENT_SWITCH: 2,
    ComponentType.BEHAVIORAL_VOLTAGE_SOURCE: 2,
    ComponentType.BEHAVIORAL_CURRENT_SOURCE: 2,
    ComponentType.BJT_NPN: 3,
    ComponentType.BJT_PNP: 3,
    ComponentType.JFET_N: 3,
    ComponentType.JFET_P: 3,
    ComponentType.MOSFET_N: 4,
    ComponentType.MOSFET_P: 4,
    ComponentType.VCVS: 4,
    ComponentType.VCCS: 4,
    ComponentType.CCVS: 4,
    ComponentType.CCCS: 4,
    # Couples two existing inductors by name (see its 'inductor1'/'inductor2' parameters).
    ComponentType.MUTUAL_INDUCTANCE: 0,
}

_COMPATIBLE_MODELS: Dict[ComponentType, Set[ModelType]] = {
    ComponentType.DIODE: {ModelType.DIODE},
    ComponentType.BJT_NPN: {ModelType.BJT_NPN},
    ComponentType.BJT_PNP: {ModelType.BJT_PNP},
    ComponentType.MOSFET_N: {ModelType.MOSFET_N},
    ComponentType.MOSFET_P: {ModelType.MOSFET_P},
    ComponentType.JFET_N: {ModelType.JFET_N},
    ComponentType.JFET_P: {ModelType.JFET_P},
    ComponentType.VOLTAGE_SWITCH: {ModelType.VOLTAGE_SWITCH},
    ComponentType.CURRENT_SWITCH: {ModelType.CURRENT_SWITCH},
}

# Physical unit of the primary value, used to interpret unit-bearing values ('4.7 kohm').
_PRIMARY_UNITS: Dict[ComponentType, str] = {
    ComponentType.RESISTOR: "ohm",
    ComponentType.CAPACITOR: "farad",
    ComponentType.INDUCTOR: "henry",
    ComponentType.MUTUAL_INDUCTANCE: "dimensionless",
    ComponentType.VOLTAGE_SOURCE: "volt",
    ComponentType.CURRENT_SOURCE: "ampere",
    ComponentType.VCVS: "dimensionless",
    ComponentType.VCCS: "siemens",
    ComponentType.CCVS: "ohm",
    ComponentType.CCCS: "dimensionless",
}


@dataclass
class Component:
    """
    A single circuit element.

    `nodes` is ordered: position determines the pin mapping (e.g. collector,
    base, emitter for a BJT). `parameters` holds secondary settings such as
    AC magnitude or transient waveform descriptions; values are scalars or
    structured mappings.
    """
    component_type: ComponentType
    name: str
    nodes: List[str] = field(default_factory=list)
    value: Optional[float] = None
    model: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.component_type.value} '{self.name}'"


@dataclass
class Model:
    """A device model: a named set of numeric coefficients (e.g. IS, N, BF)."""
    model_type: ModelType
    name: str
    parameters: Dict[str, float] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.model_type.value} model '{self.name}'"


@dataclass
class Circuit:
    """
    A named circuit owning its components and device models.

    Component and model names are unique within the circuit, compared
    case-insensitively. The dictionaries are keyed by the name as first given.
    Use the `CircuitStore` operations to mutate a circuit so that the
    uniqueness invariant and `modified_at` are maintained.

    `temperature` is the operating temperature in degrees Celsius handed to
    the simulation engine.
    """
    circuit_id: str
    description: str = ""
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)
    components: Dict[str, Component] = field(default_factory=dict)
    models: Dict[str, Model] = field(default_factory=dict)
    temperature: float = DEFAULT_TEMPERATURE_C

    def __str__(self) -> str:
        return f"circuit '{self.circuit_id}'"

    @property
    def nodes(self) -> Set[str]:
        """Every node name referenced by any component."""
        found: Set[str] = set()
        for component in self.components.values():
            found.update(node for node in component.nodes if node and node.strip())
        return found

    @property
    def has_ground(self) -> bool:
        return GROUND_NODE in self.nodes

    @property
    def component_count(self) -> int:
        return len(self.components)

    def find_component(self, name: str) -> Optional[Component]:
        """Case-insensitive component lookup."""
        return _find_case_insensitive(self.components, name)

    def find_model(self, name: str) -> Optional[Model]:
        """Case-insensitive model lookup."""
        return _find_case_insensitive(self.models, name)

    def touch(self):
        self.modified_at = utc_now()


def _find_case_insensitive(mapping: Dict[str, Any], name: str) -> Optional[Any]:
    if name in mapping:
        return mapping[name]
    folded = name.casefold()
    for key, item in mapping.items():
        if key.casefold() == folded:
            return item
    return None
