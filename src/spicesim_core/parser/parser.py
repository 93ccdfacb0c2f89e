# src/spicesim_core/parser/parser.py
import logging
import re
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import cerberus
import yaml

from ..analysis.config import ConfigParsingError, parse_analysis_settings
from ..analysis.kinds import AnalysisKind
from ..data_structures import Circuit, ComponentType, ModelType
from ..errors import CircuitDefinitionError, DiagnosableError, format_diagnostic_report
from ..store.circuit_store import CircuitStore
from ..sweep.values import SWEEP_SCALES, generate_sweep_values, step_values
from .exceptions import ParsingError, SchemaValidationError

logger = logging.getLogger(__name__)

ID_REGEX = r"^[a-zA-Z_][a-zA-Z0-9_]*$"
ALLOWED_ID_CHARS = set(string.ascii_letters + string.digits + "_")


class EnhancedValidator(cerberus.Validator):
    """Cerberus validator with the naming and type rules of circuit definitions."""
    def __init__(self, *args, **kwargs):
        super(EnhancedValidator, self).__init__(*args, **kwargs)
        self.rules['id_regex'] = {'schema': {'type': 'boolean'}}
        self.rules['component_type'] = {'schema': {'type': 'boolean'}}
        self.rules['model_type'] = {'schema': {'type': 'boolean'}}
        self.rules['unique_elements_by_key'] = {'schema': {'type': 'string'}}

    def _validate_id_regex(self, constraint: bool, field: str, value: Any):
        """
        The rule's arguments are validated against this schema:
        {'type': 'boolean'}
        """
        if not constraint:
            return
        if not isinstance(value, str):
            self._error(field, "must be a string to be validated by id_regex.")
            return
        if not re.match(ID_REGEX, value):
            invalid_chars = sorted(set(value) - ALLOWED_ID_CHARS)
            self._error(
                field,
                f"Name '{value}' is invalid. Names must start with a letter or underscore and contain only "
                f"letters, digits and underscores. Forbidden character(s): {invalid_chars}"
            )

    def _validate_component_type(self, constraint: bool, field: str, value: Any):
        """
        The rule's arguments are validated against this schema:
        {'type': 'boolean'}
        """
        if constraint and isinstance(value, str):
            try:
                ComponentType.from_string(value)
            except ValueError as e:
                self._error(field, str(e))

    def _validate_model_type(self, constraint: bool, field: str, value: Any):
        """
        The rule's arguments are validated against this schema:
        {'type': 'boolean'}
        """
        if constraint and isinstance(value, str):
            try:
                ModelType.from_string(value)
            except ValueError as e:
                self._error(field, str(e))

    def _validate_unique_elements_by_key(self, key_for_uniqueness: str, field: str, value: List[Dict]):
        """
        Validates that all dictionaries in a list have a unique value for a given
        key, compared case-insensitively.
        The rule's arguments are validated against this schema:
        {'type': 'string'}
        """
        if not isinstance(value, list):
            return

        seen_keys = set()
        duplicates = set()
        for item in value:
            if not isinstance(item, dict):
                continue
            item_key = item.get(key_for_uniqueness)
            if isinstance(item_key, str):
                folded = item_key.casefold()
                if folded in seen_keys:
                    duplicates.add(item_key)
                seen_keys.add(folded)

        if duplicates:
            self._error(field, f"Duplicate values found for key '{key_for_uniqueness}': {sorted(duplicates)}")


@dataclass
class SweepRequest:
    """A parameter sweep declared alongside a circuit definition."""
    parameter_path: str
    values: List[Any]
    analysis_kind: str
    export_expressions: List[str]
    analysis_settings: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CircuitDefinition:
    """The validated content of one circuit definition document."""
    circuit_id: str
    description: str
    source: str
    models: List[Dict[str, Any]] = field(default_factory=list)
    components: List[Dict[str, Any]] = field(default_factory=list)
    sweep: Optional[SweepRequest] = None


class CircuitDefinitionParser:
    """
    Parses and validates YAML circuit definitions, and loads them into a
    `CircuitStore`.

    Example document::

        circuit_id: divider
        description: Resistive divider
        models:
          - {name: D1N4148, type: diode, parameters: {IS: 2.52e-9, N: 1.752}}
        components:
          - {name: V1, type: voltage_source, nodes: [in, 0], value: 10}
          - {name: R1, type: resistor, nodes: [in, out], value: 1 kohm}
          - {name: R2, type: resistor, nodes: [out, 0], value: 1000}
        sweep:
          parameter: R2.value
          analysis: operating_point
          exports: [v(out)]
          start: 100
          stop: 10000
          points: 5
          scale: log
    """
    _name_rule = {"type": "string", "required": True, "empty": False, "id_regex": True}
    _number_or_quantity = {"type": ["number", "string"]}

    _model_schema = {
        "name": _name_rule,
        "type": {"type": "string", "required": True, "model_type": True},
        "parameters": {"type": "dict", "required": False, "keysrules": {"type": "string"}, "valuesrules": _number_or_quantity},
    }

    _component_schema = {
        "name": _name_rule,
        "type": {"type": "string", "required": True, "component_type": True},
        "nodes": {"type": "list", "required": False, "schema": {"type": "string", "coerce": str, "empty": False}},
        "value": _number_or_quantity,
        "model": {"type": "string", "required": False, "id_regex": True},
        "parameters": {"type": "dict", "required": False, "keysrules": {"type": "string"}},
    }

    _sweep_schema = {
        "parameter": {"type": "string", "required": True, "empty": False},
        "analysis": {"type": "string", "required": True, "empty": False},
        "exports": {"type": "list", "required": True, "minlength": 1, "schema": {"type": "string", "empty": False}},
        "values": {"type": "list", "minlength": 1, "schema": {"type": ["number", "string"]},
                   "excludes": ["start", "stop", "step", "points", "scale"]},
        "start": {"type": "number", "dependencies": ["stop"]},
        "stop": {"type": "number", "dependencies": ["start"]},
        "step": {"type": "number", "dependencies": ["start"], "excludes": ["points", "scale"]},
        "points": {"type": "integer", "min": 2, "dependencies": ["start"]},
        "scale": {"type": "string", "allowed": list(SWEEP_SCALES), "dependencies": ["points"]},
        "settings": {"type": "dict", "required": False},
    }

    _schema = {
        "circuit_id": _name_rule,
        "description": {"type": "string", "required": False, "default": ""},
        "models": {"type": "list", "required": False, "unique_elements_by_key": "name",
                   "schema": {"type": "dict", "schema": _model_schema}},
        "components": {"type": "list", "required": True, "unique_elements_by_key": "name",
                       "schema": {"type": "dict", "schema": _component_schema}},
        "sweep": {"type": "dict", "required": False, "schema": _sweep_schema},
    }

    def __init__(self):
        self._validator = EnhancedValidator(self._schema)
        self._validator.allow_unknown = False
        logger.info("CircuitDefinitionParser initialized.")

    def parse_file(self, path: Union[str, Path]) -> CircuitDefinition:
        source = Path(path).resolve()
        logger.info(f"Parsing circuit definition file: {source}")
        if not source.is_file():
            raise ParsingError(details=f"Circuit definition file not found at path: {source}", source=str(source))
        try:
            with source.open("r", encoding="utf-8") as f:
                text = f.read()
        except PermissionError as e:
            raise ParsingError(details=f"Permission denied when trying to read file: {e}", source=str(source)) from e
        return self.parse_string(text, source=str(source))

    def parse_string(self, text: str, source: str = "<string>") -> CircuitDefinition:
        try:
            content = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ParsingError(details=f"Invalid YAML syntax: {e}", source=source) from e
        if content is None:
            raise ParsingError(details="The YAML document is empty.", source=source)
        if not isinstance(content, dict):
            raise ParsingError(details="The root of the YAML document must be a mapping.", source=source)

        if not self._validator.validate(content):
            raise SchemaValidationError(self._validator.errors, source)
        doc = self._validator.document

        definition = CircuitDefinition(
            circuit_id=doc["circuit_id"],
            description=doc.get("description", ""),
            source=source,
            models=doc.get("models", []),
            components=doc.get("components", []),
            sweep=self._parse_sweep(doc["sweep"], source) if "sweep" in doc else None,
        )
        logger.debug(
            f"Parsed '{definition.circuit_id}' from {source}: {len(definition.components)} component(s), "
            f"{len(definition.models)} model(s), sweep: {'yes' if definition.sweep else 'no'}."
        )
        return definition

    def load_into(self, store: CircuitStore, definition: CircuitDefinition) -> Circuit:
        """
        Creates the circuit in `store` and adds its models, then its components.
        If any definition is rejected the partially built circuit is removed again.
        """
        circuit = store.create_circuit(definition.circuit_id, definition.description)
        try:
            for model in definition.models:
                store.define_model(circuit.circuit_id, model["type"], model["name"], model.get("parameters"))
            for comp in definition.components:
                store.add_component(
                    circuit.circuit_id,
                    comp["type"],
                    comp["name"],
                    comp.get("nodes", []),
                    value=comp.get("value"),
                    model=comp.get("model"),
                    parameters=comp.get("parameters"),
                )
        except Exception:
            store.delete_circuit(circuit.circuit_id)
            raise
        logger.info(f"Loaded circuit '{circuit.circuit_id}' from {definition.source}.")
        return circuit

    @staticmethod
    def _parse_sweep(raw: Dict[str, Any], source: str) -> SweepRequest:
        try:
            kind = AnalysisKind.from_string(raw["analysis"])
            parse_analysis_settings(kind, raw.get("settings"), raw["exports"])
        except (ValueError, ConfigParsingError) as e:
            raise ParsingError(details=f"Invalid sweep analysis: {e}", source=source) from e

        if "values" in raw:
            values = list(raw["values"])
        else:
            if "start" not in raw or ("step" not in raw and "points" not in raw):
                raise ParsingError(
                    details="A sweep needs either 'values', or 'start' and 'stop' with 'step' or 'points'.",
                    source=source,
                )
            try:
                if "step" in raw:
                    values = step_values(raw["start"], raw["stop"], raw["step"])
                else:
                    values = generate_sweep_values(raw["start"], raw["stop"], raw["points"], raw.get("scale", "linear"))
            except ValueError as e:
                raise ParsingError(details=f"Invalid sweep range: {e}", source=source) from e

        return SweepRequest(
            parameter_path=raw["parameter"],
            values=values,
            analysis_kind=kind.value,
            export_expressions=list(raw["exports"]),
            analysis_settings=dict(raw.get("settings") or {}),
        )


def load_circuit(
    path: Union[str, Path],
    store: CircuitStore,
    parser: Optional[CircuitDefinitionParser] = None,
) -> Tuple[Circuit, Optional[SweepRequest]]:
    """
    Parses a YAML circuit definition and loads it into `store`.

    Returns:
        The loaded circuit and the sweep declared in the file, if any.

    Raises:
        CircuitDefinitionError: The file could not be parsed or loaded. The
                                message is the full diagnostic report.
    """
    parser = parser or CircuitDefinitionParser()
    try:
        definition = parser.parse_file(path)
        circuit = parser.load_into(store, definition)
        return circuit, definition.sweep
    except DiagnosableError as e:
        logger.error(f"Failed to load circuit definition '{path}': {e}")
        raise CircuitDefinitionError(e.get_diagnostic_report()) from e
    except Exception as e:
        logger.critical(f"An unexpected error occurred while loading '{path}': {e}", exc_info=True)
        report = format_diagnostic_report(
            error_type=f"An Unexpected Error Occurred ({type(e).__name__})",
            details=f"Loading the circuit definition failed unexpectedly: {e}",
            suggestion="This may be a bug. Review the traceback and consider filing a bug report.",
            context={'source_file': str(path)}
        )
        raise CircuitDefinitionError(report) from e
