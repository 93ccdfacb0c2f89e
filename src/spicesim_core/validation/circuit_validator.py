# src/spicesim_core/validation/circuit_validator.py
"""
Structural checks on a circuit before it is handed to the simulation engine.

ERROR-level issues make a circuit unsimulatable (undefined or incompatible
model references). WARNING-level issues are suspicious but may still solve:
a missing ground, dangling nodes, islands with no path to ground.
"""
import logging
from typing import Dict, List

import networkx as nx

from ..constants import GROUND_NODE
from ..data_structures import Circuit
from .issue_codes import CircuitIssueCode
from .issues import ValidationIssue, ValidationIssueLevel

logger = logging.getLogger(__name__)


class CircuitValidator:
    """Validates a single circuit. Stateless between calls to `validate`."""

    def __init__(self, circuit: Circuit):
        if not isinstance(circuit, Circuit):
            raise TypeError("CircuitValidator requires a Circuit object.")
        self.circuit = circuit
        self.issues: List[ValidationIssue] = []

    def validate(self) -> List[ValidationIssue]:
        """
        Runs every check and returns all issues found.

        The caller decides what to do with ERROR-level issues.
        """
        self.issues = []
        logger.info(f"Validating circuit '{self.circuit.circuit_id}'...")

        if self.circuit.components:
            self._check_ground()
            self._check_connectivity()
        self._check_model_references()

        errors = sum(1 for i in self.issues if i.level == ValidationIssueLevel.ERROR)
        warnings = sum(1 for i in self.issues if i.level == ValidationIssueLevel.WARNING)
        logger.info(f"Validation complete. Found: {errors} errors, {warnings} warnings.")
        return self.issues

    def _add_issue(self, level: ValidationIssueLevel, code_enum: CircuitIssueCode, **kwargs):
        self.issues.append(ValidationIssue(
            level=level,
            code=code_enum.code,
            message=code_enum.format_message(circuit_id=self.circuit.circuit_id, **kwargs),
            circuit_id=self.circuit.circuit_id,
            component_name=kwargs.get('component_name'),
            details=kwargs,
        ))

    def _check_ground(self):
        if not self.circuit.has_ground:
            self._add_issue(ValidationIssueLevel.WARNING, CircuitIssueCode.GND_MISSING, ground_node=GROUND_NODE)

    def _node_connections(self) -> Dict[str, List[str]]:
        """Node -> names of the components attached to it (one entry per pin)."""
        connections: Dict[str, List[str]] = {}
        for component in self.circuit.components.values():
            for node in component.nodes:
                connections.setdefault(node, []).append(component.name)
        return connections

    def _build_graph(self) -> nx.Graph:
        graph = nx.Graph()
        for component in self.circuit.components.values():
            graph.add_nodes_from(component.nodes)
            for first, second in zip(component.nodes, component.nodes[1:]):
                if first != second:
                    graph.add_edge(first, second, component=component.name)
        return graph

    def _check_connectivity(self):
        for node, attached in sorted(self._node_connections().items()):
            if node != GROUND_NODE and len(attached) == 1:
                self._add_issue(
                    ValidationIssueLevel.WARNING, CircuitIssueCode.NODE_CONN_SINGLE,
                    node=node, component_name=attached[0],
                )

        if not self.circuit.has_ground:
            # Already reported; every node would be flagged otherwise.
            return
        graph = self._build_graph()
        for group in nx.connected_components(graph):
            if GROUND_NODE not in group:
                self._add_issue(
                    ValidationIssueLevel.WARNING, CircuitIssueCode.NODE_CONN_NO_GROUND_PATH,
                    nodes=sorted(group),
                )

    def _check_model_references(self):
        for component in self.circuit.components.values():
            if not component.model:
                continue
            model = self.circuit.find_model(component.model)
            if model is None:
                self._add_issue(
                    ValidationIssueLevel.ERROR, CircuitIssueCode.MODEL_REF_UNDEFINED,
                    component_name=component.name, model_name=component.model,
                    available_models=sorted(self.circuit.models) or "none",
                )
                continue
            compatible = component.component_type.compatible_model_types
            if model.model_type not in compatible:
                self._add_issue(
                    ValidationIssueLevel.ERROR, CircuitIssueCode.MODEL_REF_TYPE_MISMATCH,
                    component_name=component.name, component_type=component.component_type.value,
                    model_name=model.name, model_type=model.model_type.value,
                    compatible_types=sorted(t.value for t in compatible) or "none",
                )
