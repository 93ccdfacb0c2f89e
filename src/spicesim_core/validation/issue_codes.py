# src/spicesim_core/validation/issue_codes.py
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class CircuitIssueCode(Enum):
    """
    Registry of circuit validation issue codes and their message templates.
    Each enum member's value is a tuple: (code_str, message_template_str).
    """

    # --- Ground Issues (GND_...) ---
    GND_MISSING = ("GND_MISSING", "Circuit '{circuit_id}' has no ground node ('{ground_node}'). This may cause simulation issues.")

    # --- Node Connectivity Issues (NODE_CONN_...) ---
    NODE_CONN_SINGLE = ("NODE_CONN_SINGLE", "Node '{node}' has only a single connection, to component '{component_name}'.")
    NODE_CONN_NO_GROUND_PATH = ("NODE_CONN_NO_GROUND_PATH", "Node(s) {nodes} have no path to ground through any component.")

    # --- Model Reference Issues (MODEL_REF_...) ---
    MODEL_REF_UNDEFINED = ("MODEL_REF_UNDEFINED", "Component '{component_name}' references undefined model '{model_name}'. Defined models: {available_models}.")
    MODEL_REF_TYPE_MISMATCH = ("MODEL_REF_TYPE_MISMATCH", "Component '{component_name}' ({component_type}) references model '{model_name}' of type '{model_type}'. Compatible model types: {compatible_types}.")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def template(self) -> str:
        return self.value[1]

    def format_message(self, **kwargs) -> str:
        """Formats the message template with provided keyword arguments."""
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Missing key {e} for formatting message template of {self.name}: '{self.template}'. Provided args: {kwargs}")
            return f"Error formatting message for {self.code}: Missing key {e}. Template: '{self.template}' Args: {kwargs}"
