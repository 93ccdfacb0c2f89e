# src/spicesim_core/validation/issues.py
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class ValidationIssueLevel(Enum):
    """Severity level of a validation issue."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    def __str__(self):
        return self.value


@dataclass
class ValidationIssue:
    """A single finding of the circuit validator."""
    level: ValidationIssueLevel
    code: str
    message: str
    circuit_id: Optional[str] = None
    component_name: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.level.name} - {self.code}]"]
        if self.component_name:
            parts.append(f"Component: {self.component_name}")
        parts.append(f"Message: {self.message}")
        return " ".join(parts)
