# src/spicesim_core/parser/exceptions.py
"""
Diagnosable exceptions for loading YAML circuit definitions.

`ParsingError` covers file-level and syntax problems, `SchemaValidationError`
covers structurally valid YAML that does not match the circuit schema.
"""
from dataclasses import dataclass
from typing import Any, Dict

from ..errors import DiagnosableError, format_diagnostic_report


class BaseParsingError(DiagnosableError):
    """Common base of all circuit definition parsing errors."""
    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Generic Parsing Error",
            details=str(self),
            suggestion="Please check the format and content of the circuit definition file.",
            context={}
        )


@dataclass()
class ParsingError(BaseParsingError):
    """The file is missing, unreadable, not valid YAML, or logically inconsistent."""
    details: str
    source: str

    def __str__(self):
        return f"Parsing error in '{self.source}': {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="YAML Parsing or File Error",
            details=self.details,
            suggestion="Ensure the file exists, is readable, and contains a valid circuit definition.",
            context={'source_file': self.source}
        )


@dataclass()
class SchemaValidationError(BaseParsingError):
    """The YAML does not conform to the circuit definition schema."""
    errors: Dict[str, Any]
    source: str

    def _error_lines(self, prefix: str):
        return [f"  - {prefix} '{field}': {messages}" for field, messages in sorted(self.errors.items(), key=lambda kv: str(kv[0]))]

    def __str__(self):
        return f"Schema validation failed for '{self.source}':\n" + "\n".join(self._error_lines("In field"))

    def get_diagnostic_report(self) -> str:
        details = (
            "The structure of the circuit definition does not conform to the required schema.\n"
            f"See details for {len(self.errors)} issue(s) below:\n\n" + "\n".join(self._error_lines("Field"))
        )
        return format_diagnostic_report(
            error_type="YAML Schema Validation Error",
            details=details,
            suggestion=(
                "Correct the listed fields. Check for invalid names (letters, digits and '_' only), "
                "duplicate component or model names, unknown types, and missing 'circuit_id' or 'components'."
            ),
            context={'source_file': self.source}
        )
