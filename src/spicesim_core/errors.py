# src/spicesim_core/errors.py
import logging
from typing import Any, Dict, Protocol, abstractmethod
from typing import runtime_checkable

logger = logging.getLogger(__name__)

# --- User-Facing Exception Hierarchy ---

class SpiceSimError(Exception):
    """Base class for all custom, user-facing errors in SpiceSim Core."""
    pass

class CircuitDefinitionError(SpiceSimError):
    """
    Raised when a circuit cannot be created or loaded, e.g. a malformed YAML
    definition, a duplicate component name or an unknown component type.
    The message is a pre-formatted, user-friendly diagnostic report.
    """
    pass

class SweepRunError(SpiceSimError):
    """
    Raised by the gateway when a sweep or a single analysis cannot be run:
    unknown circuit, circuit validation errors, or a failed single analysis.
    Failures of individual sweep points are never raised; they are recorded
    in the returned report.
    The message is a pre-formatted, user-friendly diagnostic report.
    """
    pass

class GatewayInputError(SpiceSimError, ValueError):
    """
    Raised by the gateway when a request is malformed: empty value list,
    missing export expressions, unknown analysis kind or invalid settings.
    `errors` maps each offending field to its messages.
    """
    def __init__(self, message: str, errors: Dict[str, Any] = None):
        super().__init__(message)
        self.errors = errors or {}


# --- Diagnostic Protocol & Base Exception ---

@runtime_checkable
class Diagnosable(Protocol):
    """
    A protocol for exceptions that can generate their own rich diagnostic report.
    """
    def get_diagnostic_report(self) -> str:
        """Generates a complete, user-friendly, multi-line report string."""
        ...

class DiagnosableError(Exception, Diagnosable):
    """
    Concrete base class for all internal, diagnosable exceptions.

    Inheriting from `Exception` makes it usable in `except` clauses; the abstract
    `get_diagnostic_report` forces every subclass to describe itself to the user.
    """
    @abstractmethod
    def get_diagnostic_report(self) -> str:
        """
        Abstract method to generate the diagnostic report.
        Subclasses MUST implement this.
        """
        raise NotImplementedError


# --- Stateless Formatting Utility ---

def format_diagnostic_report(
    error_type: str,
    details: str,
    suggestion: str,
    context: Dict[str, Any]
) -> str:
    """
    Formats the final multi-line report string so that every user-facing
    diagnostic has the same layout.

    Args:
        error_type: The high-level category of the error (e.g., "Parameter Not Found").
        details: A detailed, potentially multi-line description of the problem.
        suggestion: Actionable advice for the user to resolve the issue.
        context: Contextual information. Recognized keys are 'circuit_id',
                 'parameter_path', 'user_input', 'analysis_kind', 'point_index'
                 and 'source_file'.

    Returns:
        A formatted, user-friendly diagnostic report string ready for display.
    """
    lines = [
        "\n",
        "============== SpiceSim Core: Actionable Diagnostic Report ==============",
        f"Error Type:     {error_type}",
    ]
    if circuit_id := context.get('circuit_id'):
        lines.append(f"Circuit:        {circuit_id}")
    if parameter_path := context.get('parameter_path'):
        lines.append(f"Parameter:      {parameter_path}")
    if analysis_kind := context.get('analysis_kind'):
        lines.append(f"Analysis:       {analysis_kind}")
    if (point_index := context.get('point_index')) is not None:
        lines.append(f"Sweep Point:    {point_index}")
    if source_file := context.get('source_file'):
        lines.append(f"Source File:    {source_file}")
    if (user_input := context.get('user_input')) is not None:
        lines.append(f"User Input:     '{user_input}'")

    lines.append("\nDetails:")
    for line in details.splitlines():
        lines.append(f"  {line}")

    if suggestion:
        lines.append("\nSuggestion:")
        for line in suggestion.splitlines():
            lines.append(f"  {line}")

    lines.append("=========================================================================")
    return "\n".join(lines)
