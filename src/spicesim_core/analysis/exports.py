# src/spicesim_core/analysis/exports.py
"""
Export expressions name the signals an analysis reads out: ``v(out)``,
``v(in,out)``, ``i(R1)``, ``p(Q1)``.
"""
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import pint

from ..units import AMPERE, VOLT, WATT, unit_symbol

logger = logging.getLogger(__name__)

_EXPORT_REGEX = re.compile(r"^\s*([A-Za-z]+)\s*\(\s*([^()]+?)\s*\)\s*$")

_SIGNAL_UNITS = {
    "v": VOLT,
    "i": AMPERE,
    "p": WATT,
}


@dataclass(frozen=True)
class ExportExpression:
    """A parsed export expression, e.g. ``v(in,out)`` -> function 'v', arguments ('in', 'out')."""
    text: str
    function: str
    arguments: Tuple[str, ...]

    @property
    def unit(self) -> Optional[pint.Unit]:
        return _SIGNAL_UNITS.get(self.function)


def parse_export(text: str) -> ExportExpression:
    """
    Parses one export expression.

    Raises:
        ValueError: The text is not of the form ``name(arg[,arg])``.
    """
    if not isinstance(text, str):
        raise ValueError(f"Export expression must be a string, got {type(text).__name__}.")
    match = _EXPORT_REGEX.match(text)
    if not match:
        raise ValueError(
            f"Invalid export expression '{text}'. Expected e.g. 'v(node)', 'v(node1,node2)' or 'i(component)'."
        )
    arguments = tuple(arg.strip() for arg in match.group(2).split(","))
    if any(not arg for arg in arguments) or len(arguments) > 2:
        raise ValueError(f"Invalid argument list in export expression '{text}'.")
    return ExportExpression(text=text, function=match.group(1).lower(), arguments=arguments)


def parse_exports(texts: Iterable[str]) -> Tuple[str, ...]:
    """Validates a list of export expressions, keeping the caller's spelling and order."""
    validated = []
    for text in texts:
        parse_export(text)
        if text not in validated:
            validated.append(text)
    return tuple(validated)


def unit_for_export(text: str) -> str:
    """
    The unit symbol of an export's signal: 'V' for v(...), 'A' for i(...),
    'W' for p(...), and '' for anything else (including unparsable text).
    """
    try:
        expression = parse_export(text)
    except ValueError:
        logger.debug(f"Export '{text}' is not a recognized expression; treating it as dimensionless.")
        return ""
    return unit_symbol(expression.unit)
