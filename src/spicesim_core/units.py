# --- src/spicesim_core/units.py ---
import logging
from typing import Any, Optional

import pint

logger = logging.getLogger(__name__)
ureg = pint.UnitRegistry()
Quantity = ureg.Quantity
logger.info("Pint Unit Registry initialized.")

# Canonical units of the signals an analysis can export.
VOLT = ureg.volt
AMPERE = ureg.ampere
WATT = ureg.watt
HERTZ = ureg.hertz
SECOND = ureg.second


def unit_symbol(unit: Optional[pint.Unit]) -> str:
    """Abbreviated symbol of a unit ('V', 'A', 'W'); empty string for dimensionless."""
    if unit is None:
        return ""
    return f"{unit:~P}"


def to_magnitude(raw: Any, unit: Optional[str] = None) -> float:
    """
    Converts a number or a unit-bearing string to a plain float.

    With `unit` given, strings such as '1 kHz' or '10 us' are converted into
    that unit; bare numbers and dimensionless strings are taken as already
    expressed in it. Without `unit`, the string must be dimensionless.

    Raises:
        ValueError: The input is not numeric, cannot be parsed, or has the
                    wrong dimensionality.
    """
    if isinstance(raw, bool):
        raise ValueError(f"Boolean '{raw}' is not a numeric value.")
    if isinstance(raw, (int, float)):
        return float(raw)
    if not isinstance(raw, str):
        raise ValueError(f"Value of type '{type(raw).__name__}' is not numeric.")

    try:
        return float(raw)
    except ValueError:
        pass

    try:
        qty = ureg.Quantity(raw)
    except Exception as e:
        # pint raises UndefinedUnitError as well as assorted tokenizer errors.
        raise ValueError(f"Cannot interpret '{raw}' as a number or quantity: {e}") from e

    if qty.dimensionless:
        return float(qty.to(ureg.dimensionless).magnitude)
    if unit is None:
        raise ValueError(f"'{raw}' carries units ({qty.units:~P}) where a plain number is expected.")
    try:
        return float(qty.to(unit).magnitude)
    except pint.DimensionalityError as e:
        raise ValueError(f"'{raw}' cannot be expressed in '{unit}': {e}") from e
