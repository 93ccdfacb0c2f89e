# src/spicesim_core/analysis/config.py
import logging
from typing import Any, Dict, Iterable, Optional

import cerberus

from ..units import to_magnitude
from .exports import parse_exports
from .kinds import (
    AcSettings,
    AcSweepType,
    AnalysisKind,
    AnalysisSettings,
    DcSweepSettings,
    OperatingPointSettings,
    TransientSettings,
)

logger = logging.getLogger(__name__)

class ConfigParsingError(ValueError):
    """Custom exception for errors during analysis settings parsing."""
    pass

_number_or_quantity = {"type": ["number", "string"], "nullable": False}

_SCHEMAS: Dict[AnalysisKind, Dict[str, Any]] = {
    AnalysisKind.OPERATING_POINT: {},
    AnalysisKind.DC_SWEEP: {
        "source": {"type": "string", "empty": False},
        "start": _number_or_quantity,
        "stop": _number_or_quantity,
        "step": _number_or_quantity,
    },
    AnalysisKind.AC: {
        "start_frequency": _number_or_quantity,
        "stop_frequency": _number_or_quantity,
        "number_of_points": {"type": "integer", "min": 1},
        "sweep_type": {"type": "string", "allowed": [t.value for t in AcSweepType]},
    },
    AnalysisKind.TRANSIENT: {
        "step": _number_or_quantity,
        "stop_time": _number_or_quantity,
        "start_time": _number_or_quantity,
    },
}

# Spellings accepted from RPC clients, mapped onto the canonical field names.
_KEY_ALIASES: Dict[str, str] = {
    "startFrequency": "start_frequency",
    "stopFrequency": "stop_frequency",
    "numberOfPoints": "number_of_points",
    "points": "number_of_points",
    "sweepType": "sweep_type",
    "startTime": "start_time",
    "stopTime": "stop_time",
    "timeStep": "step",
    "time_step": "step",
}


def parse_analysis_settings(
    kind: AnalysisKind,
    raw_settings: Optional[Dict[str, Any]],
    exports: Iterable[str],
) -> AnalysisSettings:
    """
    Parses a raw settings mapping into the frozen settings dataclass of `kind`.

    Missing fields take the defaults from `constants`. Numeric fields accept
    plain numbers or unit strings ('10 kHz', '1 ms', '2.5 V').
    """
    try:
        export_tuple = parse_exports(exports)
    except ValueError as e:
        raise ConfigParsingError(f"Failed to parse export expressions: {e}") from e

    raw = {_KEY_ALIASES.get(k, k): v for k, v in (raw_settings or {}).items()}
    # Export expressions travel beside the settings, not inside them.
    raw.pop("exports", None)

    validator = cerberus.Validator(_SCHEMAS[kind])
    validator.allow_unknown = False
    if not validator.validate(raw):
        raise ConfigParsingError(f"Invalid {kind.value} analysis settings: {validator.errors}")
    doc = validator.document

    try:
        if kind is AnalysisKind.OPERATING_POINT:
            return OperatingPointSettings(exports=export_tuple)

        if kind is AnalysisKind.DC_SWEEP:
            defaults = DcSweepSettings()
            settings = DcSweepSettings(
                source=doc.get("source", defaults.source),
                start=_source_level(doc.get("start", defaults.start)),
                stop=_source_level(doc.get("stop", defaults.stop)),
                step=_source_level(doc.get("step", defaults.step)),
                exports=export_tuple,
            )
            if settings.step == 0:
                raise ValueError("DC step cannot be zero.")
            if (settings.stop - settings.start) / settings.step < 0:
                raise ValueError("DC step direction does not lead from start to stop.")
            return settings

        if kind is AnalysisKind.AC:
            defaults = AcSettings()
            settings = AcSettings(
                start_frequency=to_magnitude(doc.get("start_frequency", defaults.start_frequency), "Hz"),
                stop_frequency=to_magnitude(doc.get("stop_frequency", defaults.stop_frequency), "Hz"),
                number_of_points=int(doc.get("number_of_points", defaults.number_of_points)),
                sweep_type=AcSweepType(doc.get("sweep_type", defaults.sweep_type.value)),
                exports=export_tuple,
            )
            if settings.stop_frequency < settings.start_frequency:
                raise ValueError("Stop frequency cannot be less than start frequency.")
            if settings.sweep_type is AcSweepType.LINEAR:
                if settings.start_frequency < 0:
                    raise ValueError("Linear sweep start frequency must be >= 0.")
            elif settings.start_frequency <= 0:
                raise ValueError("Logarithmic sweep frequencies must be > 0.")
            return settings

        defaults = TransientSettings()
        settings = TransientSettings(
            step=to_magnitude(doc.get("step", defaults.step), "s"),
            stop_time=to_magnitude(doc.get("stop_time", defaults.stop_time), "s"),
            start_time=to_magnitude(doc.get("start_time", defaults.start_time), "s"),
            exports=export_tuple,
        )
        if settings.step <= 0:
            raise ValueError("Transient step must be > 0.")
        if settings.start_time < 0 or settings.stop_time <= settings.start_time:
            raise ValueError("Transient stop time must be greater than a non-negative start time.")
        return settings
    except ValueError as e:
        raise ConfigParsingError(f"Failed to parse {kind.value} analysis settings: {e}") from e


def _source_level(raw: Any) -> float:
    # A swept source is either a voltage or a current source.
    try:
        return to_magnitude(raw, "V")
    except ValueError:
        return to_magnitude(raw, "A")
