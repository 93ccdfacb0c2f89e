# src/spicesim_core/analysis/kinds.py
"""
Analysis kinds and their settings contracts.

Each kind has one frozen settings dataclass. The dispatcher checks that the
settings object handed to it belongs to the requested kind, so a DC request
can never run with transient settings.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple, Type, Union

from ..constants import (
    DEFAULT_AC_NUMBER_OF_POINTS,
    DEFAULT_AC_START_FREQUENCY_HZ,
    DEFAULT_AC_STOP_FREQUENCY_HZ,
    DEFAULT_AC_SWEEP_TYPE,
    DEFAULT_DC_SOURCE,
    DEFAULT_DC_START,
    DEFAULT_DC_STEP,
    DEFAULT_DC_STOP,
    DEFAULT_TRANSIENT_START_TIME_S,
    DEFAULT_TRANSIENT_STEP_S,
    DEFAULT_TRANSIENT_STOP_TIME_S,
)


class AnalysisKind(Enum):
    OPERATING_POINT = "operating_point"
    DC_SWEEP = "dc"
    AC = "ac"
    TRANSIENT = "transient"

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, raw: Union[str, "AnalysisKind"]) -> "AnalysisKind":
        """
        Accepts the canonical tag as well as the aliases used by RPC clients:
        'operating-point', 'op', 'dc_sweep', 'tran', ... (case-insensitive).
        """
        if isinstance(raw, AnalysisKind):
            return raw
        normalized = str(raw).strip().lower().replace("-", "_").replace(" ", "_")
        kind = _ALIASES.get(normalized)
        if kind is None:
            raise ValueError(
                f"Unsupported analysis type '{raw}'. Supported types: "
                f"operating_point (or operating-point), dc, ac, transient."
            )
        return kind

    @property
    def produces_curves(self) -> bool:
        """True for kinds whose per-point output is kept as a full curve in sweep reports."""
        return self in (AnalysisKind.AC, AnalysisKind.TRANSIENT)


_ALIASES: Dict[str, AnalysisKind] = {
    "operating_point": AnalysisKind.OPERATING_POINT,
    "op": AnalysisKind.OPERATING_POINT,
    "dc": AnalysisKind.DC_SWEEP,
    "dc_sweep": AnalysisKind.DC_SWEEP,
    "ac": AnalysisKind.AC,
    "transient": AnalysisKind.TRANSIENT,
    "tran": AnalysisKind.TRANSIENT,
}


class AcSweepType(Enum):
    LINEAR = "linear"
    DECADE = "decade"
    OCTAVE = "octave"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class OperatingPointSettings:
    exports: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DcSweepSettings:
    """Sweeps the DC value of `source` from `start` to `stop` in `step` increments."""
    source: str = DEFAULT_DC_SOURCE
    start: float = DEFAULT_DC_START
    stop: float = DEFAULT_DC_STOP
    step: float = DEFAULT_DC_STEP
    exports: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AcSettings:
    """
    Small-signal frequency sweep. For 'decade' and 'octave', `number_of_points`
    is per decade/octave, as in SPICE; for 'linear' it is the total count.
    """
    start_frequency: float = DEFAULT_AC_START_FREQUENCY_HZ
    stop_frequency: float = DEFAULT_AC_STOP_FREQUENCY_HZ
    number_of_points: int = DEFAULT_AC_NUMBER_OF_POINTS
    sweep_type: AcSweepType = AcSweepType(DEFAULT_AC_SWEEP_TYPE)
    exports: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TransientSettings:
    step: float = DEFAULT_TRANSIENT_STEP_S
    stop_time: float = DEFAULT_TRANSIENT_STOP_TIME_S
    start_time: float = DEFAULT_TRANSIENT_START_TIME_S
    exports: Tuple[str, ...] = field(default_factory=tuple)


AnalysisSettings = Union[OperatingPointSettings, DcSweepSettings, AcSettings, TransientSettings]

SETTINGS_TYPES: Dict[AnalysisKind, Type] = {
    AnalysisKind.OPERATING_POINT: OperatingPointSettings,
    AnalysisKind.DC_SWEEP: DcSweepSettings,
    AnalysisKind.AC: AcSettings,
    AnalysisKind.TRANSIENT: TransientSettings,
}
