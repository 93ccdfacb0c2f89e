# --- src/spicesim_core/constants.py ---
import logging

logger = logging.getLogger(__name__)

#: Name of the SPICE reference node. A circuit "has ground" iff a component connects to it.
GROUND_NODE: str = "0"

# --- Default analysis settings, applied when a settings mapping omits a field ---

#: DC sweep: swept source name and range. A zero-width range yields a single operating value.
DEFAULT_DC_SOURCE: str = "V1"
DEFAULT_DC_START: float = 0.0 # Volts or Amperes, depending on the source
DEFAULT_DC_STOP: float = 0.0
DEFAULT_DC_STEP: float = 0.1

#: AC small-signal sweep.
DEFAULT_AC_START_FREQUENCY_HZ: float = 1.0e3
DEFAULT_AC_STOP_FREQUENCY_HZ: float = 1.0e6
DEFAULT_AC_NUMBER_OF_POINTS: int = 100
DEFAULT_AC_SWEEP_TYPE: str = "decade"

#: Transient analysis.
DEFAULT_TRANSIENT_START_TIME_S: float = 0.0
DEFAULT_TRANSIENT_STOP_TIME_S: float = 1.0e-3
DEFAULT_TRANSIENT_STEP_S: float = 1.0e-6

#: Circuit operating temperature in degrees Celsius (the SPICE nominal temperature).
DEFAULT_TEMPERATURE_C: float = 27.0

# --- Sweep value generation ---

#: Relative tolerance on the final step when generating values from start/stop/step,
#: so that floating-point accumulation does not drop the stop value.
STEP_INCLUSION_TOLERANCE: float = 1.0e-4

#: Number of points used when a sweep range is requested without an explicit count.
DEFAULT_SWEEP_POINTS: int = 20

#: Upper bound on worker threads for the parallel sweep mode.
DEFAULT_MAX_PARALLEL_WORKERS: int = 4

logger.debug("Defined core constants: analysis defaults and sweep generation limits.")
