# --- src/spicesim_core/log_config.py ---
import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] [%(name)s] %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO, stream=None):
    """
    Routes all SpiceSim Core log records to a single console handler.

    Args:
        level: A logging level, either numeric (``logging.DEBUG``) or by name ("DEBUG").
        stream: Destination stream for the handler. Defaults to stdout.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level name '{level}'.")
        level = resolved

    root_logger = logging.getLogger()

    # Drop whatever handlers were installed before so records are not duplicated.
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    logging.getLogger(__name__).debug(f"Logging configured at level {logging.getLevelName(level)}.")
