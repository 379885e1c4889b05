import logging
import time
from typing import Callable

DEFAULT_POLL_INTERVAL_SECONDS = 5
DEFAULT_POLL_TIMEOUT_SECONDS = 7 * 60

logger = logging.getLogger(__name__)


def poll(
    interval: float,
    timeout: float,
    condition: Callable[[], bool],
    description: str | None = None,
) -> None:
    """
    poll calls condition every `interval` seconds until it returns True.

    The interval is always waited before the first call. Exceptions raised by condition are not
    caught, so a fatal error stops polling right away. If the condition still does not hold
    after `timeout` seconds a TimeoutError is raised.
    """
    description = description or getattr(condition, "__name__", repr(condition))
    start_time = time.monotonic()
    attempts = 0

    while time.monotonic() - start_time < timeout:
        time.sleep(interval)
        attempts += 1
        if condition():
            logger.info(f"Condition '{description}' satisfied after {attempts} attempts.")
            return
        logger.debug(f"Condition '{description}' not satisfied yet (attempt {attempts}).")

    raise TimeoutError(
        f"Condition '{description}' not satisfied within {timeout} seconds ({attempts} attempts)."
    )
