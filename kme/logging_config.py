import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Client libraries that log every HTTP round trip at DEBUG/INFO.
NOISY_LOGGERS = ("urllib3", "kubernetes.client.rest", "google.auth", "google.api_core")


def setup_logging(name: str, log_file: str | None = None, level: int | None = None) -> logging.Logger:
    """Configures the root logger once per process and returns the logger called `name`.

    The level defaults to the LOG_LEVEL environment variable (INFO when unset or not a level name).
    """
    if level is None:
        level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if not root.handlers:
        formatter = logging.Formatter(LOG_FORMAT)
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

        if log_file is not None:
            file_handler = logging.FileHandler(log_file, mode="w")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root.setLevel(level)
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logging.getLogger(name)
