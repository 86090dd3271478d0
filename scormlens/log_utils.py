"""
log_utils.py - Logging setup with icons

Library modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves; the CLI calls ``setup_logging`` once.
"""

import logging

from scormlens.icons import LEVEL_ICONS, SUCCESS


# Message-only; no per-line timestamps
LOG_FORMAT = "%(message)s"


class IconLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        icon = LEVEL_ICONS.get(record.levelno, SUCCESS)
        base = super().format(record)
        return f"{icon} {base}"


def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler()
    formatter = IconLogFormatter(LOG_FORMAT)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)
