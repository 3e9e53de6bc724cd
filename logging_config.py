from __future__ import annotations

import logging

from settings import SETTINGS

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
HANDLER_NAME = "command_service_console"


def setup_logging(level: str | None = None) -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or SETTINGS.log_level).upper(), logging.INFO))
    # Uvicorn and pytest install their own handlers; only add ours once.
    if any(h.get_name() == HANDLER_NAME for h in root.handlers):
        return root
    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    return root
