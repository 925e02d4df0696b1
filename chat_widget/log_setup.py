"""Logging setup for the widget service."""

import logging
import sys


def configure_logging(level: str = "INFO"):
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    root = logging.getLogger()
    if root.handlers:
        return  # already configured
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.addHandler(handler)
