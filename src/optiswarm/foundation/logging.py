from __future__ import annotations

import logging


def configure_optiswarm_logging(*, level: int = logging.INFO, fmt: str = "%(message)s") -> None:
    """
    Configure a minimal console logger for optiswarm.

    Notes:
        - Opt-in only: library code never calls logging.basicConfig().
        - The handler is only attached if neither the root logger nor the "optiswarm" logger has handlers.
    """
    root = logging.getLogger()
    package_logger = logging.getLogger("optiswarm")

    if root.handlers or package_logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False


__all__ = ["configure_optiswarm_logging"]
