"""Shared logging helpers for mirrorgraph."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError


def level_from_env(default: int = logging.INFO) -> int:
    """Resolve ``LOG_LEVEL`` (``debug``, ``info``, ...) into a logging level."""

    raw = os.getenv("LOG_LEVEL")
    if raw is None or not raw.strip():
        return default
    level = logging.getLevelNamesMapping().get(raw.strip().upper())
    if level is None:
        raise ConfigurationError(f"Unknown LOG_LEVEL: {raw}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the level
    defaults to ``LOG_LEVEL`` (or INFO) and the format is terse enough for CLI
    output. Pass ``force=True`` to reconfigure during tests or specialised entry
    points.
    """

    logging.basicConfig(
        level=level if level is not None else level_from_env(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
