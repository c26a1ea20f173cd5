"""Velocity update component flags."""

from __future__ import annotations

from enum import IntFlag


class VelocityUpdate(IntFlag):
    """Components of the base velocity rule.

    Extensions return a combination of these flags; the optimizer ORs the
    answers of every extension into one mask per particle and update.
    """

    DEFAULT = 1 << 0
    DISABLE_MOMENTUM = 1 << 1
    DISABLE_LOCAL = 1 << 2
    DISABLE_GLOBAL = 1 << 3


__all__ = ["VelocityUpdate"]
