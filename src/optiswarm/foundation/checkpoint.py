"""
Checkpoint files for persisted run history.
"""

from __future__ import annotations

import pickle
from pathlib import Path
from typing import Any, cast

CHECKPOINT_VERSION = 1


def save_checkpoint(path: str | Path, payload: dict[str, Any]) -> Path:
    """
    Write a payload dict to a checkpoint file.

    Args:
        path: File path for checkpoint (will add .ckpt extension if missing).
        payload: Picklable state (storage tables, RNG state, counters).

    Returns:
        Path to saved checkpoint file.
    """
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(".ckpt")

    path.parent.mkdir(parents=True, exist_ok=True)

    checkpoint = {"version": CHECKPOINT_VERSION, "payload": payload}
    with open(path, "wb") as f:
        pickle.dump(checkpoint, f, protocol=pickle.HIGHEST_PROTOCOL)

    return path


def load_checkpoint(path: str | Path) -> dict[str, Any]:
    """
    Read the payload back from a checkpoint file.

    Raises:
        FileNotFoundError: If checkpoint file doesn't exist.
        ValueError: If checkpoint version is unsupported.
    """
    path = Path(path)
    if not path.exists() and not path.suffix:
        path = path.with_suffix(".ckpt")
    if not path.exists():
        raise FileNotFoundError(f"Checkpoint not found: {path}")

    with open(path, "rb") as f:
        checkpoint = cast(dict[str, Any], pickle.load(f))

    version = checkpoint.get("version", 0)
    if version != CHECKPOINT_VERSION:
        raise ValueError(f"Unsupported checkpoint version: {version}")

    return cast(dict[str, Any], checkpoint["payload"])


__all__ = ["save_checkpoint", "load_checkpoint", "CHECKPOINT_VERSION"]
