"""Base utilities for optimizer and extension settings."""

from __future__ import annotations

import json
from dataclasses import MISSING, asdict, field, fields
from typing import Any, Dict, Mapping, Tuple, Type, TypeVar

from optiswarm.foundation.exceptions import InvalidSettingError

S = TypeVar("S")

_TRUE = {"yes", "true", "1", "on"}
_FALSE = {"no", "false", "0", "off"}


class _SerializableConfig:
    """Mixin to serialize dataclass configs."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def to_settings(self) -> Dict[str, Any]:
        """Return the settings keyed by their dashed document names."""
        return {setting_key(f): getattr(self, f.name) for f in fields(self)}


def _require_fields(cfg: Dict[str, Any], fields: Tuple[str, ...], name: str) -> None:
    """Validate that required fields are present in configuration."""
    missing = [field for field in fields if field not in cfg]
    if missing:
        joined = ", ".join(missing)
        raise ValueError(f"{name} configuration missing required fields: {joined}")


def setting(default: Any, key: str, description: str = "") -> Any:
    """Declare a dataclass field as a named, documented setting."""
    return field(default=default, metadata={"key": key, "description": description})


def setting_key(f: Any) -> str:
    return f.metadata.get("key", f.name.replace("_", "-"))


def _coerce(owner: str, key: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise InvalidSettingError(owner, key, f"expected yes/no, got {value!r}")
    if isinstance(default, int):
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidSettingError(owner, key, f"expected an integer, got {value!r}") from None
        if not number.is_integer():
            raise InvalidSettingError(owner, key, f"expected an integer, got {value!r}")
        return int(number)
    if isinstance(default, float):
        try:
            return float(value)
        except (TypeError, ValueError):
            raise InvalidSettingError(owner, key, f"expected a number, got {value!r}") from None
    if isinstance(default, str):
        return str(value).strip()
    return value


def settings_from_mapping(cls: Type[S], mapping: Mapping[str, Any] | None, owner: str | None = None) -> S:
    """
    Build a settings dataclass from a document mapping.

    Keys may be the dashed setting names (``max-velocity``) or the attribute
    names (``max_velocity``). Values are coerced to the type of the field
    default; unknown keys raise InvalidSettingError.
    """
    owner = owner or cls.__name__
    by_key: Dict[str, Any] = {}
    for f in fields(cls):  # type: ignore[arg-type]
        by_key[setting_key(f)] = f
        by_key[f.name] = f

    kwargs: Dict[str, Any] = {}
    for raw_key, value in (mapping or {}).items():
        f = by_key.get(str(raw_key).strip())
        if f is None:
            available = sorted(setting_key(item) for item in fields(cls))  # type: ignore[arg-type]
            raise InvalidSettingError(owner, str(raw_key), "unknown setting", available)
        default = f.default if f.default is not MISSING else None
        kwargs[f.name] = _coerce(owner, setting_key(f), value, default)
    return cls(**kwargs)


def describe_settings(cls: Type[Any]) -> list[dict[str, Any]]:
    """List ``{"name", "default", "description"}`` for every setting of ``cls``."""
    out = []
    for f in fields(cls):
        default = f.default if f.default is not MISSING else None
        out.append({"name": setting_key(f), "default": default, "description": f.metadata.get("description", "")})
    return out


__all__ = [
    "_SerializableConfig",
    "_require_fields",
    "setting",
    "setting_key",
    "settings_from_mapping",
    "describe_settings",
]
