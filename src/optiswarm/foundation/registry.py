"""
Named registries for pluggable components (optimizers, extensions).
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any, Callable, Generic, Iterable, TypeVar

from .exceptions import UnknownComponentError

T = TypeVar("T")


def _normalize(key: str) -> str:
    return key.strip().lower().replace("_", "-")


class Registry(Generic[T]):
    """
    Registry mapping case-insensitive names to builders.

    Supports usage as a decorator. Lookups of unknown names raise
    UnknownComponentError listing close matches.
    """

    def __init__(self, kind: str = "component") -> None:
        self._kind = kind
        self._items: dict[str, T] = {}

    def register(self, key: str, item: T | None = None, *, override: bool = False) -> Callable[[T], T] | T:
        """
        Register an item under ``key``.

        Args:
            key: The unique name for the item.
            item: The item to register. If None, returns a decorator.
            override: If True, overwrite an existing key instead of raising ValueError.
        """
        name = _normalize(key)

        def _do_register(obj: T) -> T:
            if name in self._items and not override:
                raise ValueError(f"{self._kind.capitalize()} '{name}' is already registered")
            self._items[name] = obj
            return obj

        if item is None:
            return _do_register
        return _do_register(item)

    def get(self, key: str, default: Any = ...) -> T:
        name = _normalize(key)
        if name not in self._items:
            if default is not ...:
                return default
            options = self.list()
            close = get_close_matches(name, options, n=3, cutoff=0.6)
            raise UnknownComponentError(self._kind, key, options, close)
        return self._items[name]

    def list(self) -> list[str]:
        """Return a sorted list of registered keys."""
        return sorted(self._items.keys())

    def __contains__(self, key: str) -> bool:
        return _normalize(key) in self._items

    def __getitem__(self, key: str) -> T:
        return self.get(key)

    def __iter__(self) -> Iterable[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> Iterable[tuple[str, T]]:
        return self._items.items()


__all__ = ["Registry"]
