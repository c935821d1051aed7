"""
Protocol definitions for generic infrastructure services.

Available Protocols:
    CacheBackend: The subset of Django's cache interface the app relies on

Usage:
    from core.protocols import CacheBackend

    def cached_balance(cache: CacheBackend, key: str):
        value = cache.get(key)
        if value is None:
            value = compute_balance()
            cache.set(key, value, timeout=300)
        return value

Note:
    django.core.cache.cache satisfies CacheBackend without inheriting
    from it, so tests can pass any object with the same three methods.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


@runtime_checkable
class CacheBackend(Protocol):
    """Protocol for key/value cache backends with per-key expiry."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value or default when missing or expired."""
        ...

    def set(self, key: str, value: Any, timeout: int | None = None) -> None:
        """Store value under key for timeout seconds (None for no expiry)."""
        ...

    def delete(self, key: str) -> bool:
        """Remove key; returns True if something was deleted."""
        ...
