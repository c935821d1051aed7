"""
Balance cache backends.

The BalanceCalculator caches one BalanceSnapshot per collector identifier.
The cache is injected rather than module-global so deployments can pick a
shared cache that every instance invalidates, or a process-local one for
single-instance setups.

Both options are Django cache aliases (see CACHES in settings):
    "default": Redis via django-redis in production. Invalidation is
        visible to every web and worker process.
    "balance_local": LocMemCache. Invalidation only reaches the process
        that performed the write.

Usage:
    from earnings.cache import get_balance_cache

    cache = get_balance_cache()        # chosen by BALANCE_CACHE_BACKEND
    cache.set("balance:42", snapshot, timeout=300)
    cache.delete("balance:42")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.core.cache import caches

if TYPE_CHECKING:
    from typing import Any

    from core.protocols import CacheBackend

BALANCE_CACHE_PREFIX = "earnings:balance"

SHARED_CACHE_ALIAS = "default"
LOCAL_CACHE_ALIAS = "balance_local"

CACHE_ALIASES = {
    "shared": SHARED_CACHE_ALIAS,
    "local": LOCAL_CACHE_ALIAS,
}


def balance_cache_key(identifier: str) -> str:
    return f"{BALANCE_CACHE_PREFIX}:{identifier}"


class SharedBalanceCache:
    """CacheBackend over a Django cache alias."""

    def __init__(self, alias: str = SHARED_CACHE_ALIAS) -> None:
        self.alias = alias

    @property
    def _cache(self):
        return caches[self.alias]

    def get(self, key: str, default: Any = None) -> Any:
        return self._cache.get(key, default)

    def set(self, key: str, value: Any, timeout: int | None = None) -> None:
        self._cache.set(key, value, timeout=timeout)

    def delete(self, key: str) -> bool:
        return bool(self._cache.delete(key))

    def clear(self) -> None:
        self._cache.clear()


def get_balance_cache() -> CacheBackend:
    """Backend selected by settings.BALANCE_CACHE_BACKEND ("shared" or "local")."""
    backend = getattr(settings, "BALANCE_CACHE_BACKEND", "shared")
    try:
        alias = CACHE_ALIASES[backend]
    except KeyError:
        raise ValueError(f"Unknown BALANCE_CACHE_BACKEND: {backend!r}") from None
    return SharedBalanceCache(alias=alias)
