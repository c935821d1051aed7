"""
Balance calculator for vendor earnings.

Aggregates the ledger into the balances a vendor sees:

    available = max(0, sum of credits_amount for the identifier)
    held      = sum of PayoutRequest.amount_cents in requested/processing
    pending   = 0 (single accounting path)
    total     = available + pending + held

Snapshots are cached per identifier for BALANCE_CACHE_TTL_SECONDS. Every
writer calls invalidate() after appending to the ledger; the TTL only
bounds staleness for readers on other cache backends.

Usage:
    from earnings.services import get_balance_calculator

    calculator = get_balance_calculator()
    snapshot = calculator.balance(vendor.collector_identifier)
    snapshot.available      # credits
    snapshot.to_dict()      # credits and USD for the API

    # After a ledger write
    calculator.invalidate(vendor.collector_identifier)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError
from django.db.models import Sum
from django.utils import timezone

from core.services import BaseService

from earnings.cache import balance_cache_key, get_balance_cache
from earnings.ledger.services import ledger
from earnings.ledger.types import credits_to_usd
from earnings.models import PayoutRequest
from earnings.state_machines import PayoutRequestStatus

if TYPE_CHECKING:
    from typing import Any

    from core.protocols import CacheBackend
    from earnings.ledger.models import LedgerEntry


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class BalanceSnapshot:
    """
    A vendor balance at a point in time, in credits (1 credit == 1 cent).

    Attributes:
        identifier: Collector identifier the balance belongs to
        available: Spendable credits (ledger sum, floored at zero)
        pending: Credits visible elsewhere but not yet available (always 0)
        held: Credits in requested or processing payout requests
        total: available + pending + held
        as_of: When the snapshot was computed
        degraded: True when computed by the fallback path
        paid_out: Sum of completed payouts (fallback path only)
    """

    identifier: str
    available: int
    pending: int
    held: int
    total: int
    as_of: datetime
    degraded: bool = False
    paid_out: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["as_of"] = self.as_of.isoformat()
        data["usd"] = {
            "available": str(credits_to_usd(self.available)),
            "pending": str(credits_to_usd(self.pending)),
            "held": str(credits_to_usd(self.held)),
            "total": str(credits_to_usd(self.total)),
        }
        return data


# =============================================================================
# Balance Calculator
# =============================================================================


class BalanceCalculator(BaseService):
    """
    Computes and caches vendor balances.

    The cache backend is injected so deployments can choose a shared cache
    (every instance sees invalidations) or a process-local one.

    Args:
        cache: CacheBackend to store snapshots in
        ttl: Snapshot lifetime in seconds
    """

    def __init__(self, cache: CacheBackend, ttl: int = 300) -> None:
        self.cache = cache
        self.ttl = ttl

    def balance(self, identifier: str) -> BalanceSnapshot:
        """
        Balance for an identifier, from cache when fresh.

        Never raises for a ledger failure if a degraded answer can be
        computed; the fallback is logged at WARNING and not cached.
        """
        key = balance_cache_key(identifier)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        try:
            snapshot = self.compute(identifier)
        except DatabaseError:
            self.get_logger().warning(
                "Ledger aggregation failed, using payout-request fallback",
                extra={"identifier": identifier},
                exc_info=True,
            )
            return self.compute_fallback(identifier)

        self._cache_set(key, snapshot)
        return snapshot

    def compute(self, identifier: str) -> BalanceSnapshot:
        """Uncached balance straight from the ledger."""
        available = max(0, ledger.balance_for(identifier))
        held = PayoutRequest.objects.filter(vendor_identifier=identifier).held_cents()
        pending = 0
        return BalanceSnapshot(
            identifier=identifier,
            available=available,
            pending=pending,
            held=held,
            total=available + pending + held,
            as_of=timezone.now(),
        )

    def compute_fallback(self, identifier: str) -> BalanceSnapshot:
        """
        Degraded balance from completed payout requests only.

        Without the ledger nothing is known to be spendable or held, so
        available, pending and held are reported as zero. The only figure
        read is paid_out, the sum of completed requests.
        """
        paid_out = (
            PayoutRequest.objects.filter(
                vendor_identifier=identifier,
                status=PayoutRequestStatus.COMPLETED,
            ).aggregate(total=Sum("amount_cents"))["total"]
            or 0
        )
        return BalanceSnapshot(
            identifier=identifier,
            available=0,
            pending=0,
            held=0,
            total=0,
            as_of=timezone.now(),
            degraded=True,
            paid_out=paid_out,
        )

    def invalidate(self, identifier: str) -> None:
        """Drop the cached snapshot for identifier."""
        try:
            self.cache.delete(balance_cache_key(identifier))
        except Exception:
            # A stale entry still expires after ttl
            self.get_logger().error(
                "Balance cache invalidation failed",
                extra={"identifier": identifier},
                exc_info=True,
            )

    def ledger_history(self, identifier: str, limit: int = 50) -> list[LedgerEntry]:
        """Newest ledger entries for identifier."""
        return ledger.history(identifier, limit=limit)

    # =========================================================================
    # Cache access
    # =========================================================================

    def _cache_get(self, key: str) -> BalanceSnapshot | None:
        try:
            return self.cache.get(key)
        except Exception:
            self.get_logger().warning(
                "Balance cache read failed", extra={"key": key}, exc_info=True
            )
            return None

    def _cache_set(self, key: str, snapshot: BalanceSnapshot) -> None:
        try:
            self.cache.set(key, snapshot, timeout=self.ttl)
        except Exception:
            self.get_logger().warning(
                "Balance cache write failed", extra={"key": key}, exc_info=True
            )


def get_balance_calculator() -> BalanceCalculator:
    """Calculator wired to the configured cache backend and TTL."""
    return BalanceCalculator(
        cache=get_balance_cache(),
        ttl=getattr(settings, "BALANCE_CACHE_TTL_SECONDS", 300),
    )
