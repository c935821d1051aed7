"""
Appreciation scheduler service.

Grants time-based bonus credits on subscription deposits once they have
been held past fixed age thresholds.

Tiers (age in months -> cumulative multiplier):
    3  -> 1.05
    6  -> 1.10
    12 -> 1.15
    24 -> 1.20

A deposit reaching a tier is credited the difference between that tier's
multiplier and the multiplier of the last tier it was credited at:

    bonus = floor(credits_amount * (tier_multiplier - previous_multiplier))

The deposit's last_appreciation_tier_months column is the idempotency
marker. It is advanced with a compare-and-set UPDATE in the same
transaction as the bonus entry, and the whole run holds a distributed
lock, so an entry is credited at most once per tier.

Usage:
    from earnings.services import AppreciationService

    summary = AppreciationService.run_appreciation(trigger="http")
    # {"processed": 12, "appreciated": 3, "bonus_total": 150, "errors": []}
"""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.services import BaseService

from earnings.exceptions import LockAcquisitionError, VendorNotFoundError
from earnings.ledger import EntrySource, RecordEntryParams, TransactionType, ledger
from earnings.locks import APPRECIATION_RUN_LOCK, DistributedLock
from earnings.models import AppreciationRun, Vendor
from earnings.services.balance_calculator import BalanceCalculator, get_balance_calculator
from earnings.state_machines import AppreciationRunStatus, AppreciationTrigger

if TYPE_CHECKING:
    from earnings.ledger.models import LedgerEntry


# =============================================================================
# Tier Schedule
# =============================================================================


@dataclass(frozen=True)
class AppreciationTier:
    months: int
    multiplier: Decimal


APPRECIATION_TIERS: tuple[AppreciationTier, ...] = (
    AppreciationTier(months=3, multiplier=Decimal("1.05")),
    AppreciationTier(months=6, multiplier=Decimal("1.10")),
    AppreciationTier(months=12, multiplier=Decimal("1.15")),
    AppreciationTier(months=24, multiplier=Decimal("1.20")),
)

BASE_MULTIPLIER = Decimal("1.00")

# Max error strings kept on an AppreciationRun row
MAX_RECORDED_ERRORS = 100


def multiplier_of(months: int | None) -> Decimal:
    """Multiplier already credited for a marker value (1.00 when unset)."""
    if months is None:
        return BASE_MULTIPLIER
    for tier in APPRECIATION_TIERS:
        if tier.months == months:
            return tier.multiplier
    raise ValueError(f"Unknown appreciation tier: {months} months")


def calculate_bonus(credits_amount: int, tier: AppreciationTier, previous_months: int | None) -> int:
    """floor(credits * (tier multiplier - previous multiplier))."""
    delta = tier.multiplier - multiplier_of(previous_months)
    return math.floor(Decimal(credits_amount) * delta)


def months_before(moment: datetime, months: int) -> datetime:
    """
    The same wall-clock moment `months` calendar months earlier.

    The day is clamped to the target month's length (May 31 minus 3
    months is Feb 28/29).
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def schedule_definition() -> list[dict]:
    """Tier schedule as plain data for the job endpoint."""
    return [
        {
            "months": tier.months,
            "multiplier": str(tier.multiplier),
            "bonus_percent": str((tier.multiplier - BASE_MULTIPLIER) * 100),
        }
        for tier in APPRECIATION_TIERS
    ]


# =============================================================================
# Appreciation Service
# =============================================================================


class AppreciationService(BaseService):
    """
    Periodic appreciation run.

    Per-entry failures are collected in the summary's errors list and
    never abort the run.
    """

    _balance_calculator: BalanceCalculator | None = None

    @classmethod
    def get_balance_calculator(cls) -> BalanceCalculator:
        return cls._balance_calculator or get_balance_calculator()

    @classmethod
    def set_balance_calculator(cls, calculator: BalanceCalculator | None) -> None:
        cls._balance_calculator = calculator

    @classmethod
    def run_appreciation(
        cls,
        trigger: str = AppreciationTrigger.BEAT,
        now: datetime | None = None,
    ) -> dict:
        """
        Credit every tier each eligible subscription deposit has reached.

        If another run holds the lock, records a skipped AppreciationRun
        and returns an empty summary with skipped=True.

        Returns:
            Dict with processed, appreciated, bonus_total, errors (and
            skipped, run_id)
        """
        logger = cls.get_logger()
        lock = DistributedLock(
            APPRECIATION_RUN_LOCK,
            ttl=getattr(settings, "APPRECIATION_LOCK_TTL_SECONDS", 900),
            blocking=False,
        )

        try:
            lock.acquire()
        except LockAcquisitionError:
            run = AppreciationRun.objects.create(trigger=trigger)
            summary = cls._empty_summary()
            run.finish(AppreciationRunStatus.SKIPPED, summary)
            logger.warning(
                "Appreciation run skipped, another run holds the lock",
                extra={"run_id": str(run.id), "trigger": trigger},
            )
            return {**summary, "skipped": True, "run_id": str(run.id)}

        run = AppreciationRun.objects.create(trigger=trigger)
        logger.info(
            "Appreciation run started",
            extra={"run_id": str(run.id), "trigger": trigger},
        )
        try:
            summary = cls._run_tiers(now or timezone.now())
        except Exception as e:
            logger.error(
                "Appreciation run failed",
                extra={"run_id": str(run.id), "error": str(e)},
                exc_info=True,
            )
            run.finish(AppreciationRunStatus.FAILED, {"errors": [str(e)]})
            raise
        finally:
            lock.release()

        run.finish(
            AppreciationRunStatus.COMPLETED,
            {**summary, "errors": summary["errors"][:MAX_RECORDED_ERRORS]},
        )
        logger.info(
            "Appreciation run completed",
            extra={
                "run_id": str(run.id),
                "processed": summary["processed"],
                "appreciated": summary["appreciated"],
                "bonus_total": summary["bonus_total"],
                "error_count": len(summary["errors"]),
            },
        )
        return {**summary, "skipped": False, "run_id": str(run.id)}

    @staticmethod
    def recent_runs(limit: int = 10):
        return AppreciationRun.objects.order_by("-started_at")[:limit]

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _empty_summary() -> dict:
        return {"processed": 0, "appreciated": 0, "bonus_total": 0, "errors": []}

    @classmethod
    def _run_tiers(cls, now: datetime) -> dict:
        summary = cls._empty_summary()
        touched: set[str] = set()

        for tier in APPRECIATION_TIERS:
            cutoff = months_before(now, tier.months)
            candidates = list(ledger.appreciation_candidates(tier.months, cutoff))

            for entry in candidates:
                summary["processed"] += 1
                try:
                    bonus = cls._appreciate_entry(entry, tier)
                except Exception as e:
                    cls.get_logger().warning(
                        "Appreciation failed for entry",
                        extra={
                            "entry_id": str(entry.id),
                            "tier_months": tier.months,
                            "error": str(e),
                        },
                        exc_info=True,
                    )
                    summary["errors"].append(f"{entry.id} ({tier.months}mo): {e}")
                    continue

                if bonus:
                    summary["appreciated"] += 1
                    summary["bonus_total"] += bonus
                    touched.add(entry.identifier)

        calculator = cls.get_balance_calculator()
        for identifier in touched:
            calculator.invalidate(identifier)
        return summary

    @staticmethod
    def _resolve_vendor_id(entry: LedgerEntry):
        if entry.vendor_id is not None:
            return entry.vendor_id
        vendor = Vendor.for_identifier(entry.identifier)
        if vendor is None:
            raise VendorNotFoundError(
                f"No vendor for identifier '{entry.identifier}'",
                details={"identifier": entry.identifier},
            )
        return vendor.id

    @classmethod
    def _appreciate_entry(cls, entry: LedgerEntry, tier: AppreciationTier) -> int:
        """
        Credit one deposit at one tier.

        Returns:
            Bonus credited (0 if the entry was already marked or the bonus
            rounds to nothing)
        """
        previous = entry.last_appreciation_tier_months
        vendor_id = cls._resolve_vendor_id(entry)
        bonus = calculate_bonus(entry.credits_amount, tier, previous)

        with transaction.atomic():
            if not ledger.mark_appreciation_tier(entry.id, previous, tier.months):
                # Marker moved since the candidate query
                return 0
            if bonus <= 0:
                return 0

            ledger.record_entry(
                RecordEntryParams(
                    identifier=entry.identifier,
                    vendor_id=vendor_id,
                    transaction_type=TransactionType.APPRECIATION,
                    credits_amount=bonus,
                    source=EntrySource.APPRECIATION,
                    idempotency_key=f"appreciation:{entry.id}:{tier.months}",
                    reference_type="ledger_entry",
                    reference_id=str(entry.id),
                    description=f"{tier.months}-month appreciation ({tier.multiplier}x)",
                    metadata={
                        "tier_months": tier.months,
                        "multiplier": str(tier.multiplier),
                        "previous_tier_months": previous,
                    },
                    created_by="appreciation_scheduler",
                )
            )
            Vendor.adjust_available_credits(vendor_id, bonus)

        return bonus
