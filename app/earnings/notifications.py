"""
Vendor notifications for settlement outcomes.

Fire-and-forget: each function enqueues a Celery task and returns. An
enqueue failure is logged and swallowed so it can never fail or roll back
the settlement transition that triggered it.

Usage:
    from earnings.notifications import notify_payout_processed

    notify_payout_processed(payout_request.vendor, {"payout_request_id": str(payout_request.id)})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from earnings.tasks import send_payout_failed_email, send_payout_processed_email

if TYPE_CHECKING:
    from typing import Any

    from earnings.models import Vendor

logger = logging.getLogger(__name__)


def notify_payout_processed(vendor: Vendor, details: dict[str, Any]) -> bool:
    """Enqueue the "payout processed" e-mail. Returns False if enqueue failed."""
    return _enqueue(send_payout_processed_email, "payout_processed", vendor, details)


def notify_payout_failed(vendor: Vendor, details: dict[str, Any]) -> bool:
    """Enqueue the "payout failed" e-mail. Returns False if enqueue failed."""
    return _enqueue(send_payout_failed_email, "payout_failed", vendor, details)


def _enqueue(task, kind: str, vendor: Vendor, details: dict[str, Any]) -> bool:
    try:
        task.delay(details["payout_request_id"], details)
    except Exception:
        logger.error(
            "Failed to enqueue vendor notification",
            extra={
                "notification": kind,
                "vendor_id": str(vendor.id),
                "payout_request_id": details.get("payout_request_id"),
            },
            exc_info=True,
        )
        return False
    return True
