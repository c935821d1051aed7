"""
Celery tasks for payout notification e-mails.

Tasks:
- send_payout_processed_email: Tell a vendor their payout was sent
- send_payout_failed_email: Tell a vendor their payout failed

Both tasks are enqueued by earnings.notifications and retried by Celery
on SMTP errors. Settlement never waits for them.
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from earnings.models import PayoutRequest

logger = logging.getLogger(__name__)


def _recipient(payout_request: PayoutRequest) -> str | None:
    vendor = payout_request.vendor
    if vendor.user_id is not None and vendor.user.email:
        return vendor.user.email
    return vendor.paypal_email or None


def _load(payout_request_id: str) -> PayoutRequest | None:
    try:
        return PayoutRequest.objects.select_related("vendor__user").get(id=payout_request_id)
    except PayoutRequest.DoesNotExist:
        logger.warning(
            "Payout request not found for notification",
            extra={"payout_request_id": payout_request_id},
        )
        return None


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_payout_processed_email(self, payout_request_id: str, details: dict | None = None) -> bool:
    """
    E-mail the vendor that their payout was sent.

    Returns:
        True if an e-mail was sent, False if there was nobody to send to
    """
    payout_request = _load(payout_request_id)
    if payout_request is None:
        return False

    recipient = _recipient(payout_request)
    if not recipient:
        logger.warning(
            "No e-mail address for payout notification",
            extra={"payout_request_id": payout_request_id},
        )
        return False

    send_mail(
        subject=f"Your payout {payout_request.reference} has been sent",
        message=(
            f"Hi {payout_request.vendor.vendor_name},\n\n"
            f"We sent ${payout_request.amount_usd} to {payout_request.destination}.\n"
            f"Reference: {payout_request.reference}\n"
            f"Invoice: {payout_request.invoice_number}\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[recipient],
    )
    logger.info(
        "Payout processed e-mail sent",
        extra={"payout_request_id": payout_request_id},
    )
    return True


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_payout_failed_email(self, payout_request_id: str, details: dict | None = None) -> bool:
    """E-mail the vendor that their payout failed and will be reviewed."""
    payout_request = _load(payout_request_id)
    if payout_request is None:
        return False

    recipient = _recipient(payout_request)
    if not recipient:
        logger.warning(
            "No e-mail address for payout notification",
            extra={"payout_request_id": payout_request_id},
        )
        return False

    reason = (details or {}).get("error") or "the payment processor reported an error"
    send_mail(
        subject=f"Your payout {payout_request.reference} could not be sent",
        message=(
            f"Hi {payout_request.vendor.vendor_name},\n\n"
            f"Your payout of ${payout_request.amount_usd} failed: {reason}.\n"
            "Our team will review it. You do not need to do anything yet.\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[recipient],
    )
    logger.info(
        "Payout failed e-mail sent",
        extra={"payout_request_id": payout_request_id},
    )
    return True
