"""
Settlement sync worker.

Approved payouts whose PayPal batch was still in flight stay in
'processing'. sync_processing_payouts_task asks PayPal for their current
batch status and completes or fails them.

Usage:
    from earnings.workers import sync_processing_payouts_task

    sync_processing_payouts_task.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from earnings.services import SettlementService
from earnings.services.settlement_service import SYNC_BATCH_SIZE

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
)
def sync_processing_payouts_task(self, limit: int = SYNC_BATCH_SIZE) -> dict:
    """
    Advance in-flight payouts from the processor's batch status.

    Returns:
        Dict with checked, completed, failed, unchanged, missing_batch_id
    """
    logger.info("Starting processing payout sync", extra={"limit": limit})
    return SettlementService.sync_processing_payouts(limit=limit)
