"""
Workers for scheduled earnings jobs.

This module contains Celery tasks for background earnings operations:
- AppreciationScheduler: Periodic appreciation bonuses
- SettlementSync: Completes in-flight PayPal payouts

Usage:
    from earnings.workers import run_appreciation_job, sync_processing_payouts_task

    run_appreciation_job.delay()
    sync_processing_payouts_task.delay()
"""

from earnings.workers.appreciation_scheduler import run_appreciation_job
from earnings.workers.settlement_sync import sync_processing_payouts_task

__all__ = [
    "run_appreciation_job",
    "sync_processing_payouts_task",
]
