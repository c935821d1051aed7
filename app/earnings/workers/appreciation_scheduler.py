"""
Appreciation scheduler worker.

Celery Beat triggers run_appreciation_job daily (seeded by migration
0002_add_appreciation_schedule). The service holds a Redis lock for the
whole run, so overlapping triggers from beat, the HTTP endpoint or a
manual call record a skipped run instead of double-crediting.

Usage:
    from earnings.workers import run_appreciation_job

    run_appreciation_job.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from earnings.services import AppreciationService
from earnings.state_machines import AppreciationTrigger

logger = logging.getLogger(__name__)


@shared_task(bind=True, acks_late=True)
def run_appreciation_job(self, trigger: str = AppreciationTrigger.BEAT) -> dict:
    """
    Run one appreciation pass.

    Not retried automatically: per-entry errors are already part of the
    returned summary and the next scheduled run picks up anything missed.

    Returns:
        Summary dict from AppreciationService.run_appreciation()
    """
    logger.info(
        "Appreciation job triggered",
        extra={"trigger": trigger, "task_id": self.request.id},
    )
    summary = AppreciationService.run_appreciation(trigger=trigger)
    if summary["errors"]:
        logger.warning(
            "Appreciation job finished with errors",
            extra={"error_count": len(summary["errors"]), "run_id": summary["run_id"]},
        )
    return summary
