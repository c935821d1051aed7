"""
AppreciationRun model for tracking scheduler invocations.

Each run of the appreciation job records its summary here, including runs
that were skipped because another instance held the run lock. The job
endpoint's GET reads the most recent rows.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from earnings.state_machines import AppreciationRunStatus, AppreciationTrigger


class AppreciationRun(UUIDPrimaryKeyMixin, BaseModel):
    """
    Summary of one appreciation scheduler invocation.

    Fields:
        started_at / finished_at: Run window
        status: running, completed, failed or skipped
        trigger: beat, http or manual
        processed: Candidate entries examined
        appreciated: Bonus entries written
        bonus_total: Credits granted
        errors: Per-entry error strings
    """

    started_at = models.DateTimeField(default=timezone.now, db_index=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=AppreciationRunStatus.choices,
        default=AppreciationRunStatus.RUNNING,
        db_index=True,
    )
    trigger = models.CharField(
        max_length=20,
        choices=AppreciationTrigger.choices,
        default=AppreciationTrigger.BEAT,
    )
    processed = models.PositiveIntegerField(default=0)
    appreciated = models.PositiveIntegerField(default=0)
    bonus_total = models.BigIntegerField(default=0)
    errors = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["-started_at"]

    def __str__(self) -> str:
        return f"AppreciationRun({self.started_at:%Y-%m-%d %H:%M}, {self.status})"

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def finish(self, status: str, summary: dict) -> None:
        """Record the run summary and final status."""
        self.status = status
        self.finished_at = timezone.now()
        self.processed = summary.get("processed", 0)
        self.appreciated = summary.get("appreciated", 0)
        self.bonus_total = summary.get("bonus_total", 0)
        self.errors = list(summary.get("errors", []))
        self.save()
