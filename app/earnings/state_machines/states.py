"""
State enums for earnings models.

State Machines Overview:

PayoutRequest Status:
    requested → processing → completed
    requested → processing → failed
    requested → rejected

AppreciationRun Status:
    running → completed
    running → failed
    skipped (another run held the lock)
"""

from django.db import models


class PayoutRequestStatus(models.TextChoices):
    """
    Status of a vendor payout request.

    Terminal states: COMPLETED, FAILED, REJECTED. A retry is a new request,
    never a transition out of a terminal state.

    State Flow:
        REQUESTED → PROCESSING → COMPLETED (processor final success)
        REQUESTED → PROCESSING → FAILED (processor error or final failure)
        REQUESTED → REJECTED (operator decision, no processor call)
    """

    REQUESTED = "requested", "Requested"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REJECTED = "rejected", "Rejected"


class AppreciationRunStatus(models.TextChoices):
    """Outcome of a single appreciation scheduler invocation."""

    RUNNING = "running", "Running"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped"


class AppreciationTrigger(models.TextChoices):
    """What started an appreciation run."""

    BEAT = "beat", "Celery Beat"
    HTTP = "http", "HTTP Endpoint"
    MANUAL = "manual", "Manual"


class FulfillmentStatus(models.TextChoices):
    """Fulfillment state of an order line item."""

    UNFULFILLED = "unfulfilled", "Unfulfilled"
    FULFILLED = "fulfilled", "Fulfilled"
    RESTOCKED = "restocked", "Restocked"


TERMINAL_PAYOUT_STATUSES = frozenset(
    {
        PayoutRequestStatus.COMPLETED,
        PayoutRequestStatus.FAILED,
        PayoutRequestStatus.REJECTED,
    }
)

# Statuses whose amount counts toward the vendor's held balance
HELD_PAYOUT_STATUSES = (
    PayoutRequestStatus.REQUESTED,
    PayoutRequestStatus.PROCESSING,
)
