"""
Add celery-beat schedules for appreciation and settlement sync.

This migration creates:
- A daily crontab (03:00 UTC) for run_appreciation_job, which credits
  appreciation bonuses on subscription deposits
- A 15 minute interval for sync_processing_payouts_task, which completes
  payouts whose PayPal batch was still in flight at approval
"""

from django.db import migrations

APPRECIATION_TASK_NAME = "Run Appreciation Job"
SYNC_TASK_NAME = "Sync Processing Payouts"


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for appreciation and payout sync."""
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Daily at 03:00 UTC
    crontab, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="3",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
        timezone="UTC",
    )
    PeriodicTask.objects.get_or_create(
        name=APPRECIATION_TASK_NAME,
        defaults={
            "task": "earnings.workers.appreciation_scheduler.run_appreciation_job",
            "crontab": crontab,
            "enabled": True,
            "description": (
                "Credits appreciation bonuses on subscription deposits that "
                "reached a new age tier. Guarded by a Redis lock."
            ),
        },
    )

    # Every 15 minutes
    interval, _ = IntervalSchedule.objects.get_or_create(
        every=15,
        period="minutes",
    )
    PeriodicTask.objects.get_or_create(
        name=SYNC_TASK_NAME,
        defaults={
            "task": "earnings.workers.settlement_sync.sync_processing_payouts_task",
            "interval": interval,
            "enabled": True,
            "description": (
                "Polls PayPal for payouts still in processing and completes "
                "or fails them."
            ),
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[APPRECIATION_TASK_NAME, SYNC_TASK_NAME],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("earnings", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
