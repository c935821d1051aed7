"""
Celery configuration for the Django application.

Celery runs the earnings background work:
- Payout notification e-mails (earnings.tasks)
- The appreciation scheduler and the processing-payout sync
  (earnings.workers), scheduled by django-celery-beat

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all registered Django apps, in both their
tasks.py and workers package.

Usage:
    from earnings.workers import run_appreciation_job

    run_appreciation_job.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Create Celery application instance
# The name should match the Django project name
app = Celery("config")

# Load configuration from Django settings
# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks.py and workers/ in every registered Django app
app.autodiscover_tasks()
app.autodiscover_tasks(related_name="workers")
