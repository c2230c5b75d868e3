"""
Celery configuration for the Django application.

Celery runs the housekeeping jobs of the payments service:
- Purging processed webhook events once the dedup window has passed
- Resetting webhook events stuck in processing
- Expiring memberships past their renewal date

Schedules live in the django-celery-beat tables and are seeded by data
migrations in the payments and memberships apps. Tasks are auto-discovered
from all installed Django apps.

Usage:
    from memberships.tasks import expire_memberships

    expire_memberships.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
