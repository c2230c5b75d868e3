"""
Add celery-beat schedules for webhook event housekeeping.

- purge_processed_webhook_events every 5 minutes keeps the dedup store to
  WEBHOOK_DEDUP_WINDOW_MINUTES
- reset_stuck_webhook_events every 15 minutes fails events a crashed
  request left in PROCESSING
"""

from django.db import migrations

PERIODIC_TASKS = [
    (
        "Purge Processed Webhook Events",
        "payments.tasks.purge_processed_webhook_events",
        5,
        "Deletes processed webhook events older than the dedup window.",
    ),
    (
        "Reset Stuck Webhook Events",
        "payments.tasks.reset_stuck_webhook_events",
        15,
        "Marks webhook events stuck in processing as failed so redelivery can reclaim them.",
    ),
]


def create_periodic_tasks(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for name, task, minutes, description in PERIODIC_TASKS:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=minutes,
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=name,
            defaults={
                "task": task,
                "interval": schedule,
                "enabled": True,
                "description": description,
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name__in=[name for name, *_ in PERIODIC_TASKS]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
