"""
Celery application for the garment order tracker.

DJANGO_SETTINGS_MODULE is set before the app is created so Celery reads
the Django settings (``CELERY_`` prefix).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("order_tracker")

app.config_from_object("django.conf:settings", namespace="CELERY")

# picks up modules.orders.tasks
app.autodiscover_tasks()
