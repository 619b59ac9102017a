"""Celery application for background dispatch work (ETA refresh, weather polling)."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "carpool_backend.settings.base")

app = Celery("carpool_backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
