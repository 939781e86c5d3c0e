"""
Celery application configuration.

This is the main Celery app for the Dapur backend.
It handles async projection processing and scheduled integrity checks.

Usage:
    # Start worker
    celery -A dapur_backend worker -l INFO

    # Start beat scheduler (for periodic tasks)
    celery -A dapur_backend beat -l INFO

    # Start both (development only)
    celery -A dapur_backend worker -B -l INFO
"""
import os

from celery import Celery

# Set default Django settings
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dapur_backend.settings")

# Create Celery app
app = Celery("dapur_backend")

# Load config from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()
