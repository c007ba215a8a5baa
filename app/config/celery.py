"""
Celery configuration for the webhook hub.

Celery runs the periodic maintenance work of the hub, currently the sweep
that evicts expired webhook dedup records (see CELERY_BEAT_SCHEDULE in
settings). Webhook dispatch itself stays in the request so the provider
only gets a 200 once subscribers have run.

Tasks are auto-discovered from all installed Django apps.

Usage:
    # Run a worker with the embedded beat scheduler:
    celery -A config worker -B -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# The name should match the Django project name
app = Celery("config")

# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
