from __future__ import annotations
import logging
import os
from celery import Celery
from celery.signals import task_failure

# ensure Django settings are set for Celery
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "erp_project.settings")

logger = logging.getLogger(__name__)

# name matches the project package
celery_app = Celery("erp_project")

# read config from Django settings, using CELERY_ prefix
# (CELERY_BROKER_URL, CELERY_TASK_ALWAYS_EAGER, ...)
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# pick up erp_core/tasks.py
celery_app.autodiscover_tasks()


@task_failure.connect
def log_task_failure(sender=None, task_id=None, exception=None, **kwargs):
    # side effects never roll back the business write, so a failed task
    # only leaves a trace in the log
    logger.error("Task %s (%s) failed: %s", getattr(sender, "name", sender), task_id, exception)
