# Celery instance is defined in erp_project/celery.py
# celery_app is the single task queue app for the whole project
from .celery import celery_app

__all__ = ("celery_app",)

""" Start a worker with: celery -A erp_project worker -l info
    -A erp_project imports this package, which exposes celery_app """
