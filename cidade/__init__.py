"""
Cidade Conectada project package.

The Celery app is imported here so that ``shared_task`` decorated tasks
bind to it when Django starts.
"""

from .celery import app as celery_app

__all__ = ('celery_app',)
