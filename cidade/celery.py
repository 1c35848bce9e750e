"""
Celery configuration for the Cidade Conectada project.

This module configures Celery for async task processing with:
- Auto-discovery of tasks from all registered Django apps
- Task routing to the tenancy and reports queues
- JSON-only serialization (tenant context travels as plain kwargs)
- Beat schedule for the periodic tenancy maintenance jobs
"""

import os

from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'cidade.settings')

app = Celery('cidade')

# All celery-related configuration keys use the `CELERY_` prefix.
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks()


# ==================== QUEUE CONFIGURATION ====================

default_exchange = Exchange('default', type='direct')
tenancy_exchange = Exchange('tenancy', type='direct')
reports_exchange = Exchange('reports', type='direct')

app.conf.task_queues = (
    Queue('default', default_exchange, routing_key='default'),
    Queue('tenancy', tenancy_exchange, routing_key='tenancy'),
    Queue('reports', reports_exchange, routing_key='reports'),
)

app.conf.task_default_queue = 'default'
app.conf.task_default_exchange = 'default'
app.conf.task_default_routing_key = 'default'


# ==================== TASK ROUTING ====================

app.conf.task_routes = {
    'tenancy.tasks.*': {'queue': 'tenancy', 'routing_key': 'tenancy'},
    'reports.tasks.*': {'queue': 'reports', 'routing_key': 'reports'},
}


# ==================== SERIALIZATION ====================

app.conf.task_serializer = 'json'
app.conf.result_serializer = 'json'
app.conf.accept_content = ['json']
app.conf.timezone = 'UTC'
app.conf.enable_utc = True


# ==================== TASK EXECUTION ====================

app.conf.task_default_retry_delay = 60
app.conf.task_max_retries = 3
app.conf.task_acks_late = True
app.conf.task_reject_on_worker_lost = True
app.conf.task_time_limit = 900
app.conf.task_soft_time_limit = 840

# Tenant context is re-established per task; keep workers recycling.
app.conf.worker_max_tasks_per_child = 1000
app.conf.worker_prefetch_multiplier = 4


# ==================== BEAT SCHEDULE ====================

app.conf.beat_schedule = {
    'prune-tenant-incidents': {
        'task': 'tenancy.tasks.prune_tenant_incidents',
        'schedule': crontab(hour=3, minute=15),
    },
    'warm-module-caches': {
        'task': 'tenancy.tasks.warm_module_caches',
        'schedule': crontab(minute='*/15'),
    },
}
