"""
Celery Tasks for the Tenancy App

- Incident retention (global)
- Module cache warm-up: a global fan-out enqueuing one tenant-aware task
  per active city
"""

import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

from cidade.celery_tasks_base import GlobalTask, TenantAwareTask

logger = logging.getLogger(__name__)


INCIDENT_RETENTION_DAYS = 30


# ==================== INCIDENT RETENTION ====================

@shared_task(
    bind=True,
    base=GlobalTask,
    name='tenancy.tasks.prune_tenant_incidents',
    max_retries=3,
    default_retry_delay=300,
)
def prune_tenant_incidents(self, days=INCIDENT_RETENTION_DAYS):
    """
    Delete tenant incidents older than ``days``.

    Returns:
        dict: number of deleted incidents and the cutoff used.
    """
    from tenancy.models import TenantIncident

    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = TenantIncident.objects.filter(created_at__lt=cutoff).delete()

    logger.info('tenant_incidents_pruned', extra={'deleted': deleted, 'cutoff': cutoff.isoformat()})
    return {'deleted': deleted, 'cutoff': cutoff.isoformat()}


# ==================== MODULE CACHE WARM-UP ====================

@shared_task(
    bind=True,
    base=GlobalTask,
    name='tenancy.tasks.warm_module_caches',
)
def warm_module_caches(self):
    """Enqueue one cache warm-up per active city."""
    from tenancy.models import City

    city_ids = [str(pk) for pk in City.objects.active().values_list('pk', flat=True)]
    for city_id in city_ids:
        warm_city_module_cache.apply_async(kwargs={'tenant_city_id': city_id})

    return {'enqueued': len(city_ids)}


@shared_task(
    bind=True,
    base=TenantAwareTask,
    name='tenancy.tasks.warm_city_module_cache',
)
def warm_city_module_cache(self):
    """Rebuild the effective module map of the job's city."""
    from tenancy.context import get_current_city_id
    from tenancy.modules import ModuleResolver

    city_id = get_current_city_id()
    ModuleResolver.clear_cache(city_id)
    enabled = ModuleResolver.enabled_keys(city_id)
    return {'city_id': str(city_id), 'enabled': enabled}
