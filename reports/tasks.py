"""
Celery Tasks for the Reports App

- Aggregation of unmatched bairro names (tenant-aware)
"""

import logging

from celery import shared_task
from django.db import DatabaseError

from cidade.celery_tasks_base import TenantAwareTask

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    base=TenantAwareTask,
    name='reports.tasks.log_address_mismatch',
    module_key='reports',
    max_retries=3,
    default_retry_delay=60,
)
def log_address_mismatch(self, bairro_text_key, bairro_text_example, provider='viacep'):
    """
    Record one unmatched bairro name for the job's city.

    Returns:
        dict: aggregate key and its current count.
    """
    from reports.models import AddressMismatch

    try:
        mismatch = AddressMismatch.record(bairro_text_key, bairro_text_example, provider)
    except DatabaseError as exc:
        logger.warning(
            'address_mismatch_log_failed',
            extra={'bairro_text_key': bairro_text_key, 'error': str(exc)},
        )
        raise self.retry(exc=exc)

    return {'bairro_text_key': mismatch.bairro_text_key, 'count': mismatch.count}
