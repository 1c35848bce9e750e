"""
Base Task Classes for Cidade Conectada Celery Tasks

Every task declares its tenancy contract through its base class:

- TenantAwareTask: re-establishes the enqueuing city inside the worker
- GlobalTask: intentionally tenant-less (maintenance, fan-out)

Tasks built on plain ``celery.Task`` are reported by the ``tenancy.E001``
system check.
"""

import logging
from typing import Optional

from celery import Task

from tenancy.context import get_current_city_id
from tenancy.exceptions import TenantJobContextError
from tenancy.jobs import EnsureTenantContext, JobEnvelope, JobKind, new_trace_id


logger = logging.getLogger(__name__)


CITY_KWARG = 'tenant_city_id'
MODULE_KWARG = 'tenant_module_key'
TRACE_KWARG = 'tenant_trace_id'


# =============================================================================
# TENANT-AWARE TASK - Multi-Tenant Context Handling
# =============================================================================

class TenantAwareTask(Task):
    """
    Base task for work that touches tenant-scoped data.

    The city bound at enqueue time travels as plain kwargs
    (``tenant_city_id``, ``tenant_module_key``, ``tenant_trace_id``) and is
    bound again with source ``queue_job`` around the task body.

    Usage:
        @shared_task(bind=True, base=TenantAwareTask, module_key='reports')
        def my_tenant_task(self, report_id):
            # get_current_city() is the enqueuing city here
            ...
    """

    tenancy_contract = JobKind.TENANT_AWARE
    module_key: Optional[str] = None

    # Tenancy kwargs are consumed in __call__, not by the task signature.
    typing = False

    # Job context failures are expected errors, never retried.
    throws = (TenantJobContextError,)

    def __call__(self, *args, **kwargs):
        envelope = JobEnvelope(
            city_id=kwargs.pop(CITY_KWARG, None),
            module_key=kwargs.pop(MODULE_KWARG, None) or self.module_key,
            trace_id=kwargs.pop(TRACE_KWARG, None) or new_trace_id(),
            name=self.name,
        )

        def run(job):
            return super(TenantAwareTask, self).__call__(*args, **kwargs)

        return EnsureTenantContext().handle(envelope, run)

    def apply_async(self, args=None, kwargs=None, **options):
        """Capture the bound city unless the caller passed one explicitly."""
        kwargs = dict(kwargs or {})

        if CITY_KWARG not in kwargs:
            city_id = get_current_city_id()
            if city_id is not None:
                kwargs[CITY_KWARG] = str(city_id)
        elif kwargs[CITY_KWARG] is not None:
            kwargs[CITY_KWARG] = str(kwargs[CITY_KWARG])

        if self.module_key and not kwargs.get(MODULE_KWARG):
            kwargs[MODULE_KWARG] = self.module_key
        kwargs.setdefault(TRACE_KWARG, new_trace_id())

        return super().apply_async(args, kwargs, **options)

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        if isinstance(exc, TenantJobContextError):
            logger.error(
                'tenant_task_rejected',
                extra={'task': self.name, 'task_id': task_id, 'error': exc.code},
            )
        super().on_failure(exc, task_id, args, kwargs, einfo)


# =============================================================================
# GLOBAL TASK - Explicitly Tenant-less
# =============================================================================

class GlobalTask(Task):
    """
    Base task for jobs that intentionally run without a tenant.

    Usage:
        @shared_task(base=GlobalTask)
        def prune_something():
            ...
    """

    tenancy_contract = JobKind.GLOBAL
