"""
Tenant-aware background jobs.

Every queued job type declares one tenancy contract:

- ``JobKind.TENANT_AWARE``: carries a city id, an optional module key and a
  trace id; ``EnsureTenantContext`` binds the city around the job body.
- ``JobKind.GLOBAL``: intentionally runs without a tenant.

Celery integration lives in ``cidade.celery_tasks_base``; the conformance
check that every registered task declares a contract is
``find_tasks_without_tenancy_contract()``; ``assert_tenancy_contracts()``
raises ``TenantContractViolation`` instead.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

from .context import ResolutionSource, ResolvedTenant, tenant_context
from .exceptions import JobCityNotFoundError, MissingJobCityError, TenantContractViolation
from .incidents import JOB_CITY_NOT_FOUND, JOB_MISSING_CITY, record_incident
from .models import TenantIncident
from .registry import TenantRegistry

logger = logging.getLogger(__name__)


class JobKind(str, Enum):
    TENANT_AWARE = 'tenant_aware'
    GLOBAL = 'global'


def new_trace_id() -> str:
    return uuid.uuid4().hex


class TenantAwareJob(ABC):
    """The only fields ``EnsureTenantContext`` reads from a job."""

    tenancy_contract = JobKind.TENANT_AWARE

    @abstractmethod
    def tenant_city_id(self) -> Optional[str]:
        ...

    @abstractmethod
    def tenant_module_key(self) -> Optional[str]:
        ...

    @abstractmethod
    def tenant_trace_id(self) -> str:
        ...


class GlobalQueueJob:
    """Marker for jobs that intentionally run without a tenant."""

    tenancy_contract = JobKind.GLOBAL


@dataclass
class JobEnvelope(TenantAwareJob):
    """Serialized tenant parameters of one queued job."""

    city_id: Optional[str]
    module_key: Optional[str] = None
    trace_id: str = field(default_factory=new_trace_id)
    name: str = ''

    def tenant_city_id(self):
        return self.city_id

    def tenant_module_key(self):
        return self.module_key

    def tenant_trace_id(self):
        return self.trace_id


def job_name(job: Any) -> str:
    return getattr(job, 'name', '') or type(job).__name__


def job_kind(job: Any) -> Optional[JobKind]:
    """Declared contract of a job instance or class, or None."""
    contract = getattr(job, 'tenancy_contract', None)
    try:
        return JobKind(contract) if contract is not None else None
    except ValueError:
        return None


class EnsureTenantContext:
    """
    Job middleware binding the job's city for the duration of its body.

    - jobs without the tenant-aware contract pass through untouched
    - a blank city id or an unknown city fails before the body runs
    - the previous binding (normally none) is restored on every exit path
    """

    source = ResolutionSource.QUEUE_JOB

    def handle(self, job: Any, next_: Callable[[Any], Any]) -> Any:
        if not isinstance(job, TenantAwareJob):
            return next_(job)

        city_id = job.tenant_city_id()
        module_key = job.tenant_module_key() or ''
        trace_id = job.tenant_trace_id() or ''
        log_context = {'job': job_name(job), 'module_key': module_key, 'trace_id': trace_id}

        if city_id is None or not str(city_id).strip():
            record_incident(
                JOB_MISSING_CITY,
                context=log_context,
                severity=TenantIncident.Severity.ERROR,
                source=self.source.value,
                module_key=module_key,
                trace_id=trace_id,
            )
            raise MissingJobCityError(**log_context)

        city = TenantRegistry.find_by_id(str(city_id).strip())
        if city is None:
            record_incident(
                JOB_CITY_NOT_FOUND,
                context={**log_context, 'city_id': str(city_id)},
                severity=TenantIncident.Severity.ERROR,
                source=self.source.value,
                module_key=module_key,
                trace_id=trace_id,
            )
            raise JobCityNotFoundError(city_id, **log_context)

        with tenant_context(ResolvedTenant(city, self.source)):
            return next_(job)


def find_tasks_without_tenancy_contract(app=None) -> List[str]:
    """
    Names of registered Celery tasks declaring no tenancy contract.

    Celery's own ``celery.*`` tasks are ignored.
    """
    from django.apps import apps as django_apps

    if app is None:
        from cidade.celery import app

    # Not import_default_modules(): its signal makes the Django fixup run checks.
    app.loader.autodiscover_tasks([config.name for config in django_apps.get_app_configs()])
    return sorted(
        name
        for name, task in app.tasks.items()
        if not name.startswith('celery.') and job_kind(task) is None
    )


def assert_tenancy_contracts(app=None) -> None:
    """Raise ``TenantContractViolation`` naming every task without a contract."""
    missing = find_tasks_without_tenancy_contract(app)
    if missing:
        raise TenantContractViolation(
            f'Celery tasks without tenancy contract: {", ".join(missing)}',
            tasks=missing,
        )
