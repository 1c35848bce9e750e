"""
Tenancy Context - execution-local holder of the active tenant.

The current tenant lives in a ContextVar, so every thread, asyncio task
and Celery eager call sees its own binding. A binding is always a
``ResolvedTenant``: the city plus the source it was resolved from.

Usage:
    from tenancy.context import tenant_context, get_current_city

    with tenant_context(ResolvedTenant(city, ResolutionSource.QUEUE_JOB)):
        do_something()          # get_current_city() is city here

    # previous binding (or none) is back here
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional, Union, TYPE_CHECKING

from .exceptions import TenantRequired

if TYPE_CHECKING:
    from tenancy.models import City

logger = logging.getLogger(__name__)


class ResolutionSource(str, Enum):
    """How the tenant of a unit of work was determined."""

    PATH = 'path'
    HEADER = 'header'
    DOMAIN = 'domain'
    PAYLOAD = 'payload'
    FALLBACK = 'fallback'
    QUEUE_JOB = 'queue_job'
    ADMIN_SWITCHER = 'admin_switcher'
    ADMIN_USER_LOCK = 'admin_user_lock'

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class ResolvedTenant:
    """A city together with the source it was resolved from."""

    city: 'City'
    source: ResolutionSource

    @property
    def city_id(self):
        return self.city.pk

    @property
    def is_fallback(self) -> bool:
        return self.source == ResolutionSource.FALLBACK

    @property
    def is_explicit(self) -> bool:
        return not self.is_fallback


@dataclass(frozen=True)
class Unresolved:
    """No tenant could be determined. ``reason`` is for logs only."""

    reason: str = ''


ResolutionOutcome = Union[ResolvedTenant, Unresolved]


_current_tenant: ContextVar[Optional[ResolvedTenant]] = ContextVar(
    'tenancy_current_tenant', default=None
)


def bind_tenant(tenant: Optional[ResolvedTenant]) -> Token:
    """
    Bind ``tenant`` as the current tenant.

    Returns the ContextVar token; pass it to ``reset_tenant`` to restore
    the previous binding. Prefer ``tenant_context()`` which does this for
    you on every exit path.
    """
    if tenant is not None and not isinstance(tenant, ResolvedTenant):
        raise TypeError('bind_tenant() expects a ResolvedTenant or None')
    return _current_tenant.set(tenant)


def reset_tenant(token: Token) -> None:
    _current_tenant.reset(token)


def get_current_tenant() -> Optional[ResolvedTenant]:
    """Return the active ``ResolvedTenant`` or None when unset."""
    return _current_tenant.get()


def get_current_tenant_or_fail() -> ResolvedTenant:
    tenant = get_current_tenant()
    if tenant is None:
        raise TenantRequired('No tenant bound in current context.')
    return tenant


def get_current_city() -> Optional['City']:
    tenant = get_current_tenant()
    return tenant.city if tenant else None


def get_current_city_id():
    tenant = get_current_tenant()
    return tenant.city_id if tenant else None


def get_current_source() -> Optional[ResolutionSource]:
    tenant = get_current_tenant()
    return tenant.source if tenant else None


def is_tenant_set() -> bool:
    return get_current_tenant() is not None


def clear_tenant_context() -> None:
    """
    Drop the binding of the current execution context.

    Only meant for worker hygiene between units of work; code that binds a
    tenant should use ``tenant_context()`` instead.
    """
    _current_tenant.set(None)


@contextmanager
def tenant_context(tenant: Optional[ResolvedTenant]):
    """
    Bind ``tenant`` for the duration of the block.

    Whatever was bound before (possibly nothing) is restored on every exit
    path, including exceptions. Passing None runs the block unbound.

    Example:
        with tenant_context(resolved):
            CitizenReport.objects.create(title='Buraco')   # city_id filled in
    """
    token = bind_tenant(tenant)
    if tenant is not None:
        logger.debug(
            'tenant_context_enter',
            extra={'tenant_city_id': str(tenant.city_id), 'tenant_source': str(tenant.source)},
        )
    try:
        yield tenant
    finally:
        reset_tenant(token)
        logger.debug('tenant_context_exit')


def run_in_tenant_context(tenant: Optional[ResolvedTenant], fn: Callable, *args, **kwargs) -> Any:
    """Call ``fn`` with ``tenant`` bound; the previous binding is restored afterwards."""
    with tenant_context(tenant):
        return fn(*args, **kwargs)


def tenant_aware(func: Callable) -> Callable:
    """
    Decorator for functions that must not run without a bound tenant.

    Example:
        @tenant_aware
        def open_reports():
            return CitizenReport.objects.for_current_city().filter(status='open')
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not is_tenant_set():
            raise TenantRequired(
                f'Function {func.__name__} requires tenant context. '
                'Use tenant_context() or make sure the middleware bound a tenant.'
            )
        return func(*args, **kwargs)
    return wrapper


def with_tenant(city: 'City', source: ResolutionSource = ResolutionSource.QUEUE_JOB):
    """
    Decorator factory running the wrapped function inside ``city``'s context.

    Mostly useful for management commands and shell scripts.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with tenant_context(ResolvedTenant(city, source)):
                return func(*args, **kwargs)
        return wrapper
    return decorator
