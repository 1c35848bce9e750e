"""
Tenancy Logging - tenant-aware logging filters and formatters.

Every record passing through ``TenantContextFilter`` carries the bound
tenant (if any), so log lines from a request or a queued job can be
attributed to a city without threading it through every call.

Usage in settings.py:
    LOGGING = {
        'filters': {
            'tenant_context': {
                '()': 'tenancy.logging.TenantContextFilter',
            },
        },
        'handlers': {
            'console': {
                'filters': ['tenant_context'],
                ...
            },
        },
    }
"""

import logging
from typing import Optional

from .context import get_current_tenant


class TenantContextFilter(logging.Filter):
    """
    Logging filter that adds tenant context to log records.

    Adds:
    - tenant_city_id: city id or None
    - tenant_slug: city slug or 'global'
    - tenant_source: resolution source or None
    - tenant_key: canonical tenant key or None

    Values passed explicitly through ``extra`` are left untouched.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        tenant = get_current_tenant()

        if tenant:
            values = {
                'tenant_city_id': str(tenant.city_id),
                'tenant_slug': tenant.city.slug,
                'tenant_source': str(tenant.source),
                'tenant_key': tenant.city.tenant_key,
            }
        else:
            values = {
                'tenant_city_id': None,
                'tenant_slug': 'global',
                'tenant_source': None,
                'tenant_key': None,
            }

        for attr, value in values.items():
            if not hasattr(record, attr):
                setattr(record, attr, value)
        return True


class TenantFormatter(logging.Formatter):
    """
    Formatter that prefixes each line with the tenant slug.

    Default format:
        [{asctime}] [{levelname}] [city:{tenant_slug}] {name}: {message}
    """

    default_format = '[{asctime}] [{levelname}] [city:{tenant_slug}] {name}: {message}'

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, style: str = '{'):
        if fmt is None:
            fmt = self.default_format
        super().__init__(fmt, datefmt, style)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, 'tenant_slug'):
            tenant = get_current_tenant()
            record.tenant_slug = tenant.city.slug if tenant else 'global'
        return super().format(record)
