"""
Tenant incident reporting.

Incidents are persisted as ``TenantIncident`` rows and logged with the
incident type as the log message. Repeated anomalies of the same shape
are counted in a rolling cache window; once the configured threshold is
reached within the window the severity escalates to ``critical``.
"""

import hashlib
import logging
from typing import Any, Dict, Optional

from django.core.cache import cache
from django.db import DatabaseError

from .cache import TenantCache
from .conf import get_config
from .models import TenantIncident

logger = logging.getLogger(__name__)


HEADER_PATH_MISMATCH = 'tenant_header_path_mismatch'
MODULE_DENIED = 'tenant_module_denied'
JOB_MISSING_CITY = 'tenant_job_missing_city_id'
JOB_CITY_NOT_FOUND = 'tenant_job_city_not_found'

_LOG_LEVELS = {
    TenantIncident.Severity.WARNING: logging.WARNING,
    TenantIncident.Severity.ERROR: logging.ERROR,
    TenantIncident.Severity.CRITICAL: logging.CRITICAL,
}


def record_incident(
    type: str,
    context: Optional[Dict[str, Any]] = None,
    city_id=None,
    severity: str = TenantIncident.Severity.WARNING,
    source: str = '',
    module_key: str = '',
    request_id: str = '',
    trace_id: str = '',
) -> Optional[TenantIncident]:
    """Persist and log one structured tenancy incident."""
    payload = {
        'city_id': city_id,
        'type': type,
        'severity': severity,
        'source': source or '',
        'module_key': module_key or '',
        'request_id': request_id or '',
        'trace_id': trace_id or '',
        'context': context or {},
    }

    incident = None
    try:
        incident = TenantIncident.objects.create(**payload)
    except DatabaseError as exc:
        logger.error(
            'tenant_incident_persist_failed',
            extra={'incident_type': type, 'severity': severity, 'error': str(exc)},
        )

    logger.log(
        _LOG_LEVELS.get(severity, logging.WARNING),
        type,
        extra={
            'incident': {k: v for k, v in payload.items() if v not in (None, '')},
        },
    )
    return incident


def increment_window_counter(name: str, window_seconds: int) -> int:
    """
    Count occurrences of ``name`` within a rolling window.

    The window starts with the first occurrence and the counter expires
    with it. An unavailable cache counts every occurrence as the first.
    """
    key = TenantCache.global_key(f'tenant_incident:{name}')
    try:
        cache.add(key, 0, window_seconds)
        count = cache.incr(key)
    except ValueError:
        # Expired between add() and incr()
        cache.set(key, 1, window_seconds)
        return 1
    except Exception as exc:
        logger.warning('tenant_incident_counter_failed', extra={'counter': name, 'error': str(exc)})
        return 1
    if count is None:
        # django-redis with IGNORE_EXCEPTIONS returns None while redis is down
        logger.warning('tenant_incident_counter_failed', extra={'counter': name, 'error': 'no result'})
        return 1
    return count


def _fingerprint(*parts: str) -> str:
    return hashlib.sha1('|'.join(p or '' for p in parts).encode('utf-8')).hexdigest()


def _severity_for(count: Optional[int], threshold: int) -> str:
    if count is not None and count >= threshold:
        return TenantIncident.Severity.CRITICAL
    return TenantIncident.Severity.WARNING


def record_header_path_mismatch(request, header_slug: str, path_slug: str, resolved_city=None):
    """Track a request whose override header names another city than its path."""
    config = get_config()
    if not config.mismatch_alerts_enabled:
        return None

    host = request.get_host().lower()
    count = increment_window_counter(
        f'header_path_mismatch:{_fingerprint(host, header_slug, path_slug)}',
        config.mismatch_window_seconds,
    )
    return record_incident(
        HEADER_PATH_MISMATCH,
        context={
            'host': host,
            'path': request.path_info,
            'x_city': header_slug,
            'path_city': path_slug,
            'count_in_window': count,
            'window_seconds': config.mismatch_window_seconds,
            'threshold': config.mismatch_alert_threshold,
            'resolved_city_slug': getattr(resolved_city, 'slug', None),
        },
        city_id=getattr(resolved_city, 'pk', None),
        severity=_severity_for(count, config.mismatch_alert_threshold),
        source='tenant_context',
        request_id=request.headers.get('X-Request-Id', ''),
    )


def record_module_denied(request, city, module_key: str):
    """Track a request refused because its module is disabled for the city."""
    config = get_config()
    if not config.mismatch_alerts_enabled:
        return None

    count = increment_window_counter(
        f'module_denied:{_fingerprint(str(city.pk), module_key)}',
        config.mismatch_window_seconds,
    )
    return record_incident(
        MODULE_DENIED,
        context={
            'path': request.path_info,
            'method': request.method,
            'count_in_window': count,
            'window_seconds': config.mismatch_window_seconds,
            'threshold': config.mismatch_alert_threshold,
        },
        city_id=city.pk,
        severity=_severity_for(count, config.mismatch_alert_threshold),
        source='module_gate',
        module_key=module_key,
        request_id=request.headers.get('X-Request-Id', ''),
    )
