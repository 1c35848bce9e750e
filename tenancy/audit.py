"""
Audit recorders for tenancy operations (module rollouts and rollbacks).

The recorder is an explicit collaborator: callers receive one through
``get_audit_recorder()`` (configured by ``TENANCY['AUDIT_RECORDER']``) or
have one injected, and ``NullAuditRecorder`` is always a valid choice.
"""

import logging
from typing import Any, Dict, Optional

from django.utils.module_loading import import_string

from .conf import get_config

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Interface: record one named event with JSON-serializable properties."""

    def record(self, event: str, properties: Optional[Dict[str, Any]] = None) -> None:
        raise NotImplementedError


class NullAuditRecorder(AuditRecorder):

    def record(self, event, properties=None):
        return None


class LoggingAuditRecorder(AuditRecorder):
    """Writes audit events to the ``tenancy.audit`` logger."""

    def __init__(self, name: str = 'tenancy.audit'):
        self.logger = logging.getLogger(name)

    def record(self, event, properties=None):
        self.logger.info(event, extra={'audit': properties or {}})


class DatabaseAuditRecorder(AuditRecorder):
    """Persists audit events as ``tenancy.AuditEvent`` rows."""

    def record(self, event, properties=None):
        from .models import AuditEvent

        AuditEvent.objects.create(event=event, properties=properties or {})


def get_audit_recorder(path: Optional[str] = None) -> AuditRecorder:
    return import_string(path or get_config().audit_recorder)()
