"""
Tenancy configuration accessor.

Settings are read on every call so ``override_settings(TENANCY=...)`` in
tests takes effect without reloading modules.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from django.conf import settings


DEFAULTS = {
    'TRUSTED_HOSTS': ['localhost', '127.0.0.1'],
    'ALLOW_HEADER_OVERRIDE': True,
    'HEADER_NAME': 'X-City',
    'DEFAULT_CITY_SLUG': 'tijucas-sc',
    'STRICT_MODE': False,
    'DOMAIN_MAP_TTL': 3600,
    'CITY_CONFIG_TTL': 900,
    'MODULE_STATUS_TTL': 900,
    'MISMATCH_ALERTS_ENABLED': True,
    'MISMATCH_WINDOW_SECONDS': 300,
    'MISMATCH_ALERT_THRESHOLD': 5,
    'MODULE_ALIASES': {},
    'AUDIT_RECORDER': 'tenancy.audit.DatabaseAuditRecorder',
    'EXEMPT_PATHS': ['/admin/', '/static/', '/media/', '/health/', '/api/v1/cities/'],
}


@dataclass(frozen=True)
class TenancyConfig:
    trusted_hosts: List[str] = field(default_factory=list)
    allow_header_override: bool = True
    header_name: str = 'X-City'
    default_city_slug: Optional[str] = None
    strict_mode: bool = False
    domain_map_ttl: int = 3600
    city_config_ttl: int = 900
    module_status_ttl: int = 900
    mismatch_alerts_enabled: bool = True
    mismatch_window_seconds: int = 300
    mismatch_alert_threshold: int = 5
    module_aliases: Dict[str, str] = field(default_factory=dict)
    audit_recorder: str = 'tenancy.audit.DatabaseAuditRecorder'
    exempt_paths: List[str] = field(default_factory=list)

    @property
    def header_meta_key(self) -> str:
        """The ``request.META`` key for the override header."""
        return 'HTTP_' + self.header_name.upper().replace('-', '_')


def get_config() -> TenancyConfig:
    """Build the effective tenancy configuration from Django settings."""
    raw = {**DEFAULTS, **getattr(settings, 'TENANCY', {})}
    return TenancyConfig(
        trusted_hosts=list(raw['TRUSTED_HOSTS']),
        allow_header_override=bool(raw['ALLOW_HEADER_OVERRIDE']),
        header_name=raw['HEADER_NAME'],
        default_city_slug=raw['DEFAULT_CITY_SLUG'] or None,
        strict_mode=bool(raw['STRICT_MODE']),
        domain_map_ttl=int(raw['DOMAIN_MAP_TTL']),
        city_config_ttl=int(raw['CITY_CONFIG_TTL']),
        module_status_ttl=int(raw['MODULE_STATUS_TTL']),
        mismatch_alerts_enabled=bool(raw['MISMATCH_ALERTS_ENABLED']),
        mismatch_window_seconds=int(raw['MISMATCH_WINDOW_SECONDS']),
        mismatch_alert_threshold=int(raw['MISMATCH_ALERT_THRESHOLD']),
        module_aliases=dict(raw['MODULE_ALIASES'] or {}),
        audit_recorder=raw['AUDIT_RECORDER'],
        exempt_paths=list(raw['EXEMPT_PATHS']),
    )
