"""
Tenancy Resolver - decides which city owns an inbound request.

Resolution order, first match wins:

1. path     ``/api/v1/{uf}/{city}/...`` or ``/{uf}/{city}/...``
2. header   ``X-City`` (only when ``ALLOW_HEADER_OVERRIDE`` is on)
3. domain   host -> CityDomain map (only for trusted hosts)
4. payload  ``city_slug`` in a JSON request body
5. fallback ``DEFAULT_CITY_SLUG`` (never in strict mode)

The result is a ``ResolvedTenant`` carrying its source, or ``Unresolved``.
Callers that need an explicit tenant must reject ``fallback`` themselves.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .conf import TenancyConfig, get_config
from .context import ResolutionOutcome, ResolutionSource, ResolvedTenant, Unresolved
from .registry import TenantRegistry, is_trusted_host, normalize_host

logger = logging.getLogger(__name__)


PATH_PATTERNS = (
    re.compile(r'^/api/v1/(?P<uf>[a-z]{2})/(?P<city>[a-z0-9-]+)(?:/|$)', re.IGNORECASE),
    re.compile(r'^/(?P<uf>[a-z]{2})/(?P<city>[a-z0-9-]+)(?:/|$)', re.IGNORECASE),
)

PAYLOAD_METHODS = ('POST', 'PUT', 'PATCH')
PAYLOAD_FIELD = 'city_slug'


def slug_from_path(path: Optional[str]) -> Optional[str]:
    """
    Extract the city slug from a canonical path.

    ``/api/v1/sc/tijucas/forum`` and ``/sc/tijucas`` both yield ``tijucas-sc``.
    """
    for pattern in PATH_PATTERNS:
        match = pattern.match(path or '')
        if match:
            return f"{match.group('city').lower()}-{match.group('uf').lower()}"
    return None


def slug_from_payload(request) -> Optional[str]:
    if request.method not in PAYLOAD_METHODS:
        return None
    if 'json' not in (request.content_type or ''):
        return None
    try:
        payload = json.loads(request.body or b'{}')
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    slug = payload.get(PAYLOAD_FIELD)
    if not isinstance(slug, str):
        return None
    return slug.strip().lower() or None


@dataclass(frozen=True)
class TenantHints:
    """Raw tenant hints extracted from one request."""

    host: str = ''
    header_slug: Optional[str] = None
    path_slug: Optional[str] = None
    payload_slug: Optional[str] = None

    @property
    def has_header_path_mismatch(self) -> bool:
        return bool(self.header_slug and self.path_slug and self.header_slug != self.path_slug)


class TenantResolver:
    """
    Stateless resolver; one instance can serve every request.

    Example:
        outcome = TenantResolver().resolve(request)
        if isinstance(outcome, ResolvedTenant) and outcome.is_explicit:
            ...
    """

    def __init__(self, config: Optional[TenancyConfig] = None):
        self._config = config

    @property
    def config(self) -> TenancyConfig:
        return self._config or get_config()

    def extract_hints(self, request) -> TenantHints:
        header = request.META.get(self.config.header_meta_key)
        header_slug = header.strip().lower() if header else None
        return TenantHints(
            host=normalize_host(request.get_host()),
            header_slug=header_slug or None,
            path_slug=slug_from_path(request.path_info),
            payload_slug=slug_from_payload(request),
        )

    def resolve(self, request) -> ResolutionOutcome:
        hints = self.extract_hints(request)
        return self.resolve_hints(hints, user=getattr(request, 'user', None))

    def resolve_hints(self, hints: TenantHints, user=None) -> ResolutionOutcome:
        config = self.config

        if hints.path_slug:
            city = TenantRegistry.find_by_slug(hints.path_slug, user=user)
            if city:
                return ResolvedTenant(city, ResolutionSource.PATH)
            logger.debug('tenant_path_slug_unknown', extra={'path_slug': hints.path_slug})

        if hints.header_slug and config.allow_header_override:
            city = TenantRegistry.find_by_slug(hints.header_slug, user=user)
            if city:
                return ResolvedTenant(city, ResolutionSource.HEADER)

        if hints.host:
            if is_trusted_host(hints.host, config.trusted_hosts):
                city = TenantRegistry.find_by_domain(hints.host, user=user)
                if city:
                    return ResolvedTenant(city, ResolutionSource.DOMAIN)
            else:
                logger.warning('tenant_untrusted_host', extra={'host': hints.host})

        if hints.payload_slug:
            city = TenantRegistry.find_by_slug(hints.payload_slug, user=user)
            if city:
                return ResolvedTenant(city, ResolutionSource.PAYLOAD)

        if config.strict_mode:
            return Unresolved('strict mode: no explicit tenant')

        city = TenantRegistry.default_city(user=user)
        if city:
            return ResolvedTenant(city, ResolutionSource.FALLBACK)
        return Unresolved('default city not available')
