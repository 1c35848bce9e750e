"""
Tenancy Registry - lookup of city records by slug, domain or id.

The domain -> city map is cached in the global namespace of
``TenantCache`` and dropped whenever a CityDomain row changes
(see ``tenancy.signals``).
"""

import logging
import re
from typing import Dict, Iterable, Optional

from django.core.exceptions import ValidationError

from .cache import TenantCache
from .conf import get_config
from .models import City, CityDomain

logger = logging.getLogger(__name__)


DOMAIN_MAP_KEY = 'city_domains:map'

_PORT_RE = re.compile(r':\d+$')


def normalize_host(host: Optional[str]) -> str:
    """Lower-case ``host`` and strip the ``www.`` prefix, port and trailing dot."""
    host = (host or '').strip().lower()
    host = _PORT_RE.sub('', host)
    host = host.rstrip('.')
    if host.startswith('www.'):
        host = host[4:]
    return host


def is_trusted_host(host: Optional[str], patterns: Optional[Iterable[str]] = None) -> bool:
    """
    Check ``host`` against the trusted allow-list.

    Patterns are exact hostnames or wildcards of the form ``*.suffix``;
    a wildcard matches any subdomain but not the bare suffix.
    """
    host = normalize_host(host)
    if not host:
        return False
    if patterns is None:
        patterns = get_config().trusted_hosts

    for pattern in patterns:
        pattern = (pattern or '').strip().lower()
        if not pattern:
            continue
        if pattern.startswith('*.'):
            if host.endswith(pattern[1:]):
                return True
        elif normalize_host(pattern) == host:
            return True
    return False


class TenantRegistry:
    """
    Read access to cities.

    Slug and domain lookups honour status visibility for the given user;
    id lookups do not (queued jobs may target any existing city).
    """

    @classmethod
    def find_by_id(cls, city_id) -> Optional[City]:
        if city_id in (None, ''):
            return None
        try:
            return City.objects.filter(pk=city_id).first()
        except (ValueError, ValidationError):
            # Not a valid UUID
            return None

    @classmethod
    def find_by_slug(cls, slug: Optional[str], user=None) -> Optional[City]:
        slug = (slug or '').strip().lower()
        if not slug:
            return None
        return City.objects.visible_to(user).filter(slug=slug).first()

    @classmethod
    def find_by_domain(cls, host: Optional[str], user=None) -> Optional[City]:
        host = normalize_host(host)
        if not host:
            return None
        city_id = cls.domain_map().get(host)
        if city_id is None:
            return None
        return City.objects.visible_to(user).filter(pk=city_id).first()

    @classmethod
    def default_city(cls, user=None) -> Optional[City]:
        return cls.find_by_slug(get_config().default_city_slug, user=user)

    @classmethod
    def first_active(cls) -> Optional[City]:
        return City.objects.active().order_by('name').first()

    @classmethod
    def domain_map(cls) -> Dict[str, str]:
        """``{normalized domain: city id}`` for every bound domain."""
        # Always the global namespace, even when a tenant is bound.
        return TenantCache.remember_global(
            DOMAIN_MAP_KEY,
            get_config().domain_map_ttl,
            cls._build_domain_map,
        )

    @staticmethod
    def _build_domain_map() -> Dict[str, str]:
        rows = CityDomain.objects.values_list('domain', 'city_id')
        return {normalize_host(domain): str(city_id) for domain, city_id in rows}

    @classmethod
    def forget_domain_map(cls) -> None:
        TenantCache.forget_global(DOMAIN_MAP_KEY)
        logger.info('domain_map_invalidated')
