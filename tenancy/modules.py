"""
Module resolution - which feature modules are on for a city.

An explicit CityModule row always wins; without one a module falls back
to its own ``is_core`` default. The effective map of a city is cached in
that city's TenantCache namespace and cleared only for that city.
"""

import logging
from typing import Any, Dict, List, Optional

from .cache import TenantCache
from .conf import get_config
from .context import get_current_city_id

logger = logging.getLogger(__name__)


CACHE_SUFFIX = 'modules_effective'

# Legacy and pt-BR identifiers -> canonical module keys.
# Deployments may extend this through TENANCY['MODULE_ALIASES'].
KEY_ALIASES = {
    'forum': 'forum',
    'events': 'events',
    'denuncias': 'reports',
    'reports': 'reports',
    'telefones': 'phones',
    'phones': 'phones',
    'alertas': 'alerts',
    'alerts': 'alerts',
    'turismo': 'tourism',
    'tourism': 'tourism',
    'coleta-lixo': 'trash',
    'trash': 'trash',
    'missas': 'masses',
    'masses': 'masses',
    'veiculos': 'vehicles',
    'vehicles': 'vehicles',
    'tempo': 'weather',
    'weather': 'weather',
    'votacoes': 'voting',
    'voting': 'voting',
    'vereadores': 'council',
    'council': 'council',
}


def module_aliases() -> Dict[str, str]:
    """Built-in alias table merged with the configured extensions."""
    extra = {
        str(alias).strip().lower(): str(key).strip().lower()
        for alias, key in get_config().module_aliases.items()
    }
    return {**KEY_ALIASES, **extra}


def normalize_module_key(identifier: Optional[str]) -> str:
    normalized = (identifier or '').strip().lower()
    return module_aliases().get(normalized, normalized)


def resolve_enabled_state(city_override: Optional[bool], module_is_core: bool) -> bool:
    """
    Effective enabled state of one module for one city.

    ``city_override`` is None when the city has no CityModule row.
    """
    if city_override is not None:
        return bool(city_override)
    return bool(module_is_core)


def _city_id(city) -> Optional[Any]:
    if city is None:
        return get_current_city_id()
    return getattr(city, 'pk', city)


class ModuleResolver:
    """
    Per-city module state.

    Every method accepts a City, a city id, or None for the bound tenant.
    Without any city, nothing is enabled.
    """

    @classmethod
    def effective_modules(cls, city=None) -> Dict[str, Dict[str, Any]]:
        city_id = _city_id(city)
        if city_id is None:
            return {}
        return TenantCache.remember_for_city(
            city_id,
            CACHE_SUFFIX,
            get_config().module_status_ttl,
            lambda: cls._build_effective_map(city_id),
        )

    @classmethod
    def is_enabled(cls, identifier: str, city=None) -> bool:
        key = normalize_module_key(identifier)
        module = cls.effective_modules(city).get(key)
        return bool(module and module['enabled'])

    @classmethod
    def settings(cls, identifier: str, city=None) -> Dict[str, Any]:
        key = normalize_module_key(identifier)
        module = cls.effective_modules(city).get(key)
        return dict(module['settings']) if module else {}

    @classmethod
    def enabled_modules(cls, city=None) -> List[Dict[str, Any]]:
        return [module for module in cls.effective_modules(city).values() if module['enabled']]

    @classmethod
    def enabled_keys(cls, city=None) -> List[str]:
        return [module['key'] for module in cls.enabled_modules(city)]

    @classmethod
    def clear_cache(cls, city=None) -> None:
        city_id = _city_id(city)
        if city_id is None:
            return
        TenantCache.forget_for_city(city_id, CACHE_SUFFIX)
        logger.debug('module_cache_cleared', extra={'city_id': str(city_id)})

    @staticmethod
    def _build_effective_map(city_id) -> Dict[str, Dict[str, Any]]:
        from .models import CityModule, Module

        overrides = {
            row.module_id: row
            for row in CityModule.objects.filter(city_id=city_id)
        }

        effective = {}
        for module in Module.objects.ordered():
            override = overrides.get(module.pk)
            key = module.module_key or normalize_module_key(module.slug)
            effective[key] = {
                'key': key,
                'slug': module.slug,
                'route_slug_ptbr': module.route_slug_ptbr,
                'name': module.name,
                'name_ptbr': module.name_ptbr,
                'icon': module.icon,
                'description': module.description,
                'is_core': module.is_core,
                'enabled': resolve_enabled_state(
                    override.enabled if override else None,
                    module.is_core,
                ),
                'version': override.version if override else module.current_version,
                'settings': (override.settings or {}) if override else {},
            }
        return effective
