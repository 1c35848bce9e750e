"""
Tenancy Services - tenant bootstrap configuration and module rollouts.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import Q

from .audit import AuditRecorder, NullAuditRecorder
from .cache import TenantCache
from .conf import get_config
from .models import Bairro, City, CityModule, Module
from .modules import ModuleResolver

logger = logging.getLogger(__name__)


CONFIG_SUFFIX = 'config'

DEFAULT_BRAND = {
    'primaryColor': '#10B981',
    'secondaryColor': '#059669',
    'logoUrl': None,
    'faviconUrl': None,
}


class TenantConfigService:
    """
    Frontend bootstrap payload of a city: identity, brand, enabled
    modules, geo defaults and feature flags. Cached per city.
    """

    @classmethod
    def get_config(cls, city: City) -> Dict[str, Any]:
        return TenantCache.remember_for_city(
            city.pk,
            CONFIG_SUFFIX,
            get_config().city_config_ttl,
            lambda: cls.build_config(city),
        )

    @classmethod
    def forget(cls, city_id) -> None:
        TenantCache.forget_for_city(city_id, CONFIG_SUFFIX)

    @classmethod
    def build_config(cls, city: City) -> Dict[str, Any]:
        from .serializers import TenantConfigSerializer

        return TenantConfigSerializer({
            'city': city,
            'brand': cls.brand_for(city),
            'modules': ModuleResolver.enabled_modules(city),
            'geo': {
                'default_bairro_id': cls.default_bairro_id(city),
                'lat': city.lat,
                'lon': city.lon,
            },
            'features': {
                'offline_enabled': True,
                'push_notifications': True,
                'marine_weather': city.is_coastal,
            },
        }).data

    @staticmethod
    def brand_for(city: City) -> Dict[str, Any]:
        brand = {'appName': city.name, **DEFAULT_BRAND}
        if isinstance(city.brand, dict):
            brand.update(city.brand)
        return brand

    @staticmethod
    def default_bairro_id(city: City) -> Optional[str]:
        bairro = Bairro.objects.filter(city=city).filter(
            Q(slug='centro') | Q(name__iexact='centro')
        ).first()
        return str(bairro.pk) if bairro else None


class ModuleRolloutService:
    """
    Enable or disable one module across many cities in a single step.

    Each rollout gets an id; the previous per-city override of every
    touched city is recorded through the audit recorder so the rollout can
    be rolled back later.
    """

    ROLLOUT_EVENT = 'module_rollout'
    ROLLBACK_EVENT = 'module_rollout_rollback'

    def __init__(self, recorder: Optional[AuditRecorder] = None):
        self.recorder = recorder or NullAuditRecorder()

    @staticmethod
    def select_cities(only: Iterable[str] = (), exclude: Iterable[str] = ()) -> List[City]:
        """
        Active cities by default; an explicit ``only`` list may also name
        staging or paused cities.
        """
        only = [slug.strip().lower() for slug in only if slug.strip()]
        exclude = [slug.strip().lower() for slug in exclude if slug.strip()]
        if only:
            qs = City.objects.filter(slug__in=only)
        else:
            qs = City.objects.active()
        qs = qs.order_by('slug')
        if exclude:
            qs = qs.exclude(slug__in=exclude)
        return list(qs)

    def plan(self, module: Module, enabled: bool, cities: Iterable[City]) -> List[Dict[str, Any]]:
        """One entry per city: its current override and the state after rollout."""
        overrides = {
            row.city_id: row
            for row in CityModule.objects.filter(module=module, city__in=list(cities))
        }
        changes = []
        for city in cities:
            row = overrides.get(city.pk)
            changes.append({
                'city_id': str(city.pk),
                'city_slug': city.slug,
                'previous': row.enabled if row else None,
                'enabled': enabled,
            })
        return changes

    @transaction.atomic
    def apply(self, module: Module, enabled: bool, cities: Iterable[City], rollout_id: str) -> List[Dict[str, Any]]:
        cities = list(cities)
        changes = self.plan(module, enabled, cities)
        for city in cities:
            CityModule.objects.update_or_create(
                city=city,
                module=module,
                defaults={'enabled': enabled, 'version': module.current_version},
            )

        self.recorder.record(self.ROLLOUT_EVENT, {
            'rollout_id': rollout_id,
            'module_key': module.module_key,
            'enabled': enabled,
            'changes': changes,
        })
        logger.info(
            'module_rollout_applied',
            extra={'rollout_id': rollout_id, 'module_key': module.module_key, 'cities': len(cities)},
        )
        return changes

    @transaction.atomic
    def rollback(self, rollout_id: str) -> List[Dict[str, Any]]:
        """
        Restore the overrides recorded for ``rollout_id``.

        Cities that had no override before the rollout get their row
        removed again, so they fall back to the module default.
        """
        from .models import AuditEvent

        event = (
            AuditEvent.objects
            .filter(event=self.ROLLOUT_EVENT, properties__rollout_id=rollout_id)
            .order_by('-created_at', '-id')
            .first()
        )
        if event is None:
            raise LookupError(f'Rollout not found: {rollout_id}')

        module = Module.objects.get(module_key=event.properties['module_key'])
        restored = []
        for change in event.properties.get('changes', []):
            qs = CityModule.objects.filter(city_id=change['city_id'], module=module)
            if change['previous'] is None:
                qs.delete()
            else:
                CityModule.objects.update_or_create(
                    city_id=change['city_id'],
                    module=module,
                    defaults={'enabled': change['previous']},
                )
            restored.append(change)

        self.recorder.record(self.ROLLBACK_EVENT, {
            'rollout_id': rollout_id,
            'module_key': module.module_key,
            'restored': restored,
        })
        logger.info('module_rollout_rolled_back', extra={'rollout_id': rollout_id, 'cities': len(restored)})
        return restored
