"""
Tenancy Signals - cache invalidation.

- CityDomain changes drop the domain -> city map
- CityModule changes drop the module and config caches of that city only
- Module changes drop the module and config caches of every city
- City and Bairro changes drop the config cache of that city

Every clear runs immediately and again once the surrounding transaction
commits; a request served between the two may have cached the old rows.
"""

import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Bairro, City, CityDomain, CityModule, Module
from .modules import ModuleResolver
from .registry import TenantRegistry
from .services import TenantConfigService

logger = logging.getLogger(__name__)


def _clear_now_and_on_commit(clear, *args):
    clear(*args)
    transaction.on_commit(lambda: clear(*args))


def _clear_city_modules(city_id):
    ModuleResolver.clear_cache(city_id)
    TenantConfigService.forget(city_id)


def _clear_all_city_modules():
    for city_id in City.objects.values_list('pk', flat=True):
        _clear_city_modules(city_id)


def _clear_city(city_id):
    TenantConfigService.forget(city_id)
    # Status changes alter which cities a domain may resolve to
    TenantRegistry.forget_domain_map()


@receiver(post_save, sender=CityDomain)
@receiver(post_delete, sender=CityDomain)
def invalidate_domain_map(sender, instance, **kwargs):
    _clear_now_and_on_commit(TenantRegistry.forget_domain_map)


@receiver(post_save, sender=CityModule)
@receiver(post_delete, sender=CityModule)
def invalidate_city_module_cache(sender, instance, **kwargs):
    _clear_now_and_on_commit(_clear_city_modules, instance.city_id)


@receiver(post_save, sender=Module)
@receiver(post_delete, sender=Module)
def invalidate_all_module_caches(sender, instance, **kwargs):
    _clear_now_and_on_commit(_clear_all_city_modules)


@receiver(post_save, sender=City)
def invalidate_city_caches(sender, instance, created, **kwargs):
    if created:
        return
    _clear_now_and_on_commit(_clear_city, instance.pk)


@receiver(post_save, sender=Bairro)
@receiver(post_delete, sender=Bairro)
def invalidate_city_config(sender, instance, **kwargs):
    _clear_now_and_on_commit(TenantConfigService.forget, instance.city_id)
