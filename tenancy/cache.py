"""
Tenant-aware cache key generation and invalidation.

All keys are namespaced by city id: ``city:{id}:{suffix}``. Without a
bound tenant the ``global:{suffix}`` namespace is used. Values stored for
one city are never visible from another city or from the global namespace.

Usage:
    from tenancy.cache import TenantCache

    config = TenantCache.remember('config', 900, build_config)
    modules = TenantCache.remember_for_city(city.pk, 'modules_effective', 900, compute)

    TenantCache.forget_for_city(city.pk, 'modules_effective')
    TenantCache.flush_city(city.pk)
"""

import logging
import time
from typing import Any, Callable, Optional

from django.core.cache import cache

from .context import get_current_city_id

logger = logging.getLogger(__name__)


GLOBAL_NAMESPACE = 'global'
GENERATION_SUFFIX = '__generation__'

_MISSING = object()


class TenantCache:
    """
    Tenant-namespaced wrapper around the default Django cache.

    Per-city keys are stored under the city's namespace generation
    (the cache ``version``). ``flush_city`` bumps the generation, which
    makes every earlier key of that city unreachable.
    """

    @staticmethod
    def key_for_city(city_id, suffix: str) -> str:
        return f'city:{city_id}:{suffix}'

    @staticmethod
    def global_key(suffix: str) -> str:
        return f'{GLOBAL_NAMESPACE}:{suffix}'

    @classmethod
    def key(cls, suffix: str) -> str:
        """Key for ``suffix`` in the namespace of the bound tenant (or global)."""
        city_id = get_current_city_id()
        if city_id is None:
            return cls.global_key(suffix)
        return cls.key_for_city(city_id, suffix)

    # -- reads -----------------------------------------------------------

    @classmethod
    def _read(cls, full_key: str, version: Optional[int] = None) -> Any:
        try:
            return cache.get(full_key, _MISSING, version=version)
        except Exception as exc:
            # A broken cache store must not stall the unit of work.
            logger.warning('tenant_cache_read_failed', extra={'cache_key': full_key, 'error': str(exc)})
            return _MISSING

    @classmethod
    def generation_for_city(cls, city_id) -> int:
        """Current namespace generation of ``city_id``; created on first use."""
        generation_key = cls.key_for_city(city_id, GENERATION_SUFFIX)
        generation = cls._read(generation_key)
        if generation is _MISSING or generation is None:
            try:
                # Starts from the clock so an evicted counter never revives old generations
                cache.add(generation_key, int(time.time() * 1000), None)
            except Exception as exc:
                logger.warning('tenant_cache_write_failed', extra={'cache_key': generation_key, 'error': str(exc)})
            generation = cls._read(generation_key)
        if generation is _MISSING or generation is None:
            return 1
        return generation

    @classmethod
    def get(cls, suffix: str, default: Any = None) -> Any:
        city_id = get_current_city_id()
        if city_id is not None:
            return cls.get_for_city(city_id, suffix, default)
        value = cls._read(cls.global_key(suffix))
        return default if value is _MISSING else value

    @classmethod
    def get_for_city(cls, city_id, suffix: str, default: Any = None) -> Any:
        value = cls._read(cls.key_for_city(city_id, suffix), cls.generation_for_city(city_id))
        return default if value is _MISSING else value

    @classmethod
    def has(cls, suffix: str) -> bool:
        city_id = get_current_city_id()
        if city_id is not None:
            return cls.has_for_city(city_id, suffix)
        return cls._read(cls.global_key(suffix)) is not _MISSING

    @classmethod
    def has_for_city(cls, city_id, suffix: str) -> bool:
        return cls._read(cls.key_for_city(city_id, suffix), cls.generation_for_city(city_id)) is not _MISSING

    # -- writes ----------------------------------------------------------

    @classmethod
    def put(cls, suffix: str, value: Any, ttl: Optional[int]) -> None:
        city_id = get_current_city_id()
        if city_id is None:
            cache.set(cls.global_key(suffix), value, ttl)
        else:
            cls.put_for_city(city_id, suffix, value, ttl)

    @classmethod
    def put_for_city(cls, city_id, suffix: str, value: Any, ttl: Optional[int]) -> None:
        cache.set(cls.key_for_city(city_id, suffix), value, ttl, version=cls.generation_for_city(city_id))

    @classmethod
    def remember(cls, suffix: str, ttl: Optional[int], producer: Callable[[], Any]) -> Any:
        """Return the cached value for ``suffix`` in the current namespace, computing it on a miss."""
        city_id = get_current_city_id()
        if city_id is not None:
            return cls.remember_for_city(city_id, suffix, ttl, producer)

        return cls.remember_global(suffix, ttl, producer)

    @classmethod
    def remember_global(cls, suffix: str, ttl: Optional[int], producer: Callable[[], Any]) -> Any:
        """Like ``remember`` but always in the global namespace."""
        full_key = cls.global_key(suffix)
        value = cls._read(full_key)
        if value is _MISSING:
            value = producer()
            cache.set(full_key, value, ttl)
        return value

    @classmethod
    def remember_for_city(cls, city_id, suffix: str, ttl: Optional[int], producer: Callable[[], Any]) -> Any:
        generation = cls.generation_for_city(city_id)
        full_key = cls.key_for_city(city_id, suffix)
        value = cls._read(full_key, generation)
        if value is _MISSING:
            value = producer()
            cache.set(full_key, value, ttl, version=generation)
        return value

    # -- invalidation ----------------------------------------------------

    @classmethod
    def forget_for_city(cls, city_id, suffix: str) -> None:
        cache.delete(cls.key_for_city(city_id, suffix), version=cls.generation_for_city(city_id))

    @classmethod
    def forget_global(cls, suffix: str) -> None:
        cache.delete(cls.global_key(suffix))

    @classmethod
    def flush_city(cls, city_id) -> int:
        """
        Invalidate every key of ``city_id`` by moving it to a new generation.

        The bump is a single atomic ``incr``, so keys written concurrently
        under the old generation are dropped too. Returns the new
        generation. Other cities and the global namespace are untouched.
        """
        generation_key = cls.key_for_city(city_id, GENERATION_SUFFIX)
        cls.generation_for_city(city_id)
        try:
            generation = cache.incr(generation_key)
        except ValueError:
            # Evicted between add() and incr()
            generation = int(time.time() * 1000)
            cache.set(generation_key, generation, None)
        logger.info('tenant_cache_flushed', extra={'city_id': str(city_id), 'generation': generation})
        return generation
