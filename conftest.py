"""
Cidade Conectada Test Configuration - pytest fixtures and factories

This module provides:
- factory_boy factories for cities, domains, modules, bairros and users
- Shared fixtures for tenant isolation testing (two cities, bound tenant)
- Cache and tenant-context hygiene between tests

RUNNING TESTS:
# Run all tests
pytest -v

# Run by app
pytest tenancy/tests -v
pytest reports/tests -v

# Run by marker
pytest -m tenancy -v
"""

import uuid

import pytest

import factory
from django.utils.text import slugify
from factory.django import DjangoModelFactory


# ============================================================================
# USER FACTORIES
# ============================================================================

class UserFactory(DjangoModelFactory):
    """Factory for the default user model."""

    class Meta:
        model = 'auth.User'
        django_get_or_create = ('username',)
        skip_postgeneration_save = True

    username = factory.LazyAttribute(lambda o: f"user_{uuid.uuid4().hex[:8]}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    is_active = True

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to handle password properly."""
        password = kwargs.pop('password', 'testpass123')
        user = super()._create(model_class, *args, **kwargs)
        user.set_password(password)
        user.save()
        return user


class StaffUserFactory(UserFactory):
    """Moderator: staff without superuser rights."""

    is_staff = True


class SuperUserFactory(UserFactory):
    """Factory for superuser accounts."""

    is_staff = True
    is_superuser = True


# ============================================================================
# TENANT FACTORIES
# ============================================================================

class CityFactory(DjangoModelFactory):
    """Factory for cities. Active and public by default."""

    class Meta:
        model = 'tenancy.City'
        django_get_or_create = ('slug',)

    name = factory.Sequence(lambda n: f"Cidade {n}")
    uf = 'SC'
    slug = factory.LazyAttribute(lambda o: f"{slugify(o.name)}-{o.uf.lower()}")
    status = 'active'
    timezone = 'America/Sao_Paulo'
    is_coastal = False
    brand = factory.LazyFunction(dict)


class StagingCityFactory(CityFactory):
    status = 'staging'


class PausedCityFactory(CityFactory):
    status = 'paused'


class CityDomainFactory(DjangoModelFactory):
    """Factory for city domains."""

    class Meta:
        model = 'tenancy.CityDomain'

    city = factory.SubFactory(CityFactory)
    domain = factory.LazyAttribute(lambda o: f"{o.city.slug}.cidadeconectada.app")
    is_primary = True


class ModuleFactory(DjangoModelFactory):
    """Factory for feature modules. Optional (not core) by default."""

    class Meta:
        model = 'tenancy.Module'
        django_get_or_create = ('module_key',)

    module_key = factory.Sequence(lambda n: f"module{n}")
    slug = factory.LazyAttribute(lambda o: o.module_key)
    name = factory.LazyAttribute(lambda o: o.module_key.title())
    is_core = False
    current_version = 1
    sort_order = factory.Sequence(lambda n: n)


class CoreModuleFactory(ModuleFactory):
    is_core = True


class CityModuleFactory(DjangoModelFactory):
    """Factory for per-city module overrides."""

    class Meta:
        model = 'tenancy.CityModule'

    city = factory.SubFactory(CityFactory)
    module = factory.SubFactory(ModuleFactory)
    enabled = True
    version = 1
    settings = factory.LazyFunction(dict)


class BairroFactory(DjangoModelFactory):
    """Factory for neighbourhoods."""

    class Meta:
        model = 'tenancy.Bairro'

    city = factory.SubFactory(CityFactory)
    name = factory.Sequence(lambda n: f"Bairro {n}")
    slug = factory.LazyAttribute(lambda o: slugify(o.name))
    active = True


class StaffCityAssignmentFactory(DjangoModelFactory):
    """Locks a moderator to a city in the admin."""

    class Meta:
        model = 'tenancy.StaffCityAssignment'

    user = factory.SubFactory(StaffUserFactory)
    city = factory.SubFactory(CityFactory)


# ============================================================================
# REPORTS FACTORIES
# ============================================================================

class CitizenReportFactory(DjangoModelFactory):
    """Factory for citizen reports (city always explicit)."""

    class Meta:
        model = 'reports.CitizenReport'

    city = factory.SubFactory(CityFactory)
    title = factory.Sequence(lambda n: f"Buraco na rua {n}")
    description = factory.Faker('sentence')
    status = 'received'


# ============================================================================
# HYGIENE FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def _clear_cache():
    """Local-memory cache survives between tests; start each one empty."""
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _unbound_tenant():
    """Each test starts and ends without a bound tenant."""
    from tenancy.context import clear_tenant_context
    clear_tenant_context()
    yield
    clear_tenant_context()


# ============================================================================
# TENANT FIXTURES
# ============================================================================

@pytest.fixture
def city_factory(db):
    """Provide CityFactory for tests."""
    return CityFactory


@pytest.fixture
def module_factory(db):
    """Provide ModuleFactory for tests."""
    return ModuleFactory


@pytest.fixture
def tijucas(db):
    """The configured default city."""
    return CityFactory(name='Tijucas', slug='tijucas-sc', uf='SC', is_coastal=True)


@pytest.fixture
def itapema(db):
    return CityFactory(name='Itapema', slug='itapema-sc', uf='SC')


@pytest.fixture
def two_cities(tijucas, itapema):
    """Two active cities for isolation tests."""
    return tijucas, itapema


@pytest.fixture
def reports_module(db):
    return ModuleFactory(module_key='reports', slug='reports', name='Reports', name_ptbr='Denúncias')


@pytest.fixture
def bound_city(tijucas):
    """Bind ``tijucas`` for the duration of the test."""
    from tenancy.context import ResolutionSource, ResolvedTenant, tenant_context

    with tenant_context(ResolvedTenant(tijucas, ResolutionSource.QUEUE_JOB)):
        yield tijucas


# ============================================================================
# USER / CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def staff_user(db):
    return StaffUserFactory()


@pytest.fixture
def superuser(db):
    return SuperUserFactory()


@pytest.fixture
def api_client(db):
    """Provide a DRF API test client."""
    from rest_framework.test import APIClient
    return APIClient()
