"""
Tenancy Service Tests

Tenant bootstrap config (payload, caching, invalidation), module rollouts
through the service and the ``modules_rollout`` command, and the audit
recorders.
"""

import logging
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from conftest import BairroFactory, CityModuleFactory, StagingCityFactory
from tenancy.audit import (
    DatabaseAuditRecorder,
    LoggingAuditRecorder,
    NullAuditRecorder,
    get_audit_recorder,
)
from tenancy.cache import TenantCache
from tenancy.models import AuditEvent, CityModule
from tenancy.modules import ModuleResolver
from tenancy.services import CONFIG_SUFFIX, ModuleRolloutService, TenantConfigService


# ============================================================================
# TENANT CONFIG
# ============================================================================

@pytest.mark.django_db
class TestTenantConfigService:

    def test_payload_shape(self, tijucas, reports_module):
        CityModuleFactory(city=tijucas, module=reports_module, enabled=True)
        centro = BairroFactory(city=tijucas, name='Centro')

        config = TenantConfigService.get_config(tijucas)

        assert config['city']['slug'] == 'tijucas-sc'
        assert config['city']['timezone'] == 'America/Sao_Paulo'
        assert config['city']['isCoastal'] is True
        assert config['brand']['appName'] == 'Tijucas'
        assert config['brand']['primaryColor'] == '#10B981'
        assert [m['key'] for m in config['modules']] == ['reports']
        assert config['geo']['defaultBairroId'] == str(centro.pk)
        assert config['features'] == {
            'offlineEnabled': True,
            'pushNotifications': True,
            'marineWeather': True,
        }

    def test_city_brand_overrides_defaults(self, city_factory):
        city = city_factory(name='Itapema', brand={'primaryColor': '#0000FF', 'appName': 'Itapema Conectada'})

        brand = TenantConfigService.get_config(city)['brand']

        assert brand['primaryColor'] == '#0000FF'
        assert brand['appName'] == 'Itapema Conectada'
        assert brand['secondaryColor'] == '#059669'

    def test_no_centro_means_no_default_bairro(self, itapema):
        BairroFactory(city=itapema, name='Meia Praia')

        config = TenantConfigService.get_config(itapema)

        assert config['geo']['defaultBairroId'] is None
        assert config['features']['marineWeather'] is False

    def test_cached_per_city(self, two_cities, django_assert_num_queries):
        tijucas, itapema = two_cities
        TenantConfigService.get_config(tijucas)

        with django_assert_num_queries(0):
            TenantConfigService.get_config(tijucas)

        assert TenantCache.has_for_city(tijucas.pk, CONFIG_SUFFIX)
        assert not TenantCache.has_for_city(itapema.pk, CONFIG_SUFFIX)

    def test_bairro_change_refreshes_config(self, tijucas):
        assert TenantConfigService.get_config(tijucas)['geo']['defaultBairroId'] is None

        centro = BairroFactory(city=tijucas, name='Centro')

        assert TenantConfigService.get_config(tijucas)['geo']['defaultBairroId'] == str(centro.pk)

    def test_city_change_refreshes_config(self, tijucas):
        TenantConfigService.get_config(tijucas)

        tijucas.brand = {'appName': 'eTijucas'}
        tijucas.save()

        assert TenantConfigService.get_config(tijucas)['brand']['appName'] == 'eTijucas'

    def test_module_override_refreshes_config(self, tijucas, reports_module):
        assert TenantConfigService.get_config(tijucas)['modules'] == []

        CityModuleFactory(city=tijucas, module=reports_module, enabled=True)

        assert [m['key'] for m in TenantConfigService.get_config(tijucas)['modules']] == ['reports']


# ============================================================================
# MODULE ROLLOUT SERVICE
# ============================================================================

@pytest.fixture
def rollout_cities(two_cities, city_factory):
    tijucas, itapema = two_cities
    porto_belo = city_factory(name='Porto Belo')
    return tijucas, itapema, porto_belo


@pytest.mark.django_db
class TestModuleRolloutService:

    def test_select_active_cities_by_default(self, rollout_cities):
        StagingCityFactory(name='Bombinhas')

        slugs = [c.slug for c in ModuleRolloutService.select_cities()]

        assert slugs == ['itapema-sc', 'porto-belo-sc', 'tijucas-sc']

    def test_select_only_and_exclude(self, rollout_cities):
        staging = StagingCityFactory(name='Bombinhas')

        only = ModuleRolloutService.select_cities(only=['TIJUCAS-SC', staging.slug])
        excluded = ModuleRolloutService.select_cities(exclude=['itapema-sc', ' '])

        assert [c.slug for c in only] == ['bombinhas-sc', 'tijucas-sc']
        assert [c.slug for c in excluded] == ['porto-belo-sc', 'tijucas-sc']

    def test_plan_reports_previous_override(self, rollout_cities, reports_module):
        tijucas, itapema, porto_belo = rollout_cities
        CityModuleFactory(city=itapema, module=reports_module, enabled=False)

        plan = ModuleRolloutService().plan(reports_module, True, [itapema, tijucas])

        assert [(p['city_slug'], p['previous'], p['enabled']) for p in plan] == [
            ('itapema-sc', False, True),
            ('tijucas-sc', None, True),
        ]
        assert not CityModule.objects.filter(city=tijucas).exists()

    def test_apply_and_rollback(self, rollout_cities, reports_module):
        tijucas, itapema, porto_belo = rollout_cities
        CityModuleFactory(city=itapema, module=reports_module, enabled=False)
        service = ModuleRolloutService(recorder=DatabaseAuditRecorder())

        service.apply(reports_module, True, [tijucas, itapema], rollout_id='r-1')

        assert ModuleResolver.is_enabled('reports', tijucas) is True
        assert ModuleResolver.is_enabled('reports', itapema) is True
        assert ModuleResolver.is_enabled('reports', porto_belo) is False
        event = AuditEvent.objects.get(event=ModuleRolloutService.ROLLOUT_EVENT)
        assert event.properties['rollout_id'] == 'r-1'
        assert event.properties['module_key'] == 'reports'

        restored = service.rollback('r-1')

        assert len(restored) == 2
        assert not CityModule.objects.filter(city=tijucas, module=reports_module).exists()
        assert CityModule.objects.get(city=itapema, module=reports_module).enabled is False
        assert ModuleResolver.is_enabled('reports', tijucas) is False
        assert AuditEvent.objects.filter(event=ModuleRolloutService.ROLLBACK_EVENT).count() == 1

    def test_rollback_unknown_id(self, db):
        with pytest.raises(LookupError):
            ModuleRolloutService(recorder=DatabaseAuditRecorder()).rollback('missing')

    def test_null_recorder_is_default(self, tijucas, reports_module):
        ModuleRolloutService().apply(reports_module, True, [tijucas], rollout_id='r-2')

        assert CityModule.objects.get(city=tijucas).enabled is True
        assert not AuditEvent.objects.exists()


# ============================================================================
# ROLLOUT COMMAND
# ============================================================================

def _rollout(*args):
    out = StringIO()
    call_command('modules_rollout', *args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestModulesRolloutCommand:

    def test_dry_run_persists_nothing(self, rollout_cities, reports_module):
        output = _rollout('reports', 'on', '--dry-run')

        assert 'tijucas-sc' in output
        assert 'Dry run complete. No changes persisted.' in output
        assert not CityModule.objects.exists()
        assert not AuditEvent.objects.exists()

    def test_apply_with_legacy_identifier(self, rollout_cities, reports_module):
        output = _rollout('denuncias', 'on', '--rollout-id', 'abc')

        assert 'Rollout applied. rollout_id=abc' in output
        assert CityModule.objects.filter(module=reports_module, enabled=True).count() == 3
        assert AuditEvent.objects.get().properties['rollout_id'] == 'abc'

    def test_city_filters(self, rollout_cities, reports_module):
        _rollout('reports', 'on', '--cities', 'tijucas-sc,itapema-sc', '--except', 'itapema-sc')

        slugs = list(CityModule.objects.values_list('city__slug', flat=True))
        assert slugs == ['tijucas-sc']

    def test_change_column(self, rollout_cities, reports_module):
        tijucas, itapema, _ = rollout_cities
        CityModuleFactory(city=tijucas, module=reports_module, enabled=True)
        CityModuleFactory(city=itapema, module=reports_module, enabled=False)

        output = _rollout('reports', 'on', '--dry-run')

        lines = {line.split()[0]: line.split() for line in output.splitlines()[1:] if line.endswith(('yes', 'no'))}
        assert lines['tijucas-sc'][2:] == ['on', 'on', 'no']
        assert lines['itapema-sc'][2:] == ['off', 'on', 'yes']
        assert lines['porto-belo-sc'][2:] == ['none', 'on', 'yes']

    def test_rollback(self, rollout_cities, reports_module):
        _rollout('reports', 'on', '--rollout-id', 'r-9')

        output = _rollout('--rollback', 'r-9')

        assert 'Rollback completed for rollout_id=r-9 (3 cities)' in output
        assert not CityModule.objects.exists()

    def test_rollback_unknown(self, db):
        with pytest.raises(CommandError, match='No rollout found for rollout_id=nope'):
            _rollout('--rollback', 'nope')

    def test_no_matching_cities(self, rollout_cities, reports_module):
        output = _rollout('reports', 'off', '--cities', 'atlantida-sc')

        assert 'No target cities matched the filters.' in output

    @pytest.mark.parametrize('args, message', [
        ((), 'Usage'),
        (('reports',), 'Usage'),
        (('reports', 'maybe'), 'State must be'),
        (('nothing', 'on'), 'Module not found'),
    ])
    def test_invalid_arguments(self, reports_module, args, message):
        with pytest.raises(CommandError, match=message):
            _rollout(*args)


# ============================================================================
# AUDIT RECORDERS
# ============================================================================

class TestAuditRecorders:

    def test_logging_recorder(self, caplog):
        with caplog.at_level(logging.INFO, logger='tenancy.audit'):
            LoggingAuditRecorder().record('module_rollout', {'rollout_id': 'x'})

        record = next(r for r in caplog.records if r.getMessage() == 'module_rollout')
        assert record.audit == {'rollout_id': 'x'}

    def test_null_recorder(self):
        assert NullAuditRecorder().record('anything') is None

    def test_configured_recorder(self, settings):
        assert isinstance(get_audit_recorder(), DatabaseAuditRecorder)
        assert isinstance(get_audit_recorder('tenancy.audit.LoggingAuditRecorder'), LoggingAuditRecorder)

        settings.TENANCY = {**settings.TENANCY, 'AUDIT_RECORDER': 'tenancy.audit.NullAuditRecorder'}
        assert isinstance(get_audit_recorder(), NullAuditRecorder)
