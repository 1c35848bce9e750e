"""
Tenant-Aware Job Tests

Job middleware binding, Celery task bases (eager mode), incident logging
for broken job payloads, and the task contract conformance check.
"""

import logging
import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from celery import Celery
from django.core import checks
from django.utils import timezone

from cidade.celery_tasks_base import CITY_KWARG, MODULE_KWARG, TRACE_KWARG, GlobalTask, TenantAwareTask
from tenancy.cache import TenantCache
from tenancy.checks import check_task_tenancy_contracts
from tenancy.context import (
    ResolutionSource,
    ResolvedTenant,
    get_current_city,
    get_current_source,
    get_current_tenant,
    tenant_context,
)
from tenancy.exceptions import (
    JobCityNotFoundError,
    MissingJobCityError,
    TenantContractViolation,
    TenantJobContextError,
)
from tenancy.incidents import JOB_CITY_NOT_FOUND, JOB_MISSING_CITY
from tenancy.jobs import (
    EnsureTenantContext,
    GlobalQueueJob,
    JobEnvelope,
    JobKind,
    assert_tenancy_contracts,
    find_tasks_without_tenancy_contract,
    job_kind,
)
from tenancy.models import TenantIncident
from tenancy.modules import CACHE_SUFFIX
from tenancy.tasks import prune_tenant_incidents, warm_city_module_cache, warm_module_caches


def _capture_city(job):
    return get_current_city(), get_current_source()


def _messages(caplog, message):
    return [r for r in caplog.records if r.getMessage() == message]


# ============================================================================
# JOB MIDDLEWARE
# ============================================================================

@pytest.mark.django_db
class TestEnsureTenantContext:

    def test_binds_city_for_job_body(self, tijucas):
        city, source = EnsureTenantContext().handle(JobEnvelope(city_id=str(tijucas.pk)), _capture_city)

        assert city == tijucas
        assert source == ResolutionSource.QUEUE_JOB
        assert get_current_tenant() is None

    def test_sequential_jobs_do_not_leak(self, two_cities):
        tijucas, itapema = two_cities
        middleware = EnsureTenantContext()

        first, _ = middleware.handle(JobEnvelope(city_id=str(tijucas.pk)), _capture_city)
        assert get_current_tenant() is None
        second, _ = middleware.handle(JobEnvelope(city_id=str(itapema.pk)), _capture_city)

        assert (first, second) == (tijucas, itapema)
        assert get_current_tenant() is None

    def test_previous_binding_restored_after_failure(self, two_cities):
        tijucas, itapema = two_cities

        def failing(job):
            raise ValueError('job failed')

        with tenant_context(ResolvedTenant(tijucas, ResolutionSource.HEADER)):
            with pytest.raises(ValueError):
                EnsureTenantContext().handle(JobEnvelope(city_id=str(itapema.pk)), failing)
            assert get_current_city() == tijucas

    @pytest.mark.parametrize('city_id', [None, '', '   '])
    def test_missing_city_id(self, db, caplog, city_id):
        ran = []
        job = JobEnvelope(city_id=city_id, module_key='reports', trace_id='trace-1', name='reports.job')

        with caplog.at_level(logging.WARNING, logger='tenancy'):
            with pytest.raises(MissingJobCityError):
                EnsureTenantContext().handle(job, ran.append)

        assert ran == []
        records = _messages(caplog, JOB_MISSING_CITY)
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert records[0].incident['trace_id'] == 'trace-1'

        incident = TenantIncident.objects.get(type=JOB_MISSING_CITY)
        assert incident.severity == TenantIncident.Severity.ERROR
        assert incident.source == 'queue_job'
        assert incident.module_key == 'reports'
        assert incident.city is None

    @pytest.mark.parametrize('city_id', [str(uuid.uuid4()), 'not-a-uuid'])
    def test_unknown_city(self, db, caplog, city_id):
        ran = []

        with caplog.at_level(logging.WARNING, logger='tenancy'):
            with pytest.raises(JobCityNotFoundError) as excinfo:
                EnsureTenantContext().handle(JobEnvelope(city_id=city_id), ran.append)

        assert ran == []
        assert excinfo.value.city_id == city_id
        assert len(_messages(caplog, JOB_CITY_NOT_FOUND)) == 1

        incident = TenantIncident.objects.get(type=JOB_CITY_NOT_FOUND)
        assert incident.context['city_id'] == city_id
        assert incident.city is None

    def test_jobs_without_contract_pass_through(self, db):
        class LegacyJob:
            pass

        job = LegacyJob()

        assert EnsureTenantContext().handle(job, lambda j: j) is job
        assert EnsureTenantContext().handle(GlobalQueueJob(), lambda j: get_current_tenant()) is None


class TestJobKind:

    def test_declared_contracts(self):
        assert job_kind(JobEnvelope(city_id='x')) == JobKind.TENANT_AWARE
        assert job_kind(GlobalQueueJob()) == JobKind.GLOBAL
        assert job_kind(TenantAwareTask) == JobKind.TENANT_AWARE
        assert job_kind(GlobalTask) == JobKind.GLOBAL
        assert job_kind(object()) is None


# ============================================================================
# CELERY TASK BASES (EAGER)
# ============================================================================

@pytest.mark.django_db
class TestTenantAwareTask:

    def test_enqueue_captures_bound_city(self, tijucas):
        with tenant_context(ResolvedTenant(tijucas, ResolutionSource.HEADER)):
            result = warm_city_module_cache.delay()

        assert result.get()['city_id'] == str(tijucas.pk)
        assert get_current_tenant() is None

    def test_explicit_city_wins_and_outer_binding_restored(self, two_cities):
        tijucas, itapema = two_cities

        with tenant_context(ResolvedTenant(tijucas, ResolutionSource.HEADER)):
            result = warm_city_module_cache.apply_async(kwargs={CITY_KWARG: itapema.pk})
            assert get_current_city() == tijucas

        assert result.get()['city_id'] == str(itapema.pk)

    def test_sequential_tasks_for_two_cities(self, two_cities):
        tijucas, itapema = two_cities

        first = warm_city_module_cache.apply_async(kwargs={CITY_KWARG: tijucas.pk}).get()
        assert get_current_tenant() is None
        second = warm_city_module_cache.apply_async(kwargs={CITY_KWARG: itapema.pk}).get()

        assert first['city_id'] == str(tijucas.pk)
        assert second['city_id'] == str(itapema.pk)
        assert get_current_tenant() is None

    def test_enqueue_without_city_fails_before_body(self, db, caplog):
        with patch('tenancy.modules.ModuleResolver.clear_cache') as clear_cache:
            with caplog.at_level(logging.WARNING, logger='tenancy'):
                with pytest.raises(MissingJobCityError):
                    warm_city_module_cache.delay()

        clear_cache.assert_not_called()
        assert len(_messages(caplog, JOB_MISSING_CITY)) == 1

    def test_enqueue_with_unknown_city(self, db, caplog):
        with caplog.at_level(logging.WARNING, logger='tenancy'):
            with pytest.raises(JobCityNotFoundError):
                warm_city_module_cache.apply_async(kwargs={CITY_KWARG: str(uuid.uuid4())})

        assert len(_messages(caplog, JOB_CITY_NOT_FOUND)) == 1

    def test_tenancy_kwargs_added_on_enqueue(self, tijucas):
        with patch('celery.app.task.Task.apply_async') as parent_apply_async:
            with tenant_context(ResolvedTenant(tijucas, ResolutionSource.HEADER)):
                warm_city_module_cache.apply_async(kwargs={})

        _, kwargs = parent_apply_async.call_args[0]
        assert kwargs[CITY_KWARG] == str(tijucas.pk)
        assert kwargs[TRACE_KWARG]
        assert MODULE_KWARG not in kwargs

    def test_job_context_errors_are_not_retried(self):
        assert TenantJobContextError in warm_city_module_cache.throws


@pytest.mark.django_db
class TestTenancyTasks:

    def test_prune_tenant_incidents(self, tijucas):
        old = TenantIncident.objects.create(type='old', city=tijucas)
        recent = TenantIncident.objects.create(type='recent', city=tijucas)
        TenantIncident.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=45))

        result = prune_tenant_incidents.delay(days=30).get()

        assert result['deleted'] == 1
        assert list(TenantIncident.objects.values_list('pk', flat=True)) == [recent.pk]

    def test_prune_runs_without_tenant(self, db):
        assert prune_tenant_incidents.delay().get()['deleted'] == 0

    def test_warm_module_caches_fans_out_per_active_city(self, two_cities, city_factory):
        tijucas, itapema = two_cities
        paused = city_factory(name='Porto Belo', status='paused')

        result = warm_module_caches.delay().get()

        assert result == {'enqueued': 2}
        assert TenantCache.has_for_city(tijucas.pk, CACHE_SUFFIX)
        assert TenantCache.has_for_city(itapema.pk, CACHE_SUFFIX)
        assert not TenantCache.has_for_city(paused.pk, CACHE_SUFFIX)
        assert get_current_tenant() is None


# ============================================================================
# CONTRACT CONFORMANCE
# ============================================================================

@pytest.fixture
def conformance_app():
    app = Celery('conformance', set_as_current=False)

    @app.task(name='conformance.bare')
    def bare():
        return None

    @app.task(name='conformance.global', base=GlobalTask)
    def global_task():
        return None

    @app.task(name='conformance.tenant', base=TenantAwareTask)
    def tenant_task():
        return None

    return app


class TestTaskConformance:

    def test_project_tasks_all_declare_contract(self):
        assert find_tasks_without_tenancy_contract() == []

    def test_bare_task_is_reported(self, conformance_app):
        assert find_tasks_without_tenancy_contract(conformance_app) == ['conformance.bare']

    def test_assert_raises_contract_violation(self, conformance_app):
        with pytest.raises(TenantContractViolation) as excinfo:
            assert_tenancy_contracts(conformance_app)

        assert excinfo.value.code == 'TENANT_CONTRACT_VIOLATION'
        assert excinfo.value.context == {'tasks': ['conformance.bare']}
        assert 'conformance.bare' in excinfo.value.message

    def test_assert_passes_for_project(self):
        assert assert_tenancy_contracts() is None

    def test_system_check_reports_e001(self):
        with patch('tenancy.jobs.find_tasks_without_tenancy_contract', return_value=['app.bare']):
            errors = check_task_tenancy_contracts()

        assert len(errors) == 1
        assert errors[0].id == 'tenancy.E001'
        assert 'app.bare' in errors[0].msg

    def test_system_check_passes_for_project(self):
        assert checks.run_checks(tags=['tenancy']) == []
