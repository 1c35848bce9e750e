"""
System checks for the tenancy app.

``tenancy.E001``: a registered Celery task declares neither the
tenant-aware nor the global contract (see ``cidade.celery_tasks_base``).
"""

from django.core import checks


@checks.register('tenancy')
def check_task_tenancy_contracts(app_configs=None, **kwargs):
    from .exceptions import TenantContractViolation
    from .jobs import assert_tenancy_contracts

    try:
        assert_tenancy_contracts()
    except TenantContractViolation as exc:
        return [
            checks.Error(
                f'Celery task "{name}" declares no tenancy contract.',
                hint='Use base=TenantAwareTask or base=GlobalTask.',
                obj=name,
                id='tenancy.E001',
            )
            for name in exc.context['tasks']
        ]
    return []
