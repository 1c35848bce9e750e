"""
Tenancy exceptions.

Every error carries a stable ``code`` and an HTTP ``status_code`` so views
and middleware can render them as
``{"success": false, "error": <code>, "message": <text>}``.
"""


class TenancyError(Exception):
    """Base class for tenancy failures."""

    code = 'TENANCY_ERROR'
    status_code = 500
    default_message = 'Tenancy error.'

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def as_payload(self) -> dict:
        return {
            'success': False,
            'error': self.code,
            'message': self.message,
        }


class TenantRequired(TenancyError):
    """No trustworthy tenant could be resolved for a route that mandates one."""

    code = 'TENANT_REQUIRED'
    status_code = 400
    default_message = 'Tenant city is required.'


class TenantNotFound(TenancyError):
    """A tenant id was supplied but does not match any known city."""

    code = 'TENANT_NOT_FOUND'
    status_code = 404
    default_message = 'Cidade não encontrada.'


class ModuleDisabled(TenancyError):
    """The resolved tenant exists but the requested module is off."""

    code = 'MODULE_DISABLED'
    status_code = 403
    default_message = 'Module is not enabled for this city.'


class CityReadOnly(TenancyError):
    """Writes against a paused city."""

    code = 'CITY_READ_ONLY'
    status_code = 403
    default_message = 'Esta cidade está em modo somente leitura.'


class MissingTenantError(TenancyError):
    """A tenant-scoped record was created without city_id and without context."""

    code = 'TENANT_SCOPE_VIOLATION'
    status_code = 400
    default_message = 'Tenant-scoped record requires explicit city_id.'


class TenantJobContextError(TenancyError):
    """A tenant-aware job could not establish its tenant context."""

    code = 'TENANT_JOB_CONTEXT'


class MissingJobCityError(TenantJobContextError):
    default_message = 'Tenant-aware job requires city_id.'


class JobCityNotFoundError(TenantJobContextError, TenantNotFound):
    code = 'TENANT_NOT_FOUND'
    status_code = 404

    def __init__(self, city_id, **context):
        self.city_id = city_id
        super().__init__(
            f'Tenant city not found for queued job: {city_id}',
            city_id=city_id,
            **context,
        )


class TenantContractViolation(TenancyError):
    """A queued task type declares neither the tenant-aware nor the global contract."""

    code = 'TENANT_CONTRACT_VIOLATION'
