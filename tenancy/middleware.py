"""
Tenancy Middleware - per-request tenant resolution and binding.

- TenantContextMiddleware: resolves the city of every request, binds it
  for the lifetime of the request and stamps the tenant response headers
- AdminTenantSwitcherMiddleware: picks the city an admin user works on
  (moderators are locked to their assigned city, superusers switch freely)

Both must run after AuthenticationMiddleware: city visibility depends on
the user's role.
"""

import logging
from typing import Optional

from django.http import HttpRequest, HttpResponse, HttpResponseRedirect

from .conf import TenancyConfig, get_config
from .context import ResolutionSource, ResolvedTenant, Unresolved, tenant_context
from .decorators import tenancy_error_response
from .exceptions import CityReadOnly, TenantRequired
from .incidents import record_header_path_mismatch
from .registry import TenantRegistry
from .resolver import TenantResolver

logger = logging.getLogger(__name__)


SAFE_METHODS = ('GET', 'HEAD', 'OPTIONS')

TENANT_CITY_HEADER = 'X-Tenant-City'
TENANT_TIMEZONE_HEADER = 'X-Tenant-Timezone'
TENANT_KEY_HEADER = 'X-Tenant-Key'


def is_exempt_path(path: str, config: Optional[TenancyConfig] = None) -> bool:
    config = config or get_config()
    return any(path.startswith(prefix) for prefix in config.exempt_paths)


def add_tenant_headers(response: HttpResponse, tenant: ResolvedTenant) -> HttpResponse:
    city = tenant.city
    response[TENANT_CITY_HEADER] = city.slug
    response[TENANT_TIMEZONE_HEADER] = city.effective_timezone
    response[TENANT_KEY_HEADER] = city.tenant_key
    return response


class TenantContextMiddleware:
    """
    Resolve and bind the tenant of each request.

    Sets ``request.tenant`` (a ``ResolvedTenant`` or None) and
    ``request.city``. Requests outside the exempt paths that cannot be
    resolved get 400 ``TENANT_REQUIRED``; unsafe methods against a paused
    city get 403 ``CITY_READ_ONLY``.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.resolver = TenantResolver()

    def __call__(self, request: HttpRequest) -> HttpResponse:
        config = get_config()
        exempt = is_exempt_path(request.path_info, config)

        hints = self.resolver.extract_hints(request)
        outcome = self.resolver.resolve_hints(hints, user=getattr(request, 'user', None))

        if isinstance(outcome, Unresolved):
            request.tenant = None
            request.city = None
            if exempt:
                return self.get_response(request)
            logger.warning(
                'tenant_unresolved',
                extra={'path': request.path_info, 'host': hints.host, 'reason': outcome.reason},
            )
            return tenancy_error_response(TenantRequired())

        request.tenant = outcome
        request.city = outcome.city

        if hints.has_header_path_mismatch:
            record_header_path_mismatch(request, hints.header_slug, hints.path_slug, resolved_city=outcome.city)

        if outcome.city.is_read_only and request.method not in SAFE_METHODS and not exempt:
            return add_tenant_headers(tenancy_error_response(CityReadOnly()), outcome)

        with tenant_context(outcome):
            response = self.get_response(request)

        return add_tenant_headers(response, outcome)


class AdminTenantSwitcherMiddleware:
    """
    Bind the admin tenant for staff users under ``/admin/``.

    - moderators (non-superusers with a StaffCityAssignment) are locked to
      their city, source ``admin_user_lock``
    - superusers choose with ``?tenant_city=<slug>``; the choice is kept in
      the session, source ``admin_switcher``, and the request is redirected
      without the parameter; without a choice the session city, the request
      tenant and then the first active city are used

    The selection is exposed as ``request.admin_tenant``.
    """

    ADMIN_PREFIX = '/admin/'
    SESSION_KEY = 'admin.tenant_city_id'
    QUERY_PARAM = 'tenant_city'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request.admin_tenant = None
        user = getattr(request, 'user', None)
        if (
            not request.path_info.startswith(self.ADMIN_PREFIX)
            or user is None
            or not user.is_authenticated
            or not user.is_staff
        ):
            return self.get_response(request)

        tenant = self.resolve_admin_tenant(request)
        request.admin_tenant = tenant

        if self.QUERY_PARAM in request.GET:
            # Changelists reject unknown query params; drop ours once applied.
            query = request.GET.copy()
            query.pop(self.QUERY_PARAM)
            target = request.path + (f'?{query.urlencode()}' if query else '')
            return HttpResponseRedirect(target)

        if tenant is None:
            return self.get_response(request)

        with tenant_context(tenant):
            return self.get_response(request)

    def resolve_admin_tenant(self, request) -> Optional[ResolvedTenant]:
        user = request.user

        if not user.is_superuser:
            from .models import StaffCityAssignment

            assignment = (
                StaffCityAssignment.objects.select_related('city').filter(user=user).first()
            )
            if assignment is None:
                return None
            return ResolvedTenant(assignment.city, ResolutionSource.ADMIN_USER_LOCK)

        slug = request.GET.get(self.QUERY_PARAM)
        if slug:
            city = TenantRegistry.find_by_slug(slug, user=user)
            if city is not None:
                previous = request.session.get(self.SESSION_KEY)
                request.session[self.SESSION_KEY] = str(city.pk)
                logger.info(
                    'admin_tenant_switch',
                    extra={'user_id': user.pk, 'from_city_id': previous, 'to_city_id': str(city.pk)},
                )
                return ResolvedTenant(city, ResolutionSource.ADMIN_SWITCHER)

        city = TenantRegistry.find_by_id(request.session.get(self.SESSION_KEY))
        if city is None:
            request_tenant = getattr(request, 'tenant', None)
            city = request_tenant.city if request_tenant else TenantRegistry.first_active()
        if city is None:
            return None
        return ResolvedTenant(city, ResolutionSource.ADMIN_SWITCHER)
