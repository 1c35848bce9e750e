"""
Tenant-aware decorators for view access control.

Both decorators work for function-based views and class-based views
(including DRF ``APIView`` subclasses, via ``dispatch``) and answer with
``{"success": false, "error": CODE, "message": ...}`` JSON.
"""

import logging
from functools import wraps
from typing import Callable, Optional

from django.http import JsonResponse

from .exceptions import ModuleDisabled, TenancyError, TenantRequired
from .incidents import record_module_denied
from .modules import ModuleResolver, normalize_module_key

logger = logging.getLogger(__name__)


def tenancy_error_response(error: TenancyError) -> JsonResponse:
    return JsonResponse(error.as_payload(), status=error.status_code)


def _guard(view_func_or_class, check: Callable[[object], Optional[TenancyError]]):
    """Run ``check(request)`` before the view; a returned error short-circuits it."""
    if isinstance(view_func_or_class, type):
        original_dispatch = view_func_or_class.dispatch

        @wraps(original_dispatch)
        def dispatch_wrapper(self, request, *args, **kwargs):
            error = check(request)
            if error is not None:
                return tenancy_error_response(error)
            return original_dispatch(self, request, *args, **kwargs)

        view_func_or_class.dispatch = dispatch_wrapper
        return view_func_or_class

    @wraps(view_func_or_class)
    def wrapper(request, *args, **kwargs):
        error = check(request)
        if error is not None:
            return tenancy_error_response(error)
        return view_func_or_class(request, *args, **kwargs)

    return wrapper


def require_explicit_tenant(view_func_or_class):
    """
    Reject requests whose tenant was not explicitly identified.

    A tenant obtained only through the default-city fallback is refused with
    400 ``TENANT_REQUIRED`` even though a city was found.

    Usage:
        @require_explicit_tenant
        class CanonicalCityConfigView(APIView):
            ...
    """
    def check(request):
        tenant = getattr(request, 'tenant', None)
        if tenant is None or tenant.is_fallback:
            return TenantRequired(
                'Cidade não informada. Use a rota canônica /{uf}/{cidade} ou o domínio da cidade.'
            )
        return None

    return _guard(view_func_or_class, check)


def require_module(module_key: str):
    """
    Restrict a view to cities with ``module_key`` enabled.

    Legacy identifiers are accepted (``denuncias`` == ``reports``).

    Usage:
        @require_module('reports')
        class ReportListCreateView(generics.ListCreateAPIView):
            ...
    """
    def check(request):
        key = normalize_module_key(module_key)
        tenant = getattr(request, 'tenant', None)
        if tenant is None:
            return TenantRequired()
        if not ModuleResolver.is_enabled(key, tenant.city):
            record_module_denied(request, tenant.city, key)
            return ModuleDisabled(f'O módulo "{key}" não está habilitado para esta cidade.', module_key=key)
        return None

    def decorator(view_func_or_class):
        return _guard(view_func_or_class, check)

    return decorator
