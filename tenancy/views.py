"""
Tenancy API views.

- CityConfigView: bootstrap config of the resolved city (any source)
- CanonicalCityConfigView: same payload, explicit tenant required
- EnabledModulesView: enabled modules of the resolved city
- CityListView: public list of active cities (no tenant)
- health: liveness check
"""

from django.http import JsonResponse
from django.utils import timezone
from rest_framework import views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .decorators import require_explicit_tenant
from .exceptions import TenantRequired
from .models import City
from .modules import ModuleResolver
from .serializers import CitySummarySerializer, ModuleStateSerializer
from .services import TenantConfigService


def health(request):
    return JsonResponse({'status': 'ok'})


class TenantAPIView(views.APIView):
    """Base view for endpoints that need ``request.tenant``."""

    permission_classes = [AllowAny]

    def get_tenant(self, request):
        tenant = getattr(request, 'tenant', None)
        if tenant is None:
            raise TenantRequired()
        return tenant

    def handle_exception(self, exc):
        if isinstance(exc, TenantRequired):
            return Response(exc.as_payload(), status=exc.status_code)
        return super().handle_exception(exc)


class CityConfigView(TenantAPIView):
    """
    Tenant configuration for frontend bootstrap.

    Single source of truth for city identity, brand, enabled modules and
    geo defaults.
    """

    def get(self, request, *args, **kwargs):
        tenant = self.get_tenant(request)
        response = Response({
            'success': True,
            'data': TenantConfigService.get_config(tenant.city),
            'meta': {
                'requestId': request.headers.get('X-Request-Id'),
                'resolvedBy': str(tenant.source),
                'cachedAt': timezone.now().isoformat(),
            },
        })
        response['Cache-Control'] = 'private, max-age=120, stale-while-revalidate=30'
        response['Vary'] = 'Host, X-City'
        return response


@require_explicit_tenant
class CanonicalCityConfigView(CityConfigView):
    """``/api/v1/{uf}/{city}/config/``: fallback resolution is refused."""


class EnabledModulesView(TenantAPIView):

    def get(self, request, *args, **kwargs):
        tenant = self.get_tenant(request)
        modules = ModuleResolver.enabled_modules(tenant.city)
        return Response({
            'success': True,
            'data': ModuleStateSerializer(modules, many=True).data,
        })


class CityListView(views.APIView):
    """Active cities. Global endpoint, no tenant context required."""

    permission_classes = [AllowAny]

    def get(self, request):
        cities = City.objects.active().order_by('name')
        data = CitySummarySerializer(cities, many=True).data
        response = Response({'success': True, 'data': data, 'meta': {'count': len(data)}})
        response['Cache-Control'] = 'public, max-age=3600'
        return response
