"""
Reports API Views.

Every endpoint is scoped to the resolved city and answers 403
``MODULE_DISABLED`` when the ``reports`` module is off for it.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions

from tenancy.decorators import require_module

from .models import CitizenReport
from .serializers import CitizenReportSerializer


@require_module('reports')
class ReportListCreateView(generics.ListCreateAPIView):
    """
    Reports of the current city.

    GET  /api/v1/reports/
    POST /api/v1/reports/
    GET  /api/v1/<uf>/<city>/reports/
    """
    serializer_class = CitizenReportSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status']

    def get_queryset(self):
        return CitizenReport.objects.for_current_city().select_related('bairro')

    def perform_create(self, serializer):
        user = self.request.user
        serializer.save(author=user if user.is_authenticated else None)


@require_module('denuncias')
class ReportDetailView(generics.RetrieveAPIView):
    """
    GET /api/v1/reports/<id>/

    Reports of other cities are 404, never visible.
    """
    serializer_class = CitizenReportSerializer
    permission_classes = [permissions.AllowAny]

    def get_queryset(self):
        return CitizenReport.objects.for_current_city().select_related('bairro')
