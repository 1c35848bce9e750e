"""
URL configuration for the Cidade Conectada project.

City-scoped API routes live under ``/api/v1/`` (tenant from host, header
or payload) and ``/api/v1/<uf>/<city>/`` (tenant from the path).
"""

from django.contrib import admin
from django.urls import include, path

from tenancy.views import health

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health, name='health'),
    path('api/v1/', include('tenancy.urls')),
    path('api/v1/', include('reports.urls')),
]
