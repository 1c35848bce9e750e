"""
Tenancy API URLs, mounted under ``/api/v1/``.
"""

from django.urls import path

from . import views

app_name = 'tenancy'

urlpatterns = [
    path('config/', views.CityConfigView.as_view(), name='config'),
    path('modules/', views.EnabledModulesView.as_view(), name='modules'),
    path('cities/', views.CityListView.as_view(), name='cities'),
    path('<str:uf>/<slug:city>/config/', views.CanonicalCityConfigView.as_view(), name='canonical-config'),
]
