"""
Reports API URLs, mounted under ``/api/v1/``.
"""

from django.urls import path

from . import views

app_name = 'reports'

urlpatterns = [
    path('reports/', views.ReportListCreateView.as_view(), name='report-list'),
    path('reports/<uuid:pk>/', views.ReportDetailView.as_view(), name='report-detail'),
    path('<str:uf>/<slug:city>/reports/', views.ReportListCreateView.as_view(), name='canonical-report-list'),
]
