from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard-kpis/', views.dashboard_kpis, name='dashboard-kpis'),
    path('reports/export/rmas/', views.export_rmas, name='export-rmas'),
    path('reports/export/dtrs/', views.export_dtrs, name='export-dtrs'),
    path('reports/export/projectors/', views.export_projectors, name='export-projectors'),
    path('reports/export/service-reports/', views.export_service_reports, name='export-service-reports'),
    path('service-reports/<int:pk>/export/', views.service_report_export, name='service-report-export'),
]
