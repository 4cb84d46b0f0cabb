from django.urls import path
from .views import (
    dtr_list_create, dtr_detail, dtr_add_troubleshooting, dtr_assign_technician,
    dtr_convert_to_rma, dtr_stats,
    rma_list_create, rma_detail, rma_by_status, rma_stats,
)

urlpatterns = [
    # DTR
    path('dtrs/', dtr_list_create, name='dtr-list-create'),
    path('dtrs/stats/', dtr_stats, name='dtr-stats'),
    path('dtrs/<int:pk>/', dtr_detail, name='dtr-detail'),
    path('dtrs/<int:pk>/troubleshooting/', dtr_add_troubleshooting, name='dtr-troubleshooting'),
    path('dtrs/<int:pk>/assign-technician/', dtr_assign_technician, name='dtr-assign-technician'),
    path('dtrs/<int:pk>/convert-to-rma/', dtr_convert_to_rma, name='dtr-convert-to-rma'),

    # RMA
    path('rmas/', rma_list_create, name='rma-list-create'),
    path('rmas/stats/', rma_stats, name='rma-stats'),
    path('rmas/status/<str:case_status>/', rma_by_status, name='rma-by-status'),
    path('rmas/<int:pk>/', rma_detail, name='rma-detail'),
]
