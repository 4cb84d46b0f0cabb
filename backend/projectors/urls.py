from django.urls import path
from .views import (
    projector_list_create, projector_detail,
    projector_by_serial, projector_status_summary
)

urlpatterns = [
    path('projectors/', projector_list_create, name='projector-list-create'),
    path('projectors/status-summary/', projector_status_summary, name='projector-status-summary'),
    path('projectors/serial/<str:serial_number>/', projector_by_serial, name='projector-by-serial'),
    path('projectors/<int:pk>/', projector_detail, name='projector-detail'),
]
