from django.urls import path
from .views import (
    visit_list_create, visit_detail, visit_start, visit_complete, visit_unable_to_complete,
    visit_photos, photo_delete, report_list_create, report_detail,
)

urlpatterns = [
    path('service-visits/', visit_list_create, name='visit-list-create'),
    path('service-visits/<int:pk>/', visit_detail, name='visit-detail'),
    path('service-visits/<int:pk>/start/', visit_start, name='visit-start'),
    path('service-visits/<int:pk>/complete/', visit_complete, name='visit-complete'),
    path('service-visits/<int:pk>/unable-to-complete/', visit_unable_to_complete, name='visit-unable-to-complete'),
    path('service-visits/<int:pk>/photos/', visit_photos, name='visit-photos'),
    path('service-photos/<int:pk>/', photo_delete, name='photo-delete'),
    path('service-reports/', report_list_create, name='report-list-create'),
    path('service-reports/<int:pk>/', report_detail, name='report-detail'),
]
