from django.urls import path
from .views import (
    site_list_create, site_detail, site_stats,
    auditorium_list_create, auditorium_detail
)

urlpatterns = [
    path('sites/', site_list_create, name='site-list-create'),
    path('sites/<int:pk>/', site_detail, name='site-detail'),
    path('sites/<int:pk>/stats/', site_stats, name='site-stats'),
    path('sites/<int:site_pk>/auditoriums/', auditorium_list_create, name='auditorium-list-create'),
    path('sites/<int:site_pk>/auditoriums/<int:pk>/', auditorium_detail, name='auditorium-detail'),
]
