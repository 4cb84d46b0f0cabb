"""
URL configuration for the ProjectorCare backend.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "ProjectorCare Admin Panel"
admin.site.site_title = "ProjectorCare Admin Portal"
admin.site.index_title = "Projector warranty and service management"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.sites.urls')),
    path('api/v1/', include('backend.projectors.urls')),
    path('api/v1/', include('backend.services.urls')),
    path('api/v1/', include('backend.rma.urls')),
    path('api/v1/', include('backend.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
