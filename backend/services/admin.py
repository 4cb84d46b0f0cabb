from django.contrib import admin
from .models import ServiceVisit, ServicePhoto, ServiceReport


class ServicePhotoInline(admin.TabularInline):
    model = ServicePhoto
    extra = 0
    readonly_fields = ['folder', 'file_size', 'uploaded_at']


@admin.register(ServiceVisit)
class ServiceVisitAdmin(admin.ModelAdmin):
    list_display = ['visit_id', 'site', 'projector', 'fse', 'visit_type', 'scheduled_date', 'status', 'priority']
    list_filter = ['status', 'visit_type', 'priority']
    search_fields = ['visit_id', 'projector__serial_number', 'site__name']
    inlines = [ServicePhotoInline]


@admin.register(ServiceReport)
class ServiceReportAdmin(admin.ModelAdmin):
    list_display = ['report_number', 'report_type', 'date', 'site_name', 'projector_serial', 'engineer_name']
    list_filter = ['report_type', 'replacement_required']
    search_fields = ['report_number', 'site_name', 'projector_serial', 'engineer_name']
    date_hierarchy = 'date'
