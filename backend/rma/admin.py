from django.contrib import admin
from .models import DTR, RMA


@admin.register(DTR)
class DTRAdmin(admin.ModelAdmin):
    list_display = ['case_id', 'serial_number', 'site_name', 'priority', 'status', 'assigned_to', 'complaint_date']
    list_filter = ['status', 'priority', 'case_severity']
    search_fields = ['case_id', 'serial_number', 'site_name', 'complaint_description']
    readonly_fields = ['case_id', 'created_at', 'updated_at']


@admin.register(RMA)
class RMAAdmin(admin.ModelAdmin):
    list_display = ['rma_number', 'serial_number', 'site_name', 'case_status', 'priority', 'ascomp_raised_date']
    list_filter = ['case_status', 'approval_status', 'priority', 'warranty_status']
    search_fields = ['rma_number', 'call_log_number', 'serial_number', 'site_name']
    readonly_fields = ['rma_number', 'created_at', 'updated_at']
    date_hierarchy = 'ascomp_raised_date'
