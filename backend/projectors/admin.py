from django.contrib import admin
from .models import Projector


@admin.register(Projector)
class ProjectorAdmin(admin.ModelAdmin):
    list_display = ['serial_number', 'projector_number', 'model', 'brand', 'site', 'status', 'warranty_end', 'last_service']
    list_filter = ['status', 'condition', 'brand']
    search_fields = ['serial_number', 'projector_number', 'model', 'site__name']
    ordering = ['serial_number']
