from django.contrib import admin
from .models import Site, Auditorium


class AuditoriumInline(admin.TabularInline):
    model = Auditorium
    extra = 0


@admin.register(Site)
class SiteAdmin(admin.ModelAdmin):
    list_display = ['name', 'site_code', 'region', 'state', 'city', 'status', 'created_at']
    list_filter = ['region', 'status', 'created_at']
    search_fields = ['name', 'site_code', 'city']
    ordering = ['name']
    inlines = [AuditoriumInline]


@admin.register(Auditorium)
class AuditoriumAdmin(admin.ModelAdmin):
    list_display = ['name', 'audi_number', 'site', 'capacity', 'status']
    list_filter = ['status']
    search_fields = ['name', 'audi_number', 'site__name']
