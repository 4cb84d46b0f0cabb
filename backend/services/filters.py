import django_filters
from django.db.models import Q
from .models import ServiceVisit, ServiceReport


class ServiceVisitFilter(django_filters.FilterSet):
    """Filter for service visit list using django-filter"""

    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    site = django_filters.NumberFilter(field_name='site_id', lookup_expr='exact')
    fse = django_filters.NumberFilter(field_name='fse_id', lookup_expr='exact')
    date_from = django_filters.DateFilter(field_name='scheduled_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='scheduled_date', lookup_expr='lte')

    class Meta:
        model = ServiceVisit
        fields = ['status', 'site', 'fse', 'date_from', 'date_to']


class ServiceReportFilter(django_filters.FilterSet):
    """Filter for service report list and CSV export"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    serial = django_filters.CharFilter(field_name='projector_serial', lookup_expr='exact')
    report_type = django_filters.CharFilter(field_name='report_type', lookup_expr='exact')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = ServiceReport
        fields = ['search', 'serial', 'report_type', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(report_number__icontains=value) |
            Q(site_name__icontains=value) |
            Q(projector_serial__icontains=value) |
            Q(engineer_name__icontains=value)
        )
