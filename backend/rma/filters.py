import django_filters
from django.db.models import Q
from .models import DTR, RMA


class DTRFilter(django_filters.FilterSet):
    """Filter for DTR list using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    priority = django_filters.CharFilter(field_name='priority', lookup_expr='exact')
    site_name = django_filters.CharFilter(field_name='site_name', lookup_expr='icontains')
    serial_number = django_filters.CharFilter(field_name='serial_number', lookup_expr='icontains')
    call_status = django_filters.CharFilter(field_name='call_status', lookup_expr='iexact')
    case_severity = django_filters.CharFilter(field_name='case_severity', lookup_expr='iexact')
    assigned_to = django_filters.NumberFilter(field_name='assigned_to_id', lookup_expr='exact')
    start_date = django_filters.DateFilter(field_name='complaint_date', lookup_expr='date__gte')
    end_date = django_filters.DateFilter(field_name='complaint_date', lookup_expr='date__lte')

    class Meta:
        model = DTR
        fields = ['search', 'status', 'priority', 'site_name', 'serial_number',
                  'call_status', 'case_severity', 'assigned_to', 'start_date', 'end_date']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(case_id__icontains=value) |
            Q(serial_number__icontains=value) |
            Q(site_name__icontains=value) |
            Q(complaint_description__icontains=value)
        )


class RMAFilter(django_filters.FilterSet):
    """Filter for RMA list using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    case_status = django_filters.CharFilter(field_name='case_status', lookup_expr='exact')
    approval_status = django_filters.CharFilter(field_name='approval_status', lookup_expr='exact')
    priority = django_filters.CharFilter(field_name='priority', lookup_expr='exact')
    warranty_status = django_filters.CharFilter(field_name='warranty_status', lookup_expr='exact')
    site_name = django_filters.CharFilter(field_name='site_name', lookup_expr='icontains')
    serial_number = django_filters.CharFilter(field_name='serial_number', lookup_expr='icontains')
    start_date = django_filters.DateFilter(field_name='ascomp_raised_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='ascomp_raised_date', lookup_expr='lte')

    class Meta:
        model = RMA
        fields = ['search', 'case_status', 'approval_status', 'priority', 'warranty_status',
                  'site_name', 'serial_number', 'start_date', 'end_date']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(rma_number__icontains=value) |
            Q(call_log_number__icontains=value) |
            Q(serial_number__icontains=value) |
            Q(site_name__icontains=value) |
            Q(product_name__icontains=value)
        )
