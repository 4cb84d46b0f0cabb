import django_filters
from django.db.models import Q
from django.utils import timezone
from .models import Projector


class ProjectorFilter(django_filters.FilterSet):
    """Filter for Projector list using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    site = django_filters.NumberFilter(field_name='site_id', lookup_expr='exact')
    brand = django_filters.CharFilter(field_name='brand', lookup_expr='iexact')
    model = django_filters.CharFilter(field_name='model', lookup_expr='icontains')
    warranty = django_filters.CharFilter(method='filter_warranty', label='Warranty status')

    class Meta:
        model = Projector
        fields = ['search', 'status', 'site', 'brand', 'model', 'warranty']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(serial_number__icontains=value) |
            Q(projector_number__icontains=value) |
            Q(model__icontains=value) |
            Q(site__name__icontains=value)
        )

    def filter_warranty(self, queryset, name, value):
        today = timezone.localdate()
        if value == 'active':
            return queryset.filter(warranty_end__gte=today)
        if value == 'expired':
            return queryset.filter(warranty_end__lt=today)
        return queryset
