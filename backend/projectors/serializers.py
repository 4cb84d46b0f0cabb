from rest_framework import serializers
from .models import Projector


class ProjectorSerializer(serializers.ModelSerializer):
    site_name = serializers.CharField(source='site.name', read_only=True)
    site_code = serializers.CharField(source='site.site_code', read_only=True)
    auditorium_name = serializers.SerializerMethodField()
    warranty_status = serializers.CharField(read_only=True)

    class Meta:
        model = Projector
        fields = ['id', 'projector_number', 'serial_number', 'model', 'brand', 'part_number',
                  'site', 'site_name', 'site_code', 'auditorium', 'auditorium_name',
                  'install_date', 'warranty_end', 'warranty_status', 'status', 'condition',
                  'last_service', 'next_service', 'total_services', 'hours_used', 'expected_life',
                  'created_at', 'updated_at']
        read_only_fields = ['total_services', 'last_service']

    def get_auditorium_name(self, obj):
        return obj.auditorium.name if obj.auditorium else None

    def validate(self, attrs):
        site = attrs.get('site', getattr(self.instance, 'site', None))
        auditorium = attrs.get('auditorium', getattr(self.instance, 'auditorium', None))
        if auditorium and site and auditorium.site_id != site.id:
            raise serializers.ValidationError({'auditorium': 'Auditorium does not belong to the selected site'})
        install_date = attrs.get('install_date', getattr(self.instance, 'install_date', None))
        warranty_end = attrs.get('warranty_end', getattr(self.instance, 'warranty_end', None))
        if install_date and warranty_end and warranty_end < install_date:
            raise serializers.ValidationError({'warranty_end': 'Warranty end cannot be before install date'})
        return attrs
