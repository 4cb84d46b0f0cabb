from rest_framework import serializers
from .models import Site, Auditorium


class AuditoriumSerializer(serializers.ModelSerializer):
    projector_count = serializers.SerializerMethodField()

    class Meta:
        model = Auditorium
        fields = ['id', 'site', 'audi_number', 'name', 'capacity', 'screen_size', 'status', 'notes',
                  'projector_count', 'created_at', 'updated_at']
        read_only_fields = ['site']

    def get_projector_count(self, obj):
        return obj.projectors.count()


class SiteSerializer(serializers.ModelSerializer):
    auditorium_count = serializers.SerializerMethodField()

    class Meta:
        model = Site
        fields = ['id', 'name', 'site_code', 'region', 'state', 'city', 'address', 'pincode',
                  'contact_name', 'contact_phone', 'contact_email', 'status',
                  'auditorium_count', 'created_at', 'updated_at']

    def get_auditorium_count(self, obj):
        return obj.auditoriums.count()


class SiteDetailSerializer(SiteSerializer):
    auditoriums = AuditoriumSerializer(many=True, read_only=True)

    class Meta(SiteSerializer.Meta):
        fields = SiteSerializer.Meta.fields + ['auditoriums']
