from django.conf import settings
from rest_framework import serializers

from .models import ServiceVisit, ServicePhoto, ServiceReport


class ServicePhotoSerializer(serializers.ModelSerializer):
    image_url = serializers.SerializerMethodField()
    uploaded_by_username = serializers.CharField(source='uploaded_by.username', read_only=True, allow_null=True)

    class Meta:
        model = ServicePhoto
        fields = ['id', 'visit', 'category', 'folder', 'image', 'image_url', 'original_name',
                  'description', 'file_size', 'uploaded_by', 'uploaded_by_username', 'uploaded_at']
        read_only_fields = ['visit', 'folder', 'original_name', 'file_size', 'uploaded_by', 'uploaded_at']

    def get_image_url(self, obj):
        if not obj.image:
            return None
        request = self.context.get('request')
        url = obj.image.url
        return request.build_absolute_uri(url) if request else url

    def validate_image(self, value):
        content_type = getattr(value, 'content_type', '') or ''
        if not content_type.startswith('image/'):
            raise serializers.ValidationError('Only image files are allowed')
        if value.size > settings.PHOTO_UPLOAD_MAX_BYTES:
            limit_mb = settings.PHOTO_UPLOAD_MAX_BYTES // (1024 * 1024)
            raise serializers.ValidationError(f'Image exceeds the {limit_mb}MB upload limit')
        return value


class ServiceVisitSerializer(serializers.ModelSerializer):
    fse_name = serializers.SerializerMethodField()
    site_name = serializers.CharField(source='site.name', read_only=True)
    projector_serial = serializers.CharField(source='projector.serial_number', read_only=True)
    projector_model = serializers.CharField(source='projector.model', read_only=True)
    photo_count = serializers.SerializerMethodField()

    class Meta:
        model = ServiceVisit
        fields = ['id', 'visit_id', 'fse', 'fse_name', 'site', 'site_name', 'projector',
                  'projector_serial', 'projector_model', 'visit_type', 'scheduled_date',
                  'actual_date', 'start_time', 'end_time', 'status', 'priority', 'description',
                  'work_performed', 'unable_to_complete_reason', 'unable_to_complete_category',
                  'photo_count', 'created_at', 'updated_at']
        read_only_fields = ['visit_id', 'status', 'start_time', 'end_time', 'actual_date',
                            'unable_to_complete_reason', 'unable_to_complete_category']

    def get_fse_name(self, obj):
        if not obj.fse:
            return None
        return obj.fse.get_full_name() or obj.fse.username

    def get_photo_count(self, obj):
        return obj.photos.count()

    def validate(self, attrs):
        site = attrs.get('site', getattr(self.instance, 'site', None))
        projector = attrs.get('projector', getattr(self.instance, 'projector', None))
        if site and projector and projector.site_id != site.id:
            raise serializers.ValidationError({'projector': 'Projector is not installed at the selected site'})
        return attrs


class ServiceVisitDetailSerializer(ServiceVisitSerializer):
    photos = ServicePhotoSerializer(many=True, read_only=True)

    class Meta(ServiceVisitSerializer.Meta):
        fields = ServiceVisitSerializer.Meta.fields + ['photos']


class ServiceReportSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)
    visit_code = serializers.CharField(source='visit.visit_id', read_only=True, allow_null=True)

    class Meta:
        model = ServiceReport
        fields = '__all__'
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def validate(self, attrs):
        start = attrs.get('service_start_time', getattr(self.instance, 'service_start_time', None))
        end = attrs.get('service_end_time', getattr(self.instance, 'service_end_time', None))
        if start and end and end < start:
            raise serializers.ValidationError({'service_end_time': 'Service end time cannot be before start time'})
        return attrs


class ServiceReportListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for report listings and search results"""
    class Meta:
        model = ServiceReport
        fields = ['id', 'report_number', 'report_type', 'date', 'site_name', 'engineer_name',
                  'projector_serial', 'projector_model', 'brand', 'replacement_required', 'created_at']
