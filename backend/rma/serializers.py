from rest_framework import serializers
from .models import DTR, RMA


class TroubleshootingStepSerializer(serializers.Serializer):
    description = serializers.CharField()
    outcome = serializers.CharField()
    attachments = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class DTRSerializer(serializers.ModelSerializer):
    assigned_to_name = serializers.SerializerMethodField()
    rma_number = serializers.CharField(source='rma.rma_number', read_only=True, allow_null=True)

    class Meta:
        model = DTR
        fields = ['id', 'case_id', 'projector', 'serial_number', 'site_name', 'site_code', 'region',
                  'complaint_description', 'complaint_date', 'error_date', 'unit_model', 'problem_name',
                  'opened_by', 'priority', 'status', 'call_status', 'case_severity',
                  'assigned_to', 'assigned_to_name', 'assigned_date', 'action_taken', 'remarks', 'notes',
                  'troubleshooting_steps', 'workflow_history', 'closed_reason', 'rma', 'rma_number',
                  'created_at', 'updated_at']
        read_only_fields = ['case_id', 'projector', 'site_name', 'site_code', 'region',
                            'troubleshooting_steps', 'workflow_history', 'rma', 'assigned_date']

    def get_assigned_to_name(self, obj):
        if not obj.assigned_to:
            return None
        return obj.assigned_to.get_full_name() or obj.assigned_to.username

    def validate_status(self, value):
        if value == 'Shifted to RMA' and not (self.instance and self.instance.rma_id):
            raise serializers.ValidationError('Use the convert-to-RMA action to shift a DTR to RMA')
        return value


class DTRCreateSerializer(serializers.ModelSerializer):
    """Input for new DTRs; site details are copied from the projector"""

    class Meta:
        model = DTR
        fields = ['serial_number', 'complaint_description', 'opened_by', 'priority', 'error_date',
                  'unit_model', 'problem_name', 'action_taken', 'remarks', 'notes',
                  'call_status', 'case_severity', 'assigned_to']
        extra_kwargs = {'opened_by': {'required': False}}


class RMASerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)
    dtr_case_id = serializers.CharField(source='originated_from_dtr.case_id', read_only=True, allow_null=True)
    turnaround_days = serializers.SerializerMethodField()

    class Meta:
        model = RMA
        fields = '__all__'
        read_only_fields = ['rma_number', 'created_by', 'originated_from_dtr', 'created_at', 'updated_at']

    def get_turnaround_days(self, obj):
        if obj.completed_date and obj.ascomp_raised_date:
            return (obj.completed_date - obj.ascomp_raised_date).days
        return None

    def validate(self, attrs):
        raised = attrs.get('ascomp_raised_date', getattr(self.instance, 'ascomp_raised_date', None))
        error_date = attrs.get('customer_error_date', getattr(self.instance, 'customer_error_date', None))
        if raised and error_date and error_date > raised:
            raise serializers.ValidationError({'customer_error_date': 'Customer error date cannot be after the RMA raised date'})
        return attrs
