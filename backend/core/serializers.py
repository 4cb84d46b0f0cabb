from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Setting, AuditLog
from .utils import is_admin_user


class UserSerializer(serializers.ModelSerializer):
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    display_name = serializers.SerializerMethodField()
    is_field_user = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'display_name', 'phone',
                  'role', 'role_display', 'is_field_user', 'is_active', 'is_staff', 'is_superuser',
                  'created_at', 'updated_at']
        read_only_fields = ['is_superuser', 'created_at', 'updated_at']

    def get_display_name(self, obj):
        return obj.get_full_name() or obj.username

    def get_is_field_user(self, obj):
        return obj.role in User.FIELD_ROLES


class RegisterSerializer(serializers.ModelSerializer):
    """Self-registration; accounts always start with the model's default role"""
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, is_active=True, **validated_data)


class UserCreateSerializer(RegisterSerializer):
    """Administrator-created accounts, role chosen explicitly"""
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)

    class Meta(RegisterSerializer.Meta):
        fields = RegisterSerializer.Meta.fields + ['role']


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, allow_null=True)
    user_role = serializers.CharField(source='user.role', read_only=True, allow_null=True)
    by_admin = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'user_role', 'by_admin', 'action', 'model_name', 'object_id',
                  'object_name', 'object_reference', 'changes', 'ip_address', 'created_at']

    def get_by_admin(self, obj):
        return bool(obj.user) and is_admin_user(obj.user)
