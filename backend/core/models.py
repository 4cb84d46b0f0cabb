from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with a service-desk role"""
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('rma_manager', 'RMA Manager'),
        ('technical_head', 'Technical Head'),
        ('technician', 'Technician'),
        ('engineer', 'Engineer'),
        ('fse', 'Field Service Engineer'),
    ]

    phone = models.CharField(max_length=20, blank=True, null=True)
    # roles that work DTRs in the field
    FIELD_ROLES = ('technician', 'engineer')

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='fse')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    def has_role(self, *roles):
        """Superusers pass every role check"""
        return self.is_superuser or self.role in roles


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('view', 'View'),
        ('status_change', 'Status Change'),
        ('photo_upload', 'Photo Upload'),
        ('dtr_assign', 'DTR Assigned'),
        ('dtr_troubleshoot', 'DTR Troubleshooting Step'),
        ('dtr_convert', 'DTR Converted to RMA'),
        ('report_export', 'Report Exported'),
        ('bulk_delete', 'Bulk Delete'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., report number, serial number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., DTR case id, RMA number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_created_idx'),
            models.Index(fields=['action'], name='audit_action_idx'),
            models.Index(fields=['model_name'], name='audit_model_idx'),
            models.Index(fields=['object_reference'], name='audit_reference_idx'),
        ]
