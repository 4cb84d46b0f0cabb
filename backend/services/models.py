import os
import uuid

from django.conf import settings
from django.db import models

from .utils import build_photo_folder, get_category_folder, generate_visit_id


class ServiceVisit(models.Model):
    """Scheduled or emergency visit by a field service engineer"""
    VISIT_TYPE_CHOICES = [
        ('Scheduled Maintenance', 'Scheduled Maintenance'),
        ('Emergency Repair', 'Emergency Repair'),
        ('Installation', 'Installation'),
        ('Calibration', 'Calibration'),
        ('Inspection', 'Inspection'),
        ('Training', 'Training'),
        ('AMC Service 1', 'AMC Service 1'),
        ('AMC Service 2', 'AMC Service 2'),
    ]
    STATUS_CHOICES = [
        ('Scheduled', 'Scheduled'),
        ('In Progress', 'In Progress'),
        ('Completed', 'Completed'),
        ('Cancelled', 'Cancelled'),
        ('Rescheduled', 'Rescheduled'),
        ('Unable to Complete', 'Unable to Complete'),
    ]
    PRIORITY_CHOICES = [
        ('Low', 'Low'),
        ('Medium', 'Medium'),
        ('High', 'High'),
        ('Critical', 'Critical'),
    ]
    UNABLE_CATEGORY_CHOICES = [
        ('Missing Parts', 'Missing Parts'),
        ('Equipment Failure', 'Equipment Failure'),
        ('Access Issues', 'Access Issues'),
        ('Customer Request', 'Customer Request'),
        ('Safety Concerns', 'Safety Concerns'),
        ('Technical Complexity', 'Technical Complexity'),
        ('Other', 'Other'),
    ]

    visit_id = models.CharField(max_length=50, unique=True, default=generate_visit_id)
    fse = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='service_visits')
    site = models.ForeignKey('sites.Site', on_delete=models.PROTECT, related_name='service_visits')
    projector = models.ForeignKey('projectors.Projector', on_delete=models.PROTECT, related_name='service_visits')
    visit_type = models.CharField(max_length=30, choices=VISIT_TYPE_CHOICES, default='Scheduled Maintenance')
    scheduled_date = models.DateField()
    actual_date = models.DateField(null=True, blank=True)
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='Scheduled')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='Medium')
    description = models.TextField(blank=True)
    work_performed = models.TextField(blank=True)
    unable_to_complete_reason = models.TextField(blank=True)
    unable_to_complete_category = models.CharField(max_length=30, choices=UNABLE_CATEGORY_CHOICES, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.visit_id

    class Meta:
        db_table = 'service_visits'
        ordering = ['-scheduled_date']
        indexes = [
            models.Index(fields=['status'], name='visit_status_idx'),
            models.Index(fields=['scheduled_date'], name='visit_scheduled_idx'),
        ]


def service_photo_upload_to(instance, filename):
    """Store photos under the folder derived from their category"""
    ext = os.path.splitext(filename)[1].lower()
    folder = build_photo_folder(instance.visit.projector.serial_number, instance.visit.visit_id, instance.category)
    return f"{folder}/{uuid.uuid4().hex[:12]}{ext}"


class ServicePhoto(models.Model):
    """Photo captured during a service visit"""
    visit = models.ForeignKey(ServiceVisit, on_delete=models.CASCADE, related_name='photos')
    category = models.CharField(max_length=50, default='Other')
    folder = models.CharField(max_length=50, editable=False)
    image = models.ImageField(upload_to=service_photo_upload_to)
    original_name = models.CharField(max_length=255, blank=True)
    description = models.CharField(max_length=500, blank=True)
    file_size = models.PositiveIntegerField(default=0)
    uploaded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    uploaded_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        self.folder = get_category_folder(self.category)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.visit.visit_id} / {self.folder} / {self.original_name}"

    class Meta:
        db_table = 'service_photos'
        ordering = ['uploaded_at']


class ServiceReport(models.Model):
    """Projector service report as filled in by the engineer on site"""
    REPORT_TYPE_CHOICES = [
        ('First', 'First'),
        ('Second', 'Second'),
        ('Third', 'Third'),
        ('Fourth', 'Fourth'),
        ('Emergency', 'Emergency'),
        ('Installation', 'Installation'),
    ]

    report_number = models.CharField(max_length=50, unique=True)
    report_title = models.CharField(max_length=200, default='Projector Service Report')
    report_type = models.CharField(max_length=20, choices=REPORT_TYPE_CHOICES, default='First')
    date = models.DateField()
    visit = models.ForeignKey(ServiceVisit, on_delete=models.SET_NULL, null=True, blank=True, related_name='reports')

    # Site
    site_name = models.CharField(max_length=200)
    site_incharge_name = models.CharField(max_length=200, blank=True)
    site_incharge_contact = models.CharField(max_length=50, blank=True)

    # Engineer
    engineer_name = models.CharField(max_length=200, blank=True)
    engineer_phone = models.CharField(max_length=20, blank=True)
    engineer_email = models.EmailField(blank=True)

    # Projector
    projector_serial = models.CharField(max_length=100)
    projector_model = models.CharField(max_length=100)
    brand = models.CharField(max_length=100)
    software_version = models.CharField(max_length=50, blank=True)
    projector_running_hours = models.CharField(max_length=50, blank=True)

    # Lamp
    lamp_model = models.CharField(max_length=100, blank=True)
    lamp_running_hours = models.CharField(max_length=50, blank=True)
    current_lamp_hours = models.CharField(max_length=50, blank=True)
    replacement_required = models.BooleanField(default=False)

    # Measurements and checklists
    voltage_parameters = models.JSONField(default=dict, blank=True)
    lamp_power_measurements = models.JSONField(default=dict, blank=True)
    environmental_conditions = models.JSONField(default=dict, blank=True)
    system_status = models.JSONField(default=dict, blank=True)
    air_pollution_level = models.JSONField(default=dict, blank=True)
    sections = models.JSONField(default=dict, blank=True, help_text="Inspection checklist: opticals, electronics, mechanical")
    observations = models.JSONField(default=list, blank=True)
    issues_found = models.JSONField(default=list, blank=True)
    parts_used = models.JSONField(default=list, blank=True)
    recommended_parts = models.JSONField(default=list, blank=True)

    work_performed = models.TextField(blank=True)
    recommendations = models.TextField(blank=True)
    service_start_time = models.DateTimeField(null=True, blank=True)
    service_end_time = models.DateTimeField(null=True, blank=True)
    signatures = models.JSONField(default=dict, blank=True)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='service_reports')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.report_number

    def photo_count(self):
        if not self.visit_id:
            return 0
        return self.visit.photos.count()

    def to_export_dict(self):
        """Plain mapping consumed by the text and PDF exporters"""
        return {
            'reportNumber': self.report_number,
            'reportTitle': self.report_title,
            'reportType': self.report_type,
            'date': self.date,
            'siteName': self.site_name,
            'siteIncharge': {
                'name': self.site_incharge_name,
                'phone': self.site_incharge_contact,
            },
            'engineer': {
                'name': self.engineer_name,
                'phone': self.engineer_phone,
                'email': self.engineer_email,
            },
            'projectorSerial': self.projector_serial,
            'projectorModel': self.projector_model,
            'brand': self.brand,
            'softwareVersion': self.software_version,
            'projectorRunningHours': self.projector_running_hours,
            'lampModel': self.lamp_model,
            'lampRunningHours': self.lamp_running_hours,
            'currentLampHours': self.current_lamp_hours,
            'replacementRequired': self.replacement_required,
            'voltageParameters': self.voltage_parameters,
            'lampPowerMeasurements': self.lamp_power_measurements,
            'environmentalConditions': self.environmental_conditions,
            'systemStatus': self.system_status,
            'airPollutionLevel': self.air_pollution_level,
            'sections': self.sections,
            'observations': self.observations,
            'issuesFound': self.issues_found,
            'partsUsed': self.parts_used,
            'recommendedParts': self.recommended_parts,
            'workPerformed': self.work_performed,
            'recommendations': self.recommendations,
            'serviceStartTime': self.service_start_time,
            'serviceEndTime': self.service_end_time,
            'signatures': self.signatures,
            'photoCount': self.photo_count(),
        }

    class Meta:
        db_table = 'service_reports'
        ordering = ['-date', '-created_at']
        indexes = [
            models.Index(fields=['projector_serial'], name='report_serial_idx'),
            models.Index(fields=['date'], name='report_date_idx'),
        ]
