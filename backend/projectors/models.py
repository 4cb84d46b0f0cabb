from django.db import models
from django.utils import timezone


class Projector(models.Model):
    """Projector installed in a site auditorium"""
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Under Service', 'Under Service'),
        ('Inactive', 'Inactive'),
        ('Needs Repair', 'Needs Repair'),
    ]
    CONDITION_CHOICES = [
        ('Excellent', 'Excellent'),
        ('Good', 'Good'),
        ('Fair', 'Fair'),
        ('Needs Repair', 'Needs Repair'),
    ]

    projector_number = models.CharField(max_length=50)
    serial_number = models.CharField(max_length=100, unique=True)
    model = models.CharField(max_length=100)
    brand = models.CharField(max_length=100)
    part_number = models.CharField(max_length=100, blank=True)
    site = models.ForeignKey('sites.Site', on_delete=models.PROTECT, related_name='projectors')
    auditorium = models.ForeignKey('sites.Auditorium', on_delete=models.SET_NULL, null=True, blank=True, related_name='projectors')
    install_date = models.DateField()
    warranty_end = models.DateField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Active')
    condition = models.CharField(max_length=20, choices=CONDITION_CHOICES, default='Good')
    last_service = models.DateField(null=True, blank=True)
    next_service = models.DateField(null=True, blank=True)
    total_services = models.PositiveIntegerField(default=0)
    hours_used = models.PositiveIntegerField(default=0)
    expected_life = models.PositiveIntegerField(default=10000, help_text="Expected life in running hours")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.projector_number} ({self.serial_number})"

    @property
    def warranty_status(self):
        if self.warranty_end and self.warranty_end >= timezone.localdate():
            return 'In Warranty'
        return 'Expired'

    def record_service(self, service_date=None):
        """Bump service counters after a completed service; last_service never moves backwards"""
        service_date = service_date or timezone.localdate()
        if self.last_service and self.last_service > service_date:
            service_date = self.last_service
        self.last_service = service_date
        self.total_services = (self.total_services or 0) + 1
        self.save(update_fields=['last_service', 'total_services', 'updated_at'])

    class Meta:
        db_table = 'projectors'
        ordering = ['serial_number']
        indexes = [
            models.Index(fields=['status'], name='projector_status_idx'),
            models.Index(fields=['brand'], name='projector_brand_idx'),
        ]
