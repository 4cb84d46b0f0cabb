from django.conf import settings
from django.db import models, transaction
from django.utils import timezone


def next_sequence_number(queryset, field, prefix):
    """Highest numeric suffix after prefix plus one; rows are locked until the caller commits"""
    values = queryset.select_for_update().filter(**{f"{field}__startswith": prefix}).values_list(field, flat=True)
    highest = 0
    for value in values:
        suffix = value[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


class DTR(models.Model):
    """Defect tracking report raised against an installed projector"""
    STATUS_CHOICES = [
        ('Open', 'Open'),
        ('In Progress', 'In Progress'),
        ('Closed', 'Closed'),
        ('Shifted to RMA', 'Shifted to RMA'),
    ]
    PRIORITY_CHOICES = [
        ('Low', 'Low'),
        ('Medium', 'Medium'),
        ('High', 'High'),
        ('Critical', 'Critical'),
    ]

    case_id = models.CharField(max_length=50, unique=True, editable=False)
    projector = models.ForeignKey('projectors.Projector', on_delete=models.PROTECT, related_name='dtrs')
    serial_number = models.CharField(max_length=100)
    site_name = models.CharField(max_length=200, blank=True)
    site_code = models.CharField(max_length=50, blank=True)
    region = models.CharField(max_length=50, blank=True)
    complaint_description = models.TextField()
    complaint_date = models.DateTimeField(default=timezone.now)
    error_date = models.DateField(null=True, blank=True)
    unit_model = models.CharField(max_length=100, blank=True)
    problem_name = models.CharField(max_length=255, blank=True)
    opened_by = models.CharField(max_length=150)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='Medium')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Open')
    call_status = models.CharField(max_length=30, default='Open', blank=True)
    case_severity = models.CharField(max_length=30, default='Medium', blank=True)
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_dtrs')
    assigned_date = models.DateTimeField(null=True, blank=True)
    action_taken = models.TextField(blank=True)
    remarks = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    troubleshooting_steps = models.JSONField(default=list, blank=True)
    workflow_history = models.JSONField(default=list, blank=True)
    closed_reason = models.CharField(max_length=100, blank=True)
    rma = models.ForeignKey('rma.RMA', on_delete=models.SET_NULL, null=True, blank=True, related_name='source_dtrs')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        with transaction.atomic():
            if not self.case_id:
                self.case_id = self.generate_case_id()
            super().save(*args, **kwargs)

    @classmethod
    def generate_case_id(cls):
        prefix = f"DTR-{timezone.localdate().strftime('%Y%m%d')}-"
        return f"{prefix}{next_sequence_number(cls.objects.all(), 'case_id', prefix):03d}"

    def add_history(self, action, user, details, new_value=None):
        self.workflow_history = list(self.workflow_history or [])
        self.workflow_history.append({
            'action': action,
            'performed_by': {'name': user.username, 'role': getattr(user, 'role', '')},
            'timestamp': timezone.now().isoformat(),
            'details': details,
            'new_value': new_value,
        })

    def __str__(self):
        return f"{self.case_id} ({self.serial_number})"

    class Meta:
        db_table = 'dtrs'
        ordering = ['-complaint_date']
        verbose_name = 'DTR'
        verbose_name_plural = 'DTRs'
        indexes = [
            models.Index(fields=['status'], name='dtr_status_idx'),
            models.Index(fields=['serial_number'], name='dtr_serial_idx'),
            models.Index(fields=['-complaint_date'], name='dtr_complaint_date_idx'),
        ]


class RMA(models.Model):
    """Return merchandise authorisation for a defective projector part"""
    CASE_STATUS_CHOICES = [
        ('Under Review', 'Under Review'),
        ('Sent to CDS', 'Sent to CDS'),
        ('CDS Approved', 'CDS Approved'),
        ('Replacement Shipped', 'Replacement Shipped'),
        ('Replacement Received', 'Replacement Received'),
        ('Installation Complete', 'Installation Complete'),
        ('Faulty Part Returned', 'Faulty Part Returned'),
        ('CDS Confirmed Return', 'CDS Confirmed Return'),
        ('Completed', 'Completed'),
        ('Rejected', 'Rejected'),
    ]
    APPROVAL_STATUS_CHOICES = [
        ('Pending Review', 'Pending Review'),
        ('Approved', 'Approved'),
        ('Rejected', 'Rejected'),
        ('Under Investigation', 'Under Investigation'),
    ]
    PRIORITY_CHOICES = [
        ('Low', 'Low'),
        ('Medium', 'Medium'),
        ('High', 'High'),
        ('Critical', 'Critical'),
    ]
    WARRANTY_STATUS_CHOICES = [
        ('In Warranty', 'In Warranty'),
        ('Extended Warranty', 'Extended Warranty'),
        ('Out of Warranty', 'Out of Warranty'),
        ('Expired', 'Expired'),
    ]
    CLOSED_STATUSES = ('Completed', 'Rejected')

    rma_number = models.CharField(max_length=50, unique=True, editable=False)
    call_log_number = models.CharField(max_length=100, blank=True)
    rma_order_number = models.CharField(max_length=100, blank=True)
    ascomp_raised_date = models.DateField(default=timezone.localdate)
    customer_error_date = models.DateField(null=True, blank=True)
    site_name = models.CharField(max_length=200)
    product_name = models.CharField(max_length=200)
    product_part_number = models.CharField(max_length=100, blank=True)
    serial_number = models.CharField(max_length=100)

    defective_part_number = models.CharField(max_length=100, blank=True)
    defective_part_name = models.CharField(max_length=200, blank=True)
    defective_serial_number = models.CharField(max_length=100, blank=True)
    symptoms = models.TextField(blank=True)
    replaced_part_number = models.CharField(max_length=100, blank=True)
    replaced_part_name = models.CharField(max_length=200, blank=True)
    replaced_part_serial_number = models.CharField(max_length=100, blank=True)
    replacement_notes = models.TextField(blank=True)

    case_status = models.CharField(max_length=30, choices=CASE_STATUS_CHOICES, default='Under Review')
    approval_status = models.CharField(max_length=30, choices=APPROVAL_STATUS_CHOICES, default='Pending Review')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='Medium')
    warranty_status = models.CharField(max_length=20, choices=WARRANTY_STATUS_CHOICES, default='In Warranty')
    estimated_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    # Shipping
    outbound_tracking_number = models.CharField(max_length=100, blank=True)
    outbound_carrier = models.CharField(max_length=100, blank=True)
    outbound_shipped_date = models.DateField(null=True, blank=True)
    return_tracking_number = models.CharField(max_length=100, blank=True)
    return_carrier = models.CharField(max_length=100, blank=True)
    return_shipped_date = models.DateField(null=True, blank=True)
    completed_date = models.DateField(null=True, blank=True)

    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_rmas')
    originated_from_dtr = models.ForeignKey(DTR, on_delete=models.SET_NULL, null=True, blank=True, related_name='converted_rmas')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if self.case_status == 'Completed' and not self.completed_date:
            self.completed_date = timezone.localdate()
        with transaction.atomic():
            if not self.rma_number:
                self.rma_number = self.generate_rma_number()
            super().save(*args, **kwargs)

    @classmethod
    def generate_rma_number(cls):
        prefix = f"RMA-{timezone.localdate().year}-"
        return f"{prefix}{next_sequence_number(cls.objects.all(), 'rma_number', prefix):03d}"

    @property
    def is_open(self):
        return self.case_status not in self.CLOSED_STATUSES

    def __str__(self):
        return f"{self.rma_number} ({self.serial_number})"

    class Meta:
        db_table = 'rmas'
        ordering = ['-ascomp_raised_date', '-created_at']
        verbose_name = 'RMA'
        verbose_name_plural = 'RMAs'
        indexes = [
            models.Index(fields=['case_status'], name='rma_case_status_idx'),
            models.Index(fields=['serial_number'], name='rma_serial_idx'),
        ]
