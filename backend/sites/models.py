from django.db import models


class Site(models.Model):
    """Cinema / customer site hosting one or more auditoriums"""
    REGION_CHOICES = [
        ('North', 'North'),
        ('South', 'South'),
        ('East', 'East'),
        ('West', 'West'),
        ('Central', 'Central'),
        ('Northeast', 'Northeast'),
        ('Northwest', 'Northwest'),
        ('Southeast', 'Southeast'),
        ('Southwest', 'Southwest'),
        ('North & East', 'North & East'),
        ('North & West', 'North & West'),
        ('South & East', 'South & East'),
        ('South & West', 'South & West'),
        ('West & Central', 'West & Central'),
        ('All Regions', 'All Regions'),
    ]
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
        ('Under Maintenance', 'Under Maintenance'),
    ]

    name = models.CharField(max_length=200, unique=True)
    site_code = models.CharField(max_length=50, unique=True)
    region = models.CharField(max_length=30, choices=REGION_CHOICES)
    state = models.CharField(max_length=100)
    city = models.CharField(max_length=100, blank=True)
    address = models.TextField(blank=True)
    pincode = models.CharField(max_length=10, blank=True)
    contact_name = models.CharField(max_length=200, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    contact_email = models.EmailField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if self.site_code:
            self.site_code = self.site_code.strip().upper()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'sites'
        ordering = ['name']


class Auditorium(models.Model):
    """Screen within a site"""
    STATUS_CHOICES = Site.STATUS_CHOICES

    site = models.ForeignKey(Site, on_delete=models.CASCADE, related_name='auditoriums')
    audi_number = models.CharField(max_length=20)
    name = models.CharField(max_length=100)
    capacity = models.PositiveIntegerField(null=True, blank=True)
    screen_size = models.CharField(max_length=50, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Active')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.site.name} - {self.name}"

    class Meta:
        db_table = 'auditoriums'
        ordering = ['site', 'audi_number']
        constraints = [
            models.UniqueConstraint(fields=['site', 'audi_number'], name='unique_audi_number_per_site'),
        ]
