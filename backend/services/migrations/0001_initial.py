import backend.services.models
import backend.services.utils
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('sites', '0001_initial'),
        ('projectors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ServiceVisit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('visit_id', models.CharField(default=backend.services.utils.generate_visit_id, max_length=50, unique=True)),
                ('visit_type', models.CharField(choices=[('Scheduled Maintenance', 'Scheduled Maintenance'), ('Emergency Repair', 'Emergency Repair'), ('Installation', 'Installation'), ('Calibration', 'Calibration'), ('Inspection', 'Inspection'), ('Training', 'Training'), ('AMC Service 1', 'AMC Service 1'), ('AMC Service 2', 'AMC Service 2')], default='Scheduled Maintenance', max_length=30)),
                ('scheduled_date', models.DateField()),
                ('actual_date', models.DateField(blank=True, null=True)),
                ('start_time', models.DateTimeField(blank=True, null=True)),
                ('end_time', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(choices=[('Scheduled', 'Scheduled'), ('In Progress', 'In Progress'), ('Completed', 'Completed'), ('Cancelled', 'Cancelled'), ('Rescheduled', 'Rescheduled'), ('Unable to Complete', 'Unable to Complete')], default='Scheduled', max_length=30)),
                ('priority', models.CharField(choices=[('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Critical', 'Critical')], default='Medium', max_length=10)),
                ('description', models.TextField(blank=True)),
                ('work_performed', models.TextField(blank=True)),
                ('unable_to_complete_reason', models.TextField(blank=True)),
                ('unable_to_complete_category', models.CharField(blank=True, choices=[('Missing Parts', 'Missing Parts'), ('Equipment Failure', 'Equipment Failure'), ('Access Issues', 'Access Issues'), ('Customer Request', 'Customer Request'), ('Safety Concerns', 'Safety Concerns'), ('Technical Complexity', 'Technical Complexity'), ('Other', 'Other')], max_length=30)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('fse', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='service_visits', to=settings.AUTH_USER_MODEL)),
                ('projector', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='service_visits', to='projectors.projector')),
                ('site', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='service_visits', to='sites.site')),
            ],
            options={
                'db_table': 'service_visits',
                'ordering': ['-scheduled_date'],
                'indexes': [
                    models.Index(fields=['status'], name='visit_status_idx'),
                    models.Index(fields=['scheduled_date'], name='visit_scheduled_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ServicePhoto',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(default='Other', max_length=50)),
                ('folder', models.CharField(editable=False, max_length=50)),
                ('image', models.ImageField(upload_to=backend.services.models.service_photo_upload_to)),
                ('original_name', models.CharField(blank=True, max_length=255)),
                ('description', models.CharField(blank=True, max_length=500)),
                ('file_size', models.PositiveIntegerField(default=0)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('visit', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='photos', to='services.servicevisit')),
            ],
            options={
                'db_table': 'service_photos',
                'ordering': ['uploaded_at'],
            },
        ),
        migrations.CreateModel(
            name='ServiceReport',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('report_number', models.CharField(max_length=50, unique=True)),
                ('report_title', models.CharField(default='Projector Service Report', max_length=200)),
                ('report_type', models.CharField(choices=[('First', 'First'), ('Second', 'Second'), ('Third', 'Third'), ('Fourth', 'Fourth'), ('Emergency', 'Emergency'), ('Installation', 'Installation')], default='First', max_length=20)),
                ('date', models.DateField()),
                ('site_name', models.CharField(max_length=200)),
                ('site_incharge_name', models.CharField(blank=True, max_length=200)),
                ('site_incharge_contact', models.CharField(blank=True, max_length=50)),
                ('engineer_name', models.CharField(blank=True, max_length=200)),
                ('engineer_phone', models.CharField(blank=True, max_length=20)),
                ('engineer_email', models.EmailField(blank=True, max_length=254)),
                ('projector_serial', models.CharField(max_length=100)),
                ('projector_model', models.CharField(max_length=100)),
                ('brand', models.CharField(max_length=100)),
                ('software_version', models.CharField(blank=True, max_length=50)),
                ('projector_running_hours', models.CharField(blank=True, max_length=50)),
                ('lamp_model', models.CharField(blank=True, max_length=100)),
                ('lamp_running_hours', models.CharField(blank=True, max_length=50)),
                ('current_lamp_hours', models.CharField(blank=True, max_length=50)),
                ('replacement_required', models.BooleanField(default=False)),
                ('voltage_parameters', models.JSONField(blank=True, default=dict)),
                ('lamp_power_measurements', models.JSONField(blank=True, default=dict)),
                ('environmental_conditions', models.JSONField(blank=True, default=dict)),
                ('system_status', models.JSONField(blank=True, default=dict)),
                ('air_pollution_level', models.JSONField(blank=True, default=dict)),
                ('sections', models.JSONField(blank=True, default=dict, help_text='Inspection checklist: opticals, electronics, mechanical')),
                ('observations', models.JSONField(blank=True, default=list)),
                ('issues_found', models.JSONField(blank=True, default=list)),
                ('parts_used', models.JSONField(blank=True, default=list)),
                ('recommended_parts', models.JSONField(blank=True, default=list)),
                ('work_performed', models.TextField(blank=True)),
                ('recommendations', models.TextField(blank=True)),
                ('service_start_time', models.DateTimeField(blank=True, null=True)),
                ('service_end_time', models.DateTimeField(blank=True, null=True)),
                ('signatures', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='service_reports', to=settings.AUTH_USER_MODEL)),
                ('visit', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reports', to='services.servicevisit')),
            ],
            options={
                'db_table': 'service_reports',
                'ordering': ['-date', '-created_at'],
                'indexes': [
                    models.Index(fields=['projector_serial'], name='report_serial_idx'),
                    models.Index(fields=['date'], name='report_date_idx'),
                ],
            },
        ),
    ]
