import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


PRIORITY_CHOICES = [('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Critical', 'Critical')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('projectors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='DTR',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('case_id', models.CharField(editable=False, max_length=50, unique=True)),
                ('serial_number', models.CharField(max_length=100)),
                ('site_name', models.CharField(blank=True, max_length=200)),
                ('site_code', models.CharField(blank=True, max_length=50)),
                ('region', models.CharField(blank=True, max_length=50)),
                ('complaint_description', models.TextField()),
                ('complaint_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('error_date', models.DateField(blank=True, null=True)),
                ('unit_model', models.CharField(blank=True, max_length=100)),
                ('problem_name', models.CharField(blank=True, max_length=255)),
                ('opened_by', models.CharField(max_length=150)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='Medium', max_length=10)),
                ('status', models.CharField(choices=[('Open', 'Open'), ('In Progress', 'In Progress'), ('Closed', 'Closed'), ('Shifted to RMA', 'Shifted to RMA')], default='Open', max_length=20)),
                ('call_status', models.CharField(blank=True, default='Open', max_length=30)),
                ('case_severity', models.CharField(blank=True, default='Medium', max_length=30)),
                ('assigned_date', models.DateTimeField(blank=True, null=True)),
                ('action_taken', models.TextField(blank=True)),
                ('remarks', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('troubleshooting_steps', models.JSONField(blank=True, default=list)),
                ('workflow_history', models.JSONField(blank=True, default=list)),
                ('closed_reason', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_dtrs', to=settings.AUTH_USER_MODEL)),
                ('projector', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='dtrs', to='projectors.projector')),
            ],
            options={
                'verbose_name': 'DTR',
                'verbose_name_plural': 'DTRs',
                'db_table': 'dtrs',
                'ordering': ['-complaint_date'],
                'indexes': [
                    models.Index(fields=['status'], name='dtr_status_idx'),
                    models.Index(fields=['serial_number'], name='dtr_serial_idx'),
                    models.Index(fields=['-complaint_date'], name='dtr_complaint_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RMA',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rma_number', models.CharField(editable=False, max_length=50, unique=True)),
                ('call_log_number', models.CharField(blank=True, max_length=100)),
                ('rma_order_number', models.CharField(blank=True, max_length=100)),
                ('ascomp_raised_date', models.DateField(default=django.utils.timezone.localdate)),
                ('customer_error_date', models.DateField(blank=True, null=True)),
                ('site_name', models.CharField(max_length=200)),
                ('product_name', models.CharField(max_length=200)),
                ('product_part_number', models.CharField(blank=True, max_length=100)),
                ('serial_number', models.CharField(max_length=100)),
                ('defective_part_number', models.CharField(blank=True, max_length=100)),
                ('defective_part_name', models.CharField(blank=True, max_length=200)),
                ('defective_serial_number', models.CharField(blank=True, max_length=100)),
                ('symptoms', models.TextField(blank=True)),
                ('replaced_part_number', models.CharField(blank=True, max_length=100)),
                ('replaced_part_name', models.CharField(blank=True, max_length=200)),
                ('replaced_part_serial_number', models.CharField(blank=True, max_length=100)),
                ('replacement_notes', models.TextField(blank=True)),
                ('case_status', models.CharField(choices=[('Under Review', 'Under Review'), ('Sent to CDS', 'Sent to CDS'), ('CDS Approved', 'CDS Approved'), ('Replacement Shipped', 'Replacement Shipped'), ('Replacement Received', 'Replacement Received'), ('Installation Complete', 'Installation Complete'), ('Faulty Part Returned', 'Faulty Part Returned'), ('CDS Confirmed Return', 'CDS Confirmed Return'), ('Completed', 'Completed'), ('Rejected', 'Rejected')], default='Under Review', max_length=30)),
                ('approval_status', models.CharField(choices=[('Pending Review', 'Pending Review'), ('Approved', 'Approved'), ('Rejected', 'Rejected'), ('Under Investigation', 'Under Investigation')], default='Pending Review', max_length=30)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='Medium', max_length=10)),
                ('warranty_status', models.CharField(choices=[('In Warranty', 'In Warranty'), ('Extended Warranty', 'Extended Warranty'), ('Out of Warranty', 'Out of Warranty'), ('Expired', 'Expired')], default='In Warranty', max_length=20)),
                ('estimated_cost', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('outbound_tracking_number', models.CharField(blank=True, max_length=100)),
                ('outbound_carrier', models.CharField(blank=True, max_length=100)),
                ('outbound_shipped_date', models.DateField(blank=True, null=True)),
                ('return_tracking_number', models.CharField(blank=True, max_length=100)),
                ('return_carrier', models.CharField(blank=True, max_length=100)),
                ('return_shipped_date', models.DateField(blank=True, null=True)),
                ('completed_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_rmas', to=settings.AUTH_USER_MODEL)),
                ('originated_from_dtr', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='converted_rmas', to='rma.dtr')),
            ],
            options={
                'verbose_name': 'RMA',
                'verbose_name_plural': 'RMAs',
                'db_table': 'rmas',
                'ordering': ['-ascomp_raised_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['case_status'], name='rma_case_status_idx'),
                    models.Index(fields=['serial_number'], name='rma_serial_idx'),
                ],
            },
        ),
        migrations.AddField(
            model_name='dtr',
            name='rma',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='source_dtrs', to='rma.rma'),
        ),
    ]
