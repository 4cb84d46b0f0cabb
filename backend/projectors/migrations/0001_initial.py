import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('sites', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Projector',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('projector_number', models.CharField(max_length=50)),
                ('serial_number', models.CharField(max_length=100, unique=True)),
                ('model', models.CharField(max_length=100)),
                ('brand', models.CharField(max_length=100)),
                ('part_number', models.CharField(blank=True, max_length=100)),
                ('install_date', models.DateField()),
                ('warranty_end', models.DateField()),
                ('status', models.CharField(choices=[('Active', 'Active'), ('Under Service', 'Under Service'), ('Inactive', 'Inactive'), ('Needs Repair', 'Needs Repair')], default='Active', max_length=20)),
                ('condition', models.CharField(choices=[('Excellent', 'Excellent'), ('Good', 'Good'), ('Fair', 'Fair'), ('Needs Repair', 'Needs Repair')], default='Good', max_length=20)),
                ('last_service', models.DateField(blank=True, null=True)),
                ('next_service', models.DateField(blank=True, null=True)),
                ('total_services', models.PositiveIntegerField(default=0)),
                ('hours_used', models.PositiveIntegerField(default=0)),
                ('expected_life', models.PositiveIntegerField(default=10000, help_text='Expected life in running hours')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('auditorium', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='projectors', to='sites.auditorium')),
                ('site', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='projectors', to='sites.site')),
            ],
            options={
                'db_table': 'projectors',
                'ordering': ['serial_number'],
                'indexes': [
                    models.Index(fields=['status'], name='projector_status_idx'),
                    models.Index(fields=['brand'], name='projector_brand_idx'),
                ],
            },
        ),
    ]
