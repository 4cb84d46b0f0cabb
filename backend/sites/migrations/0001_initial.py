import django.db.models.deletion
from django.db import migrations, models


STATUS_CHOICES = [('Active', 'Active'), ('Inactive', 'Inactive'), ('Under Maintenance', 'Under Maintenance')]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Site',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True)),
                ('site_code', models.CharField(max_length=50, unique=True)),
                ('region', models.CharField(choices=[('North', 'North'), ('South', 'South'), ('East', 'East'), ('West', 'West'), ('Central', 'Central'), ('Northeast', 'Northeast'), ('Northwest', 'Northwest'), ('Southeast', 'Southeast'), ('Southwest', 'Southwest'), ('North & East', 'North & East'), ('North & West', 'North & West'), ('South & East', 'South & East'), ('South & West', 'South & West'), ('West & Central', 'West & Central'), ('All Regions', 'All Regions')], max_length=30)),
                ('state', models.CharField(max_length=100)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('address', models.TextField(blank=True)),
                ('pincode', models.CharField(blank=True, max_length=10)),
                ('contact_name', models.CharField(blank=True, max_length=200)),
                ('contact_phone', models.CharField(blank=True, max_length=20)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('status', models.CharField(choices=STATUS_CHOICES, default='Active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'sites',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Auditorium',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('audi_number', models.CharField(max_length=20)),
                ('name', models.CharField(max_length=100)),
                ('capacity', models.PositiveIntegerField(blank=True, null=True)),
                ('screen_size', models.CharField(blank=True, max_length=50)),
                ('status', models.CharField(choices=STATUS_CHOICES, default='Active', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('site', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='auditoriums', to='sites.site')),
            ],
            options={
                'db_table': 'auditoriums',
                'ordering': ['site', 'audi_number'],
                'constraints': [
                    models.UniqueConstraint(fields=('site', 'audi_number'), name='unique_audi_number_per_site'),
                ],
            },
        ),
    ]
