import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event', models.CharField(db_index=True, max_length=120)),
                ('properties', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                'verbose_name': 'Audit event',
                'verbose_name_plural': 'Audit events',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='City',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('ibge_code', models.PositiveIntegerField(blank=True, null=True, unique=True)),
                ('name', models.CharField(max_length=120)),
                ('uf', models.CharField(help_text='State/region code, e.g. SC', max_length=2)),
                ('slug', models.SlugField(max_length=120, unique=True)),
                ('status', models.CharField(
                    choices=[('draft', 'Draft'), ('staging', 'Staging'), ('active', 'Active'), ('paused', 'Paused')],
                    db_index=True, default='draft', max_length=20,
                )),
                ('brand', models.JSONField(blank=True, default=dict)),
                ('lat', models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ('lon', models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ('timezone', models.CharField(default='America/Sao_Paulo', max_length=64)),
                ('is_coastal', models.BooleanField(default=False, help_text='Enables marine weather data')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'City',
                'verbose_name_plural': 'Cities',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Module',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('module_key', models.CharField(max_length=50, unique=True)),
                ('slug', models.SlugField(unique=True)),
                ('route_slug_ptbr', models.SlugField(blank=True)),
                ('name', models.CharField(max_length=100)),
                ('name_ptbr', models.CharField(blank=True, max_length=100)),
                ('description', models.TextField(blank=True)),
                ('icon', models.CharField(blank=True, max_length=50)),
                ('is_core', models.BooleanField(
                    default=False,
                    help_text='Core modules are enabled for every city without an override',
                )),
                ('current_version', models.PositiveIntegerField(default=1)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Module',
                'verbose_name_plural': 'Modules',
                'ordering': ['sort_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Bairro',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=120)),
                ('slug', models.SlugField(blank=True, max_length=120)),
                ('active', models.BooleanField(default=True)),
                ('city', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='bairros', to='tenancy.city',
                )),
            ],
            options={
                'verbose_name': 'Bairro',
                'verbose_name_plural': 'Bairros',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='CityDomain',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('domain', models.CharField(max_length=253, unique=True)),
                ('is_primary', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('city', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='domains', to='tenancy.city',
                )),
            ],
            options={
                'verbose_name': 'City domain',
                'verbose_name_plural': 'City domains',
            },
        ),
        migrations.CreateModel(
            name='CityModule',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('enabled', models.BooleanField(default=False)),
                ('version', models.PositiveIntegerField(default=1)),
                ('settings', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('city', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='city_modules', to='tenancy.city',
                )),
                ('module', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='city_modules', to='tenancy.module',
                )),
            ],
            options={
                'verbose_name': 'City module',
                'verbose_name_plural': 'City modules',
            },
        ),
        migrations.CreateModel(
            name='StaffCityAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('city', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='staff_assignments', to='tenancy.city',
                )),
                ('user', models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='city_assignment',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'verbose_name': 'Staff city assignment',
                'verbose_name_plural': 'Staff city assignments',
            },
        ),
        migrations.CreateModel(
            name='TenantIncident',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(db_index=True, max_length=120)),
                ('severity', models.CharField(
                    choices=[('warning', 'Warning'), ('error', 'Error'), ('critical', 'Critical')],
                    default='warning', max_length=20,
                )),
                ('source', models.CharField(blank=True, max_length=50)),
                ('module_key', models.CharField(blank=True, max_length=50)),
                ('request_id', models.CharField(blank=True, max_length=64)),
                ('trace_id', models.CharField(blank=True, max_length=64)),
                ('context', models.JSONField(blank=True, default=dict)),
                ('acknowledged_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('city', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='incidents',
                    to='tenancy.city',
                )),
            ],
            options={
                'verbose_name': 'Tenant incident',
                'verbose_name_plural': 'Tenant incidents',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='citydomain',
            constraint=models.UniqueConstraint(
                condition=models.Q(('is_primary', True)),
                fields=('city',),
                name='tenancy_unique_primary_domain_per_city',
            ),
        ),
        migrations.AddConstraint(
            model_name='citymodule',
            constraint=models.UniqueConstraint(fields=('city', 'module'), name='tenancy_unique_city_module'),
        ),
        migrations.AddConstraint(
            model_name='bairro',
            constraint=models.UniqueConstraint(fields=('city', 'slug'), name='tenancy_unique_bairro_slug'),
        ),
    ]
