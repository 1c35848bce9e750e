import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenancy', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CitizenReport',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('address_text', models.CharField(blank=True, max_length=255)),
                ('status', models.CharField(
                    choices=[
                        ('received', 'Received'),
                        ('in_review', 'In review'),
                        ('resolved', 'Resolved'),
                        ('rejected', 'Rejected'),
                    ],
                    db_index=True, default='received', max_length=20,
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('author', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='citizen_reports',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('bairro', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='reports',
                    to='tenancy.bairro',
                )),
                ('city', models.ForeignKey(
                    help_text='City this record belongs to',
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='%(app_label)s_%(class)s_set',
                    to='tenancy.city',
                )),
            ],
            options={
                'verbose_name': 'Citizen report',
                'verbose_name_plural': 'Citizen reports',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AddressMismatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('bairro_text_key', models.SlugField(max_length=120)),
                ('bairro_text_example', models.CharField(max_length=255)),
                ('provider', models.CharField(default='viacep', max_length=20)),
                ('count', models.PositiveIntegerField(default=1)),
                ('last_seen_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('city', models.ForeignKey(
                    help_text='City this record belongs to',
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='%(app_label)s_%(class)s_set',
                    to='tenancy.city',
                )),
            ],
            options={
                'verbose_name': 'Address mismatch',
                'verbose_name_plural': 'Address mismatches',
                'ordering': ['-count'],
            },
        ),
        migrations.AddConstraint(
            model_name='addressmismatch',
            constraint=models.UniqueConstraint(
                fields=('city', 'bairro_text_key', 'provider'),
                name='reports_unique_address_mismatch',
            ),
        ),
    ]
