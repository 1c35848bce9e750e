"""
Reports Models - citizen reports ("denúncias") and unmatched bairro names.

Both models belong to exactly one city through ``BelongsToTenantMixin``.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from tenancy.mixins import BelongsToTenantMixin


class CitizenReport(BelongsToTenantMixin):
    """Problem reported by a citizen (pothole, broken light, ...)."""

    class Status(models.TextChoices):
        RECEIVED = 'received', _('Received')
        IN_REVIEW = 'in_review', _('In review')
        RESOLVED = 'resolved', _('Resolved')
        REJECTED = 'rejected', _('Rejected')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='citizen_reports',
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    bairro = models.ForeignKey(
        'tenancy.Bairro',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reports',
    )
    address_text = models.CharField(max_length=255, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.RECEIVED,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    tenant_scoped_fields = ('bairro',)

    class Meta:
        verbose_name = _('Citizen report')
        verbose_name_plural = _('Citizen reports')
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class AddressMismatch(BelongsToTenantMixin):
    """
    Aggregated bairro names that matched no bairro of the city.

    One row per (city, normalized key, provider); ``count`` grows with every
    occurrence. Used to curate new bairros and aliases.
    """

    bairro_text_key = models.SlugField(max_length=120)
    bairro_text_example = models.CharField(max_length=255)
    provider = models.CharField(max_length=20, default='viacep')
    count = models.PositiveIntegerField(default=1)
    last_seen_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Address mismatch')
        verbose_name_plural = _('Address mismatches')
        ordering = ['-count']
        constraints = [
            models.UniqueConstraint(
                fields=['city', 'bairro_text_key', 'provider'],
                name='reports_unique_address_mismatch',
            ),
        ]

    def __str__(self):
        return f'{self.bairro_text_key} ({self.count})'

    @classmethod
    def record(cls, bairro_text_key, bairro_text_example, provider='viacep', city=None):
        """
        Create or bump the aggregate row of the given (or bound) city.
        """
        city_id = getattr(city, 'pk', city)
        qs = cls.objects.for_city(city_id) if city_id else cls.objects.for_current_city()
        updated = qs.filter(bairro_text_key=bairro_text_key, provider=provider).update(
            count=F('count') + 1,
            last_seen_at=timezone.now(),
        )
        if updated:
            return qs.get(bairro_text_key=bairro_text_key, provider=provider)

        mismatch = cls(
            bairro_text_key=bairro_text_key,
            bairro_text_example=bairro_text_example,
            provider=provider,
        )
        if city_id:
            mismatch.city_id = city_id
        mismatch.save()
        return mismatch
