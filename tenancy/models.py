"""
Tenancy Models - cities (tenants), their domains and feature modules.

A City is one civic deployment. Content tables carry a ``city_id`` and
belong to exactly one city (see ``tenancy.mixins.BelongsToTenantMixin``).
"""

import hashlib
import json
import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.text import slugify
from django.utils.translation import gettext_lazy as _


DEFAULT_TIMEZONE = 'America/Sao_Paulo'


class CityQuerySet(models.QuerySet):

    def visible_to(self, user=None):
        """Restrict to the statuses the given user may resolve."""
        return self.filter(status__in=City.visible_statuses_for(user))

    def active(self):
        return self.filter(status=City.CityStatus.ACTIVE)


class City(models.Model):
    """
    Multi-tenant city.

    Status drives visibility:
    - draft: admin-only
    - staging: invite-only (staff)
    - active: public
    - paused: public, read-only, content preserved
    """

    class CityStatus(models.TextChoices):
        DRAFT = 'draft', _('Draft')
        STAGING = 'staging', _('Staging')
        ACTIVE = 'active', _('Active')
        PAUSED = 'paused', _('Paused')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ibge_code = models.PositiveIntegerField(null=True, blank=True, unique=True)
    name = models.CharField(max_length=120)
    uf = models.CharField(max_length=2, help_text=_('State/region code, e.g. SC'))
    slug = models.SlugField(max_length=120, unique=True)
    status = models.CharField(
        max_length=20,
        choices=CityStatus.choices,
        default=CityStatus.DRAFT,
        db_index=True,
    )
    brand = models.JSONField(default=dict, blank=True)
    lat = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)
    lon = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)
    timezone = models.CharField(max_length=64, default=DEFAULT_TIMEZONE)
    is_coastal = models.BooleanField(
        default=False,
        help_text=_('Enables marine weather data'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CityQuerySet.as_manager()

    class Meta:
        verbose_name = _('City')
        verbose_name_plural = _('Cities')
        ordering = ['name']

    def __str__(self):
        return self.full_name

    def save(self, *args, **kwargs):
        self.slug = (self.slug or '').strip().lower()
        self.uf = (self.uf or '').strip().upper()
        super().save(*args, **kwargs)

    @property
    def full_name(self) -> str:
        return f'{self.name}/{self.uf}'

    @property
    def is_public(self) -> bool:
        return self.status in (self.CityStatus.ACTIVE, self.CityStatus.PAUSED)

    @property
    def is_read_only(self) -> bool:
        return self.status == self.CityStatus.PAUSED

    @property
    def effective_timezone(self) -> str:
        return self.timezone or DEFAULT_TIMEZONE

    @property
    def brand_hash(self) -> str:
        """Deterministic hash of the brand payload (key order independent)."""
        brand = self.brand if isinstance(self.brand, dict) else {}
        payload = json.dumps(brand, sort_keys=True, ensure_ascii=False, separators=(',', ':'))
        return hashlib.sha256(payload.encode('utf-8')).hexdigest()

    @property
    def tenant_key(self) -> str:
        """Canonical tenant key: ``slug|timezone|status|brand_hash``."""
        return f'{self.slug}|{self.effective_timezone}|{self.status}|{self.brand_hash}'

    @classmethod
    def visible_statuses_for(cls, user=None):
        statuses = [cls.CityStatus.ACTIVE, cls.CityStatus.PAUSED]
        if user is None or not getattr(user, 'is_authenticated', False):
            return statuses
        if user.is_superuser:
            return [choice for choice, _label in cls.CityStatus.choices]
        if user.is_staff:
            statuses.append(cls.CityStatus.STAGING)
        return statuses


class CityDomain(models.Model):
    """
    Hostname bound to a city. A city may own several domains, one primary.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    city = models.ForeignKey(City, on_delete=models.CASCADE, related_name='domains')
    domain = models.CharField(max_length=253, unique=True)
    is_primary = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('City domain')
        verbose_name_plural = _('City domains')
        constraints = [
            models.UniqueConstraint(
                fields=['city'],
                condition=Q(is_primary=True),
                name='tenancy_unique_primary_domain_per_city',
            ),
        ]

    def __str__(self):
        return self.domain

    def save(self, *args, **kwargs):
        self.domain = (self.domain or '').strip().lower()
        super().save(*args, **kwargs)


class ModuleQuerySet(models.QuerySet):

    def ordered(self):
        return self.order_by('sort_order', 'name')


class Module(models.Model):
    """
    Optional feature area (forum, events, reports, ...) toggled per city.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    module_key = models.CharField(max_length=50, unique=True)
    slug = models.SlugField(max_length=50, unique=True)
    route_slug_ptbr = models.SlugField(max_length=50, blank=True)
    name = models.CharField(max_length=100)
    name_ptbr = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    icon = models.CharField(max_length=50, blank=True)
    is_core = models.BooleanField(
        default=False,
        help_text=_('Core modules are enabled for every city without an override'),
    )
    current_version = models.PositiveIntegerField(default=1)
    sort_order = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ModuleQuerySet.as_manager()

    class Meta:
        verbose_name = _('Module')
        verbose_name_plural = _('Modules')
        ordering = ['sort_order', 'name']

    def __str__(self):
        return self.module_key

    def save(self, *args, **kwargs):
        if not self.module_key:
            self.module_key = self.normalize_key(self.slug)
        super().save(*args, **kwargs)

    @staticmethod
    def normalize_key(identifier: str) -> str:
        from .modules import normalize_module_key
        return normalize_module_key(identifier)

    @classmethod
    def find_by_identifier(cls, identifier: str):
        """Find a module by canonical key, legacy alias or slug."""
        raw = (identifier or '').strip().lower()
        key = cls.normalize_key(raw)
        return cls.objects.filter(
            Q(module_key=key) | Q(slug=raw) | Q(slug=key)
        ).first()


class CityModule(models.Model):
    """
    Per-city module override. No row means "use the module default".
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    city = models.ForeignKey(City, on_delete=models.CASCADE, related_name='city_modules')
    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name='city_modules')
    enabled = models.BooleanField(default=False)
    version = models.PositiveIntegerField(default=1)
    settings = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('City module')
        verbose_name_plural = _('City modules')
        constraints = [
            models.UniqueConstraint(fields=['city', 'module'], name='tenancy_unique_city_module'),
        ]

    def __str__(self):
        state = 'on' if self.enabled else 'off'
        return f'{self.city_id}:{self.module_id}={state}'


class Bairro(models.Model):
    """Neighbourhood of a city."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    city = models.ForeignKey(City, on_delete=models.CASCADE, related_name='bairros')
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=120, blank=True)
    active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _('Bairro')
        verbose_name_plural = _('Bairros')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['city', 'slug'], name='tenancy_unique_bairro_slug'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class StaffCityAssignment(models.Model):
    """Locks a moderator to one city inside the admin."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='city_assignment',
    )
    city = models.ForeignKey(City, on_delete=models.CASCADE, related_name='staff_assignments')

    class Meta:
        verbose_name = _('Staff city assignment')
        verbose_name_plural = _('Staff city assignments')

    def __str__(self):
        return f'{self.user} -> {self.city.slug}'


class TenantIncident(models.Model):
    """Structured tenancy anomaly (spoofed header, bad job reference, ...)."""

    class Severity(models.TextChoices):
        WARNING = 'warning', _('Warning')
        ERROR = 'error', _('Error')
        CRITICAL = 'critical', _('Critical')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    city = models.ForeignKey(
        City,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='incidents',
    )
    type = models.CharField(max_length=120, db_index=True)
    severity = models.CharField(max_length=20, choices=Severity.choices, default=Severity.WARNING)
    source = models.CharField(max_length=50, blank=True)
    module_key = models.CharField(max_length=50, blank=True)
    request_id = models.CharField(max_length=64, blank=True)
    trace_id = models.CharField(max_length=64, blank=True)
    context = models.JSONField(default=dict, blank=True)
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _('Tenant incident')
        verbose_name_plural = _('Tenant incidents')
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.type} ({self.severity})'


class AuditEvent(models.Model):
    """Audit trail entry written by ``tenancy.audit.DatabaseAuditRecorder``."""

    event = models.CharField(max_length=120, db_index=True)
    properties = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _('Audit event')
        verbose_name_plural = _('Audit events')
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.event
