"""
Tenancy Mixins - reusable tenant-scoped model, serializer and admin mixins.

- BelongsToTenantMixin: ``city`` foreign key filled from the bound tenant on
  creation; creation without explicit city and without context is refused.
- TenantScopedSerializerMixin: cross-tenant references become field errors.
- TenantScopedAdminMixin: admin changelists and forms limited to the admin
  tenant.

Usage:
    from tenancy.mixins import BelongsToTenantMixin

    class CitizenReport(BelongsToTenantMixin, models.Model):
        bairro = models.ForeignKey('tenancy.Bairro', ...)
        tenant_scoped_fields = ('bairro',)
"""

import logging
from typing import Optional, TYPE_CHECKING

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import models
from django.db.models import QuerySet
from django.utils.translation import gettext_lazy as _

from .context import get_current_city_id
from .exceptions import MissingTenantError

if TYPE_CHECKING:
    from tenancy.models import City

logger = logging.getLogger(__name__)


CROSS_TENANT_MESSAGE = _('%(field)s does not belong to the current city.')


def _cross_tenant_errors(instance_or_attrs, fields, city_id) -> dict:
    """``{field: message}`` for every reference owned by another city."""
    errors = {}
    if city_id is None:
        return errors
    for field in fields:
        if isinstance(instance_or_attrs, dict):
            related = instance_or_attrs.get(field)
        else:
            related = getattr(instance_or_attrs, field, None)
        if related is None:
            continue
        related_city_id = getattr(related, 'city_id', None)
        if related_city_id is not None and str(related_city_id) != str(city_id):
            errors[field] = CROSS_TENANT_MESSAGE % {'field': field}
    return errors


# =============================================================================
# MODEL MIXINS
# =============================================================================

class BelongsToTenantQuerySet(models.QuerySet):

    def for_city(self, city) -> QuerySet:
        return self.filter(city_id=getattr(city, 'pk', city))

    def for_current_city(self) -> QuerySet:
        """
        Restrict to the bound tenant.

        Returns an empty queryset when no tenant is bound.
        """
        city_id = get_current_city_id()
        if city_id is None:
            logger.warning('tenant_scoped_query_without_context', extra={'model': self.model.__name__})
            return self.none()
        return self.filter(city_id=city_id)


class BelongsToTenantMixin(models.Model):
    """
    Abstract base for records owned by exactly one city.

    On creation:
    1. an explicit ``city`` / ``city_id`` is kept as-is
    2. otherwise the bound tenant's city is used
    3. otherwise ``MissingTenantError`` is raised and nothing is written

    ``tenant_scoped_fields`` names foreign keys (to models with a
    ``city_id``) that must point at rows of the same city.
    """

    city = models.ForeignKey(
        'tenancy.City',
        on_delete=models.CASCADE,
        related_name='%(app_label)s_%(class)s_set',
        help_text=_('City this record belongs to'),
        db_index=True,
    )

    tenant_scoped_fields = ()

    objects = BelongsToTenantQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if self._state.adding and not self.city_id:
            city_id = get_current_city_id()
            if city_id is None:
                raise MissingTenantError(model=self.__class__.__name__)
            self.city_id = city_id
        super().save(*args, **kwargs)

    def clean(self):
        super().clean()
        city_id = self.city_id or get_current_city_id()
        if city_id is None:
            raise ValidationError({'city': _('City is required.')})
        errors = _cross_tenant_errors(self, self.tenant_scoped_fields, city_id)
        if errors:
            raise ValidationError(errors)


# =============================================================================
# SERIALIZER MIXINS
# =============================================================================

class TenantScopedSerializerMixin:
    """
    Mixin for DRF serializers of ``BelongsToTenantMixin`` models.

    Related objects listed in ``Meta.tenant_scoped_fields`` must belong to
    the request's city; violations are reported as field errors.
    """

    def get_city(self) -> Optional['City']:
        request = self.context.get('request')
        city = getattr(request, 'city', None) if request else None
        if city is not None:
            return city
        from .context import get_current_city
        return get_current_city()

    def validate(self, attrs):
        from rest_framework import serializers

        attrs = super().validate(attrs)
        city = self.get_city()
        if city is None:
            raise serializers.ValidationError({'city': _('Tenant city is required.')})

        fields = getattr(self.Meta, 'tenant_scoped_fields', ())
        errors = _cross_tenant_errors(attrs, fields, city.pk)
        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data.pop('city', None)
        return data


# =============================================================================
# ADMIN MIXINS
# =============================================================================

class TenantScopedAdminMixin:
    """
    ModelAdmin mixin restricting rows to ``request.admin_tenant``.

    ``request.admin_tenant`` is set by ``AdminTenantSwitcherMiddleware``.
    Moderators never choose the owning city. New rows are stamped with
    the admin tenant and foreign keys only offer rows of that city.
    Superusers keep the full form.
    """

    tenant_field = 'city'

    @staticmethod
    def _locked_city_id(request):
        """City id a non-superuser is restricted to; None for superusers."""
        if request.user.is_superuser:
            return None
        tenant = getattr(request, 'admin_tenant', None)
        return tenant.city_id if tenant is not None else None

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        tenant = getattr(request, 'admin_tenant', None)
        if tenant is None:
            return qs if request.user.is_superuser else qs.none()
        return qs.filter(city_id=tenant.city_id)

    def has_add_permission(self, request):
        if not request.user.is_superuser and getattr(request, 'admin_tenant', None) is None:
            return False
        return super().has_add_permission(request)

    def get_readonly_fields(self, request, obj=None):
        readonly = list(super().get_readonly_fields(request, obj))
        if not request.user.is_superuser and self.tenant_field not in readonly:
            readonly.append(self.tenant_field)
        return readonly

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        city_id = self._locked_city_id(request)
        if city_id is not None:
            related = db_field.related_model
            if db_field.name == self.tenant_field:
                kwargs['queryset'] = related._default_manager.filter(pk=city_id)
            elif hasattr(related, 'city'):
                kwargs['queryset'] = related._default_manager.filter(city_id=city_id)
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        tenant = getattr(request, 'admin_tenant', None)
        if not request.user.is_superuser:
            if tenant is None:
                raise PermissionDenied
            if not change:
                obj.city_id = tenant.city_id
        elif not change and not obj.city_id and tenant is not None:
            obj.city_id = tenant.city_id
        super().save_model(request, obj, form, change)
