"""
Reports Admin - rows limited to the tenant chosen in the admin switcher.
"""

from django.contrib import admin

from tenancy.mixins import TenantScopedAdminMixin

from .models import AddressMismatch, CitizenReport


@admin.register(CitizenReport)
class CitizenReportAdmin(TenantScopedAdminMixin, admin.ModelAdmin):
    list_display = ['title', 'city', 'bairro', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['title', 'description', 'address_text']
    raw_id_fields = ['author', 'bairro']
    readonly_fields = ['id', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'


@admin.register(AddressMismatch)
class AddressMismatchAdmin(TenantScopedAdminMixin, admin.ModelAdmin):
    list_display = ['bairro_text_example', 'bairro_text_key', 'city', 'provider', 'count', 'last_seen_at']
    list_filter = ['provider']
    search_fields = ['bairro_text_key', 'bairro_text_example']
    readonly_fields = ['count', 'last_seen_at']
