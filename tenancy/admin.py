"""
Tenancy Admin - cities, domains, modules and incidents.
"""

from django.contrib import admin

from .mixins import TenantScopedAdminMixin
from .models import (
    AuditEvent, Bairro, City, CityDomain, CityModule,
    Module, StaffCityAssignment, TenantIncident,
)


class CityDomainInline(admin.TabularInline):
    model = CityDomain
    extra = 0
    fields = ['domain', 'is_primary']


class CityModuleInline(admin.TabularInline):
    model = CityModule
    extra = 0
    fields = ['module', 'enabled', 'version', 'settings']
    autocomplete_fields = ['module']


@admin.register(City)
class CityAdmin(admin.ModelAdmin):
    list_display = ['name', 'uf', 'slug', 'status', 'is_coastal', 'timezone']
    list_filter = ['status', 'uf', 'is_coastal']
    search_fields = ['name', 'slug', 'ibge_code']
    prepopulated_fields = {'slug': ('name',)}
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [CityDomainInline, CityModuleInline]

    fieldsets = (
        ('Identity', {
            'fields': ('id', 'name', 'uf', 'slug', 'ibge_code', 'status')
        }),
        ('Geo', {
            'fields': ('lat', 'lon', 'timezone', 'is_coastal')
        }),
        ('Brand', {
            'fields': ('brand',),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Module)
class ModuleAdmin(admin.ModelAdmin):
    list_display = ['module_key', 'name', 'slug', 'is_core', 'current_version', 'sort_order']
    list_filter = ['is_core']
    search_fields = ['module_key', 'slug', 'name', 'name_ptbr']
    ordering = ['sort_order', 'name']


@admin.register(Bairro)
class BairroAdmin(TenantScopedAdminMixin, admin.ModelAdmin):
    list_display = ['name', 'slug', 'city', 'active']
    list_filter = ['active']
    search_fields = ['name', 'slug']


@admin.register(StaffCityAssignment)
class StaffCityAssignmentAdmin(admin.ModelAdmin):
    list_display = ['user', 'city']
    search_fields = ['user__username', 'user__email', 'city__slug']
    raw_id_fields = ['user']


@admin.register(TenantIncident)
class TenantIncidentAdmin(admin.ModelAdmin):
    list_display = ['type', 'severity', 'city', 'source', 'module_key', 'created_at', 'acknowledged_at']
    list_filter = ['severity', 'type', 'source']
    search_fields = ['type', 'request_id', 'trace_id']
    readonly_fields = [
        'id', 'city', 'type', 'severity', 'source', 'module_key',
        'request_id', 'trace_id', 'context', 'created_at',
    ]
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ['event', 'created_at']
    list_filter = ['event']
    readonly_fields = ['event', 'properties', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
