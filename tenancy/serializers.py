"""
Tenancy Serializers - DRF serializers for the tenant bootstrap API.

Output keys are camelCase: these payloads are consumed by the web and
mobile frontends as-is.
"""

from rest_framework import serializers

from .models import City


# ==================== CITY SERIALIZERS ====================

class CitySummarySerializer(serializers.ModelSerializer):
    """Public city listing."""

    fullName = serializers.CharField(source='full_name', read_only=True)

    class Meta:
        model = City
        fields = ['id', 'name', 'slug', 'uf', 'fullName']
        read_only_fields = fields


class CityConfigSerializer(serializers.ModelSerializer):
    fullName = serializers.CharField(source='full_name', read_only=True)
    ibgeCode = serializers.IntegerField(source='ibge_code', read_only=True, allow_null=True)
    timezone = serializers.CharField(source='effective_timezone', read_only=True)
    isCoastal = serializers.BooleanField(source='is_coastal', read_only=True)

    class Meta:
        model = City
        fields = ['id', 'name', 'slug', 'uf', 'fullName', 'status', 'ibgeCode', 'timezone', 'isCoastal']
        read_only_fields = fields


# ==================== MODULE SERIALIZERS ====================

class ModuleStateSerializer(serializers.Serializer):
    """One entry of ``ModuleResolver.effective_modules()``."""

    key = serializers.CharField()
    slug = serializers.CharField()
    routeSlugPtbr = serializers.CharField(source='route_slug_ptbr', allow_blank=True)
    name = serializers.CharField()
    namePtbr = serializers.CharField(source='name_ptbr', allow_blank=True)
    icon = serializers.CharField(allow_blank=True)
    description = serializers.CharField(allow_blank=True)
    isCore = serializers.BooleanField(source='is_core')
    enabled = serializers.BooleanField()
    version = serializers.IntegerField()
    settings = serializers.DictField()


# ==================== CONFIG SERIALIZERS ====================

class GeoConfigSerializer(serializers.Serializer):
    defaultBairroId = serializers.CharField(source='default_bairro_id', allow_null=True)
    lat = serializers.FloatField(allow_null=True)
    lon = serializers.FloatField(allow_null=True)


class FeaturesConfigSerializer(serializers.Serializer):
    offlineEnabled = serializers.BooleanField(source='offline_enabled')
    pushNotifications = serializers.BooleanField(source='push_notifications')
    marineWeather = serializers.BooleanField(source='marine_weather')


class TenantConfigSerializer(serializers.Serializer):
    """Frontend bootstrap payload built by ``TenantConfigService``."""

    city = CityConfigSerializer()
    brand = serializers.DictField()
    modules = ModuleStateSerializer(many=True)
    geo = GeoConfigSerializer()
    features = FeaturesConfigSerializer()
