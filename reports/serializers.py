"""
Reports Serializers.
"""

from rest_framework import serializers

from tenancy.mixins import TenantScopedSerializerMixin
from tenancy.models import Bairro

from .models import CitizenReport
from .services import BairroMatcher


class CitizenReportSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    """
    Citizen report of the request's city.

    ``bairro`` must belong to that city. When only ``bairro_text`` is sent
    it is matched by name; unknown names are logged for curation.
    """

    bairro = serializers.PrimaryKeyRelatedField(
        queryset=Bairro.objects.all(),
        required=False,
        allow_null=True,
    )
    bairro_text = serializers.CharField(write_only=True, required=False, allow_blank=True)
    bairro_name = serializers.SerializerMethodField()

    class Meta:
        model = CitizenReport
        fields = [
            'id', 'city', 'title', 'description', 'bairro', 'bairro_name', 'bairro_text',
            'address_text', 'status', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'city', 'status', 'created_at', 'updated_at']
        tenant_scoped_fields = ('bairro',)

    def get_bairro_name(self, obj):
        return obj.bairro.name if obj.bairro_id else None

    def create(self, validated_data):
        bairro_text = validated_data.pop('bairro_text', '')
        city = self.get_city()
        if validated_data.get('bairro') is None and bairro_text:
            validated_data['bairro'] = BairroMatcher().match(city, bairro_text)
        validated_data['city'] = city
        return super().create(validated_data)
