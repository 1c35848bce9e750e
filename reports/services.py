"""
Reports Services - matching free-text bairro names to the city's bairros.
"""

import logging
from typing import Optional

from django.utils.text import slugify

from tenancy.models import Bairro

logger = logging.getLogger(__name__)


def bairro_key(text: str) -> str:
    """Canonical key of a bairro name: accents stripped, lowercase, hyphenated."""
    return slugify(text or '')


class BairroMatcher:
    """
    Resolve a bairro name against the bairros of one city.

    Unmatched names are handed to the ``log_address_mismatch`` job, which
    aggregates them per city for curation.
    """

    def __init__(self, provider: str = 'viacep'):
        self.provider = provider

    def match(self, city, bairro_text: str) -> Optional[Bairro]:
        key = bairro_key(bairro_text)
        if not key:
            return None

        bairro = Bairro.objects.filter(city=city, slug=key, active=True).first()
        if bairro is not None:
            return bairro

        from .tasks import log_address_mismatch

        log_address_mismatch.apply_async(
            kwargs={
                'tenant_city_id': str(city.pk),
                'bairro_text_key': key,
                'bairro_text_example': bairro_text,
                'provider': self.provider,
            },
        )
        logger.info('bairro_unmatched', extra={'city_id': str(city.pk), 'bairro_text_key': key})
        return None
