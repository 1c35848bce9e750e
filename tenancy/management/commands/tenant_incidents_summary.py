"""
Management command to summarize recent tenant incidents.

Groups incidents of the last N hours by city and incident type.
"""

from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Count, Max
from django.utils import timezone

from tenancy.models import TenantIncident


class Command(BaseCommand):
    help = 'Summarize tenant incidents grouped by city and type'

    def add_arguments(self, parser):
        parser.add_argument(
            '--hours',
            type=int,
            default=24,
            help='Look back N hours (default: 24)'
        )

    def handle(self, *args, **options):
        hours = options.get('hours', 24)
        if hours < 1:
            raise CommandError('--hours must be a positive integer')

        since = timezone.now() - timedelta(hours=hours)
        rows = (
            TenantIncident.objects
            .filter(created_at__gte=since)
            .values('city__slug', 'type')
            .annotate(total=Count('id'), last_seen=Max('created_at'))
            .order_by('-total', 'city__slug', 'type')
        )

        if not rows:
            self.stdout.write(self.style.SUCCESS(f'No tenant incidents in the last {hours}h.'))
            return

        self.stdout.write(f'Tenant incidents in the last {hours}h:')
        self.stdout.write(f"{'city':<30} {'type':<40} {'total':>6}  last_seen")
        grand_total = 0
        for row in rows:
            grand_total += row['total']
            self.stdout.write(
                f"{row['city__slug'] or '-':<30} {row['type']:<40} {row['total']:>6}  "
                f"{row['last_seen'].isoformat()}"
            )
        self.stdout.write(self.style.WARNING(f'Total: {grand_total}'))
