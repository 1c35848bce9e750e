"""
Management command to roll a module on or off across many cities.

Usage:
    python manage.py modules_rollout reports on
    python manage.py modules_rollout denuncias off --cities tijucas-sc,itapema-sc
    python manage.py modules_rollout weather on --except tijucas-sc --dry-run
    python manage.py modules_rollout --rollback <rollout-id>
"""

import uuid

from django.core.management.base import BaseCommand, CommandError

from tenancy.audit import get_audit_recorder
from tenancy.models import Module
from tenancy.services import ModuleRolloutService


STATES = {'on': True, 'off': False}


def _slugs(values):
    slugs = []
    for value in values or []:
        slugs.extend(part.strip().lower() for part in value.split(',') if part.strip())
    return slugs


class Command(BaseCommand):
    help = 'Enable or disable a module for many cities, with audit and rollback'

    def add_arguments(self, parser):
        parser.add_argument('module', nargs='?', help='Module key or legacy identifier')
        parser.add_argument('state', nargs='?', help='on|off')
        parser.add_argument(
            '--cities',
            action='append',
            help='Restrict to these city slugs (comma separated, repeatable)'
        )
        parser.add_argument(
            '--except',
            dest='exclude',
            action='append',
            help='Exclude these city slugs (comma separated, repeatable)'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show the plan without persisting anything'
        )
        parser.add_argument(
            '--rollout-id',
            help='Identifier for this rollout (default: random UUID)'
        )
        parser.add_argument(
            '--rollback',
            metavar='ROLLOUT_ID',
            help='Undo a previous rollout'
        )

    def handle(self, *args, **options):
        service = ModuleRolloutService(recorder=get_audit_recorder())

        if options.get('rollback'):
            return self._rollback(service, options['rollback'])

        identifier = options.get('module')
        state = (options.get('state') or '').strip().lower()
        if not identifier or not state:
            raise CommandError('Usage: modules_rollout <module> on|off')
        if state not in STATES:
            raise CommandError('State must be "on" or "off".')
        enabled = STATES[state]

        module = Module.find_by_identifier(identifier)
        if module is None:
            raise CommandError(f'Module not found: {identifier}')

        cities = service.select_cities(_slugs(options.get('cities')), _slugs(options.get('exclude')))
        if not cities:
            self.stdout.write(self.style.WARNING('No target cities matched the filters.'))
            return

        plan = service.plan(module, enabled, cities)
        self.stdout.write(f"{'city':<30} {'module':<15} {'current':<8} {'next':<8} change")
        for item in plan:
            previous = item['previous']
            current = 'none' if previous is None else ('on' if previous else 'off')
            will_change = previous is None or previous != enabled
            self.stdout.write(
                f"{item['city_slug']:<30} {module.module_key:<15} {current:<8} "
                f"{state:<8} {'yes' if will_change else 'no'}"
            )

        if options.get('dry_run'):
            self.stdout.write(self.style.WARNING('Dry run complete. No changes persisted.'))
            return

        rollout_id = options.get('rollout_id') or str(uuid.uuid4())
        service.apply(module, enabled, cities, rollout_id)
        self.stdout.write(self.style.SUCCESS(f'Rollout applied. rollout_id={rollout_id}'))

    def _rollback(self, service, rollout_id):
        try:
            restored = service.rollback(rollout_id)
        except LookupError as exc:
            raise CommandError(f'No rollout found for rollout_id={rollout_id}') from exc

        self.stdout.write(self.style.SUCCESS(
            f'Rollback completed for rollout_id={rollout_id} ({len(restored)} cities)'
        ))
