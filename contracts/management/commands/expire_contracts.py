from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from contracts.lifecycle import expire_contracts


class Command(BaseCommand):
    help = 'Move ACTIVE/PAUSED contracts whose end date has passed to EXPIRED'

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Run as of this date (YYYY-MM-DD); defaults to today')

    def handle(self, *args, **options):
        today = None
        if options.get('date'):
            today = parse_date(options['date'])
            if today is None:
                raise CommandError(f"Invalid date: {options['date']}")

        expired = expire_contracts(today=today)
        for contract in expired:
            self.stdout.write(f"Contract {contract.pk} expired (ended {contract.end_date})")
        self.stdout.write(self.style.SUCCESS(f'{len(expired)} contract(s) expired.'))
