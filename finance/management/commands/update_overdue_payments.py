from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from finance.overdue import mark_overdue_payments


class Command(BaseCommand):
    help = 'Persist OVERDUE for pending payments past the grace period and notify drivers'

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Run as of this date (YYYY-MM-DD); defaults to today')
        parser.add_argument('--grace-days', type=int, help='Override payments.graceDays')

    def handle(self, *args, **options):
        today = None
        if options.get('date'):
            today = parse_date(options['date'])
            if today is None:
                raise CommandError(f"Invalid date: {options['date']}")

        payments, warnings = mark_overdue_payments(today=today, grace_period_days=options.get('grace_days'))
        for warning in warnings:
            self.stderr.write(self.style.WARNING(warning))
        self.stdout.write(self.style.SUCCESS(f'{len(payments)} payment(s) marked overdue.'))
