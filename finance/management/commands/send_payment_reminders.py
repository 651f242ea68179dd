from django.core.management.base import BaseCommand

from finance.overdue import send_due_soon_reminders


class Command(BaseCommand):
    help = 'Notify drivers of pending payments due within payments.reminderDaysBefore days'

    def add_arguments(self, parser):
        parser.add_argument('--days-before', type=int, help='Override payments.reminderDaysBefore')

    def handle(self, *args, **options):
        reminded, warnings = send_due_soon_reminders(days_before=options.get('days_before'))
        for warning in warnings:
            self.stderr.write(self.style.WARNING(warning))
        self.stdout.write(self.style.SUCCESS(f'{len(reminded)} reminder(s) sent.'))
