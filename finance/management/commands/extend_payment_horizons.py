from django.core.management.base import BaseCommand

from finance.services import extend_all_horizons


class Command(BaseCommand):
    help = 'Materialize upcoming payment periods for every ACTIVE contract (safe to re-run)'

    def add_arguments(self, parser):
        parser.add_argument('--horizon', type=int, help='Override payments.horizonPeriods')

    def handle(self, *args, **options):
        results = extend_all_horizons(horizon=options.get('horizon'))
        for error in results['errors']:
            self.stderr.write(self.style.ERROR(error))
        self.stdout.write(self.style.SUCCESS(
            f"{results['contracts']} contract(s) extended, {results['payments_created']} payment(s) created."
        ))
