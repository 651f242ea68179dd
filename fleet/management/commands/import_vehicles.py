import pandas as pd
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from fleet.models import Vehicle, VehicleType

COLUMN_ALIASES = {
    'reg': 'registration_number',
    'registration': 'registration_number',
    'type': 'vehicle_type',
    'licenseexpiry': 'license_expiry',
    'insuranceexpiry': 'insurance_expiry',
    'roadworthyexpiry': 'roadworthy_expiry',
}
DATE_COLUMNS = ('license_expiry', 'insurance_expiry', 'roadworthy_expiry')
REQUIRED_COLUMNS = ('registration_number', 'make', 'model')


def read_frame(file_path):
    if file_path.lower().endswith(('.xlsx', '.xls')):
        return pd.read_excel(file_path, dtype=str)
    return pd.read_csv(file_path, dtype=str)


def normalize_columns(df):
    renamed = {}
    for column in df.columns:
        key = str(column).strip().lower().replace(' ', '_')
        renamed[column] = COLUMN_ALIASES.get(key.replace('_', ''), COLUMN_ALIASES.get(key, key))
    return df.rename(columns=renamed)


def clean(value):
    if value is None or pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def row_to_fields(row):
    fields = {
        'vehicle_type': (clean(row.get('vehicle_type')) or VehicleType.CAR).upper(),
        'make': clean(row.get('make')),
        'model': clean(row.get('model')),
        'notes': clean(row.get('notes')) or '',
    }
    if fields['vehicle_type'] not in VehicleType.values:
        raise ValueError(f"unknown vehicle type {fields['vehicle_type']}")
    if not fields['make'] or not fields['model']:
        raise ValueError("make and model are required")

    year = clean(row.get('year'))
    fields['year'] = int(float(year)) if year else None

    for column in DATE_COLUMNS:
        value = clean(row.get(column))
        fields[column] = pd.to_datetime(value).date() if value else None
    return fields


class Command(BaseCommand):
    help = 'Import vehicles from a CSV or Excel file (upsert by registration number)'

    def add_arguments(self, parser):
        parser.add_argument('file_path', help='Path to a .csv, .xlsx or .xls file')
        parser.add_argument('--dry-run', action='store_true', help='Validate rows without saving')

    def handle(self, *args, **options):
        file_path = options['file_path']
        try:
            df = normalize_columns(read_frame(file_path))
        except (OSError, ValueError) as e:
            raise CommandError(f'Error reading {file_path}: {e}')

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise CommandError(f"Missing columns: {', '.join(missing)}")

        created = updated = 0
        errors = []

        with transaction.atomic():
            for index, row in df.iterrows():
                registration = clean(row.get('registration_number'))
                if not registration:
                    errors.append(f"row {index + 2}: registration number is required")
                    continue
                try:
                    fields = row_to_fields(row)
                except (ValueError, TypeError) as e:
                    errors.append(f"row {index + 2} ({registration}): {e}")
                    continue

                if options['dry_run']:
                    continue

                # Status is never imported; new vehicles start AVAILABLE.
                _, was_created = Vehicle.objects.update_or_create(
                    registration_number=registration.upper(),
                    defaults=fields,
                )
                if was_created:
                    created += 1
                else:
                    updated += 1

        for error in errors:
            self.stderr.write(self.style.ERROR(error))

        summary = f'Vehicles imported: {created} created, {updated} updated, {len(errors)} skipped.'
        if options['dry_run']:
            summary = f'Dry run: {len(df) - len(errors)} valid rows, {len(errors)} invalid.'
        self.stdout.write(self.style.SUCCESS(summary))
