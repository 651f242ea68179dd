import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

OPEN_STATUSES = ['DRAFT', 'SENT_TO_DRIVER', 'SIGNED_BY_DRIVER', 'ACTIVE', 'PAUSED']


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('drivers', '0001_initial'),
        ('fleet', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='RentalContract',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('fee_amount_cents', models.PositiveIntegerField()),
                ('frequency', models.CharField(choices=[('DAILY', 'Daily'), ('WEEKLY', 'Weekly'), ('MONTHLY', 'Monthly')], max_length=10)),
                ('due_weekday', models.PositiveSmallIntegerField(blank=True, help_text='0=Sunday .. 6=Saturday, WEEKLY only', null=True)),
                ('due_day_of_month', models.PositiveSmallIntegerField(blank=True, help_text='1..31, clamped to the month length, MONTHLY only', null=True)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField(blank=True, null=True)),
                ('terms_text', models.TextField(blank=True, default='')),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('SENT_TO_DRIVER', 'Sent to Driver'), ('SIGNED_BY_DRIVER', 'Signed by Driver'), ('ACTIVE', 'Active'), ('PAUSED', 'Paused'), ('ENDED', 'Ended'), ('CANCELLED', 'Cancelled'), ('EXPIRED', 'Expired')], db_index=True, default='DRAFT', max_length=20)),
                ('driver_signed_at', models.DateTimeField(blank=True, null=True)),
                ('driver_signature_reference', models.CharField(blank=True, default='', max_length=500)),
                ('acceptance', models.JSONField(blank=True, null=True)),
                ('terms_hash', models.CharField(blank=True, default='', max_length=64)),
                ('locked_at', models.DateTimeField(blank=True, null=True)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('activated_at', models.DateTimeField(blank=True, null=True)),
                ('paused_at', models.DateTimeField(blank=True, null=True)),
                ('resumed_on', models.DateField(blank=True, null=True)),
                ('ended_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('expired_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contracts_created', to=settings.AUTH_USER_MODEL)),
                ('driver', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='contracts', to='drivers.driverprofile')),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='contracts', to='fleet.vehicle')),
            ],
            options={
                'db_table': 'rental_contracts',
                'ordering': ['-created_at'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', OPEN_STATUSES)), fields=('vehicle',), name='unique_open_contract_per_vehicle'),
                    models.UniqueConstraint(condition=models.Q(('status__in', OPEN_STATUSES)), fields=('driver',), name='unique_open_contract_per_driver'),
                    models.CheckConstraint(condition=models.Q(('fee_amount_cents__gt', 0)), name='contract_fee_positive'),
                ],
            },
        ),
    ]
