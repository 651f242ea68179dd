import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('fleet', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='VehicleDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('OWNERSHIP', 'Ownership Documents'), ('LICENSE', 'Vehicle License'), ('ROADWORTHY', 'Roadworthy Certificate'), ('INSURANCE', 'Insurance Policy'), ('SERVICE_HISTORY', 'Service History'), ('INVOICE', 'Invoice/Receipt'), ('OTHER', 'Other')], max_length=30)),
                ('title', models.CharField(blank=True, default='', max_length=200)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected')], default='PENDING', max_length=20)),
                ('file_reference', models.CharField(max_length=500)),
                ('original_name', models.CharField(blank=True, default='', max_length=255)),
                ('issued_on', models.DateField(blank=True, null=True)),
                ('expires_on', models.DateField(blank=True, null=True)),
                ('review_note', models.TextField(blank=True, default='')),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('superseded_at', models.DateTimeField(blank=True, null=True)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_vehicle_documents', to=settings.AUTH_USER_MODEL)),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='fleet.vehicle')),
            ],
            options={
                'db_table': 'vehicle_documents',
                'ordering': ['uploaded_at', 'id'],
                'constraints': [models.UniqueConstraint(condition=models.Q(('superseded_at__isnull', True)), fields=('vehicle', 'type'), name='unique_current_vehicle_document_per_type')],
            },
        ),
        migrations.CreateModel(
            name='VehicleMaintenance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('status', models.CharField(choices=[('PLANNED', 'Planned'), ('IN_PROGRESS', 'In Progress'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled')], db_index=True, default='PLANNED', max_length=20)),
                ('scheduled_on', models.DateField(blank=True, null=True)),
                ('odometer_km', models.PositiveIntegerField(blank=True, null=True)),
                ('estimated_cost_cents', models.PositiveIntegerField(blank=True, null=True)),
                ('actual_cost_cents', models.PositiveIntegerField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='maintenance_created', to=settings.AUTH_USER_MODEL)),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='maintenance_records', to='fleet.vehicle')),
            ],
            options={
                'db_table': 'vehicle_maintenance',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='VehicleCost',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('LICENSE', 'License'), ('SERVICE', 'Service/Maintenance'), ('REPAIR', 'Repair'), ('TYRES', 'Tyres'), ('INSURANCE', 'Insurance'), ('FUEL', 'Fuel'), ('FINES', 'Fines'), ('OTHER', 'Other')], max_length=20)),
                ('title', models.CharField(blank=True, default='', max_length=200)),
                ('amount_cents', models.PositiveIntegerField()),
                ('occurred_on', models.DateField()),
                ('vendor', models.CharField(blank=True, default='', max_length=100)),
                ('notes', models.TextField(blank=True, default='')),
                ('receipt_reference', models.CharField(blank=True, default='', max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='vehicle_costs_recorded', to=settings.AUTH_USER_MODEL)),
                ('maintenance', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cost', to='fleet.vehiclemaintenance')),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='costs', to='fleet.vehicle')),
            ],
            options={
                'db_table': 'vehicle_costs',
                'ordering': ['-occurred_on', '-id'],
                'constraints': [models.CheckConstraint(condition=models.Q(('amount_cents__gt', 0)), name='vehicle_cost_positive')],
            },
        ),
    ]
