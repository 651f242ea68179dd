import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='CustomUser',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('email', models.EmailField(db_index=True, max_length=255, unique=True, verbose_name='email address')),
                ('username', models.CharField(blank=True, help_text='Optional username. Email will be used for login if not provided.', max_length=150, null=True, unique=True)),
                ('first_name', models.CharField(blank=True, max_length=150)),
                ('last_name', models.CharField(blank=True, max_length=150)),
                ('phone', models.CharField(blank=True, help_text='Contact phone number', max_length=17, null=True, validators=[django.core.validators.RegexValidator(message="Phone number must be entered in the format: '+999999999'. Up to 15 digits allowed.", regex='^\\+?1?\\d{9,15}$')])),
                ('role', models.CharField(choices=[('admin', 'Administrator'), ('driver', 'Driver')], default='driver', help_text='User role in the system', max_length=20)),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active.')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into admin site.')),
                ('is_email_verified', models.BooleanField(default=False)),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now)),
                ('last_login', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to.', related_name='customuser_set', related_query_name='customuser', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='customuser_set', related_query_name='customuser', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'db_table': 'custom_users',
                'ordering': ['-date_joined'],
                'indexes': [
                    models.Index(fields=['email'], name='custom_user_email_idx'),
                    models.Index(fields=['role'], name='custom_user_role_idx'),
                    models.Index(fields=['is_active'], name='custom_user_active_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AppSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=100, unique=True)),
                ('value', models.JSONField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='settings_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'app_settings',
                'ordering': ['key'],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action_type', models.CharField(choices=[('DOCUMENT_UPLOADED', 'Document Uploaded'), ('DOCUMENT_REVIEWED', 'Document Reviewed'), ('PROFILE_UPDATED', 'Profile Updated'), ('LOCATION_RECORDED', 'Location Recorded'), ('VERIFICATION_SUBMITTED', 'Verification Submitted'), ('VERIFICATION_FINALIZED', 'Verification Finalized'), ('CONTRACT_CREATED', 'Contract Created'), ('CONTRACT_TRANSITIONED', 'Contract Transitioned'), ('CONTRACT_DELETED', 'Contract Deleted'), ('VEHICLE_STATUS_CHANGED', 'Vehicle Status Changed'), ('PAYMENT_PAID', 'Payment Paid'), ('PAYMENT_FAILED', 'Payment Failed'), ('PAYMENTS_GENERATED', 'Payments Generated'), ('PAYMENTS_OVERDUE', 'Payments Marked Overdue'), ('VEHICLE_DOCUMENT_UPLOADED', 'Vehicle Document Uploaded'), ('VEHICLE_DOCUMENT_REVIEWED', 'Vehicle Document Reviewed'), ('MAINTENANCE_SCHEDULED', 'Maintenance Scheduled'), ('MAINTENANCE_UPDATED', 'Maintenance Updated'), ('VEHICLE_COST_RECORDED', 'Vehicle Cost Recorded'), ('SETTINGS_UPDATED', 'Settings Updated')], max_length=50)),
                ('entity_type', models.CharField(max_length=50)),
                ('entity_id', models.CharField(max_length=50)),
                ('description', models.TextField(blank=True, default='')),
                ('metadata', models.JSONField(blank=True, help_text='Additional data related to the action', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
                    models.Index(fields=['user', '-created_at'], name='audit_user_created_idx'),
                    models.Index(fields=['action_type'], name='audit_action_idx'),
                ],
            },
        ),
    ]
