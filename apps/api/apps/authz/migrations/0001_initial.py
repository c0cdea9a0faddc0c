# Generated migration for authz app: auth_user

import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=255, unique=True)),
                ('name', models.CharField(blank=True, max_length=255)),
                ('phone', models.CharField(blank=True, max_length=30)),
                ('role', models.CharField(
                    choices=[('admin', 'Admin'), ('staff', 'Staff'), ('patient', 'Patient')],
                    default='patient',
                    max_length=20
                )),
                ('status', models.CharField(
                    choices=[('active', 'Active'), ('inactive', 'Inactive'), ('suspended', 'Suspended')],
                    default='active',
                    max_length=20
                )),
                ('employee_id', models.CharField(blank=True, max_length=50, null=True, unique=True)),
                ('position', models.CharField(
                    blank=True,
                    choices=[('dentist', 'Dentist'), ('hygienist', 'Hygienist'), ('receptionist', 'Receptionist')],
                    default='',
                    max_length=20
                )),
                ('license_number', models.CharField(blank=True, default='', max_length=100)),
                ('license_expiry', models.DateField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('is_staff', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'auth_user',
                'indexes': [
                    models.Index(fields=['email'], name='idx_user_email'),
                    models.Index(fields=['role', 'status'], name='idx_user_role_status'),
                ],
            },
        ),
    ]
