# Generated migration for clinical app: patient_profile, service, appointment, schedule_window, patient_record

import uuid
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


ACTIVE_STATUSES = ['scheduled', 'confirmed', 'checked_in', 'in_progress']


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PatientProfile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('birthday', models.DateField(blank=True, null=True)),
                ('gender', models.CharField(blank=True, choices=[('female', 'Female'), ('male', 'Male'), ('other', 'Other')], default='', max_length=10)),
                ('emergency_contact_name', models.CharField(default='To be updated', max_length=255)),
                ('emergency_contact_phone', models.CharField(default='To be updated', max_length=30)),
                ('emergency_contact_relationship', models.CharField(blank=True, default='', max_length=50)),
                ('insurance_provider', models.CharField(blank=True, default='', max_length=255)),
                ('insurance_number', models.CharField(blank=True, default='', max_length=100)),
                ('medical_history', models.TextField(default='No history recorded')),
                ('allergies', models.TextField(default='None known')),
                ('current_medications', models.TextField(default='None')),
                ('blood_type', models.CharField(blank=True, default='', max_length=5)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='patient_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Patient Profile',
                'verbose_name_plural': 'Patient Profiles',
                'db_table': 'patient_profile',
            },
        ),
        migrations.CreateModel(
            name='Service',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('category', models.CharField(
                    choices=[
                        ('general', 'General Dentistry'),
                        ('preventive', 'Preventive'),
                        ('restorative', 'Restorative'),
                        ('cosmetic', 'Cosmetic'),
                        ('orthodontics', 'Orthodontics'),
                        ('surgery', 'Oral Surgery'),
                        ('emergency', 'Emergency'),
                    ],
                    default='general',
                    max_length=20
                )),
                ('price', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('duration_minutes', models.PositiveIntegerField(default=30)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Service',
                'verbose_name_plural': 'Services',
                'db_table': 'service',
                'indexes': [models.Index(fields=['is_active'], name='idx_service_active')],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('date', models.DateField()),
                ('time', models.TimeField()),
                ('duration_minutes', models.PositiveIntegerField(default=30)),
                ('status', models.CharField(
                    choices=[
                        ('scheduled', 'Scheduled'),
                        ('confirmed', 'Confirmed'),
                        ('checked_in', 'Checked In'),
                        ('in_progress', 'In Progress'),
                        ('completed', 'Completed'),
                        ('cancelled', 'Cancelled'),
                        ('no_show', 'No Show'),
                    ],
                    default='scheduled',
                    max_length=20
                )),
                ('reason', models.TextField(blank=True, default='')),
                ('notes', models.TextField(blank=True, default='')),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('checked_in_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_appointments', to=settings.AUTH_USER_MODEL)),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='doctor_appointments', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='patient_appointments', to=settings.AUTH_USER_MODEL)),
                ('rescheduled_from', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='rescheduled_to', to='clinical.appointment')),
                ('service', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to='clinical.service')),
            ],
            options={
                'verbose_name': 'Appointment',
                'verbose_name_plural': 'Appointments',
                'db_table': 'appointment',
                'ordering': ['date', 'time'],
                'indexes': [
                    models.Index(fields=['doctor', 'date'], name='idx_appointment_doctor_date'),
                    models.Index(fields=['patient', 'date'], name='idx_appointment_patient_date'),
                    models.Index(fields=['status'], name='idx_appointment_status'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(status__in=ACTIVE_STATUSES),
                        fields=('doctor', 'date', 'time'),
                        name='uniq_active_appointment_doctor_slot',
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(status__in=ACTIVE_STATUSES),
                        fields=('patient', 'date', 'time'),
                        name='uniq_active_appointment_patient_slot',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='ScheduleWindow',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('date', models.DateField()),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('is_available', models.BooleanField(default=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('staff', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='schedule_windows', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Schedule Window',
                'verbose_name_plural': 'Schedule Windows',
                'db_table': 'schedule_window',
                'ordering': ['date', 'start_time'],
                'indexes': [models.Index(fields=['staff', 'date'], name='idx_schedule_staff_date')],
            },
        ),
        migrations.CreateModel(
            name='PatientRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('treatment_notes', models.TextField(blank=True, default='')),
                ('diagnosis', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('appointment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='patient_records', to='clinical.appointment')),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='authored_patient_records', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='patient_records', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Patient Record',
                'verbose_name_plural': 'Patient Records',
                'db_table': 'patient_record',
                'indexes': [
                    models.Index(fields=['patient'], name='idx_patient_record_patient'),
                    models.Index(fields=['created_by'], name='idx_patient_record_author'),
                ],
            },
        ),
    ]
