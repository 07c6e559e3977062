# Generated manually: incident lifecycle, photos and action log

import uuid
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import incidents.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Incident',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID v4)', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated')),
                ('is_deleted', models.BooleanField(db_index=True, default=False, help_text='Soft delete flag')),
                ('deleted_at', models.DateTimeField(blank=True, help_text='Timestamp when record was soft-deleted', null=True)),
                ('description', models.TextField(default='Accident reported', help_text='Free-text description')),
                ('category', models.CharField(choices=[('Accident', 'Accident')], default='Accident', help_text='Incident category', max_length=30)),
                ('priority', models.CharField(
                    choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')],
                    db_index=True, default='high', help_text='Triage priority', max_length=10,
                )),
                ('longitude', models.FloatField(
                    help_text='Longitude coordinate',
                    validators=[django.core.validators.MinValueValidator(-180.0), django.core.validators.MaxValueValidator(180.0)],
                )),
                ('latitude', models.FloatField(
                    help_text='Latitude coordinate',
                    validators=[django.core.validators.MinValueValidator(-90.0), django.core.validators.MaxValueValidator(90.0)],
                )),
                ('address', models.CharField(blank=True, help_text='Resolved address', max_length=500)),
                ('status', models.CharField(
                    choices=[
                        ('pending', 'Pending'),
                        ('approved', 'Approved'),
                        ('rejected', 'Rejected'),
                        ('assigned', 'Assigned'),
                        ('in_progress', 'In Progress'),
                        ('completed', 'Completed'),
                        ('cancelled', 'Cancelled'),
                    ],
                    db_index=True, default='pending', max_length=20,
                )),
                ('driver_status', models.CharField(
                    choices=[
                        ('assigned', 'Assigned'),
                        ('arrived', 'Arrived'),
                        ('transporting', 'Transporting'),
                        ('delivered', 'Delivered'),
                        ('completed', 'Completed'),
                    ],
                    db_index=True, default='assigned', max_length=20,
                )),
                ('hospital_status', models.CharField(
                    choices=[
                        ('pending', 'Pending'),
                        ('incoming', 'Incoming'),
                        ('admitted', 'Admitted'),
                        ('discharged', 'Discharged'),
                        ('cancelled', 'Cancelled'),
                    ],
                    db_index=True, default='pending', max_length=20,
                )),
                ('assigned_department', models.CharField(
                    blank=True, db_index=True, help_text='Ambulance department handling the incident', max_length=100,
                    validators=[incidents.models.validate_department],
                )),
                ('assigned_driver_name', models.CharField(blank=True, help_text='Driver name at assignment time', max_length=100)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('patient_condition', models.CharField(blank=True, max_length=255)),
                ('patient_hospital', models.CharField(blank=True, db_index=True, help_text='Receiving hospital name', max_length=200)),
                ('medical_notes', models.TextField(blank=True)),
                ('treatment', models.TextField(blank=True)),
                ('doctor', models.CharField(blank=True, max_length=100)),
                ('bed_number', models.CharField(blank=True, max_length=20)),
                ('patient_status_updated_at', models.DateTimeField(blank=True, null=True)),
                ('patient_pickup_status', models.CharField(
                    blank=True,
                    choices=[('picked_up', 'Picked Up'), ('taken_by_someone', 'Taken By Someone'), ('expired', 'Expired')],
                    max_length=20,
                )),
                ('patient_pickup_notes', models.TextField(blank=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('reported_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('first_assigned_at', models.DateTimeField(blank=True, null=True)),
                ('arrived_at', models.DateTimeField(blank=True, null=True)),
                ('transporting_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('admitted_at', models.DateTimeField(blank=True, null=True)),
                ('discharged_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('assigned_by', models.ForeignKey(
                    blank=True, help_text='Admin or dispatcher who made the last assignment', null=True,
                    on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL,
                )),
                ('assigned_driver', models.ForeignKey(
                    blank=True, help_text='Driver bound to the incident', null=True,
                    on_delete=django.db.models.deletion.SET_NULL, related_name='driver_incidents', to=settings.AUTH_USER_MODEL,
                )),
                ('reported_by', models.ForeignKey(
                    help_text='Citizen who reported this incident',
                    on_delete=django.db.models.deletion.PROTECT, related_name='reported_incidents', to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'verbose_name': 'Incident',
                'verbose_name_plural': 'Incidents',
                'db_table': 'incidents',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='incidents_status_created_idx'),
                    models.Index(fields=['assigned_department', 'status'], name='incidents_dept_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='IncidentPhoto',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID v4)', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated')),
                ('is_deleted', models.BooleanField(db_index=True, default=False, help_text='Soft delete flag')),
                ('deleted_at', models.DateTimeField(blank=True, help_text='Timestamp when record was soft-deleted', null=True)),
                ('filename', models.CharField(help_text='Stored object name', max_length=255)),
                ('original_name', models.CharField(blank=True, max_length=255)),
                ('size', models.PositiveIntegerField(help_text='Size in bytes')),
                ('mime_type', models.CharField(max_length=100)),
                ('uploaded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('incident', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='photos', to='incidents.incident')),
                ('uploaded_by', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name='+', to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'incident_photos',
                'ordering': ['uploaded_at', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='IncidentAction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('sequence', models.PositiveIntegerField(help_text="Position within the incident's log")),
                ('action', models.CharField(db_index=True, help_text='Transition tag, e.g. driver_arrived', max_length=64)),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('incident', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='actions', to='incidents.incident')),
                ('performed_by', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name='incident_actions', to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'incident_actions',
                'ordering': ['incident', 'sequence'],
                'constraints': [
                    models.UniqueConstraint(fields=('incident', 'sequence'), name='unique_incident_action_sequence'),
                ],
            },
        ),
    ]
