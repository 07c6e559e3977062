# Generated manually: RescueLink user model

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
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID v4)', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated')),
                ('is_deleted', models.BooleanField(db_index=True, default=False, help_text='Soft delete flag')),
                ('deleted_at', models.DateTimeField(blank=True, help_text='Timestamp when record was soft-deleted', null=True)),
                ('email', models.EmailField(help_text='Login identifier', max_length=255, unique=True)),
                ('name', models.CharField(help_text='Display name', max_length=100)),
                ('phone', models.CharField(blank=True, help_text='Contact number', max_length=20)),
                ('role', models.CharField(
                    choices=[
                        ('superadmin', 'Super Admin'),
                        ('admin', 'Admin'),
                        ('department', 'Department'),
                        ('driver', 'Driver'),
                        ('hospital', 'Hospital'),
                        ('citizen', 'Citizen'),
                    ],
                    db_index=True,
                    default='citizen',
                    help_text='User role determining access',
                    max_length=20,
                )),
                ('department', models.CharField(blank=True, db_index=True, help_text='Ambulance department (department and driver roles)', max_length=100)),
                ('hospital', models.CharField(blank=True, db_index=True, help_text='Hospital name (hospital role)', max_length=200)),
                ('driving_license', models.CharField(blank=True, help_text='Driving license number (driver role)', max_length=50)),
                ('status', models.CharField(
                    choices=[
                        ('active', 'Active'),
                        ('inactive', 'Inactive'),
                        ('suspended', 'Suspended'),
                    ],
                    db_index=True,
                    default='active',
                    help_text='Current account status',
                    max_length=20,
                )),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether user can access admin site')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether user account is active')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'rescuelink_users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['role', 'status'], name='rescuelink__role_4c1f0e_idx'),
                    models.Index(fields=['role', 'department'], name='rescuelink__role_9a7d2b_idx'),
                ],
            },
        ),
    ]
