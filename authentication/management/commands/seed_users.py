"""
Management command to seed demo/test users for RescueLink.

Usage:
    python manage.py seed_users [--force] [--drivers N]

Creates one user per role with known passwords for testing:
    - superadmin@rescuelink.pk / Super@123 (Super Admin)
    - admin@rescuelink.pk / Admin@123 (Admin)
    - edhi@rescuelink.pk / Edhi@123 (Department: Edhi Foundation)
    - chippa@rescuelink.pk / Chippa@123 (Department: Chippa Ambulance)
    - hospital@rescuelink.pk / Hospital@123 (Hospital: Jinnah Hospital)
    - citizen@rescuelink.pk / Citizen@123 (Citizen)

plus --drivers driver accounts per configured department
(driver1.edhi@rescuelink.pk / Driver@123, ...).
"""

from django.conf import settings
from django.core.management.base import BaseCommand

from authentication.models import User, UserRole, UserStatus


DEMO_USERS = [
    {
        'email': 'superadmin@rescuelink.pk',
        'password': 'Super@123',
        'role': UserRole.SUPERADMIN,
        'name': 'RescueLink Super Admin',
        'is_superuser': True,
        'is_staff': True,
    },
    {
        'email': 'admin@rescuelink.pk',
        'password': 'Admin@123',
        'role': UserRole.ADMIN,
        'name': 'RescueLink Admin',
        'is_staff': True,
    },
    {
        'email': 'edhi@rescuelink.pk',
        'password': 'Edhi@123',
        'role': UserRole.DEPARTMENT,
        'name': 'Edhi Dispatch',
        'department': 'Edhi Foundation',
    },
    {
        'email': 'chippa@rescuelink.pk',
        'password': 'Chippa@123',
        'role': UserRole.DEPARTMENT,
        'name': 'Chippa Dispatch',
        'department': 'Chippa Ambulance',
    },
    {
        'email': 'hospital@rescuelink.pk',
        'password': 'Hospital@123',
        'role': UserRole.HOSPITAL,
        'name': 'Jinnah Hospital Desk',
        'hospital': 'Jinnah Hospital',
    },
    {
        'email': 'citizen@rescuelink.pk',
        'password': 'Citizen@123',
        'role': UserRole.CITIZEN,
        'name': 'Demo Citizen',
        'phone': '+923000000000',
    },
]

DRIVER_PASSWORD = 'Driver@123'


def _driver_users(count):
    users = []
    for department in settings.DISPATCH_DEPARTMENTS:
        slug = department.split()[0].lower()
        for number in range(1, count + 1):
            users.append({
                'email': f'driver{number}.{slug}@rescuelink.pk',
                'password': DRIVER_PASSWORD,
                'role': UserRole.DRIVER,
                'name': f'{department} Driver {number}',
                'department': department,
                'driving_license': f'{slug[:3].upper()}-{number:04d}',
            })
    return users


class Command(BaseCommand):
    help = 'Seed demo/test users for all RescueLink roles'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Reset passwords even if users already exist',
        )
        parser.add_argument(
            '--drivers',
            type=int,
            default=2,
            help='Number of drivers to create per department (default: 2)',
        )

    def handle(self, *args, **options):
        force = options['force']
        created_count = 0
        updated_count = 0

        for template in DEMO_USERS + _driver_users(max(options['drivers'], 0)):
            user_data = dict(template)
            email = user_data.pop('email')
            password = user_data.pop('password')
            role = user_data['role']

            user = User.objects.filter(email=email).first()
            if user is None:
                User.objects.create_user(email=email, password=password, **user_data)
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'  Created: {email} ({role})'))
                continue

            if not force:
                self.stdout.write(self.style.NOTICE(
                    f'  Exists:  {email} ({user.role}) - use --force to reset'
                ))
                continue

            for field, value in user_data.items():
                setattr(user, field, value)
            user.set_password(password)
            user.status = UserStatus.ACTIVE
            user.is_active = True
            user.save()
            updated_count += 1
            self.stdout.write(self.style.WARNING(f'  Updated: {email} ({role})'))

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(
            f'Done! Created: {created_count}, Updated: {updated_count}'
        ))
