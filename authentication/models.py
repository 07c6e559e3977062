"""
Authentication models for RescueLink Backend.

Contains the custom User model. Every actor in the dispatch flow is a
User distinguished by role:

- superadmin / admin: triage incoming incidents
- department: ambulance service dispatcher (Edhi, Chippa, ...)
- driver: ambulance driver belonging to a department
- hospital: receiving hospital desk
- citizen: reporter of incidents

Role-scoped attributes (department, hospital) are what the incident
authorization gate keys off.
"""

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models

from core.models import BaseModel


class UserRole:
    """User role constants."""
    SUPERADMIN = 'superadmin'
    ADMIN = 'admin'
    DEPARTMENT = 'department'
    DRIVER = 'driver'
    HOSPITAL = 'hospital'
    CITIZEN = 'citizen'

    CHOICES = [
        (SUPERADMIN, 'Super Admin'),
        (ADMIN, 'Admin'),
        (DEPARTMENT, 'Department'),
        (DRIVER, 'Driver'),
        (HOSPITAL, 'Hospital'),
        (CITIZEN, 'Citizen'),
    ]

    # Roles allowed to triage (approve/reject) incidents
    ADMIN_ROLES = [SUPERADMIN, ADMIN]

    # Roles that must carry a department name
    DEPARTMENT_SCOPED = [DEPARTMENT, DRIVER]


class UserStatus:
    """User account status constants."""
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    SUSPENDED = 'suspended'

    CHOICES = [
        (ACTIVE, 'Active'),
        (INACTIVE, 'Inactive'),
        (SUSPENDED, 'Suspended'),
    ]


def check_role_scope(role, department, hospital):
    """Raise ValueError when a role lacks its required department or hospital."""
    if role in UserRole.DEPARTMENT_SCOPED and (department or '') not in settings.DISPATCH_DEPARTMENTS:
        raise ValueError(f'Unknown department for {role} user: {department!r}')
    if role == UserRole.HOSPITAL and not hospital:
        raise ValueError('Hospital users must have a hospital name')


class UserManager(BaseUserManager):
    """
    Manager for the RescueLink User model.

    Enforces role-scoped attributes at creation time: department and
    driver accounts need a known department, hospital accounts need a
    hospital name.
    """

    def get_queryset(self):
        """Return only non-deleted users by default."""
        return super().get_queryset().filter(is_deleted=False)

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('User must have an email address')

        check_role_scope(
            extra_fields.get('role', UserRole.CITIZEN),
            extra_fields.get('department'),
            extra_fields.get('hospital'),
        )

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        """Create a superuser for admin access."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.SUPERADMIN)
        extra_fields.setdefault('status', UserStatus.ACTIVE)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)

    def active(self):
        return self.get_queryset().filter(is_active=True, status=UserStatus.ACTIVE)

    def department_users(self, department):
        """Active dispatcher accounts of one department."""
        return self.active().filter(role=UserRole.DEPARTMENT, department=department)

    def hospital_users(self, hospital):
        """Active desk accounts of one hospital."""
        return self.active().filter(role=UserRole.HOSPITAL, hospital=hospital)

    def admins(self):
        return self.active().filter(role__in=UserRole.ADMIN_ROLES)

    def drivers(self, department=None):
        queryset = self.active().filter(role=UserRole.DRIVER)
        if department:
            queryset = queryset.filter(department=department)
        return queryset


class User(AbstractBaseUser, PermissionsMixin, BaseModel):
    """
    Custom User model for RescueLink.

    - UUID primary key (inherited from BaseModel)
    - email is the login identifier
    - role plus role-scoped department/hospital attributes
    - soft delete only
    """

    email = models.EmailField(
        max_length=255,
        unique=True,
        help_text="Login identifier"
    )

    name = models.CharField(
        max_length=100,
        help_text="Display name"
    )

    phone = models.CharField(
        max_length=20,
        blank=True,
        help_text="Contact number"
    )

    role = models.CharField(
        max_length=20,
        choices=UserRole.CHOICES,
        default=UserRole.CITIZEN,
        db_index=True,
        help_text="User role determining access"
    )

    department = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        help_text="Ambulance department (department and driver roles)"
    )

    hospital = models.CharField(
        max_length=200,
        blank=True,
        db_index=True,
        help_text="Hospital name (hospital role)"
    )

    driving_license = models.CharField(
        max_length=50,
        blank=True,
        help_text="Driving license number (driver role)"
    )

    status = models.CharField(
        max_length=20,
        choices=UserStatus.CHOICES,
        default=UserStatus.ACTIVE,
        db_index=True,
        help_text="Current account status"
    )

    is_staff = models.BooleanField(
        default=False,
        help_text="Designates whether user can access admin site"
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Designates whether user account is active"
    )

    objects = UserManager()

    USERNAME_FIELD = 'email'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        db_table = 'rescuelink_users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['role', 'status'], name='rescuelink__role_4c1f0e_idx'),
            models.Index(fields=['role', 'department'], name='rescuelink__role_9a7d2b_idx'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}> ({self.role})"

    @property
    def is_superadmin(self):
        return self.role == UserRole.SUPERADMIN

    @property
    def is_admin_role(self):
        """Admin or superadmin."""
        return self.role in UserRole.ADMIN_ROLES

    @property
    def is_department(self):
        return self.role == UserRole.DEPARTMENT

    @property
    def is_driver(self):
        return self.role == UserRole.DRIVER

    @property
    def is_hospital(self):
        return self.role == UserRole.HOSPITAL

    @property
    def is_citizen(self):
        return self.role == UserRole.CITIZEN

    @property
    def is_suspended(self):
        """Inactive or suspended accounts cannot act."""
        return self.status != UserStatus.ACTIVE

    def restrict(self):
        """
        Suspend the account and blacklist every refresh token issued
        to it. Access tokens already handed out stop working at the
        next permission check, which rejects suspended accounts.
        """
        self.status = UserStatus.SUSPENDED
        self.save(update_fields=['status', 'updated_at'])
        self.revoke_tokens()

    def revoke_tokens(self):
        from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken

        for token in OutstandingToken.objects.filter(user=self):
            BlacklistedToken.objects.get_or_create(token=token)
