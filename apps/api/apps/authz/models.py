"""
Authz models: auth_user
"""
import uuid
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models


# ============================================================================
# Enums
# ============================================================================

class RoleChoices(models.TextChoices):
    """The three clinic roles. Exactly one per user."""
    ADMIN = 'admin', 'Admin'
    STAFF = 'staff', 'Staff'
    PATIENT = 'patient', 'Patient'


class UserStatusChoices(models.TextChoices):
    """
    Account status managed by admins.

    Only ACTIVE accounts pass the role gate. This is separate from
    Django's is_active login flag.
    """
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'
    SUSPENDED = 'suspended', 'Suspended'


class StaffPositionChoices(models.TextChoices):
    DENTIST = 'dentist', 'Dentist'
    HYGIENIST = 'hygienist', 'Hygienist'
    RECEPTIONIST = 'receptionist', 'Receptionist'


# ============================================================================
# User Management
# ============================================================================

class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', RoleChoices.ADMIN)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Clinic user: admin, staff member or patient.

    Fields:
    - id: UUID PK
    - email: unique, login name
    - name, phone
    - role: admin|staff|patient
    - status: active|inactive|suspended (checked by the role gate)
    - employee_id, position, license_number, license_expiry: staff only
    - is_active / is_staff: Django login and admin-site flags
    - created_at, updated_at

    BUSINESS RULES:
    - Users are never hard-deleted; admins change `status` instead
    - A dentist needs a license_number and an unexpired license_expiry
      before the gate lets them into clinical routes
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255)
    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    role = models.CharField(
        max_length=20,
        choices=RoleChoices.choices,
        default=RoleChoices.PATIENT
    )
    status = models.CharField(
        max_length=20,
        choices=UserStatusChoices.choices,
        default=UserStatusChoices.ACTIVE
    )

    # Staff profile
    employee_id = models.CharField(max_length=50, unique=True, blank=True, null=True)
    position = models.CharField(
        max_length=20,
        choices=StaffPositionChoices.choices,
        blank=True,
        default=''
    )
    license_number = models.CharField(max_length=100, blank=True, default='')
    license_expiry = models.DateField(blank=True, null=True)

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)  # Required for admin site access
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'auth_user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['email'], name='idx_user_email'),
            models.Index(fields=['role', 'status'], name='idx_user_role_status'),
        ]

    def __str__(self):
        return self.email

    @property
    def is_admin(self):
        return self.role == RoleChoices.ADMIN

    @property
    def is_clinic_staff(self):
        return self.role == RoleChoices.STAFF

    @property
    def is_patient(self):
        return self.role == RoleChoices.PATIENT

    @property
    def is_status_active(self):
        return self.status == UserStatusChoices.ACTIVE
