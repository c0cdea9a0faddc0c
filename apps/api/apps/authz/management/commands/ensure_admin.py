"""
Management command to ensure a clinic admin exists (for Docker startup).
"""
import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from apps.authz.models import RoleChoices, UserStatusChoices


class Command(BaseCommand):
    help = 'Create the clinic admin user if it does not exist'

    def handle(self, *args, **options):
        User = get_user_model()

        email = os.environ.get('CLINIC_ADMIN_EMAIL', 'admin@upnorth.dental')
        password = os.environ.get('CLINIC_ADMIN_PASSWORD', 'admin123dev')

        user = User.objects.filter(email=email).first()
        if user is None:
            User.objects.create_superuser(
                email=email,
                password=password,
                name='Clinic Administrator',
            )
            self.stdout.write(
                self.style.SUCCESS(f'Admin "{email}" created successfully')
            )
            return

        if user.role != RoleChoices.ADMIN or user.status != UserStatusChoices.ACTIVE:
            user.role = RoleChoices.ADMIN
            user.status = UserStatusChoices.ACTIVE
            user.save(update_fields=['role', 'status', 'updated_at'])
            self.stdout.write(
                self.style.WARNING(f'User "{email}" promoted to active admin')
            )
        else:
            self.stdout.write(
                self.style.WARNING(f'Admin "{email}" already exists')
            )
