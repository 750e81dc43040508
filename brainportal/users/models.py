from django.db import models
from django.contrib.auth.models import AbstractUser

from groups.models import Group


class User(AbstractUser):
    class Roles(models.TextChoices):
        ADMIN = 'admin', 'Administrator'
        SITE_MANAGER = 'site_manager', 'Site Manager'
        USER = 'user', 'User'

    role = models.CharField(
        max_length=32,
        choices=Roles.choices,
        default=Roles.USER,
    )
    site = models.ForeignKey(
        'sites.Site',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='users',
    )

    def has_role(self, role: str) -> bool:
        return self.role == role

    def is_admin(self) -> bool:
        return self.role == self.Roles.ADMIN or self.is_superuser

    def is_site_manager(self) -> bool:
        return self.role == self.Roles.SITE_MANAGER

    def own_group(self):
        """The personal project named after this user."""
        return Group.objects.user_groups().filter(name=self.username).first()
