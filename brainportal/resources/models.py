from django.db import models
from django.conf import settings


class RemoteResource(models.Model):
    """An execution server or portal the application can dispatch work to."""

    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='remote_resources',
    )
    group = models.ForeignKey('groups.Group', on_delete=models.SET_NULL, null=True, blank=True)
    online = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class DataProvider(models.Model):
    """A storage location holding the content of user files."""

    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='data_providers',
    )
    group = models.ForeignKey('groups.Group', on_delete=models.SET_NULL, null=True, blank=True)
    online = models.BooleanField(default=True)
    read_only = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Tool(models.Model):
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=64, blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tools',
    )
    group = models.ForeignKey('groups.Group', on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name
