from django.db import models
from django.conf import settings

from resources.models import DataProvider


class UserFile(models.Model):
    name = models.CharField(max_length=255)
    size = models.PositiveBigIntegerField(null=True, blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='userfiles',
    )
    group = models.ForeignKey('groups.Group', on_delete=models.SET_NULL, null=True, blank=True)
    data_provider = models.ForeignKey(
        DataProvider,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='userfiles',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['name', 'data_provider'], name='uniq_userfile_name_per_provider'),
        ]
        verbose_name = 'User File'
        verbose_name_plural = 'User Files'

    def __str__(self) -> str:
        return self.name
