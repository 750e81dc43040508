import re

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

EVERYONE_GROUP_NAME = 'everyone'

LEGAL_GROUPNAME_RE = re.compile(r'^[A-Za-z0-9][\w\-=.+@ ]*$')


def is_legal_groupname(name) -> bool:
    """Group names start with a letter or digit; sites share this rule."""
    if not name:
        return False
    return bool(LEGAL_GROUPNAME_RE.match(name))


class GroupQuerySet(models.QuerySet):
    def system(self):
        return self.filter(type__in=Group.SYSTEM_TYPES)

    def site_groups(self):
        return self.filter(type=Group.Types.SITE)

    def user_groups(self):
        return self.filter(type=Group.Types.USER)

    def work_groups(self):
        return self.filter(type=Group.Types.WORK)


class Group(models.Model):
    """A project: a named set of users sharing access to resources.

    Work groups are created by users. The other types are system groups
    maintained by the application: one personal group per user, one group
    per site, and the single `everyone` group.
    """

    class Types(models.TextChoices):
        WORK = 'work', 'Work Project'
        USER = 'user', 'Personal Project'
        SITE = 'site', 'Site Project'
        EVERYONE = 'everyone', 'Everyone'

    SYSTEM_TYPES = (Types.USER, Types.SITE, Types.EVERYONE)

    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=16, choices=Types.choices, default=Types.WORK)
    site = models.ForeignKey(
        'sites.Site',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='groups',
    )
    users = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='member_groups',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = GroupQuerySet.as_manager()

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return self.name

    def is_system_group(self) -> bool:
        return self.type in self.SYSTEM_TYPES

    def clean(self):
        super().clean()
        if not is_legal_groupname(self.name):
            raise ValidationError({'name': 'contains invalid characters.'})

    @classmethod
    def everyone(cls) -> 'Group':
        group, _ = cls.objects.get_or_create(
            name=EVERYONE_GROUP_NAME,
            defaults={'type': cls.Types.EVERYONE},
        )
        return group
