from django.db import models
from django.core.exceptions import ValidationError

from groups.models import Group, is_legal_groupname
from resources.models import DataProvider, RemoteResource, Tool
from userfiles.models import UserFile
from users.models import User


class Site(models.Model):
    """An organizational unit of users.

    Every persisted site owns a site group of the same name. The group is
    created, renamed and destroyed by the functions in ``sites.services``;
    this model only carries validation and site-scoped lookups.
    """

    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return self.name

    @staticmethod
    def is_legal_sitename(name) -> bool:
        # Sites and their groups share names.
        return is_legal_groupname(name)

    def clean(self):
        super().clean()
        errors = []
        if self.name and not Site.is_legal_sitename(self.name):
            errors.append('contains invalid characters.')
        if self._state.adding and self.name and Group.objects.filter(name=self.name).exists():
            errors.append('already in use by an existing project.')
        if errors:
            raise ValidationError({'name': errors})

    def managers(self):
        """Users of this site with manager access (site managers or admins)."""
        return self.users.filter(role__in=[User.Roles.ADMIN, User.Roles.SITE_MANAGER])

    def system_group(self):
        """The site group: the system group sharing this site's name."""
        return Group.objects.site_groups().filter(name=self.name).first()

    own_group = system_group

    def _owned_by_users(self, model, conditions, criteria):
        return model.objects.filter(*conditions, **criteria).filter(user__site=self)

    def userfiles_find_all(self, *conditions, **criteria):
        return self._owned_by_users(UserFile, conditions, criteria)

    def remote_resources_find_all(self, *conditions, **criteria):
        return self._owned_by_users(RemoteResource, conditions, criteria)

    def data_providers_find_all(self, *conditions, **criteria):
        return self._owned_by_users(DataProvider, conditions, criteria)

    def tools_find_all(self, *conditions, **criteria):
        return self._owned_by_users(Tool, conditions, criteria)

    # The *_find_id lookups raise the model's DoesNotExist when the record
    # is outside this site or filtered out by the criteria.
    def userfiles_find_id(self, pk, *conditions, **criteria):
        return self.userfiles_find_all(*conditions, **criteria).get(pk=pk)

    def remote_resources_find_id(self, pk, *conditions, **criteria):
        return self.remote_resources_find_all(*conditions, **criteria).get(pk=pk)

    def data_providers_find_id(self, pk, *conditions, **criteria):
        return self.data_providers_find_all(*conditions, **criteria).get(pk=pk)

    def tools_find_id(self, pk, *conditions, **criteria):
        return self.tools_find_all(*conditions, **criteria).get(pk=pk)
