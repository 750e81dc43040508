import logging

from django.db import transaction

from groups.models import Group
from .models import User

logger = logging.getLogger(__name__)


@transaction.atomic
def create_user(username, password=None, *, role=User.Roles.USER, site=None, **fields) -> User:
    """Create a user along with their personal project.

    The user joins their personal group, the `everyone` group and, when
    given a site, that site's group.
    """
    user = User.objects.create_user(username=username, password=password, role=role, site=site, **fields)

    own_group = Group(name=username, type=Group.Types.USER, site=site)
    own_group.full_clean()
    own_group.save()
    own_group.users.add(user)
    Group.everyone().users.add(user)

    if site is not None:
        site_group = site.system_group()
        if site_group is not None:
            site_group.users.add(user)
    logger.info("Created user %s (role=%s, site=%s)", username, role, site)
    return user
