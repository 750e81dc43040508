"""Site lifecycle operations.

Each public function runs in a single transaction: the site, its site group
and any cascaded user or group change commit or roll back together.
"""
import logging

from django.db import transaction

from groups.models import Group
from users.models import User
from .models import Site

logger = logging.getLogger(__name__)


@transaction.atomic
def create_site(site: Site, user_ids=(), manager_ids=()) -> Site:
    site.full_clean()
    site.save()
    group = Group(name=site.name, type=Group.Types.SITE, site=site)
    group.full_clean()
    group.save()
    logger.info("Created site %s (id=%s) with site group id=%s", site.name, site.pk, group.pk)

    _set_managers(site, list(user_ids), list(manager_ids))
    _set_system_groups(site, old_user_ids=set())
    return site


@transaction.atomic
def update_site(site: Site, user_ids=None, manager_ids=None) -> Site:
    old_name = Site.objects.filter(pk=site.pk).values_list('name', flat=True).get()
    old_user_ids = set(site.users.values_list('pk', flat=True))
    if user_ids is None:
        user_ids = list(old_user_ids)
    if manager_ids is None:
        manager_ids = list(site.managers().values_list('pk', flat=True))

    site.full_clean()
    site.save()

    # The site group is found by name, so it follows the site first.
    if site.name != old_name:
        _rename_system_group(site, old_name)

    for user in site.users.exclude(pk__in=user_ids).exclude(pk__in=manager_ids):
        remove_user_from_site(site, user)
    _set_managers(site, list(user_ids), list(manager_ids))
    _set_system_groups(site, old_user_ids=old_user_ids)
    return site


@transaction.atomic
def destroy_site(site: Site) -> None:
    for user in site.managers():
        if user.has_role(User.Roles.SITE_MANAGER):
            user.role = User.Roles.USER
            user.save(update_fields=['role'])
            logger.info("Demoted %s from site manager of %s", user.username, site.name)

    group = site.system_group()
    if group is not None:
        group.delete()

    name = site.name
    site.delete()
    logger.info("Destroyed site %s", name)


@transaction.atomic
def remove_user_from_site(site: Site, user: User) -> None:
    if user.has_role(User.Roles.SITE_MANAGER):
        user.role = User.Roles.USER
    user.site = None
    user.save(update_fields=['role', 'site'])

    own_group = user.own_group()
    if own_group is not None:
        own_group.site = None
        own_group.save(update_fields=['site'])

    site_group = site.system_group()
    if site_group is not None:
        site_group.users.remove(user)
    logger.info("Removed %s from site %s", user.username, site.name)


def _set_managers(site: Site, user_ids, manager_ids) -> None:
    manager_ids = {int(pk) for pk in manager_ids}
    wanted = {int(pk) for pk in user_ids} | manager_ids
    users = list(User.objects.filter(pk__in=wanted))
    missing = wanted - {user.pk for user in users}
    if missing:
        raise User.DoesNotExist(f"No users with ids {sorted(missing)}")
    for user in users:
        user.site = site
        if user.pk in manager_ids:
            if user.has_role(User.Roles.USER):
                user.role = User.Roles.SITE_MANAGER
                logger.info("Promoted %s to site manager of %s", user.username, site.name)
        elif user.has_role(User.Roles.SITE_MANAGER):
            user.role = User.Roles.USER
            logger.info("Demoted %s from site manager of %s", user.username, site.name)
        user.save(update_fields=['role', 'site'])


def _set_system_groups(site: Site, old_user_ids) -> None:
    current_user_ids = set(site.users.values_list('pk', flat=True))
    new_user_ids = current_user_ids - old_user_ids

    site_group = Group.objects.site_groups().get(name=site.name)
    if site_group.site_id != site.pk:
        site_group.site = site
        site_group.save(update_fields=['site'])

    for user in User.objects.filter(pk__in=new_user_ids):
        own_group = user.own_group()
        if own_group is not None and own_group.site_id != site.pk:
            own_group.site = site
            own_group.save(update_fields=['site'])
        site_group.users.add(user)


def _rename_system_group(site: Site, old_name: str) -> None:
    group = Group.objects.site_groups().get(name=old_name)
    group.name = site.name
    group.full_clean()
    group.save(update_fields=['name'])
    logger.info("Renamed site group %s to %s", old_name, site.name)
