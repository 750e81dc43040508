from django.core.exceptions import ValidationError
from django.test import TestCase

from groups.models import Group
from sites.models import Site
from sites.services import create_site
from .models import User
from .services import create_user


class CreateUserTests(TestCase):
    def test_creates_personal_group(self):
        user = create_user('alice', 'secret')
        group = user.own_group()
        self.assertIsNotNone(group)
        self.assertEqual(group.name, 'alice')
        self.assertEqual(group.type, Group.Types.USER)
        self.assertTrue(group.users.filter(pk=user.pk).exists())
        self.assertTrue(user.check_password('secret'))

    def test_joins_everyone(self):
        user = create_user('alice')
        self.assertTrue(Group.everyone().users.filter(pk=user.pk).exists())

    def test_joins_site_group(self):
        site = create_site(Site(name='Montreal'))
        user = create_user('bob', site=site)
        self.assertEqual(user.site, site)
        self.assertEqual(user.own_group().site, site)
        self.assertTrue(site.system_group().users.filter(pk=user.pk).exists())

    def test_name_taken_by_group_rolls_back(self):
        Group.objects.create(name='carol')
        with self.assertRaises(ValidationError):
            create_user('carol')
        self.assertFalse(User.objects.filter(username='carol').exists())


class UserRoleTests(TestCase):
    def test_default_role_is_user(self):
        user = create_user('alice')
        self.assertTrue(user.has_role(User.Roles.USER))
        self.assertFalse(user.is_admin())
        self.assertFalse(user.is_site_manager())

    def test_role_predicates(self):
        admin = create_user('root', role=User.Roles.ADMIN)
        manager = create_user('mgr', role=User.Roles.SITE_MANAGER)
        self.assertTrue(admin.is_admin())
        self.assertTrue(manager.is_site_manager())
        self.assertFalse(manager.is_admin())

    def test_superuser_counts_as_admin(self):
        user = User.objects.create_superuser('super', password='x')
        self.assertTrue(user.is_admin())
