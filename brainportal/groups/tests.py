from django.core.exceptions import ValidationError
from django.test import TestCase

from .models import EVERYONE_GROUP_NAME, Group, is_legal_groupname


class GroupNameTests(TestCase):
    def test_legal_names(self):
        for name in ['alpha', 'Lab 42', 'mri-2024', 'a.b+c=d', 'x_y', 'user@host']:
            self.assertTrue(is_legal_groupname(name), name)

    def test_illegal_names(self):
        for name in ['', None, ' leading', '_hidden', 'semi;colon', 'slash/name', 'tab\there']:
            self.assertFalse(is_legal_groupname(name), name)

    def test_clean_reports_invalid_characters(self):
        group = Group(name='bad/name')
        with self.assertRaises(ValidationError) as ctx:
            group.full_clean()
        self.assertIn('contains invalid characters.', ctx.exception.message_dict['name'])


class GroupQuerySetTests(TestCase):
    def setUp(self):
        self.work = Group.objects.create(name='neuro-lab')
        self.personal = Group.objects.create(name='alice', type=Group.Types.USER)
        self.site = Group.objects.create(name='Montreal', type=Group.Types.SITE)

    def test_everyone_group_is_seeded(self):
        everyone = Group.objects.get(name=EVERYONE_GROUP_NAME)
        self.assertEqual(everyone.type, Group.Types.EVERYONE)
        self.assertEqual(Group.everyone(), everyone)

    def test_system_excludes_work_groups(self):
        system = set(Group.objects.system().values_list('name', flat=True))
        self.assertEqual(system, {'alice', 'Montreal', EVERYONE_GROUP_NAME})
        self.assertTrue(self.site.is_system_group())
        self.assertFalse(self.work.is_system_group())

    def test_type_filters(self):
        self.assertEqual(list(Group.objects.site_groups()), [self.site])
        self.assertEqual(list(Group.objects.user_groups()), [self.personal])
        self.assertEqual(list(Group.objects.work_groups()), [self.work])
