from django.core.exceptions import ValidationError
from django.db.models import Q
from django.test import TestCase
from django.urls import reverse

from groups.models import Group
from resources.models import DataProvider, RemoteResource, Tool
from userfiles.models import UserFile
from users.models import User
from users.services import create_user
from .forms import SiteForm
from .models import Site
from .services import create_site, destroy_site, remove_user_from_site, update_site


class SiteValidationTests(TestCase):
    def test_name_colliding_with_group_is_rejected(self):
        Group.objects.create(name='Alpha')
        form = SiteForm({'name': 'Alpha'})
        self.assertFalse(form.is_valid())
        self.assertIn('already in use by an existing project.', form.errors['name'])
        self.assertFalse(Site.objects.exists())

    def test_name_colliding_with_personal_group_is_rejected(self):
        create_user('alice')
        form = SiteForm({'name': 'alice'})
        self.assertFalse(form.is_valid())

    def test_name_colliding_with_everyone_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_site(Site(name='everyone'))
        self.assertIn('already in use by an existing project.', ctx.exception.message_dict['name'])

    def test_invalid_characters(self):
        form = SiteForm({'name': 'bad/name'})
        self.assertFalse(form.is_valid())
        self.assertIn('contains invalid characters.', form.errors['name'])

    def test_blank_name(self):
        form = SiteForm({'name': ''})
        self.assertFalse(form.is_valid())
        self.assertEqual(len(form.errors['name']), 1)
        self.assertNotIn('contains invalid characters.', form.errors['name'])

    def test_duplicate_site_name(self):
        create_site(Site(name='Alpha'))
        with self.assertRaises(ValidationError) as ctx:
            Site(name='Alpha').full_clean()
        self.assertIn('name', ctx.exception.message_dict)

    def test_valid_form(self):
        form = SiteForm({'name': 'Montreal Neuro', 'description': 'MNI'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertIsNone(form.user_ids())
        self.assertIsNone(form.manager_ids())

    def test_is_legal_sitename_follows_group_rule(self):
        self.assertTrue(Site.is_legal_sitename('Lab-1'))
        self.assertFalse(Site.is_legal_sitename('-Lab'))


class SiteLifecycleTests(TestCase):
    def setUp(self):
        self.alice = create_user('alice')
        self.bob = create_user('bob')
        self.root = create_user('root', role=User.Roles.ADMIN)

    def test_create_makes_one_site_group(self):
        site = create_site(Site(name='Alpha'))
        groups = Group.objects.filter(name='Alpha')
        self.assertEqual(groups.count(), 1)
        group = groups.get()
        self.assertEqual(group.type, Group.Types.SITE)
        self.assertEqual(group.site, site)
        self.assertEqual(site.system_group(), group)
        self.assertEqual(site.own_group(), group)

    def test_rename_renames_site_group(self):
        site = create_site(Site(name='Alpha'))
        group_id = site.system_group().pk
        site.name = 'Beta'
        update_site(site)
        group = Group.objects.get(pk=group_id)
        self.assertEqual(group.name, 'Beta')
        self.assertFalse(Group.objects.filter(name='Alpha').exists())
        self.assertEqual(Group.objects.site_groups().count(), 1)

    def test_rename_onto_existing_group_rolls_back(self):
        site = create_site(Site(name='Alpha'))
        Group.objects.create(name='Gamma')
        site.name = 'Gamma'
        with self.assertRaises(ValidationError):
            update_site(site)
        self.assertEqual(Site.objects.get(pk=site.pk).name, 'Alpha')
        self.assertTrue(Group.objects.site_groups().filter(name='Alpha').exists())

    def test_members_join_site_group(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk, self.bob.pk])
        site_group = site.system_group()
        self.assertEqual(set(site.users.all()), {self.alice, self.bob})
        self.assertEqual(set(site_group.users.all()), {self.alice, self.bob})
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.own_group().site, site)
        self.assertEqual(self.alice.role, User.Roles.USER)

    def test_added_member_on_update(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk])
        update_site(site, user_ids=[self.alice.pk, self.bob.pk])
        self.assertTrue(site.system_group().users.filter(pk=self.bob.pk).exists())
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.site, site)

    def test_designating_manager_promotes(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk], manager_ids=[self.alice.pk])
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.role, User.Roles.SITE_MANAGER)
        self.assertEqual(list(site.managers()), [self.alice])

    def test_manager_not_in_user_list_joins_site(self):
        site = create_site(Site(name='Alpha'), manager_ids=[self.bob.pk])
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.site, site)
        self.assertEqual(self.bob.role, User.Roles.SITE_MANAGER)

    def test_undesignating_manager_demotes(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk], manager_ids=[self.alice.pk])
        update_site(site, manager_ids=[])
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.role, User.Roles.USER)
        self.assertEqual(self.alice.site, site)

    def test_admins_are_never_changed(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.root.pk], manager_ids=[self.root.pk])
        self.root.refresh_from_db()
        self.assertEqual(self.root.role, User.Roles.ADMIN)
        self.assertIn(self.root, site.managers())
        update_site(site, manager_ids=[])
        self.root.refresh_from_db()
        self.assertEqual(self.root.role, User.Roles.ADMIN)

    def test_untouched_users_keep_their_role(self):
        other = create_site(Site(name='Other'), manager_ids=[self.bob.pk])
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk])
        update_site(site, manager_ids=[])
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.role, User.Roles.SITE_MANAGER)
        self.assertEqual(self.bob.site, other)

    def test_dropping_user_removes_from_site(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk, self.bob.pk])
        update_site(site, user_ids=[self.bob.pk])
        self.alice.refresh_from_db()
        self.assertIsNone(self.alice.site)
        self.assertIsNone(self.alice.own_group().site)
        self.assertFalse(site.system_group().users.filter(pk=self.alice.pk).exists())

    def test_remove_user_from_site_demotes_manager(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk], manager_ids=[self.alice.pk])
        self.alice.refresh_from_db()
        remove_user_from_site(site, self.alice)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.role, User.Roles.USER)
        self.assertIsNone(self.alice.site)
        self.assertIsNone(self.alice.own_group().site)
        self.assertFalse(site.system_group().users.filter(pk=self.alice.pk).exists())

    def test_destroy_demotes_managers_and_removes_group(self):
        site = create_site(
            Site(name='Beta'),
            user_ids=[self.alice.pk, self.bob.pk, self.root.pk],
            manager_ids=[self.alice.pk, self.root.pk],
        )
        destroy_site(site)
        self.assertFalse(Site.objects.filter(name='Beta').exists())
        self.assertFalse(Group.objects.filter(name='Beta').exists())
        self.alice.refresh_from_db()
        self.root.refresh_from_db()
        self.bob.refresh_from_db()
        self.assertEqual(self.alice.role, User.Roles.USER)
        self.assertEqual(self.root.role, User.Roles.ADMIN)
        self.assertIsNone(self.alice.site)
        self.assertIsNone(self.bob.own_group().site)
        self.assertTrue(User.objects.filter(pk=self.bob.pk).exists())

    def test_unknown_user_ids_roll_back_create(self):
        with self.assertRaises(User.DoesNotExist):
            create_site(Site(name='Alpha'), user_ids=[self.alice.pk, 9999], manager_ids=[9998])
        self.assertFalse(Site.objects.filter(name='Alpha').exists())
        self.assertFalse(Group.objects.filter(name='Alpha').exists())
        self.alice.refresh_from_db()
        self.assertIsNone(self.alice.site)

    def test_unknown_manager_id_rolls_back_update(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk])
        site.name = 'Beta'
        with self.assertRaises(User.DoesNotExist):
            update_site(site, manager_ids=[9999])
        self.assertEqual(Site.objects.get(pk=site.pk).name, 'Alpha')

    def test_alpha_beta_walkthrough(self):
        site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk], manager_ids=[self.alice.pk])
        group = Group.objects.get(name='Alpha')
        self.assertEqual(group.site_id, site.pk)

        site.name = 'Beta'
        update_site(site)
        self.assertEqual(Group.objects.get(pk=group.pk).name, 'Beta')

        destroy_site(site)
        self.assertFalse(Group.objects.filter(pk=group.pk).exists())
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.role, User.Roles.USER)


class SiteLookupTests(TestCase):
    def setUp(self):
        self.site = create_site(Site(name='Alpha'))
        self.other = create_site(Site(name='Omega'))
        self.alice = create_user('alice', site=self.site)
        self.carol = create_user('carol', site=self.other)
        self.dp = DataProvider.objects.create(name='alice-disk', user=self.alice)
        self.other_dp = DataProvider.objects.create(name='carol-disk', user=self.carol)
        self.scan = UserFile.objects.create(name='scan.mnc', size=10, user=self.alice, data_provider=self.dp)
        self.notes = UserFile.objects.create(name='notes.txt', size=2, user=self.alice)
        self.foreign = UserFile.objects.create(name='scan.mnc', size=10, user=self.carol, data_provider=self.other_dp)

    def test_userfiles_scoped_to_site_users(self):
        self.assertEqual(set(self.site.userfiles_find_all()), {self.scan, self.notes})
        self.assertEqual(list(self.other.userfiles_find_all()), [self.foreign])

    def test_userfiles_criteria(self):
        self.assertEqual(list(self.site.userfiles_find_all(name='scan.mnc')), [self.scan])
        self.assertEqual(list(self.site.userfiles_find_all(Q(size__lt=5))), [self.notes])

    def test_userfiles_find_id(self):
        self.assertEqual(self.site.userfiles_find_id(self.scan.pk), self.scan)
        with self.assertRaises(UserFile.DoesNotExist):
            self.site.userfiles_find_id(self.foreign.pk)
        with self.assertRaises(UserFile.DoesNotExist):
            self.site.userfiles_find_id(self.scan.pk, name='notes.txt')

    def test_data_providers(self):
        self.assertEqual(list(self.site.data_providers_find_all()), [self.dp])
        self.assertEqual(self.site.data_providers_find_id(self.dp.pk), self.dp)
        with self.assertRaises(DataProvider.DoesNotExist):
            self.site.data_providers_find_id(self.other_dp.pk)

    def test_remote_resources(self):
        rr = RemoteResource.objects.create(name='cluster', user=self.alice)
        off = RemoteResource.objects.create(name='old-cluster', user=self.alice, online=False)
        RemoteResource.objects.create(name='carol-cluster', user=self.carol)
        self.assertEqual(set(self.site.remote_resources_find_all()), {rr, off})
        self.assertEqual(list(self.site.remote_resources_find_all(online=True)), [rr])
        with self.assertRaises(RemoteResource.DoesNotExist):
            self.site.remote_resources_find_id(off.pk, online=True)
        self.assertEqual(self.site.remote_resources_find_id(rr.pk), rr)
        self.assertEqual(self.site.remote_resources_find_id(off.pk, online=False), off)

    def test_tools(self):
        tool = Tool.objects.create(name='civet', category='scientific', user=self.alice)
        carol_tool = Tool.objects.create(name='fsl', user=self.carol)
        self.assertEqual(list(self.site.tools_find_all(category='scientific')), [tool])
        self.assertEqual(self.site.tools_find_id(tool.pk), tool)
        with self.assertRaises(Tool.DoesNotExist):
            self.site.tools_find_id(carol_tool.pk)

    def test_user_leaving_site_drops_out_of_scope(self):
        remove_user_from_site(self.site, self.alice)
        self.assertFalse(self.site.userfiles_find_all().exists())


class SiteViewTests(TestCase):
    def setUp(self):
        self.admin = create_user('root', 'pw', role=User.Roles.ADMIN)
        self.alice = create_user('alice', 'pw')
        self.site = create_site(Site(name='Alpha'), user_ids=[self.alice.pk], manager_ids=[self.alice.pk])
        self.alice.refresh_from_db()

    def test_login_required(self):
        response = self.client.get(reverse('site_list'))
        self.assertEqual(response.status_code, 302)

    def test_admin_lists_all_sites(self):
        create_site(Site(name='Omega'))
        self.client.force_login(self.admin)
        response = self.client.get(reverse('site_list'))
        self.assertEqual(response.status_code, 200)
        names = [s['name'] for s in response.json()['sites']]
        self.assertEqual(names, ['Alpha', 'Omega'])

    def test_member_lists_own_site(self):
        create_site(Site(name='Omega'))
        self.client.force_login(self.alice)
        response = self.client.get(reverse('site_list'))
        sites = response.json()['sites']
        self.assertEqual([s['name'] for s in sites], ['Alpha'])
        self.assertEqual(sites[0]['managers'], [self.alice.pk])

    def test_create(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('site_create'), {'name': 'Gamma', 'description': 'new'})
        self.assertEqual(response.status_code, 201)
        self.assertTrue(Group.objects.site_groups().filter(name='Gamma').exists())

    def test_create_reports_errors(self):
        Group.objects.create(name='Gamma')
        self.client.force_login(self.admin)
        response = self.client.post(reverse('site_create'), {'name': 'Gamma'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('already in use by an existing project.', response.json()['errors']['name'])
        self.assertFalse(Site.objects.filter(name='Gamma').exists())

    def test_create_requires_admin(self):
        self.client.force_login(self.alice)
        response = self.client.post(reverse('site_create'), {'name': 'Gamma'})
        self.assertEqual(response.status_code, 403)

    def test_manager_renames_own_site(self):
        self.client.force_login(self.alice)
        response = self.client.post(reverse('site_edit', args=[self.site.pk]), {'name': 'Beta'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['name'], 'Beta')
        self.assertTrue(Group.objects.site_groups().filter(name='Beta').exists())

    def test_rename_keeps_description(self):
        self.site.description = 'Montreal lab'
        self.site.save(update_fields=['description'])
        self.client.force_login(self.admin)
        response = self.client.post(reverse('site_edit', args=[self.site.pk]), {'name': 'Beta'})
        self.assertEqual(response.status_code, 200)
        site = Site.objects.get(pk=self.site.pk)
        self.assertEqual(site.name, 'Beta')
        self.assertEqual(site.description, 'Montreal lab')

    def test_edit_keeps_members_when_lists_omitted(self):
        self.client.force_login(self.admin)
        self.client.post(reverse('site_edit', args=[self.site.pk]), {'description': 'updated'})
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.site_id, self.site.pk)
        self.assertEqual(self.alice.role, User.Roles.SITE_MANAGER)
        self.assertEqual(Site.objects.get(pk=self.site.pk).name, 'Alpha')

    def test_rename_collision_reports_errors(self):
        Group.objects.create(name='Gamma')
        self.client.force_login(self.admin)
        response = self.client.post(reverse('site_edit', args=[self.site.pk]), {'name': 'Gamma'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Site.objects.get(pk=self.site.pk).name, 'Alpha')

    def test_delete(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('site_delete', args=[self.site.pk]))
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Site.objects.exists())
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.role, User.Roles.USER)

    def test_delete_requires_admin(self):
        self.client.force_login(self.alice)
        response = self.client.post(reverse('site_delete', args=[self.site.pk]))
        self.assertEqual(response.status_code, 403)

    def test_userfile_lookup(self):
        carol = create_user('carol')
        mine = UserFile.objects.create(name='t1.mnc', user=self.alice)
        theirs = UserFile.objects.create(name='t2.mnc', user=carol)
        self.client.force_login(self.alice)
        response = self.client.get(reverse('site_userfile', args=[self.site.pk, mine.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['user'], 'alice')
        response = self.client.get(reverse('site_userfile', args=[self.site.pk, theirs.pk]))
        self.assertEqual(response.status_code, 404)
