import os

from django.db import migrations


def create_default_admin(apps, schema_editor):
    # Only seeded when a password is configured.
    password = os.getenv('PORTAL_ADMIN_PASSWORD')
    if not password:
        return
    User = apps.get_model('users', 'User')
    Group = apps.get_model('groups', 'Group')
    username = os.getenv('PORTAL_ADMIN_USERNAME', 'admin')
    if User.objects.filter(username=username).exists():
        return
    user = User.objects.create_superuser(
        username=username,
        email=os.getenv('PORTAL_ADMIN_EMAIL', ''),
        password=password,
    )
    user.role = 'admin'
    user.save(update_fields=['role'])
    own_group, _ = Group.objects.get_or_create(name=username, defaults={'type': 'user'})
    own_group.users.add(user)
    everyone, _ = Group.objects.get_or_create(name='everyone', defaults={'type': 'everyone'})
    everyone.users.add(user)


def remove_default_admin(apps, schema_editor):
    User = apps.get_model('users', 'User')
    Group = apps.get_model('groups', 'Group')
    username = os.getenv('PORTAL_ADMIN_USERNAME', 'admin')
    Group.objects.filter(name=username, type='user').delete()
    User.objects.filter(username=username).delete()


class Migration(migrations.Migration):
    dependencies = [
        ('users', '0001_initial'),
        ('groups', '0002_create_everyone_group'),
    ]

    operations = [
        migrations.RunPython(create_default_admin, remove_default_admin),
    ]
