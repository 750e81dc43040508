from django.db import migrations


def create_everyone_group(apps, schema_editor):
    Group = apps.get_model('groups', 'Group')
    if not Group.objects.filter(name='everyone').exists():
        Group.objects.create(name='everyone', type='everyone', description='All users of the portal.')


def remove_everyone_group(apps, schema_editor):
    Group = apps.get_model('groups', 'Group')
    Group.objects.filter(name='everyone', type='everyone').delete()


class Migration(migrations.Migration):
    dependencies = [
        ('groups', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_everyone_group, remove_everyone_group),
    ]
