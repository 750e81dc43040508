from django.apps import AppConfig


class UserfilesConfig(AppConfig):
    name = 'userfiles'
    verbose_name = 'User Files'
