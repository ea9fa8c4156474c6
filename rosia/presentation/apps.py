from django.apps import AppConfig


class PresentationConfig(AppConfig):
    name = 'rosia.presentation'
    label = 'presentation'
    verbose_name = 'API REST'
