from django.apps import AppConfig


class EnviosConfig(AppConfig):
    name = 'rosia.envios'
    label = 'envios'
    verbose_name = 'Envios e Etiquetas'
    default_auto_field = 'django.db.models.BigAutoField'
