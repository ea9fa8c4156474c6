from django.apps import AppConfig


class InfrastructureConfig(AppConfig):
    name = 'rosia.infrastructure'
    label = 'infrastructure'
    verbose_name = 'Infraestrutura (Usuários e Contas)'
    default_auto_field = 'django.db.models.BigAutoField'
