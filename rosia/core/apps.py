# rosia/core/apps.py

from django.apps import AppConfig

class CoreConfig(AppConfig):
    # O nome completo do path da aplicação
    name = 'rosia.core'
    # Define o label curto para referência (ex: no shell ou migrações)
    label = 'core'
    # Nome amigável que pode ser exibido no Admin, se necessário
    verbose_name = 'Camada de Entidades e Lógica (Core)'

    # Sem modelos: a persistência fica com a Infraestrutura e os apps de domínio.
    default_auto_field = 'django.db.models.BigAutoField'
