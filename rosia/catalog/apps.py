from django.apps import AppConfig


class CatalogConfig(AppConfig):
    # O caminho completo para o módulo
    name = 'rosia.catalog'
    label = 'catalog'
    verbose_name = 'Catálogo de Produtos'
    default_auto_field = 'django.db.models.BigAutoField'
