from django.apps import AppConfig


class VendasConfig(AppConfig):
    name = 'rosia.vendas'
    label = 'vendas'
    verbose_name = 'Vendas (Pedidos)'
    default_auto_field = 'django.db.models.BigAutoField'
