import uuid

from django.db import models


class Envio(models.Model):
    """
    Etiqueta de frete comprada na Melhor Envio para um pedido.
    Registros nunca são apagados; cada etapa da compra grava seu resultado parcial.
    """
    STATUS_CHOICES = [
        ('pending', 'Aguardando compra'),
        ('released', 'Liberado'),
        ('pronto_para_envio', 'Pronto para envio'),
        ('processando_me', 'Em processamento na Melhor Envio'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pedido = models.OneToOneField('vendas.Pedido', on_delete=models.PROTECT, related_name='envio')
    cart_item_id = models.CharField(max_length=100, blank=True, null=True)
    me_shipment_id = models.CharField(max_length=100, blank=True, null=True)
    codigo_rastreio = models.CharField(max_length=100, blank=True, null=True)
    url_etiqueta = models.URLField(max_length=500, blank=True, null=True)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='pending')
    data_criacao = models.DateTimeField(auto_now_add=True)
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Envio'
        verbose_name_plural = 'Envios'
        db_table = 'envios_melhor_envio'
        ordering = ['-data_criacao']

    def __str__(self):
        return f"Envio {self.me_shipment_id or self.cart_item_id} ({self.status})"
