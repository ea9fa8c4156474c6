import uuid

from django.db import models
from decimal import Decimal


class Pedido(models.Model):
    """
    Modelo que representa um pedido/venda no sistema.
    Após a criação, apenas os campos de status, pagamento e rastreio mudam.
    """
    STATUS_CHOICES = [
        ('pendente', 'Pendente'),
        ('pago', 'Pago'),
        ('pagamento_rejeitado', 'Pagamento Rejeitado'),
        ('cancelado', 'Cancelado'),
        ('reembolsado', 'Reembolsado'),
        ('confirmed', 'Confirmado'),
    ]

    FORMA_PAGAMENTO_CHOICES = [
        ('pix', 'PIX'),
        ('cartao_credito', 'Cartão de Crédito'),
        ('boleto', 'Boleto'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    usuario = models.ForeignKey('infrastructure.Usuario', on_delete=models.PROTECT, related_name='pedidos')

    # Status e Datas
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='pendente', db_index=True)
    data_pedido = models.DateTimeField(auto_now_add=True)
    data_modificacao = models.DateTimeField(auto_now=True)

    # Valores
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    frete = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    # Dados de Pagamento
    forma_pagamento = models.CharField(max_length=20, choices=FORMA_PAGAMENTO_CHOICES, default='pix')
    referencia_externa = models.CharField(max_length=100, unique=True)
    pagamento_id = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    status_pagamento = models.CharField(max_length=30, blank=True, null=True)
    dados_pagamento = models.JSONField(blank=True, null=True)
    estoque_restaurado = models.BooleanField(default=False)

    # Dados de Entrega (snapshot do endereço no momento do pedido)
    cep_entrega = models.CharField(max_length=9)
    logradouro_entrega = models.CharField(max_length=255)
    numero_entrega = models.CharField(max_length=20)
    complemento_entrega = models.CharField(max_length=100, blank=True, null=True)
    bairro_entrega = models.CharField(max_length=100)
    cidade_entrega = models.CharField(max_length=100)
    estado_entrega = models.CharField(max_length=2)
    codigo_rastreio = models.CharField(max_length=100, blank=True, null=True)

    class Meta:
        verbose_name = 'Pedido'
        verbose_name_plural = 'Pedidos'
        db_table = 'vendas_pedido'
        ordering = ['-data_pedido']

    def __str__(self):
        return f"Pedido #{self.id} ({self.status})"


class ItemPedido(models.Model):
    """
    Modelo que representa um item dentro de um pedido.
    Mantém um snapshot dos dados do produto no momento da compra.
    """
    pedido = models.ForeignKey(Pedido, related_name='itens', on_delete=models.CASCADE)
    produto = models.ForeignKey('catalog.Produto', on_delete=models.PROTECT, related_name='itens_venda')
    variante = models.ForeignKey('catalog.VarianteProduto', on_delete=models.PROTECT, related_name='itens_venda')

    # Snapshot dos dados do produto
    nome_produto = models.CharField(max_length=255)
    preco_unitario = models.DecimalField(max_digits=10, decimal_places=2)
    quantidade = models.PositiveIntegerField()
    tamanho_selecionado = models.CharField(max_length=20, blank=True, null=True)
    cor_selecionada = models.CharField(max_length=50, blank=True, null=True)

    class Meta:
        verbose_name = 'Item do Pedido'
        verbose_name_plural = 'Itens do Pedido'
        db_table = 'vendas_item_pedido'

    def __str__(self):
        return f"{self.quantidade}x {self.nome_produto} em Pedido #{self.pedido_id}"
