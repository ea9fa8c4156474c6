# Define os modelos para o domínio de Carrinho.

import uuid

from django.db import models


class Carrinho(models.Model):
    """Modelo de Carrinho de Compras (um por usuário)."""
    usuario = models.OneToOneField(
        'infrastructure.Usuario',
        on_delete=models.CASCADE,
        related_name='carrinho'
    )
    data_criacao = models.DateTimeField(auto_now_add=True)
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Carrinho"
        verbose_name_plural = "Carrinhos"
        db_table = 'carrinho_compras' # Nome de tabela específico

    def __str__(self):
        return f"Carrinho #{self.pk} ({self.usuario_id})"


class ItemCarrinho(models.Model):
    """Item do carrinho com o preço congelado no momento da adição."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    carrinho = models.ForeignKey(Carrinho, on_delete=models.CASCADE, related_name='itens')
    variante = models.ForeignKey('catalog.VarianteProduto', on_delete=models.CASCADE, related_name='itens_carrinho')
    quantidade = models.PositiveIntegerField(default=1)
    preco_unitario = models.DecimalField(max_digits=10, decimal_places=2)
    data_adicao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Item do Carrinho"
        verbose_name_plural = "Itens do Carrinho"
        unique_together = ('carrinho', 'variante')  # Evita duplicatas
        ordering = ['data_adicao']
        db_table = 'carrinho_item' # Nome de tabela específico

    def __str__(self):
        return f"{self.quantidade}x {self.variante_id}"
