import uuid

from django.db import models

# ====================================================================
# 1. Produto
# ====================================================================

class Produto(models.Model):
    """Produto do catálogo. O estoque vive nas variantes (tamanho/cor)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    nome = models.CharField(max_length=255, verbose_name="Nome do Produto")
    descricao = models.TextField(blank=True, verbose_name="Descrição")
    preco = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Preço Base")
    ativo = models.BooleanField(default=True, verbose_name="Ativo para Venda")
    imagem_url = models.URLField(max_length=500, blank=True, null=True)
    data_criacao = models.DateTimeField(auto_now_add=True)
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Produto"
        verbose_name_plural = "Produtos"
        db_table = 'catalogo_produto'
        ordering = ['nome']

    def __str__(self):
        return self.nome


# ====================================================================
# 2. Variante (unidade de estoque)
# ====================================================================

class VarianteProduto(models.Model):
    """
    Combinação tamanho/cor de um produto.
    O campo `estoque` só é alterado pelo repositório de inventário, via UPDATE condicional.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    produto = models.ForeignKey(Produto, on_delete=models.CASCADE, related_name='variantes')
    tamanho = models.CharField(max_length=20, blank=True, null=True)
    cor = models.CharField(max_length=50, blank=True, null=True)
    preco = models.DecimalField(max_digits=10, decimal_places=2)
    preco_promocional = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    em_promocao = models.BooleanField(default=False)
    # PositiveIntegerField gera CHECK (estoque >= 0) no banco.
    estoque = models.PositiveIntegerField(default=0)
    imagem_url = models.URLField(max_length=500, blank=True, null=True)

    class Meta:
        verbose_name = "Variante de Produto"
        verbose_name_plural = "Variantes de Produto"
        db_table = 'catalogo_variante'
        unique_together = ('produto', 'tamanho', 'cor')

    def __str__(self):
        detalhes = ' / '.join(filter(None, [self.tamanho, self.cor]))
        return f"{self.produto.nome} ({detalhes})" if detalhes else self.produto.nome
