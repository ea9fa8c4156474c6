import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Produto',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('nome', models.CharField(max_length=255, verbose_name='Nome do Produto')),
                ('descricao', models.TextField(blank=True, verbose_name='Descrição')),
                ('preco', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Preço Base')),
                ('ativo', models.BooleanField(default=True, verbose_name='Ativo para Venda')),
                ('imagem_url', models.URLField(blank=True, max_length=500, null=True)),
                ('data_criacao', models.DateTimeField(auto_now_add=True)),
                ('data_atualizacao', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Produto',
                'verbose_name_plural': 'Produtos',
                'db_table': 'catalogo_produto',
                'ordering': ['nome'],
            },
        ),
        migrations.CreateModel(
            name='VarianteProduto',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tamanho', models.CharField(blank=True, max_length=20, null=True)),
                ('cor', models.CharField(blank=True, max_length=50, null=True)),
                ('preco', models.DecimalField(decimal_places=2, max_digits=10)),
                ('preco_promocional', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('em_promocao', models.BooleanField(default=False)),
                ('estoque', models.PositiveIntegerField(default=0)),
                ('imagem_url', models.URLField(blank=True, max_length=500, null=True)),
                ('produto', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='variantes', to='catalog.produto')),
            ],
            options={
                'verbose_name': 'Variante de Produto',
                'verbose_name_plural': 'Variantes de Produto',
                'db_table': 'catalogo_variante',
                'unique_together': {('produto', 'tamanho', 'cor')},
            },
        ),
    ]
