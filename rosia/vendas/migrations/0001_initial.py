import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Pedido',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('pendente', 'Pendente'), ('pago', 'Pago'), ('pagamento_rejeitado', 'Pagamento Rejeitado'), ('cancelado', 'Cancelado'), ('reembolsado', 'Reembolsado'), ('confirmed', 'Confirmado')], db_index=True, default='pendente', max_length=30)),
                ('data_pedido', models.DateTimeField(auto_now_add=True)),
                ('data_modificacao', models.DateTimeField(auto_now=True)),
                ('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('frete', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('forma_pagamento', models.CharField(choices=[('pix', 'PIX'), ('cartao_credito', 'Cartão de Crédito'), ('boleto', 'Boleto')], default='pix', max_length=20)),
                ('referencia_externa', models.CharField(max_length=100, unique=True)),
                ('pagamento_id', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('status_pagamento', models.CharField(blank=True, max_length=30, null=True)),
                ('dados_pagamento', models.JSONField(blank=True, null=True)),
                ('estoque_restaurado', models.BooleanField(default=False)),
                ('cep_entrega', models.CharField(max_length=9)),
                ('logradouro_entrega', models.CharField(max_length=255)),
                ('numero_entrega', models.CharField(max_length=20)),
                ('complemento_entrega', models.CharField(blank=True, max_length=100, null=True)),
                ('bairro_entrega', models.CharField(max_length=100)),
                ('cidade_entrega', models.CharField(max_length=100)),
                ('estado_entrega', models.CharField(max_length=2)),
                ('codigo_rastreio', models.CharField(blank=True, max_length=100, null=True)),
                ('usuario', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='pedidos', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Pedido',
                'verbose_name_plural': 'Pedidos',
                'db_table': 'vendas_pedido',
                'ordering': ['-data_pedido'],
            },
        ),
        migrations.CreateModel(
            name='ItemPedido',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('nome_produto', models.CharField(max_length=255)),
                ('preco_unitario', models.DecimalField(decimal_places=2, max_digits=10)),
                ('quantidade', models.PositiveIntegerField()),
                ('tamanho_selecionado', models.CharField(blank=True, max_length=20, null=True)),
                ('cor_selecionada', models.CharField(blank=True, max_length=50, null=True)),
                ('pedido', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='itens', to='vendas.pedido')),
                ('produto', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='itens_venda', to='catalog.produto')),
                ('variante', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='itens_venda', to='catalog.varianteproduto')),
            ],
            options={
                'verbose_name': 'Item do Pedido',
                'verbose_name_plural': 'Itens do Pedido',
                'db_table': 'vendas_item_pedido',
            },
        ),
    ]
