import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('vendas', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Envio',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('cart_item_id', models.CharField(blank=True, max_length=100, null=True)),
                ('me_shipment_id', models.CharField(blank=True, max_length=100, null=True)),
                ('codigo_rastreio', models.CharField(blank=True, max_length=100, null=True)),
                ('url_etiqueta', models.URLField(blank=True, max_length=500, null=True)),
                ('status', models.CharField(choices=[('pending', 'Aguardando compra'), ('released', 'Liberado'), ('pronto_para_envio', 'Pronto para envio'), ('processando_me', 'Em processamento na Melhor Envio')], default='pending', max_length=30)),
                ('data_criacao', models.DateTimeField(auto_now_add=True)),
                ('data_atualizacao', models.DateTimeField(auto_now=True)),
                ('pedido', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='envios', to='vendas.pedido')),
            ],
            options={
                'verbose_name': 'Envio',
                'verbose_name_plural': 'Envios',
                'db_table': 'envios_melhor_envio',
                'ordering': ['-data_criacao'],
            },
        ),
    ]
