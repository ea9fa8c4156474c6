import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('vendas', '0001_initial'),
        ('envios', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='envio',
            name='pedido',
            field=models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='envio', to='vendas.pedido'),
        ),
    ]
