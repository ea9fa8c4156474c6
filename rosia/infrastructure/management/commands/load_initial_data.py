from django.core.management.base import BaseCommand
from django.db import transaction
from rosia.catalog.models import Produto, VarianteProduto
from decimal import Decimal


class Command(BaseCommand):
    help = 'Carrega um catálogo inicial (produtos com variantes de tamanho/cor) para testes'

    # nome, descrição, preço, variantes (tamanho, cor, estoque)
    PRODUTOS = [
        ('Vestido Midi Floral', 'Vestido midi em viscose estampada', Decimal('189.90'), [
            ('P', 'Azul', 5), ('M', 'Azul', 8), ('G', 'Azul', 3), ('M', 'Rosa', 6),
        ]),
        ('Blusa Canelada', 'Blusa canelada de manga curta', Decimal('59.90'), [
            ('P', 'Branco', 10), ('M', 'Branco', 12), ('M', 'Preto', 9), ('G', 'Preto', 4),
        ]),
        ('Calça Pantalona', 'Calça pantalona de alfaiataria', Decimal('149.90'), [
            ('38', 'Bege', 4), ('40', 'Bege', 6), ('42', 'Preto', 5),
        ]),
        ('Saia Plissada', 'Saia midi plissada em cetim', Decimal('119.90'), [
            ('P', 'Verde', 3), ('M', 'Verde', 5),
        ]),
        ('Regata Básica', 'Regata de algodão', Decimal('29.90'), [
            ('U', 'Branco', 20), ('U', 'Preto', 20),
        ]),
    ]

    @transaction.atomic
    def handle(self, *args, **kwargs):
        self.stdout.write('Criando dados iniciais...')

        for nome, desc, preco, variantes in self.PRODUTOS:
            produto, created = Produto.objects.get_or_create(
                nome=nome,
                defaults={'descricao': desc, 'preco': preco, 'ativo': True},
            )
            if not created:
                self.stdout.write(f'Produto "{produto.nome}" já existe; ignorado')
                continue

            VarianteProduto.objects.bulk_create([
                VarianteProduto(produto=produto, tamanho=tamanho, cor=cor, preco=preco, estoque=estoque)
                for tamanho, cor, estoque in variantes
            ])
            self.stdout.write(self.style.SUCCESS(
                f'Criado produto "{produto.nome}" com {len(variantes)} variantes'
            ))

        self.stdout.write(self.style.SUCCESS('Dados iniciais carregados com sucesso!'))
