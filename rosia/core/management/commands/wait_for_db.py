"""
Management command para aguardar o banco de dados estar disponível.
"""
import time
from django.db import connections
from django.db.utils import OperationalError
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    """Django command para pausar a execução até o banco de dados estar disponível."""

    def add_arguments(self, parser):
        parser.add_argument('--intervalo', type=float, default=1.0,
                            help='Segundos entre tentativas de conexão')
        parser.add_argument('--max-tentativas', type=int, default=0,
                            help='Desiste após N tentativas (0 = sem limite)')

    def handle(self, *args, **options):
        """Handle the command"""
        self.stdout.write('Aguardando pelo banco de dados...')
        intervalo = options['intervalo']
        limite = options['max_tentativas']
        tentativas = 0

        while True:
            tentativas += 1
            try:
                connections['default'].ensure_connection()
                break
            except OperationalError:
                if limite and tentativas >= limite:
                    self.stderr.write(self.style.ERROR(
                        f'Banco de dados indisponível após {tentativas} tentativas.'
                    ))
                    raise
                self.stdout.write(f'Banco de dados indisponível, aguardando {intervalo:g} segundo(s)...')
                time.sleep(intervalo)

        self.stdout.write(self.style.SUCCESS('Banco de dados disponível!'))
