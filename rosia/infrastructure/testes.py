from decimal import Decimal
from unittest.mock import Mock, patch

import requests
from django.db import IntegrityError, transaction
from django.test import TestCase

# Importamos as classes que queremos testar
from rosia.catalog.models import Produto as ProdutoModel, VarianteProduto as VarianteModel
from rosia.envios.models import Envio as EnvioModel
from rosia.infrastructure.models import PerfilGoogle, Usuario
from rosia.infrastructure.repositories import (
    CarrinhoRepositoryDjango,
    EnvioRepositoryDjango,
    InventarioRepositoryDjango,
    PedidoRepositoryDjango,
)
from rosia.infrastructure.contas import ContaGoogle, ContaLocal, resolver_conta
from rosia.infrastructure.gateways import MelhorEnvioGateway, MercadoPagoGateway, PagamentoGatewayMock
from rosia.core.entities import (
    Endereco, Envio, ItemPedido, Pedido, RequisicaoCobranca, StatusEnvio, StatusPedido,
    TRANSICAO_CANCELAMENTO, TRANSICOES_PAGAMENTO,
)
from rosia.core.exceptions import (
    CobrancaNaoEncontradaError,
    EstoqueInsuficienteError,
    GatewayIndisponivelError,
    IntegracaoFalhouError,
    ItemCarrinhoNaoEncontradoError,
    PagamentoFalhouError,
    TransportadoraIndisponivelError,
)


def criar_catalogo(estoque=5, preco='10.00', ativo=True):
    produto = ProdutoModel.objects.create(nome='Camiseta Básica', preco=Decimal(preco), ativo=ativo)
    variante = VarianteModel.objects.create(
        produto=produto, tamanho='M', cor='Preto', preco=Decimal(preco), estoque=estoque
    )
    return produto, variante


def montar_pedido(usuario, variante, quantidade=2, referencia=None):
    return Pedido(
        usuario_id=str(usuario.pk),
        itens=[ItemPedido(
            produto_id=str(variante.produto_id),
            variante_id=str(variante.id),
            nome_produto='Camiseta Básica',
            preco_unitario=Decimal('10.00'),
            quantidade=quantidade,
            tamanho_selecionado='M',
            cor_selecionada='Preto',
        )],
        subtotal=Decimal('10.00') * quantidade,
        frete=Decimal('15.00'),
        total=Decimal('10.00') * quantidade + Decimal('15.00'),
        forma_pagamento='pix',
        endereco_entrega=Endereco(
            cep='01310100', logradouro='Avenida Paulista', numero='1000',
            bairro='Bela Vista', cidade='São Paulo', estado='SP',
        ),
        referencia_externa=referencia,
    )


def resposta_http(status_code=200, json_data=None):
    """Simula um `requests.Response`."""
    response = Mock()
    response.status_code = status_code
    response.content = b'{}' if json_data is not None else b''
    response.json.return_value = json_data if json_data is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


# ====================================================================
# REPOSITÓRIOS
# ====================================================================

class InventarioRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = InventarioRepositoryDjango()
        _, self.variante = criar_catalogo(estoque=5)

    def test_reservar_decrementa_estoque(self):
        """
        Cenário: Reserva dentro do disponível.
        """
        # ACT
        reservado = self.repository.reservar(str(self.variante.id), 3)

        # ASSERT
        self.assertTrue(reservado)
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 2)

    def test_reservar_alem_do_estoque_nao_altera_nada(self):
        self.assertFalse(self.repository.reservar(str(self.variante.id), 6))

        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 5)

    def test_restaurar_incrementa_estoque(self):
        self.repository.restaurar(str(self.variante.id), 2)

        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 7)

    def test_buscar_variante_inexistente(self):
        self.assertIsNone(self.repository.buscar_variante('00000000-0000-4000-8000-000000000000'))


class CarrinhoRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = CarrinhoRepositoryDjango()
        self.usuario = Usuario.objects.create_user(email='cliente@rosia.com.br', password='senha-forte-123')
        _, self.variante = criar_catalogo(estoque=5)

    def test_salvar_item_mantem_preco_da_primeira_adicao(self):
        """
        Cenário: A variante é adicionada duas vezes; o preço congelado não muda.
        """
        # ARRANGE
        usuario_id = str(self.usuario.pk)
        self.repository.salvar_item(usuario_id, str(self.variante.id), 1, Decimal('10.00'))

        # ACT
        carrinho = self.repository.salvar_item(usuario_id, str(self.variante.id), 3, Decimal('8.00'))

        # ASSERT
        self.assertEqual(len(carrinho.itens), 1)
        self.assertEqual(carrinho.itens[0].quantidade, 3)
        self.assertEqual(carrinho.itens[0].preco_unitario, Decimal('10.00'))

    def test_visualizar_traz_dados_da_variante(self):
        usuario_id = str(self.usuario.pk)
        self.repository.salvar_item(usuario_id, str(self.variante.id), 2, Decimal('10.00'))

        visao = self.repository.visualizar(usuario_id)
        linhas = list(visao)

        self.assertEqual(len(linhas), 1)
        self.assertEqual(linhas[0].nome_produto, 'Camiseta Básica')
        self.assertEqual(linhas[0].tamanho, 'M')
        self.assertEqual(visao.subtotal, Decimal('20.00'))
        self.assertEqual(visao.quantidade_itens, 2)

    def test_remover_item_de_outro_usuario(self):
        """
        Cenário: O item existe, mas pertence a outro carrinho.
        """
        carrinho = self.repository.salvar_item(str(self.usuario.pk), str(self.variante.id), 1, Decimal('10.00'))
        outro = Usuario.objects.create_user(email='outro@rosia.com.br', password='senha-forte-123')

        self.assertFalse(self.repository.remover_item(str(outro.pk), carrinho.itens[0].id))
        self.assertTrue(self.repository.remover_item(str(self.usuario.pk), carrinho.itens[0].id))

    def test_atualizar_quantidade_de_item_inexistente(self):
        with self.assertRaises(ItemCarrinhoNaoEncontradoError):
            self.repository.atualizar_quantidade('00000000-0000-4000-8000-000000000000', 2)

    def test_limpar(self):
        usuario_id = str(self.usuario.pk)
        self.repository.salvar_item(usuario_id, str(self.variante.id), 1, Decimal('10.00'))

        self.repository.limpar(usuario_id)

        self.assertEqual(self.repository.buscar_por_usuario(usuario_id).itens, [])


class PedidoRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = PedidoRepositoryDjango()
        self.usuario = Usuario.objects.create_user(email='cliente@rosia.com.br', password='senha-forte-123')
        _, self.variante = criar_catalogo(estoque=5)

    def test_criar_pedido_reserva_estoque(self):
        """
        Cenário: Pedido com 2 unidades; estoque cai de 5 para 3.
        """
        # ACT
        criado = self.repository.criar_pedido(montar_pedido(self.usuario, self.variante, 2))

        # ASSERT
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 3)
        self.assertEqual(criado.status, StatusPedido.PENDENTE)
        self.assertEqual(len(criado.itens), 1)
        self.assertEqual(criado.total, Decimal('35.00'))
        self.assertEqual(criado.endereco_entrega.cep, '01310100')

    def test_estoque_insuficiente_desfaz_transacao(self):
        """
        Cenário: A reserva falha; nem o pedido nem os itens ficam gravados.
        """
        pedido = montar_pedido(self.usuario, self.variante, 6)

        with self.assertRaises(EstoqueInsuficienteError):
            self.repository.criar_pedido(pedido)

        self.assertIsNone(self.repository.buscar_por_id(pedido.id))
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 5)

    def test_mesma_referencia_devolve_pedido_existente(self):
        primeiro = self.repository.criar_pedido(montar_pedido(self.usuario, self.variante, 1, referencia='ref-1'))

        segundo = self.repository.criar_pedido(montar_pedido(self.usuario, self.variante, 1, referencia='ref-1'))

        self.assertEqual(segundo.id, primeiro.id)
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 4)

    def test_transicao_de_rejeicao_devolve_estoque_uma_unica_vez(self):
        """
        Cenário: Notificação de rejeição recebida duas vezes.
        """
        # ARRANGE
        pedido = self.repository.criar_pedido(montar_pedido(self.usuario, self.variante, 2))
        rejeicao = TRANSICOES_PAGAMENTO['rejected']

        # ACT
        primeira = self.repository.aplicar_transicao(pedido.id, rejeicao)
        segunda = self.repository.aplicar_transicao(pedido.id, rejeicao)

        # ASSERT
        self.assertTrue(primeira)
        self.assertFalse(segunda)
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 5)
        atual = self.repository.buscar_por_id(pedido.id)
        self.assertEqual(atual.status, StatusPedido.PAGAMENTO_REJEITADO)
        self.assertTrue(atual.estoque_restaurado)

    def test_rejeicao_apos_aprovacao_devolve_estoque_uma_unica_vez(self):
        """
        Cenário: Pedido pago; o gateway corrige o pagamento para rejeitado e reenvia o evento.
        """
        # ARRANGE
        pedido = self.repository.criar_pedido(montar_pedido(self.usuario, self.variante, 2))
        self.assertTrue(self.repository.aplicar_transicao(pedido.id, TRANSICOES_PAGAMENTO['approved']))
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 3)

        # ACT
        primeira = self.repository.aplicar_transicao(pedido.id, TRANSICOES_PAGAMENTO['rejected'])
        segunda = self.repository.aplicar_transicao(pedido.id, TRANSICOES_PAGAMENTO['rejected'])

        # ASSERT
        self.assertTrue(primeira)
        self.assertFalse(segunda)
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 5)
        self.assertEqual(self.repository.buscar_por_id(pedido.id).status, StatusPedido.PAGAMENTO_REJEITADO)

    def test_aprovacao_apos_cancelamento_nao_altera_pedido(self):
        pedido = self.repository.criar_pedido(montar_pedido(self.usuario, self.variante, 2))
        self.repository.aplicar_transicao(pedido.id, TRANSICAO_CANCELAMENTO)

        aplicada = self.repository.aplicar_transicao(pedido.id, TRANSICOES_PAGAMENTO['approved'])

        self.assertFalse(aplicada)
        self.assertEqual(self.repository.buscar_por_id(pedido.id).status, StatusPedido.CANCELADO)

    def test_registrar_pagamento_e_buscar_por_pagamento_id(self):
        pedido = self.repository.criar_pedido(montar_pedido(self.usuario, self.variante, 1))

        self.repository.registrar_pagamento(pedido.id, 'pag-1', 'approved', {'id': 'pag-1'})

        encontrado = self.repository.buscar_por_pagamento_id('pag-1')
        self.assertEqual(encontrado.id, pedido.id)
        self.assertEqual(encontrado.status_pagamento, 'approved')


class EnvioRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = EnvioRepositoryDjango()
        usuario = Usuario.objects.create_user(email='cliente@rosia.com.br', password='senha-forte-123')
        _, variante = criar_catalogo()
        self.pedido = PedidoRepositoryDjango().criar_pedido(montar_pedido(usuario, variante, 1))

    def test_etapas_do_envio(self):
        envio = self.repository.obter_ou_criar(Envio(pedido_id=self.pedido.id, cart_item_id='cart-1'))

        envio = self.repository.registrar_liberacao(envio.id, 'me-123')
        self.assertEqual(envio.status, StatusEnvio.LIBERADO)

        envio = self.repository.registrar_rastreio(envio.id, 'BR123', 'https://me/etiqueta.pdf')
        self.assertTrue(envio.pronto)
        self.assertEqual(self.repository.buscar_por_pedido(self.pedido.id).codigo_rastreio, 'BR123')

    def test_um_unico_envio_por_pedido(self):
        """
        Cenário: Duas liberações do mesmo pedido; a segunda recebe o envio já gravado.
        """
        primeiro = self.repository.obter_ou_criar(Envio(pedido_id=self.pedido.id, cart_item_id='cart-1'))

        segundo = self.repository.obter_ou_criar(Envio(pedido_id=self.pedido.id, cart_item_id='cart-2'))

        self.assertEqual(segundo.id, primeiro.id)
        self.assertEqual(segundo.cart_item_id, 'cart-1')
        self.assertEqual(EnvioModel.objects.filter(pedido_id=self.pedido.id).count(), 1)

    def test_banco_recusa_segundo_envio_do_pedido(self):
        self.repository.obter_ou_criar(Envio(pedido_id=self.pedido.id, cart_item_id='cart-1'))

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                EnvioModel.objects.create(pedido_id=self.pedido.id, cart_item_id='cart-2')


# ====================================================================
# CONTAS
# ====================================================================

class ContasTestCase(TestCase):

    def test_conta_local(self):
        usuario = Usuario.objects.create_user(
            email='ana@rosia.com.br', password='senha-forte-123',
            first_name='Ana', last_name='Souza', cpf='123.456.789-00',
        )

        conta = resolver_conta(usuario)

        self.assertIsInstance(conta, ContaLocal)
        self.assertEqual(conta.para_entidade().cpf, '12345678900')
        self.assertEqual(conta.para_entidade().dados_pagador()['first_name'], 'Ana')

    def test_conta_google_usa_dados_do_perfil(self):
        """
        Cenário: Usuário do Google; nome e CPF vêm do perfil, não do Usuario.
        """
        usuario = Usuario.objects.create_user(
            email='bia@gmail.com', password=None, tipo_conta=Usuario.TIPO_GOOGLE,
        )
        PerfilGoogle.objects.create(
            usuario=usuario, google_id='g-1', nome_completo='Beatriz Lima', cpf='98765432100'
        )
        usuario.refresh_from_db()

        conta = resolver_conta(usuario)
        entidade = conta.para_entidade()

        self.assertIsInstance(conta, ContaGoogle)
        self.assertEqual(entidade.tipo, 'google')
        self.assertEqual(entidade.nome, 'Beatriz Lima')
        self.assertEqual(entidade.dados_pagador()['identification'], {'type': 'CPF', 'number': '98765432100'})


# ====================================================================
# GATEWAYS
# ====================================================================

class MercadoPagoGatewayTestCase(TestCase):

    def setUp(self):
        self.gateway = MercadoPagoGateway('TEST-token')
        self.requisicao = RequisicaoCobranca(
            valor=Decimal('35.00'),
            metodo_pagamento_id='visa',
            referencia_externa='ref-1',
            pagador={'email': 'ana@rosia.com.br'},
            token='tok-1',
        )

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_criar_cobranca_envia_chave_de_idempotencia(self, mock_request):
        # ARRANGE
        mock_request.return_value = resposta_http(201, {
            'id': 987, 'status': 'approved', 'status_detail': 'accredited',
            'transaction_amount': 35.0, 'external_reference': 'ref-1',
        })

        # ACT
        resultado = self.gateway.criar_cobranca(self.requisicao, 'ref-1:tok-1')

        # ASSERT
        self.assertEqual(resultado.id, '987')
        self.assertTrue(resultado.aprovado)
        _, kwargs = mock_request.call_args
        self.assertEqual(kwargs['headers']['X-Idempotency-Key'], 'ref-1:tok-1')
        self.assertEqual(kwargs['json']['token'], 'tok-1')
        self.assertEqual(kwargs['timeout'], 15)

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_rejeicao_traduz_motivo(self, mock_request):
        mock_request.return_value = resposta_http(201, {
            'id': 988, 'status': 'rejected', 'status_detail': 'cc_rejected_insufficient_amount',
            'transaction_amount': 35.0,
        })

        resultado = self.gateway.criar_cobranca(self.requisicao, 'chave')

        self.assertTrue(resultado.rejeitado)
        self.assertEqual(resultado.motivo, 'insufficient_funds')

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_erro_5xx_e_transitorio(self, mock_request):
        mock_request.return_value = resposta_http(502)

        with self.assertRaises(GatewayIndisponivelError):
            self.gateway.consultar_cobranca('987')

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_timeout_e_transitorio(self, mock_request):
        mock_request.side_effect = requests.exceptions.Timeout("tempo esgotado")

        with self.assertRaises(GatewayIndisponivelError):
            self.gateway.criar_cobranca(self.requisicao, 'chave')

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_consulta_de_pagamento_inexistente(self, mock_request):
        mock_request.return_value = resposta_http(404)

        with self.assertRaises(CobrancaNaoEncontradaError):
            self.gateway.consultar_cobranca('000')

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_requisicao_invalida(self, mock_request):
        mock_request.return_value = resposta_http(400)

        with self.assertRaises(PagamentoFalhouError) as ctx:
            self.gateway.criar_cobranca(self.requisicao, 'chave')

        self.assertEqual(ctx.exception.motivo, 'invalid_request')


class PagamentoGatewayMockTestCase(TestCase):

    def test_mesma_chave_devolve_mesma_cobranca(self):
        gateway = PagamentoGatewayMock()
        requisicao = RequisicaoCobranca(
            valor=Decimal('35.00'), metodo_pagamento_id='pix', referencia_externa='ref-1', pagador={}
        )

        primeira = gateway.criar_cobranca(requisicao, 'ref-1:pix')
        segunda = gateway.criar_cobranca(requisicao, 'ref-1:pix')

        self.assertEqual(primeira.id, segunda.id)
        self.assertTrue(primeira.id.startswith('MOCK-'))
        self.assertIs(gateway.consultar_cobranca(primeira.id), primeira)

    def test_consulta_desconhecida(self):
        with self.assertRaises(CobrancaNaoEncontradaError):
            PagamentoGatewayMock().consultar_cobranca('MOCK-x')


class MelhorEnvioGatewayTestCase(TestCase):

    ME_ID = '9a1b2c3d-0000-4000-8000-123456789abc'

    def setUp(self):
        self.gateway = MelhorEnvioGateway('me-token')

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_finalizar_compra_le_id_da_compra(self, mock_request):
        mock_request.return_value = resposta_http(200, {'purchase': {'orders': [{'id': self.ME_ID}]}})

        self.assertEqual(self.gateway.finalizar_compra('cart-1'), self.ME_ID)
        _, kwargs = mock_request.call_args
        self.assertEqual(kwargs['json'], {'orders': ['cart-1']})

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_finalizar_compra_sem_id(self, mock_request):
        mock_request.return_value = resposta_http(200, {'purchase': {}})

        with self.assertRaises(IntegracaoFalhouError):
            self.gateway.finalizar_compra('cart-1')

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_imprimir_etiqueta(self, mock_request):
        mock_request.side_effect = [
            resposta_http(200, {self.ME_ID: {'status': True}}),
            resposta_http(200, {'url': 'https://me/etiqueta.pdf'}),
        ]

        self.assertEqual(self.gateway.imprimir_etiqueta(self.ME_ID), 'https://me/etiqueta.pdf')
        self.assertEqual(mock_request.call_count, 2)

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_consultar_envio_ainda_nao_disponivel(self, mock_request):
        mock_request.return_value = resposta_http(404)

        self.assertIsNone(self.gateway.consultar_envio(self.ME_ID))

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_consultar_envio_com_rastreio(self, mock_request):
        mock_request.return_value = resposta_http(200, {'tracking': 'BR123', 'status': 'posted'})

        info = self.gateway.consultar_envio(self.ME_ID)

        self.assertEqual(info.codigo_rastreio, 'BR123')
        self.assertTrue(info.disponivel)

    @patch('rosia.infrastructure.gateways.requests.request')
    def test_limite_de_requisicoes(self, mock_request):
        mock_request.return_value = resposta_http(429)

        with self.assertRaises(TransportadoraIndisponivelError) as ctx:
            self.gateway.consultar_envio(self.ME_ID)

        self.assertEqual(ctx.exception.codigo, 'RATE_LIMITED')
