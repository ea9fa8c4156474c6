import json
from decimal import Decimal
from unittest.mock import Mock, patch

from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from rosia.catalog.models import Produto as ProdutoModel, VarianteProduto as VarianteModel
from rosia.vendas.models import Pedido as PedidoModel
from rosia.infrastructure.models import Usuario
from rosia.infrastructure.repositories import EnvioRepositoryDjango, PedidoRepositoryDjango
from rosia.core.entities import Envio, InfoRastreio, ResultadoCobranca, TRANSICOES_PAGAMENTO


ENDERECO = {
    'cep': '01310-100',
    'logradouro': 'Avenida Paulista',
    'numero': '1000',
    'bairro': 'Bela Vista',
    'cidade': 'São Paulo',
    'estado': 'SP',
}


@override_settings(
    MERCADO_PAGO_ACCESS_TOKEN='',
    MP_WEBHOOK_SECRET='',
    PAYMENT_WEBHOOK_SECRET='',
    WEBHOOK_LOOKUP_TENTATIVAS=1,
    WEBHOOK_LOOKUP_INTERVALO=0,
    ENVIO_RETRY_TENTATIVAS=1,
    ENVIO_RETRY_INTERVALO=0,
)
class LojaAPITestCase(APITestCase):
    """Base: um cliente autenticado via JWT e uma variante com estoque 5 a 10.00."""

    def setUp(self):
        self.usuario = Usuario.objects.create_user(
            email='cliente@rosia.com.br', password='senha-forte-123', first_name='Ana', last_name='Souza'
        )
        self.autenticar(self.usuario)

        produto = ProdutoModel.objects.create(nome='Camiseta Básica', preco=Decimal('10.00'))
        self.variante = VarianteModel.objects.create(
            produto=produto, tamanho='M', cor='Preto', preco=Decimal('10.00'), estoque=5
        )

    def autenticar(self, usuario):
        token = RefreshToken.for_user(usuario).access_token
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    def adicionar_ao_carrinho(self, quantidade):
        return self.client.post(
            reverse('carrinho_adicionar'),
            {'variant_id': str(self.variante.id), 'quantity': quantidade},
            format='json',
        )

    def checkout(self, **extras):
        return self.client.post(
            reverse('checkout'), dict({'shipping_address': ENDERECO, 'payment_method': 'pix'}, **extras),
            format='json',
        )

    def webhook(self, corpo):
        return self.client.post(reverse('webhook_pagamento'), data=corpo, content_type='application/json')


# ====================================================================
# CARRINHO
# ====================================================================

class CarrinhoAPITestCase(LojaAPITestCase):

    def test_adicionar_e_listar(self):
        # ACT
        response = self.adicionar_ao_carrinho(2)

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['item_count'], 2)
        self.assertEqual(response.data['subtotal'], '20.00')
        self.assertEqual(response.data['items'][0]['unit_price'], '10.00')

        carrinho = self.client.get(reverse('carrinho'))
        self.assertEqual(len(carrinho.data['items']), 1)

    def test_adicionar_acima_do_estoque(self):
        self.adicionar_ao_carrinho(4)

        response = self.adicionar_ao_carrinho(2)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'OUT_OF_STOCK')
        self.assertFalse(response.data['success'])

    def test_variante_com_id_invalido(self):
        response = self.client.post(reverse('carrinho_adicionar'), {'variant_id': 'abc'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_ID')

    def test_corpo_sem_variante(self):
        response = self.client.post(reverse('carrinho_adicionar'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_DATA')

    def test_atualizar_e_remover_item(self):
        item_id = self.adicionar_ao_carrinho(1).data['items'][0]['id']

        atualizado = self.client.patch(
            reverse('carrinho_atualizar'), {'cart_item_id': item_id, 'quantity': 3}, format='json'
        )
        self.assertEqual(atualizado.data['item_count'], 3)

        removido = self.client.delete(f"{reverse('carrinho_remover')}?id={item_id}")
        self.assertEqual(removido.status_code, status.HTTP_200_OK)
        self.assertEqual(removido.data['items'], [])

    def test_cotacao_de_frete(self):
        self.adicionar_ao_carrinho(2)

        response = self.client.post(reverse('cotacao_frete'), {'cep': '01310-100'}, format='json')

        self.assertEqual(response.data['shipping_cost'], '15.00')
        self.assertFalse(response.data['free_shipping'])

    def test_sem_autenticacao(self):
        self.client.credentials()

        response = self.client.get(reverse('carrinho'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'NOT_AUTHENTICATED')


# ====================================================================
# CHECKOUT, PEDIDOS E PAGAMENTO
# ====================================================================

class CheckoutAPITestCase(LojaAPITestCase):

    def test_fluxo_checkout_e_rejeicao_do_pagamento(self):
        """
        Cenário: Estoque 5, compra de 2 (estoque 3); a rejeição do pagamento devolve o estoque.
        """
        # ARRANGE
        self.adicionar_ao_carrinho(2)

        # ACT 1: checkout
        response = self.checkout()

        # ASSERT 1
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        pedido = response.data['order']
        self.assertEqual(pedido['subtotal'], '20.00')
        self.assertEqual(pedido['shipping_cost'], '15.00')
        self.assertEqual(pedido['total'], '35.00')
        self.assertEqual(pedido['status'], 'pendente')
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 3)
        self.assertEqual(self.client.get(reverse('carrinho')).data['items'], [])

        # ACT 2: notificação de pagamento rejeitado
        gateway = Mock()
        gateway.consultar_cobranca.return_value = ResultadoCobranca(
            id='123', status='rejected', valor=Decimal('35.00'), referencia_externa=pedido['external_reference']
        )
        with patch('rosia.core.dependency_injection.get_gateway_pagamento', return_value=gateway):
            notificacao = self.webhook(json.dumps({'type': 'payment', 'data': {'id': '123'}}))

        # ASSERT 2
        self.assertEqual(notificacao.status_code, status.HTTP_200_OK)
        self.assertEqual(notificacao.data['status'], 'processed')
        self.assertEqual(notificacao.data['order_status'], 'pagamento_rejeitado')
        self.assertTrue(notificacao.data['transition_applied'])
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 5)

        detalhe = self.client.get(reverse('detalhe_pedido', args=[pedido['id']]))
        self.assertEqual(detalhe.data['order']['status'], 'pagamento_rejeitado')
        self.assertEqual(detalhe.data['order']['payment_status'], 'rejected')

    def test_cancelamento_de_cobranca_antiga_nao_desfaz_pagamento(self):
        """
        Cenário: PIX P1 abandonado, cartão P2 aprovado; o cancelamento do P1 chega depois.
        """
        # ARRANGE
        self.adicionar_ao_carrinho(2)
        pedido = self.checkout().data['order']
        pedido_repo = PedidoRepositoryDjango()
        pedido_repo.registrar_pagamento(pedido['id'], 'P1', 'pending')
        pedido_repo.registrar_pagamento(pedido['id'], 'P2', 'approved')
        pedido_repo.aplicar_transicao(pedido['id'], TRANSICOES_PAGAMENTO['approved'])

        gateway = Mock()
        gateway.consultar_cobranca.return_value = ResultadoCobranca(
            id='P1', status='cancelled', valor=Decimal('35.00'), referencia_externa=pedido['external_reference']
        )

        # ACT
        with patch('rosia.core.dependency_injection.get_gateway_pagamento', return_value=gateway):
            response = self.webhook(json.dumps({'type': 'payment', 'data': {'id': 'P1'}}))

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order_status'], 'pago')
        self.assertFalse(response.data['transition_applied'])
        gravado = PedidoModel.objects.get(pk=pedido['id'])
        self.assertEqual(gravado.pagamento_id, 'P2')
        self.assertEqual(gravado.status_pagamento, 'approved')
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 3)

    def test_estoque_insuficiente_no_checkout_nao_cria_pedido(self):
        """
        Cenário: O estoque caiu depois que o item entrou no carrinho.
        """
        self.adicionar_ao_carrinho(5)
        VarianteModel.objects.filter(pk=self.variante.pk).update(estoque=4)

        response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'INSUFFICIENT_STOCK')
        self.assertEqual(PedidoModel.objects.count(), 0)
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 4)

    def test_carrinho_vazio(self):
        response = self.checkout()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'EMPTY_CART')

    def test_endereco_invalido(self):
        self.adicionar_ao_carrinho(1)

        response = self.checkout(shipping_address=dict(ENDERECO, cep='123'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_ADDRESS')

    def test_checkout_repetido_com_mesma_referencia(self):
        self.adicionar_ao_carrinho(1)
        primeiro = self.checkout(external_reference='pedido-abc')

        segundo = self.checkout(external_reference='pedido-abc')

        self.assertEqual(segundo.status_code, status.HTTP_201_CREATED)
        self.assertEqual(segundo.data['order']['id'], primeiro.data['order']['id'])
        self.assertEqual(PedidoModel.objects.count(), 1)

    def test_listar_e_cancelar_pedido(self):
        self.adicionar_ao_carrinho(2)
        pedido_id = self.checkout().data['order']['id']

        lista = self.client.get(reverse('pedidos'))
        self.assertEqual([p['id'] for p in lista.data['orders']], [pedido_id])

        cancelado = self.client.post(reverse('cancelar_pedido', args=[pedido_id]))
        self.assertEqual(cancelado.data['order']['status'], 'cancelado')
        self.variante.refresh_from_db()
        self.assertEqual(self.variante.estoque, 5)

        novamente = self.client.post(reverse('cancelar_pedido', args=[pedido_id]))
        self.assertEqual(novamente.status_code, status.HTTP_409_CONFLICT)

    def test_pedido_de_outro_usuario(self):
        self.adicionar_ao_carrinho(1)
        pedido_id = self.checkout().data['order']['id']

        self.autenticar(Usuario.objects.create_user(email='outro@rosia.com.br', password='senha-forte-123'))
        response = self.client.get(reverse('detalhe_pedido', args=[pedido_id]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'ORDER_NOT_FOUND')

    def test_cobranca_pix_aprovada_no_modo_mock(self):
        self.adicionar_ao_carrinho(2)
        pedido = self.checkout().data['order']

        response = self.client.post(
            reverse('cobranca'), {'order_id': pedido['id'], 'amount': '35.00'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment']['status'], 'approved')
        self.assertEqual(response.data['order']['status'], 'pago')

    def test_cobranca_com_valor_divergente(self):
        self.adicionar_ao_carrinho(2)
        pedido = self.checkout().data['order']

        response = self.client.post(
            reverse('cobranca'), {'order_id': pedido['id'], 'amount': '10.00'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'AMOUNT_MISMATCH')

    def test_configuracao_publica_do_pagamento(self):
        self.client.credentials()

        response = self.client.get(reverse('config_pagamento'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['mock'])


# ====================================================================
# WEBHOOK
# ====================================================================

class WebhookAPITestCase(LojaAPITestCase):

    def test_corpo_invalido(self):
        response = self.webhook('isto nao e json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_PAYLOAD')

    def test_pagamento_sem_pedido_associado(self):
        gateway = Mock()
        gateway.consultar_cobranca.return_value = ResultadoCobranca(
            id='555', status='approved', valor=Decimal('10.00'), referencia_externa='ref-inexistente'
        )

        with patch('rosia.core.dependency_injection.get_gateway_pagamento', return_value=gateway):
            response = self.webhook(json.dumps({'type': 'payment', 'data': {'id': '555'}}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'not_associated')
        self.assertEqual(response.data['message'], 'Pagamento não associado a pedido')

    def test_gateway_indisponivel_responde_202(self):
        from rosia.core.exceptions import GatewayIndisponivelError
        gateway = Mock()
        gateway.consultar_cobranca.side_effect = GatewayIndisponivelError()

        with patch('rosia.core.dependency_injection.get_gateway_pagamento', return_value=gateway):
            response = self.webhook(json.dumps({'type': 'payment', 'data': {'id': '555'}}))

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(response.data['status'], 'processing')

    def test_evento_ignorado_nao_exige_autenticacao(self):
        self.client.credentials()

        response = self.webhook(json.dumps({'type': 'merchant_order', 'data': {'id': '1'}}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ignored')


# ====================================================================
# ENVIOS
# ====================================================================

class EnvioAPITestCase(LojaAPITestCase):

    ME_ID = '9a1b2c3d-0000-4000-8000-123456789abc'

    def setUp(self):
        super().setUp()
        self.adicionar_ao_carrinho(1)
        self.pedido_id = self.checkout().data['order']['id']
        envio_repo = EnvioRepositoryDjango()
        envio = envio_repo.obter_ou_criar(Envio(pedido_id=self.pedido_id, cart_item_id='cart-1'))
        envio_repo.registrar_liberacao(envio.id, self.ME_ID)

    def sincronizar(self):
        return self.client.get(f"{reverse('sincronizar_envio')}?order_id={self.pedido_id}")

    def test_sincronizar_com_rastreio_disponivel(self):
        transportadora = Mock()
        transportadora.consultar_envio.return_value = InfoRastreio(codigo_rastreio='BR123')

        with patch('rosia.core.dependency_injection.get_transportadora', return_value=transportadora):
            response = self.sincronizar()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['shipment']['tracking_code'], 'BR123')
        self.assertEqual(response.data['shipment']['status'], 'pronto_para_envio')
        self.assertEqual(PedidoModel.objects.get(pk=self.pedido_id).codigo_rastreio, 'BR123')

    def test_sincronizar_com_etiqueta_em_processamento(self):
        transportadora = Mock()
        transportadora.consultar_envio.return_value = None

        with patch('rosia.core.dependency_injection.get_transportadora', return_value=transportadora):
            response = self.sincronizar()

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(response.data['message'], 'Etiqueta em processamento')
        self.assertEqual(response.data['shipment']['status'], 'processando_me')

    def test_liberar_envio_exige_equipe(self):
        response = self.client.post(
            reverse('liberar_envio'), {'order_id': self.pedido_id, 'cart_item_id': 'cart-1'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
