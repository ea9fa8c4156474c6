"""
Views da API REST (camada de apresentação).

As views apenas traduzem HTTP <-> casos de uso; erros de domínio sobem para o
handler em `excecoes.tratar_excecao`.
"""
import logging
from decimal import Decimal

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from rosia.core import dependency_injection as di
from rosia.core.entities import ResultadoWebhook, arredondar
from rosia.core.exceptions import DadosInvalidosError

from .serializers import (
    AdicionarItemSerializer,
    AtualizarItemSerializer,
    CheckoutSerializer,
    CobrancaResultadoSerializer,
    CobrancaSerializer,
    CotacaoFreteSerializer,
    EnvioSerializer,
    LiberarEnvioSerializer,
    LinhaCarrinhoSerializer,
    PedidoSerializer,
    TokenCartaoSerializer,
)

logger = logging.getLogger(__name__)


def _usuario_id(request) -> str:
    return request.user.conta.id


def _resposta_carrinho(visao, http_status=status.HTTP_200_OK) -> Response:
    linhas = list(visao)
    return Response({
        'success': True,
        'items': LinhaCarrinhoSerializer(linhas, many=True).data,
        'subtotal': str(arredondar(sum((linha.subtotal for linha in linhas), Decimal('0.00')))),
        'item_count': sum(linha.quantidade for linha in linhas),
    }, status=http_status)


# ====================================================================
# 1. CARRINHO
# ====================================================================

class CarrinhoAPIView(APIView):
    """
    API View para o carrinho do usuário logado.
    GET devolve itens, subtotal e quantidade; DELETE esvazia o carrinho.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        visao = di.get_gerenciar_carrinho_use_case().obter(_usuario_id(request))
        return _resposta_carrinho(visao)

    def delete(self, request):
        uc = di.get_gerenciar_carrinho_use_case()
        uc.limpar(_usuario_id(request))
        return _resposta_carrinho(uc.obter(_usuario_id(request)))


class AdicionarItemCarrinhoAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = AdicionarItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        uc = di.get_gerenciar_carrinho_use_case()
        uc.adicionar_item(
            _usuario_id(request),
            serializer.validated_data['variant_id'],
            serializer.validated_data['quantity'],
        )
        return _resposta_carrinho(uc.obter(_usuario_id(request)), status.HTTP_201_CREATED)


class AtualizarItemCarrinhoAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request):
        serializer = AtualizarItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        uc = di.get_gerenciar_carrinho_use_case()
        uc.atualizar_item(
            _usuario_id(request),
            serializer.validated_data['cart_item_id'],
            serializer.validated_data['quantity'],
        )
        return _resposta_carrinho(uc.obter(_usuario_id(request)))


class RemoverItemCarrinhoAPIView(APIView):
    """DELETE /cart/item?id=<cart_item_id>"""
    permission_classes = [IsAuthenticated]

    def delete(self, request):
        item_id = request.query_params.get('id')
        if not item_id:
            raise DadosInvalidosError("Parâmetro 'id' é obrigatório.")

        uc = di.get_gerenciar_carrinho_use_case()
        uc.remover_item(_usuario_id(request), item_id)
        return _resposta_carrinho(uc.obter(_usuario_id(request)))


class CotacaoFreteAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CotacaoFreteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cotacao = di.get_cotar_frete_use_case().executar(_usuario_id(request), serializer.validated_data['cep'])
        return Response({
            'success': True,
            'cep': cotacao.cep,
            'subtotal': str(cotacao.subtotal),
            'shipping_cost': str(cotacao.valor),
            'free_shipping': cotacao.gratis,
        })


# ====================================================================
# 2. PEDIDOS
# ====================================================================

class CheckoutAPIView(APIView):
    """
    API View para processar o checkout de um pedido.
    Repetir a requisição com o mesmo `external_reference` devolve o mesmo pedido.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data

        pedido = di.get_criar_pedido_use_case().executar(
            usuario_id=_usuario_id(request),
            dados_entrega=dados.get('shipping_address'),
            forma_pagamento=dados.get('payment_method'),
            referencia_externa=dados.get('external_reference') or None,
        )
        return Response(
            {'success': True, 'message': 'Pedido criado com sucesso!', 'order': PedidoSerializer(pedido).data},
            status=status.HTTP_201_CREATED,
        )


class PedidosAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        pedidos = di.get_listar_pedidos_use_case().executar(_usuario_id(request))
        return Response({'success': True, 'orders': PedidoSerializer(pedidos, many=True).data})


class DetalhePedidoAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pedido_id):
        pedido = di.get_listar_pedidos_use_case().detalhar(_usuario_id(request), pedido_id)
        return Response({'success': True, 'order': PedidoSerializer(pedido).data})


class CancelarPedidoAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pedido_id):
        pedido = di.get_cancelar_pedido_use_case().executar(_usuario_id(request), pedido_id)
        return Response({'success': True, 'message': 'Pedido cancelado.', 'order': PedidoSerializer(pedido).data})


# ====================================================================
# 3. PAGAMENTOS
# ====================================================================

class CobrancaAPIView(APIView):
    """Cria a cobrança de um pedido pendente no gateway de pagamento."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CobrancaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        pedido, resultado = di.get_processar_cobranca_use_case().criar(
            request.user.conta,
            serializer.validated_data,
            chave_idempotencia=request.headers.get('X-Idempotency-Key'),
        )
        return Response({
            'success': True,
            'payment': CobrancaResultadoSerializer(resultado).data,
            'order': PedidoSerializer(pedido).data,
        }, status=status.HTTP_201_CREATED)


class ConsultarCobrancaAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pagamento_id):
        resultado = di.get_processar_cobranca_use_case().consultar(request.user.conta, pagamento_id)
        return Response({'success': True, 'payment': CobrancaResultadoSerializer(resultado).data})


class TokenCartaoAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        dados = request.data if isinstance(request.data, dict) else {}
        token = di.get_criar_token_cartao_use_case().executar(
            dict(dados), chave_idempotencia=request.headers.get('X-Idempotency-Key')
        )
        return Response({'success': True, 'card_token': TokenCartaoSerializer(token).data},
                        status=status.HTTP_201_CREATED)


class ConfiguracaoPagamentoAPIView(APIView):
    """Dados públicos para o frontend inicializar o SDK do gateway."""
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            'success': True,
            'public_key': settings.MERCADO_PAGO_PUBLIC_KEY,
            'mock': di.gateway_em_modo_mock(),
        })


class WebhookPagamentoAPIView(APIView):
    """
    Recebe as notificações do Mercado Pago.
    O corpo bruto é usado na verificação da assinatura, por isso `request.data` não é lido.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        assinatura = request.headers.get('x-signature') or request.headers.get('x-webhook-signature')
        resultado = di.get_processar_webhook_use_case().executar(
            request.body,
            assinatura=assinatura,
            request_id=request.headers.get('x-request-id'),
        )

        if resultado.acao == ResultadoWebhook.PROCESSANDO:
            return Response({'received': True, 'status': 'processing', 'message': resultado.mensagem},
                            status=status.HTTP_202_ACCEPTED)

        corpo = {
            'received': True,
            'status': resultado.acao,
            'message': resultado.mensagem,
            'signature': resultado.assinatura,
        }
        if resultado.pedido_id:
            corpo.update({
                'order_id': resultado.pedido_id,
                'order_status': resultado.status_pedido,
                'transition_applied': resultado.transicao_aplicada,
            })
        return Response(corpo, status=status.HTTP_200_OK)


# ====================================================================
# 4. ENVIOS
# ====================================================================

def _resposta_envio(envio) -> Response:
    if envio.pronto:
        return Response({'success': True, 'shipment': EnvioSerializer(envio).data}, status=status.HTTP_200_OK)
    return Response(
        {'success': True, 'message': 'Etiqueta em processamento', 'shipment': EnvioSerializer(envio).data},
        status=status.HTTP_202_ACCEPTED,
    )


class LiberarEnvioAPIView(APIView):
    """Compra e libera a etiqueta de um pedido pago (somente equipe)."""
    permission_classes = [IsAdminUser]

    def post(self, request):
        serializer = LiberarEnvioSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        envio = di.get_sincronizar_envio_use_case().comprar_e_liberar(
            serializer.validated_data['order_id'],
            serializer.validated_data.get('cart_item_id'),
        )
        return _resposta_envio(envio)


class SincronizarEnvioAPIView(APIView):
    """GET /shipment/sync?order_id=<uuid> - seguro para chamar repetidamente."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        pedido_id = request.query_params.get('order_id')
        if not pedido_id:
            raise DadosInvalidosError("Parâmetro 'order_id' é obrigatório.")

        # A equipe pode sincronizar qualquer pedido; clientes, apenas os próprios.
        usuario_id = None if request.user.is_staff else _usuario_id(request)
        envio = di.get_sincronizar_envio_use_case().sincronizar(pedido_id, usuario_id)
        return _resposta_envio(envio)
