"""
Define as rotas da API REST da loja: carrinho, pedidos, pagamentos, envios e autenticação.
"""
from django.urls import path
from rest_framework_simplejwt.views import TokenBlacklistView, TokenObtainPairView, TokenRefreshView

from . import views


urlpatterns = [
    # ====================================================================
    # 1. CARRINHO E FRETE
    # ====================================================================
    path('cart', views.CarrinhoAPIView.as_view(), name='carrinho'),
    path('cart/add', views.AdicionarItemCarrinhoAPIView.as_view(), name='carrinho_adicionar'),
    path('cart/update', views.AtualizarItemCarrinhoAPIView.as_view(), name='carrinho_atualizar'),
    path('cart/item', views.RemoverItemCarrinhoAPIView.as_view(), name='carrinho_remover'),
    path('shipping/quote', views.CotacaoFreteAPIView.as_view(), name='cotacao_frete'),

    # ====================================================================
    # 2. PEDIDOS
    # ====================================================================
    path('order/checkout', views.CheckoutAPIView.as_view(), name='checkout'),
    path('orders', views.PedidosAPIView.as_view(), name='pedidos'),
    path('orders/<str:pedido_id>', views.DetalhePedidoAPIView.as_view(), name='detalhe_pedido'),
    path('orders/<str:pedido_id>/cancel', views.CancelarPedidoAPIView.as_view(), name='cancelar_pedido'),

    # ====================================================================
    # 3. PAGAMENTOS
    # ====================================================================
    path('payments/charge', views.CobrancaAPIView.as_view(), name='cobranca'),
    path('payments/card-token', views.TokenCartaoAPIView.as_view(), name='token_cartao'),
    path('payments/config', views.ConfiguracaoPagamentoAPIView.as_view(), name='config_pagamento'),
    path('payments/<str:pagamento_id>', views.ConsultarCobrancaAPIView.as_view(), name='consultar_cobranca'),
    path('webhook/payment', views.WebhookPagamentoAPIView.as_view(), name='webhook_pagamento'),

    # ====================================================================
    # 4. ENVIOS
    # ====================================================================
    path('shipment/release', views.LiberarEnvioAPIView.as_view(), name='liberar_envio'),
    path('shipment/sync', views.SincronizarEnvioAPIView.as_view(), name='sincronizar_envio'),

    # ====================================================================
    # 5. AUTENTICAÇÃO (JWT)
    # ====================================================================
    path('auth/token', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout', TokenBlacklistView.as_view(), name='token_logout'),
]
