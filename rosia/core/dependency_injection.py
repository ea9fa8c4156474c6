# rosia/core/dependency_injection.py
"""
Módulo de Injeção de Dependência (DI).
Responsável por instanciar os Use Cases com suas dependências de Repositórios/Gateways
concretos da camada de Infraestrutura.

As configurações são lidas a cada chamada, não na importação.
"""
from functools import partial

from django.conf import settings

from rosia.infrastructure.repositories import (
    CarrinhoRepositoryDjango,
    EnvioRepositoryDjango,
    InventarioRepositoryDjango,
    PedidoRepositoryDjango,
)
from rosia.infrastructure.gateways import MelhorEnvioGateway, MercadoPagoGateway, PagamentoGatewayMock
from .assinatura import VerificadorAssinaturaWebhook
from .frete import calcular_frete
from .retry import PoliticaRetry
from .use_cases import (
    CancelarPedidoUseCase,
    CotarFreteUseCase,
    CriarPedidoUseCase,
    CriarTokenCartaoUseCase,
    GerenciarCarrinhoUseCase,
    ListarPedidosDoUsuarioUseCase,
    ProcessarCobrancaUseCase,
    ProcessarWebhookPagamentoUseCase,
    SincronizarEnvioUseCase,
)

# Repositórios Concretos (sem estado próprio; o banco é a única fonte de verdade)
inventario_repo = InventarioRepositoryDjango()
carrinho_repo = CarrinhoRepositoryDjango()
pedido_repo = PedidoRepositoryDjango(inventario_repo)
envio_repo = EnvioRepositoryDjango()

# O mock guarda as cobranças criadas em memória para que o webhook consiga consultá-las.
# Só funciona com um único processo: em outro worker o webhook responde 'ignored'.
# Uso restrito a desenvolvimento e testes (MERCADO_PAGO_ACCESS_TOKEN vazio).
_gateway_mock = PagamentoGatewayMock()


# ====================================================================
# Gateways e políticas
# ====================================================================

def gateway_em_modo_mock() -> bool:
    return not settings.MERCADO_PAGO_ACCESS_TOKEN


def get_gateway_pagamento():
    if gateway_em_modo_mock():
        return _gateway_mock
    return MercadoPagoGateway(
        access_token=settings.MERCADO_PAGO_ACCESS_TOKEN,
        api_base_url=settings.MERCADO_PAGO_API_URL,
    )


def get_transportadora() -> MelhorEnvioGateway:
    return MelhorEnvioGateway(
        token=settings.MELHOR_ENVIO_TOKEN,
        base_url=settings.MELHOR_ENVIO_API_URL,
        user_agent=settings.MELHOR_ENVIO_USER_AGENT,
    )


def get_funcao_frete():
    return partial(
        calcular_frete,
        base=settings.FRETE_BASE,
        por_item_extra=settings.FRETE_POR_ITEM_EXTRA,
        gratis_a_partir_de=settings.FRETE_GRATIS_A_PARTIR_DE,
    )


def get_politica_webhook() -> PoliticaRetry:
    return PoliticaRetry(
        max_tentativas=settings.WEBHOOK_LOOKUP_TENTATIVAS,
        intervalo=settings.WEBHOOK_LOOKUP_INTERVALO,
        nome='webhook_pagamento',
    )


def get_politica_envio() -> PoliticaRetry:
    return PoliticaRetry(
        max_tentativas=settings.ENVIO_RETRY_TENTATIVAS,
        intervalo=settings.ENVIO_RETRY_INTERVALO,
        nome='rastreio_envio',
    )


def get_url_notificacao() -> str:
    return f"{settings.BACKEND_URL.rstrip('/')}/webhook/payment"


# ====================================================================
# Use Cases de Carrinho/Checkout
# ====================================================================

def get_gerenciar_carrinho_use_case() -> GerenciarCarrinhoUseCase:
    return GerenciarCarrinhoUseCase(carrinho_repo, inventario_repo)

def get_cotar_frete_use_case() -> CotarFreteUseCase:
    return CotarFreteUseCase(carrinho_repo, frete=get_funcao_frete())

def get_criar_pedido_use_case() -> CriarPedidoUseCase:
    return CriarPedidoUseCase(
        carrinho_repo=carrinho_repo,
        pedido_repo=pedido_repo,
        inventario_repo=inventario_repo,
        frete=get_funcao_frete(),
    )

def get_listar_pedidos_use_case() -> ListarPedidosDoUsuarioUseCase:
    return ListarPedidosDoUsuarioUseCase(pedido_repo)

def get_cancelar_pedido_use_case() -> CancelarPedidoUseCase:
    return CancelarPedidoUseCase(pedido_repo)


# ====================================================================
# Use Cases de Pagamento
# ====================================================================

def get_processar_cobranca_use_case() -> ProcessarCobrancaUseCase:
    return ProcessarCobrancaUseCase(
        pedido_repo=pedido_repo,
        pagamento_gateway=get_gateway_pagamento(),
        politica_retry=PoliticaRetry(max_tentativas=2, intervalo=1, nome='criar_cobranca'),
        url_notificacao=get_url_notificacao(),
    )

def get_criar_token_cartao_use_case() -> CriarTokenCartaoUseCase:
    return CriarTokenCartaoUseCase(get_gateway_pagamento())

def get_processar_webhook_use_case() -> ProcessarWebhookPagamentoUseCase:
    segredo = settings.MP_WEBHOOK_SECRET or settings.PAYMENT_WEBHOOK_SECRET
    return ProcessarWebhookPagamentoUseCase(
        pedido_repo=pedido_repo,
        pagamento_gateway=get_gateway_pagamento(),
        verificador=VerificadorAssinaturaWebhook(segredo),
        politica_retry=get_politica_webhook(),
    )


# ====================================================================
# Use Cases de Envio
# ====================================================================

def get_sincronizar_envio_use_case() -> SincronizarEnvioUseCase:
    return SincronizarEnvioUseCase(
        envio_repo=envio_repo,
        pedido_repo=pedido_repo,
        transportadora=get_transportadora(),
        politica_polling=get_politica_envio(),
    )
