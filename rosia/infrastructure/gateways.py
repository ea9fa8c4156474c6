import logging
import uuid
from decimal import Decimal
from typing import Optional

import requests

# Importa os Protocols e Entidades da camada Core
from rosia.core.ports import IGatewayPagamento, ITransportadora
from rosia.core.entities import InfoRastreio, RequisicaoCobranca, ResultadoCobranca, TokenCartao
from rosia.core.exceptions import (
    CobrancaNaoEncontradaError,
    GatewayIndisponivelError,
    IntegracaoFalhouError,
    PagamentoFalhouError,
    TransportadoraIndisponivelError,
)

logger = logging.getLogger(__name__)


# ====================================================================
# GATEWAYS: Implementações concretas que se comunicam com APIs externas.
# ====================================================================

class MercadoPagoGateway(IGatewayPagamento):
    """
    Gateway para comunicação com a API de Pagamento do Mercado Pago.
    Implementa a interface IGatewayPagamento do Core.

    Rejeições do emissor voltam como ResultadoCobranca ('rejected');
    falhas de rede, timeout, 429 e 5xx viram GatewayIndisponivelError.
    """

    # Mapeamento do status do Mercado Pago para o status canônico
    _STATUS_MAP = {
        "approved": "approved",
        "authorized": "authorized",
        "pending": "pending",
        "in_process": "in_process",
        "in_mediation": "in_process",
        "rejected": "rejected",
        "cancelled": "cancelled",
        "refunded": "refunded",
        "charged_back": "charged_back",
    }

    # status_detail -> motivo da rejeição
    _MOTIVOS_REJEICAO = {
        "cc_rejected_bad_filled_card_number": "invalid_card_number",
        "cc_rejected_bad_filled_security_code": "invalid_security_code",
        "cc_rejected_bad_filled_date": "invalid_expiration_date",
        "cc_rejected_insufficient_amount": "insufficient_funds",
        "cc_rejected_call_for_authorize": "authorization_required",
        "cc_rejected_card_disabled": "card_disabled",
        "cc_rejected_duplicated_payment": "duplicated_payment",
        "cc_rejected_max_attempts": "max_attempts",
        "cc_rejected_high_risk": "high_risk",
    }

    def __init__(self, access_token: str, api_base_url: str = "https://api.mercadopago.com", timeout: int = 15):
        self.access_token = access_token
        self.api_base_url = api_base_url.rstrip('/')
        self.timeout = timeout

    # --- MÉTODOS PRIVADOS ---

    def _headers(self, chave_idempotencia: Optional[str] = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        if chave_idempotencia:
            # O Mercado Pago devolve a mesma cobrança para a mesma chave
            headers["X-Idempotency-Key"] = chave_idempotencia
        return headers

    def _requisitar(self, metodo: str, caminho: str, **kwargs) -> dict:
        url = f"{self.api_base_url}{caminho}"
        try:
            response = requests.request(metodo, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.warning("Mercado Pago respondeu %s em %s %s", status, metodo, caminho)
            if status == 429 or (status is not None and status >= 500):
                raise GatewayIndisponivelError(f"Mercado Pago indisponível (HTTP {status}).")
            if status == 404 and metodo == "GET":
                raise CobrancaNaoEncontradaError()
            raise PagamentoFalhouError(
                f"Requisição recusada pelo Mercado Pago (HTTP {status}).", motivo="invalid_request"
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning("Falha de conexão com o Mercado Pago em %s %s: %s", metodo, caminho, e)
            raise GatewayIndisponivelError(f"Erro de conexão com a API do Mercado Pago: {e}")
        except requests.exceptions.RequestException as e:
            logger.error("Erro na chamada ao Mercado Pago %s %s: %s", metodo, caminho, e)
            raise IntegracaoFalhouError(f"Erro na chamada ao Mercado Pago: {e}")
        except ValueError:
            raise IntegracaoFalhouError("Resposta do Mercado Pago não é um JSON válido.")

    def _para_resultado(self, data: dict) -> ResultadoCobranca:
        status = self._STATUS_MAP.get(data.get("status"), "pending")
        detalhe = data.get("status_detail")
        motivo = None
        if status in ("rejected", "cancelled"):
            motivo = self._MOTIVOS_REJEICAO.get(detalhe, "other")
        return ResultadoCobranca(
            id=str(data.get("id")),
            status=status,
            valor=Decimal(str(data.get("transaction_amount") or 0)),
            referencia_externa=data.get("external_reference"),
            status_detalhe=detalhe,
            motivo=motivo,
            dados=data,
        )

    # --- MÉTODOS PÚBLICOS QUE IMPLEMENTAM O PROTOCOLO CORE ---

    def criar_cobranca(self, requisicao: RequisicaoCobranca, chave_idempotencia: str) -> ResultadoCobranca:
        payload = {
            "transaction_amount": float(requisicao.valor),
            "payment_method_id": requisicao.metodo_pagamento_id,
            "external_reference": requisicao.referencia_externa,
            "description": requisicao.descricao or f"Pedido {requisicao.referencia_externa}",
            "installments": requisicao.parcelas,
            "payer": requisicao.pagador,
        }
        if requisicao.token:
            payload["token"] = requisicao.token
        if requisicao.emissor_id:
            payload["issuer_id"] = requisicao.emissor_id
        if requisicao.url_notificacao:
            payload["notification_url"] = requisicao.url_notificacao

        data = self._requisitar("POST", "/v1/payments", json=payload, headers=self._headers(chave_idempotencia))
        return self._para_resultado(data)

    def consultar_cobranca(self, pagamento_id: str) -> ResultadoCobranca:
        """Busca o status canônico de uma cobrança no Mercado Pago."""
        data = self._requisitar("GET", f"/v1/payments/{pagamento_id}", headers=self._headers())
        return self._para_resultado(data)

    def criar_token_cartao(self, dados_cartao: dict, chave_idempotencia: str) -> TokenCartao:
        data = self._requisitar(
            "POST", "/v1/card_tokens", json=dados_cartao, headers=self._headers(chave_idempotencia)
        )
        return TokenCartao(
            id=str(data.get("id")),
            primeiros_seis=data.get("first_six_digits"),
            ultimos_quatro=data.get("last_four_digits"),
            expira_em=data.get("date_due"),
        )


class PagamentoGatewayMock(IGatewayPagamento):
    """
    Gateway de Pagamento Mock (Simulado), usado quando não há access token.
    Determinístico: toda cobrança é aprovada e a mesma chave devolve a mesma cobrança.
    As cobranças ficam na memória do processo; não serve para mais de um worker.
    """

    def __init__(self):
        self._cobrancas = {}
        self._por_chave = {}

    def criar_cobranca(self, requisicao: RequisicaoCobranca, chave_idempotencia: str) -> ResultadoCobranca:
        if chave_idempotencia in self._por_chave:
            return self._cobrancas[self._por_chave[chave_idempotencia]]

        pagamento_id = f"MOCK-{uuid.uuid5(uuid.NAMESPACE_URL, chave_idempotencia).hex[:12]}"
        resultado = ResultadoCobranca(
            id=pagamento_id,
            status="approved",
            valor=requisicao.valor,
            referencia_externa=requisicao.referencia_externa,
            status_detalhe="accredited",
            dados={"id": pagamento_id, "status": "approved", "mock": True},
        )
        self._cobrancas[pagamento_id] = resultado
        self._por_chave[chave_idempotencia] = pagamento_id
        logger.info("[MOCK] Cobrança %s aprovada para a referência %s", pagamento_id, requisicao.referencia_externa)
        return resultado

    def consultar_cobranca(self, pagamento_id: str) -> ResultadoCobranca:
        if pagamento_id not in self._cobrancas:
            raise CobrancaNaoEncontradaError()
        return self._cobrancas[pagamento_id]

    def criar_token_cartao(self, dados_cartao: dict, chave_idempotencia: str) -> TokenCartao:
        numero = str(dados_cartao.get("card_number", ""))
        return TokenCartao(
            id=f"MOCKTOKEN-{uuid.uuid5(uuid.NAMESPACE_URL, chave_idempotencia).hex[:16]}",
            primeiros_seis=numero[:6] or None,
            ultimos_quatro=numero[-4:] or None,
        )


class MelhorEnvioGateway(ITransportadora):
    """
    Gateway para a API da Melhor Envio (compra de etiqueta e rastreio).
    Implementa o Protocolo ITransportadora.
    """

    def __init__(self, token: str, base_url: str = "https://sandbox.melhorenvio.com.br/api/v2",
                 user_agent: str = "Rosia (contato@rosia.com.br)", timeout: int = 20):
        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }

    def _requisitar(self, metodo: str, caminho: str, tolerar=(), **kwargs) -> Optional[dict]:
        """Executa a chamada; status HTTP em `tolerar` devolvem None."""
        url = f"{self.base_url}{caminho}"
        try:
            response = requests.request(metodo, url, headers=self.headers, timeout=self.timeout, **kwargs)
            if response.status_code in tolerar:
                return None
            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.warning("Melhor Envio respondeu %s em %s %s", status, metodo, caminho)
            if status == 429:
                raise TransportadoraIndisponivelError("Limite de requisições da Melhor Envio atingido.",
                                                      codigo='RATE_LIMITED')
            if status is not None and status >= 500:
                raise TransportadoraIndisponivelError(f"Melhor Envio indisponível (HTTP {status}).")
            raise IntegracaoFalhouError(f"Melhor Envio recusou a requisição (HTTP {status}).")
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning("Falha de conexão com a Melhor Envio em %s %s: %s", metodo, caminho, e)
            raise TransportadoraIndisponivelError(f"Erro de conexão com a Melhor Envio: {e}")
        except requests.exceptions.RequestException as e:
            raise IntegracaoFalhouError(f"Erro na chamada à Melhor Envio: {e}")
        except ValueError:
            raise IntegracaoFalhouError("Resposta da Melhor Envio não é um JSON válido.")

    @staticmethod
    def _primeiro_id(data: dict) -> Optional[str]:
        for origem in ((data.get("purchase") or {}).get("orders"), data.get("orders")):
            if isinstance(origem, list) and origem and isinstance(origem[0], dict) and origem[0].get("id"):
                return str(origem[0]["id"])
        return None

    @staticmethod
    def _url_etiqueta(data: dict, me_shipment_id: str) -> Optional[str]:
        chaveado = data.get(me_shipment_id)
        if isinstance(chaveado, dict):
            url = chaveado.get("url") or chaveado.get("label_url") or (chaveado.get("label") or {}).get("url")
            if url:
                return url
        url = data.get("url") or (data.get("label") or {}).get("url")
        if url:
            return url
        pedidos = data.get("orders")
        if isinstance(pedidos, list) and pedidos and isinstance(pedidos[0], dict):
            return pedidos[0].get("label_url") or (pedidos[0].get("label") or {}).get("url")
        return None

    def finalizar_compra(self, cart_item_id: str) -> str:
        data = self._requisitar("POST", "/me/shipment/checkout", json={"orders": [cart_item_id]})
        me_shipment_id = self._primeiro_id(data or {})
        if not me_shipment_id:
            raise IntegracaoFalhouError("Falha ao obter o ID oficial da etiqueta após o checkout.")
        return me_shipment_id

    def imprimir_etiqueta(self, me_shipment_id: str) -> Optional[str]:
        self._requisitar("POST", "/me/shipment/generate", json={"orders": [me_shipment_id]})
        data = self._requisitar("POST", "/me/shipment/print", json={"orders": [me_shipment_id]})
        return self._url_etiqueta(data or {}, me_shipment_id)

    def consultar_envio(self, me_shipment_id: str) -> Optional[InfoRastreio]:
        data = self._requisitar("GET", f"/me/orders/{me_shipment_id}", tolerar=(404, 422))
        if data is None:
            return None
        return InfoRastreio(
            codigo_rastreio=data.get("tracking") or None,
            url_etiqueta=(data.get("label") or {}).get("url") or data.get("label_url") or None,
            status_provedor=data.get("status"),
        )
