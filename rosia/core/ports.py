# rosia/core/ports.py
"""
Definição das Portas (Interfaces/Protocolos) da Arquitetura Limpa.

Estes protocolos definem o contrato que a camada de Infraestrutura (Repositórios, Gateways)
DEVE seguir para se conectar à camada Core (Casos de Uso).
"""

from typing import Protocol, List, Optional
from abc import abstractmethod

from rosia.core.entities import (
    Carrinho, Envio, InfoRastreio, Pedido, RequisicaoCobranca, ResultadoCobranca,
    TokenCartao, Transicao, VarianteProduto, VisaoCarrinho
)


# ====================================================================
# 1. REPOSITÓRIOS (Portas de Persistência)
# ====================================================================

class IInventarioRepository(Protocol):
    """Livro-razão de estoque por variante: única porta que altera `estoque`."""

    @abstractmethod
    def buscar_variante(self, variante_id: str) -> Optional[VarianteProduto]:
        """Lê a variante diretamente do banco (sem cache)."""
        ...

    @abstractmethod
    def reservar(self, variante_id: str, quantidade: int) -> bool:
        """Decrementa o estoque se houver saldo suficiente. Retorna False caso contrário."""
        ...

    @abstractmethod
    def restaurar(self, variante_id: str, quantidade: int) -> None: ...


class ICarrinhoRepository(Protocol):
    """Protocolo para a persistência de Carrinhos (um por usuário)."""

    @abstractmethod
    def buscar_por_usuario(self, usuario_id: str) -> Carrinho: ...

    @abstractmethod
    def salvar_item(self, usuario_id: str, variante_id: str, quantidade: int, preco_unitario) -> Carrinho:
        """Cria o item ou define a nova quantidade total (o preço só é gravado na criação)."""
        ...

    @abstractmethod
    def atualizar_quantidade(self, item_id: str, quantidade: int) -> None: ...

    @abstractmethod
    def remover_item(self, usuario_id: str, item_id: str) -> bool: ...

    @abstractmethod
    def limpar(self, usuario_id: str) -> None: ...

    @abstractmethod
    def visualizar(self, usuario_id: str) -> VisaoCarrinho: ...


class IPedidoRepository(Protocol):
    """Protocolo para a persistência e gestão de Pedidos."""

    @abstractmethod
    def criar_pedido(self, pedido: Pedido) -> Pedido:
        """
        Grava pedido e itens e reserva o estoque de cada item numa única transação.
        Se a referência externa já existir, devolve o pedido existente.
        """
        ...

    @abstractmethod
    def buscar_por_id(self, pedido_id: str) -> Optional[Pedido]: ...

    @abstractmethod
    def buscar_por_referencia(self, referencia_externa: str) -> Optional[Pedido]: ...

    @abstractmethod
    def buscar_por_pagamento_id(self, pagamento_id: str) -> Optional[Pedido]: ...

    @abstractmethod
    def listar_pedidos_por_usuario(self, usuario_id: str) -> List[Pedido]: ...

    @abstractmethod
    def registrar_pagamento(self, pedido_id: str, pagamento_id: str, status_pagamento: str,
                            dados: Optional[dict] = None) -> None: ...

    @abstractmethod
    def aplicar_transicao(self, pedido_id: str, transicao: Transicao) -> bool:
        """
        Aplica a transição somente se o status atual estiver em `transicao.origens`.
        Retorna True se o status foi alterado.
        """
        ...

    @abstractmethod
    def registrar_codigo_rastreio(self, pedido_id: str, codigo_rastreio: str) -> None: ...


class IEnvioRepository(Protocol):
    """Protocolo para os registros de envio (etiquetas)."""

    @abstractmethod
    def buscar_por_pedido(self, pedido_id: str) -> Optional[Envio]: ...

    @abstractmethod
    def obter_ou_criar(self, envio: Envio) -> Envio: ...

    @abstractmethod
    def registrar_liberacao(self, envio_id: str, me_shipment_id: str) -> Envio: ...

    @abstractmethod
    def registrar_etiqueta(self, envio_id: str, url_etiqueta: str) -> Envio: ...

    @abstractmethod
    def registrar_rastreio(self, envio_id: str, codigo_rastreio: Optional[str],
                           url_etiqueta: Optional[str]) -> Envio: ...

    @abstractmethod
    def atualizar_status(self, envio_id: str, status: str) -> Envio: ...


# ====================================================================
# 2. GATEWAYS (Portas de Serviços Externos)
# ====================================================================

class IGatewayPagamento(Protocol):
    """
    Protocolo para serviços externos de processamento de pagamento.

    Falhas de rede, timeout e 5xx devem ser levantadas como ServicoIndisponivelError;
    rejeições de negócio voltam como ResultadoCobranca com status 'rejected'.
    """

    @abstractmethod
    def criar_cobranca(self, requisicao: RequisicaoCobranca, chave_idempotencia: str) -> ResultadoCobranca: ...

    @abstractmethod
    def consultar_cobranca(self, pagamento_id: str) -> ResultadoCobranca: ...

    @abstractmethod
    def criar_token_cartao(self, dados_cartao: dict, chave_idempotencia: str) -> TokenCartao: ...


class ITransportadora(Protocol):
    """Protocolo para o provedor de frete (compra de etiqueta e rastreio)."""

    @abstractmethod
    def finalizar_compra(self, cart_item_id: str) -> str:
        """Finaliza a compra do frete cotado e devolve o id definitivo do envio."""
        ...

    @abstractmethod
    def imprimir_etiqueta(self, me_shipment_id: str) -> Optional[str]: ...

    @abstractmethod
    def consultar_envio(self, me_shipment_id: str) -> Optional[InfoRastreio]:
        """Retorna None enquanto o provedor ainda processa a etiqueta."""
        ...
