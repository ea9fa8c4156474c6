# rosia/core/use_cases.py
"""
Implementação dos Casos de Uso (Lógica de Negócio) da aplicação.
Esta camada depende apenas das Entidades e Portas (Interfaces) do Core,
garantindo o isolamento da lógica de negócio.
"""
import json
import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional, Tuple

# Entidades e Exceções
from rosia.core.entities import (
    Carrinho, Conta, CotacaoFrete, Endereco, Envio, InfoRastreio, ItemPedido, Pedido,
    RequisicaoCobranca, ResultadoCobranca, ResultadoWebhook, StatusEnvio, StatusPedido,
    TokenCartao, VisaoCarrinho, TRANSICAO_CANCELAMENTO, TRANSICOES_PAGAMENTO, arredondar
)
from rosia.core.exceptions import (
    CarrinhoVazioError,
    CobrancaNaoEncontradaError,
    DadosInvalidosError,
    EnvioNaoEncontradoError,
    EstoqueInsuficienteError,
    IdentificadorInvalidoError,
    ItemCarrinhoNaoEncontradoError,
    PagamentoFalhouError,
    PedidoNaoEncontradoError,
    PedidoNaoPagavelError,
    ProdutoInativoError,
    QuantidadeInvalidaError,
    ReferenciaDuplicadaError,
    ServicoIndisponivelError,
    StatusInvalidoError,
    ValorDivergenteError,
    VarianteNaoEncontradaError,
)
from rosia.core.frete import calcular_frete
from rosia.core.assinatura import VerificadorAssinaturaWebhook
from rosia.core.retry import PoliticaRetry

# Portas (Interfaces) - Importadas do rosia/core/ports.py
from rosia.core.ports import (
    ICarrinhoRepository,
    IEnvioRepository,
    IGatewayPagamento,
    IInventarioRepository,
    IPedidoRepository,
    ITransportadora,
)

logger = logging.getLogger(__name__)

FORMAS_PAGAMENTO = {
    'pix': 'pix',
    'boleto': 'boleto',
    'credit_card': 'cartao_credito',
    'cartao': 'cartao_credito',
    'cartao_credito': 'cartao_credito',
}

TOLERANCIA_VALOR = Decimal('0.01')

# Ids definitivos da Melhor Envio são UUIDs; valores menores são ids de carrinho.
TAMANHO_MINIMO_ID_ENVIO = 30


def validar_uuid(valor, campo: str = 'id') -> str:
    try:
        return str(uuid.UUID(str(valor)))
    except (ValueError, TypeError, AttributeError):
        raise IdentificadorInvalidoError(f"O campo '{campo}' não é um identificador válido.")


def validar_quantidade(valor) -> int:
    if isinstance(valor, bool) or (isinstance(valor, float) and not valor.is_integer()):
        raise QuantidadeInvalidaError()
    try:
        quantidade = int(valor)
    except (TypeError, ValueError):
        raise QuantidadeInvalidaError()
    if quantidade <= 0:
        raise QuantidadeInvalidaError()
    return quantidade


def normalizar_forma_pagamento(valor: Optional[str]) -> str:
    forma = FORMAS_PAGAMENTO.get(str(valor or 'pix').strip().lower())
    if not forma:
        raise DadosInvalidosError(f"Forma de pagamento '{valor}' não suportada.")
    return forma


# ====================================================================
# 1. CASOS DE USO DO CARRINHO
# ====================================================================

class GerenciarCarrinhoUseCase:
    """
    Caso de Uso que centraliza a lógica de gestão do carrinho (adicionar, atualizar,
    remover, limpar, visualizar). Toda alteração relê o estoque atual da variante.
    """
    def __init__(self, carrinho_repo: ICarrinhoRepository, inventario_repo: IInventarioRepository):
        self.carrinho_repo = carrinho_repo
        self.inventario_repo = inventario_repo

    def obter(self, usuario_id: str) -> VisaoCarrinho:
        return self.carrinho_repo.visualizar(usuario_id)

    def adicionar_item(self, usuario_id: str, variante_id, quantidade) -> Carrinho:
        """Adiciona ou incrementa um item no carrinho, verificando o estoque do total resultante."""
        variante_id = validar_uuid(variante_id, 'variant_id')
        quantidade = validar_quantidade(quantidade)

        variante = self.inventario_repo.buscar_variante(variante_id)
        if not variante:
            raise VarianteNaoEncontradaError()
        if not variante.produto_ativo:
            raise ProdutoInativoError(variante.id, variante.nome_produto)

        carrinho = self.carrinho_repo.buscar_por_usuario(usuario_id)
        item_existente = carrinho.item_da_variante(variante_id)
        quantidade_no_carrinho = item_existente.quantidade if item_existente else 0
        quantidade_total = quantidade + quantidade_no_carrinho

        if quantidade_total > variante.estoque:
            raise EstoqueInsuficienteError(
                variante_id, variante.estoque, quantidade_total,
                message=(f"Estoque insuficiente. Disponível: {variante.estoque}. "
                         f"Você já tem {quantidade_no_carrinho} no carrinho."),
                codigo='OUT_OF_STOCK',
            )

        # O preço é congelado no momento em que o item entra no carrinho.
        return self.carrinho_repo.salvar_item(usuario_id, variante_id, quantidade_total, variante.preco_vigente)

    def atualizar_item(self, usuario_id: str, item_id, quantidade) -> Carrinho:
        item_id = validar_uuid(item_id, 'cart_item_id')
        quantidade = validar_quantidade(quantidade)

        carrinho = self.carrinho_repo.buscar_por_usuario(usuario_id)
        item = carrinho.item_por_id(item_id)
        if not item:
            raise ItemCarrinhoNaoEncontradoError()

        variante = self.inventario_repo.buscar_variante(item.variante_id)
        if not variante:
            raise VarianteNaoEncontradaError()
        if quantidade > variante.estoque:
            raise EstoqueInsuficienteError(
                variante.id, variante.estoque, quantidade,
                message=f"Estoque insuficiente. Disponível: {variante.estoque}.",
                codigo='OUT_OF_STOCK',
            )

        self.carrinho_repo.atualizar_quantidade(item_id, quantidade)
        item.quantidade = quantidade
        return carrinho

    def remover_item(self, usuario_id: str, item_id) -> None:
        item_id = validar_uuid(item_id, 'id')
        if not self.carrinho_repo.remover_item(usuario_id, item_id):
            raise ItemCarrinhoNaoEncontradoError()

    def limpar(self, usuario_id: str) -> None:
        self.carrinho_repo.limpar(usuario_id)


class CotarFreteUseCase:
    """Cota o frete do carrinho atual com a mesma função usada no checkout."""
    def __init__(self, carrinho_repo: ICarrinhoRepository, frete: Callable = calcular_frete):
        self.carrinho_repo = carrinho_repo
        self.frete = frete

    def executar(self, usuario_id: str, cep) -> CotacaoFrete:
        carrinho = self.carrinho_repo.buscar_por_usuario(usuario_id)
        subtotal = arredondar(carrinho.total)
        valor = self.frete(subtotal, len(carrinho.itens), cep)
        return CotacaoFrete(
            cep=''.join(ch for ch in str(cep) if ch.isdigit()),
            subtotal=subtotal,
            quantidade_itens=len(carrinho.itens),
            valor=valor,
        )


# ====================================================================
# 2. CASOS DE USO DE PEDIDO E CHECKOUT
# ====================================================================

class CriarPedidoUseCase:
    """
    Caso de Uso que coordena a finalização do checkout:
    Validação, Snapshot, Reserva de Estoque (atômica) e Limpeza do Carrinho.
    """
    def __init__(self,
                 carrinho_repo: ICarrinhoRepository,
                 pedido_repo: IPedidoRepository,
                 inventario_repo: IInventarioRepository,
                 frete: Callable = calcular_frete):

        self.carrinho_repo = carrinho_repo
        self.pedido_repo = pedido_repo
        self.inventario_repo = inventario_repo
        self.frete = frete

    def executar(
        self,
        usuario_id: str,
        dados_entrega: dict,
        forma_pagamento: Optional[str] = 'pix',
        referencia_externa: Optional[str] = None,
    ) -> Pedido:
        """Processa o checkout. Repetir a chamada com a mesma referência devolve o mesmo pedido."""

        if referencia_externa:
            existente = self.pedido_repo.buscar_por_referencia(referencia_externa)
            if existente:
                return self._repeticao(existente, usuario_id)

        endereco = Endereco.de_dict(dados_entrega)
        forma = normalizar_forma_pagamento(forma_pagamento)

        carrinho = self.carrinho_repo.buscar_por_usuario(usuario_id)
        if not carrinho.itens:
            raise CarrinhoVazioError("Não é possível finalizar o checkout com o carrinho vazio.")

        # 1. Revalidação (estoque relido do banco) e snapshot dos itens
        itens_pedido: List[ItemPedido] = []
        for item in carrinho.itens:
            variante = self.inventario_repo.buscar_variante(item.variante_id)
            if not variante:
                raise VarianteNaoEncontradaError(f"Variante {item.variante_id} não existe mais no catálogo.")
            if not variante.produto_ativo:
                raise ProdutoInativoError(variante.id, variante.nome_produto)
            if item.quantidade > variante.estoque:
                raise EstoqueInsuficienteError(
                    variante_id=variante.id,
                    estoque_atual=variante.estoque,
                    quantidade_solicitada=item.quantidade,
                )

            itens_pedido.append(ItemPedido(
                produto_id=variante.produto_id,
                variante_id=variante.id,
                nome_produto=variante.nome_produto,
                preco_unitario=item.preco_unitario,
                quantidade=item.quantidade,
                tamanho_selecionado=variante.tamanho,
                cor_selecionada=variante.cor,
            ))

        # 2. Totais
        subtotal = arredondar(sum((i.subtotal for i in itens_pedido), Decimal('0.00')))
        frete = self.frete(subtotal, len(itens_pedido), endereco.cep)

        pedido = Pedido(
            usuario_id=usuario_id,
            itens=itens_pedido,
            subtotal=subtotal,
            frete=frete,
            total=arredondar(subtotal + frete),
            forma_pagamento=forma,
            endereco_entrega=endereco,
            referencia_externa=referencia_externa,
        )

        # 3. Pedido + itens + reserva de estoque numa única transação
        criado = self.pedido_repo.criar_pedido(pedido)
        if str(criado.id) != str(pedido.id):
            # Outra requisição com a mesma referência venceu a corrida.
            return self._repeticao(criado, usuario_id)

        logger.info("Pedido %s criado (usuario=%s, total=%s, itens=%s)",
                    criado.id, usuario_id, criado.total, len(criado.itens))

        # 4. Limpeza do carrinho (falha não invalida o pedido)
        try:
            self.carrinho_repo.limpar(usuario_id)
        except Exception:
            logger.exception("Pedido %s criado, mas o carrinho do usuário %s não foi limpo", criado.id, usuario_id)

        return criado

    def _repeticao(self, existente: Pedido, usuario_id: str) -> Pedido:
        if str(existente.usuario_id) != str(usuario_id):
            raise ReferenciaDuplicadaError()
        logger.info("Checkout repetido para a referência %s; devolvendo pedido %s",
                    existente.referencia_externa, existente.id)
        return existente


class ListarPedidosDoUsuarioUseCase:
    """Caso de Uso para listar e detalhar os pedidos de um cliente específico."""
    def __init__(self, pedido_repo: IPedidoRepository):
        self.pedido_repo = pedido_repo

    def executar(self, usuario_id: str) -> List[Pedido]:
        return self.pedido_repo.listar_pedidos_por_usuario(usuario_id)

    def detalhar(self, usuario_id: str, pedido_id) -> Pedido:
        pedido = self.pedido_repo.buscar_por_id(validar_uuid(pedido_id, 'order_id'))
        if not pedido or str(pedido.usuario_id) != str(usuario_id):
            raise PedidoNaoEncontradoError()
        return pedido


class CancelarPedidoUseCase:
    """Cancelamento pelo comprador de um pedido ainda pendente; devolve o estoque reservado."""
    def __init__(self, pedido_repo: IPedidoRepository):
        self.pedido_repo = pedido_repo

    def executar(self, usuario_id: str, pedido_id) -> Pedido:
        pedido_id = validar_uuid(pedido_id, 'order_id')
        pedido = self.pedido_repo.buscar_por_id(pedido_id)
        if not pedido or str(pedido.usuario_id) != str(usuario_id):
            raise PedidoNaoEncontradoError()

        if not self.pedido_repo.aplicar_transicao(pedido_id, TRANSICAO_CANCELAMENTO):
            raise StatusInvalidoError(f"Pedido com status '{pedido.status}' não pode ser cancelado.")

        logger.info("Pedido %s cancelado pelo comprador", pedido_id)
        return self.pedido_repo.buscar_por_id(pedido_id)


# ====================================================================
# 3. CASOS DE USO DE PAGAMENTO
# ====================================================================

class ProcessarCobrancaUseCase:
    """Cria e consulta cobranças de pedidos pendentes junto ao gateway."""
    def __init__(self,
                 pedido_repo: IPedidoRepository,
                 pagamento_gateway: IGatewayPagamento,
                 politica_retry: Optional[PoliticaRetry] = None,
                 url_notificacao: Optional[str] = None):
        self.pedido_repo = pedido_repo
        self.pagamento_gateway = pagamento_gateway
        self.politica_retry = politica_retry or PoliticaRetry(max_tentativas=1)
        self.url_notificacao = url_notificacao

    def _localizar_pedido(self, conta: Conta, dados: dict) -> Pedido:
        if dados.get('order_id'):
            pedido = self.pedido_repo.buscar_por_id(validar_uuid(dados['order_id'], 'order_id'))
        elif dados.get('external_reference'):
            pedido = self.pedido_repo.buscar_por_referencia(str(dados['external_reference']))
        else:
            raise DadosInvalidosError("Informe 'order_id' ou 'external_reference'.")

        if not pedido or str(pedido.usuario_id) != str(conta.id):
            raise PedidoNaoEncontradoError()
        return pedido

    @staticmethod
    def _valor_informado(dados: dict) -> Decimal:
        bruto = dados.get('amount', dados.get('transaction_amount'))
        if bruto is None:
            raise DadosInvalidosError("O campo 'amount' é obrigatório.")
        try:
            return Decimal(str(bruto))
        except InvalidOperation:
            raise DadosInvalidosError("O campo 'amount' deve ser numérico.")

    def criar(self, conta: Conta, dados: dict,
              chave_idempotencia: Optional[str] = None) -> Tuple[Pedido, ResultadoCobranca]:
        pedido = self._localizar_pedido(conta, dados)

        if pedido.status != StatusPedido.PENDENTE:
            raise PedidoNaoPagavelError(f"Pedido com status '{pedido.status}' não pode ser pago.")

        valor = self._valor_informado(dados)
        if abs(valor - pedido.total) > TOLERANCIA_VALOR:
            raise ValorDivergenteError(
                f"Valor informado ({valor}) difere do total do pedido ({pedido.total})."
            )

        token = dados.get('token')
        metodo = dados.get('payment_method_id') or ('pix' if pedido.forma_pagamento == 'pix' else None)
        if not metodo:
            raise DadosInvalidosError("O campo 'payment_method_id' é obrigatório.")
        if pedido.forma_pagamento == 'cartao_credito' and not token:
            raise DadosInvalidosError("Token do cartão ausente na requisição.")

        requisicao = RequisicaoCobranca(
            valor=pedido.total,
            metodo_pagamento_id=str(metodo),
            referencia_externa=pedido.referencia_externa,
            pagador=conta.dados_pagador(dados.get('payer')),
            token=token,
            parcelas=int(dados.get('installments') or 1),
            emissor_id=dados.get('issuer_id'),
            descricao=f"Pedido {pedido.id}",
            url_notificacao=self.url_notificacao,
        )
        chave = chave_idempotencia or f"{pedido.referencia_externa}:{token or metodo}"

        # A chave de idempotência torna seguro repetir a chamada após falhas de rede.
        resultado = self.politica_retry.executar(
            lambda: self.pagamento_gateway.criar_cobranca(requisicao, chave)
        )

        self.pedido_repo.registrar_pagamento(pedido.id, resultado.id, resultado.status, resultado.dados)
        transicao = TRANSICOES_PAGAMENTO.get(resultado.status)
        if transicao:
            self.pedido_repo.aplicar_transicao(pedido.id, transicao)

        logger.info("Cobrança %s do pedido %s: %s (%s)",
                    resultado.id, pedido.id, resultado.status, resultado.status_detalhe)

        if resultado.rejeitado:
            raise PagamentoFalhouError(
                "Pagamento recusado pelo emissor.", motivo=resultado.motivo or 'other', pagamento_id=resultado.id
            )

        return self.pedido_repo.buscar_por_id(pedido.id), resultado

    def consultar(self, conta: Conta, pagamento_id: str) -> ResultadoCobranca:
        pedido = self.pedido_repo.buscar_por_pagamento_id(str(pagamento_id))
        if not pedido or str(pedido.usuario_id) != str(conta.id):
            raise CobrancaNaoEncontradaError()
        return self.pagamento_gateway.consultar_cobranca(str(pagamento_id))


class CriarTokenCartaoUseCase:
    """Tokeniza os dados do cartão no gateway; o número completo nunca é persistido."""

    CAMPOS_OBRIGATORIOS = ('card_number', 'expiration_month', 'expiration_year', 'security_code')

    def __init__(self, pagamento_gateway: IGatewayPagamento):
        self.pagamento_gateway = pagamento_gateway

    def executar(self, dados_cartao: dict, chave_idempotencia: Optional[str] = None) -> TokenCartao:
        faltando = [c for c in self.CAMPOS_OBRIGATORIOS if not dados_cartao.get(c)]
        titular = dados_cartao.get('cardholder') or {}
        if not titular.get('name'):
            faltando.append('cardholder.name')
        if faltando:
            raise DadosInvalidosError(f"Dados do cartão incompletos: {', '.join(faltando)}.")

        numero = ''.join(ch for ch in str(dados_cartao['card_number']) if ch.isdigit())
        if not 13 <= len(numero) <= 19:
            raise DadosInvalidosError("Número do cartão inválido.")

        return self.pagamento_gateway.criar_token_cartao(
            dict(dados_cartao, card_number=numero),
            chave_idempotencia or str(uuid.uuid4()),
        )


class ProcessarWebhookPagamentoUseCase:
    """
    Processa notificações assíncronas do gateway de pagamento.

    O corpo da notificação é apenas um gatilho: o status canônico é sempre
    obtido via `consultar_cobranca` antes de alterar o pedido.
    """
    def __init__(self,
                 pedido_repo: IPedidoRepository,
                 pagamento_gateway: IGatewayPagamento,
                 verificador: VerificadorAssinaturaWebhook,
                 politica_retry: PoliticaRetry):
        self.pedido_repo = pedido_repo
        self.pagamento_gateway = pagamento_gateway
        self.verificador = verificador
        self.politica_retry = politica_retry

    @staticmethod
    def _ler_corpo(corpo_bruto) -> dict:
        try:
            if isinstance(corpo_bruto, bytes):
                corpo_bruto = corpo_bruto.decode('utf-8')
            payload = json.loads(corpo_bruto or '{}')
        except (UnicodeDecodeError, ValueError):
            raise DadosInvalidosError("Corpo da notificação não é um JSON válido.", codigo='INVALID_PAYLOAD')
        if not isinstance(payload, dict):
            raise DadosInvalidosError("Corpo da notificação deve ser um objeto JSON.", codigo='INVALID_PAYLOAD')
        return payload

    @staticmethod
    def _extrair_evento(payload: dict) -> Tuple[str, Optional[str]]:
        tipo = payload.get('type') or payload.get('topic') or str(payload.get('action') or '').split('.')[0]
        dados = payload.get('data')
        pagamento_id = dados.get('id') if isinstance(dados, dict) else None
        return str(tipo or ''), (str(pagamento_id) if pagamento_id else None)

    def _localizar_pedido(self, cobranca: ResultadoCobranca) -> Optional[Pedido]:
        if cobranca.referencia_externa:
            pedido = self.pedido_repo.buscar_por_referencia(cobranca.referencia_externa)
            if pedido:
                return pedido
        return self.pedido_repo.buscar_por_pagamento_id(cobranca.id)

    def executar(self, corpo_bruto, assinatura: Optional[str] = None,
                 request_id: Optional[str] = None) -> ResultadoWebhook:

        verificacao = self.verificador.verificar(request_id, corpo_bruto, assinatura)
        if verificacao == VerificadorAssinaturaWebhook.DIVERGENTE:
            # Segue o processamento: o estado é revalidado no próprio gateway.
            logger.warning("Assinatura do webhook de pagamento não confere (request_id=%s)", request_id)

        payload = self._ler_corpo(corpo_bruto)
        tipo, pagamento_id = self._extrair_evento(payload)
        if tipo != 'payment' or not pagamento_id:
            logger.info("Webhook ignorado (tipo=%s, id=%s)", tipo, pagamento_id)
            return ResultadoWebhook(ResultadoWebhook.IGNORADO, "Evento ignorado", assinatura=verificacao)

        # 1. Status canônico no gateway
        try:
            cobranca = self.politica_retry.executar(
                lambda: self.pagamento_gateway.consultar_cobranca(pagamento_id)
            )
        except CobrancaNaoEncontradaError:
            logger.warning("Webhook para pagamento %s desconhecido no gateway", pagamento_id)
            return ResultadoWebhook(ResultadoWebhook.IGNORADO, "Pagamento desconhecido", assinatura=verificacao)
        except ServicoIndisponivelError:
            logger.error("Gateway indisponível ao processar webhook do pagamento %s", pagamento_id)
            return ResultadoWebhook(ResultadoWebhook.PROCESSANDO, "Processamento pendente", assinatura=verificacao)

        # 2. Pedido correspondente (pode ainda não estar gravado)
        pedido = self.politica_retry.executar(lambda: self._localizar_pedido(cobranca))
        if not pedido:
            logger.warning("Pagamento %s (ref=%s) não associado a pedido", cobranca.id, cobranca.referencia_externa)
            return ResultadoWebhook(ResultadoWebhook.NAO_ASSOCIADO, "Pagamento não associado a pedido",
                                    assinatura=verificacao)

        # 3. Cobrança antiga de um pedido já pago por outra cobrança não altera o pedido
        if (pedido.status in StatusPedido.PAGOS and pedido.pagamento_id
                and str(pedido.pagamento_id) != str(cobranca.id)):
            logger.warning("Pagamento %s (%s) ignorado: pedido %s já pago pelo pagamento %s",
                           cobranca.id, cobranca.status, pedido.id, pedido.pagamento_id)
            return ResultadoWebhook(
                ResultadoWebhook.PROCESSADO,
                "Notificação de cobrança substituída",
                assinatura=verificacao,
                pedido_id=str(pedido.id),
                status_pedido=pedido.status,
            )

        # 4. Projeção local + transição condicional
        self.pedido_repo.registrar_pagamento(pedido.id, cobranca.id, cobranca.status, cobranca.dados)

        aplicada = False
        transicao = TRANSICOES_PAGAMENTO.get(cobranca.status)
        if transicao:
            aplicada = self.pedido_repo.aplicar_transicao(pedido.id, transicao)
            if aplicada:
                logger.info("Pedido %s: %s -> %s (pagamento %s)",
                            pedido.id, pedido.status, transicao.destino, cobranca.id)
            elif cobranca.aprovado and pedido.status not in StatusPedido.PAGOS:
                logger.warning("Pagamento %s aprovado para pedido %s em status '%s'; requer revisão manual",
                               cobranca.id, pedido.id, pedido.status)
            else:
                logger.info("Pedido %s já em '%s'; notificação %s sem efeito",
                            pedido.id, pedido.status, cobranca.status)

        atual = self.pedido_repo.buscar_por_id(pedido.id)
        return ResultadoWebhook(
            ResultadoWebhook.PROCESSADO,
            "Notificação processada",
            assinatura=verificacao,
            pedido_id=str(pedido.id),
            status_pedido=atual.status if atual else pedido.status,
            transicao_aplicada=aplicada,
        )


# ====================================================================
# 4. CASOS DE USO DE ENVIO
# ====================================================================

class SincronizarEnvioUseCase:
    """
    Compra/liberação da etiqueta e sincronização do rastreio com a transportadora.
    Cada etapa grava seu resultado parcial antes de seguir para a próxima.
    """
    def __init__(self,
                 envio_repo: IEnvioRepository,
                 pedido_repo: IPedidoRepository,
                 transportadora: ITransportadora,
                 politica_polling: PoliticaRetry,
                 politica_sincronizacao: Optional[PoliticaRetry] = None):
        self.envio_repo = envio_repo
        self.pedido_repo = pedido_repo
        self.transportadora = transportadora
        self.politica_polling = politica_polling
        self.politica_sincronizacao = politica_sincronizacao or PoliticaRetry(max_tentativas=1)

    def _buscar_pedido(self, pedido_id, usuario_id: Optional[str] = None) -> Pedido:
        pedido = self.pedido_repo.buscar_por_id(validar_uuid(pedido_id, 'order_id'))
        if not pedido or (usuario_id is not None and str(pedido.usuario_id) != str(usuario_id)):
            raise PedidoNaoEncontradoError()
        return pedido

    def _consultar(self, politica: PoliticaRetry, me_shipment_id: str) -> Optional[InfoRastreio]:
        try:
            return politica.executar(
                lambda: self.transportadora.consultar_envio(me_shipment_id),
                aceitar=lambda info: info is not None and info.disponivel,
            )
        except ServicoIndisponivelError as e:
            logger.warning("Rastreio do envio %s indisponível: %s", me_shipment_id, e)
            return None

    def _aplicar_rastreio(self, envio: Envio, info: Optional[InfoRastreio]) -> Envio:
        codigo = (info.codigo_rastreio if info else None) or envio.codigo_rastreio
        url = (info.url_etiqueta if info else None) or envio.url_etiqueta

        if codigo or url:
            envio = self.envio_repo.registrar_rastreio(envio.id, codigo, url)
            if codigo:
                self.pedido_repo.registrar_codigo_rastreio(envio.pedido_id, codigo)
            return envio

        logger.info("Etiqueta do envio %s ainda em processamento na transportadora", envio.me_shipment_id)
        return self.envio_repo.atualizar_status(envio.id, StatusEnvio.PROCESSANDO)

    def comprar_e_liberar(self, pedido_id, cart_item_id: Optional[str] = None) -> Envio:
        pedido = self._buscar_pedido(pedido_id)
        if pedido.status not in StatusPedido.PAGOS:
            raise StatusInvalidoError("Somente pedidos pagos podem ter a etiqueta comprada.")

        envio = self.envio_repo.buscar_por_pedido(pedido.id)
        if envio is None:
            if not cart_item_id:
                raise DadosInvalidosError("Informe o 'cart_item_id' do frete cotado.")
            envio = self.envio_repo.obter_ou_criar(Envio(pedido_id=pedido.id, cart_item_id=str(cart_item_id)))

        if envio.pronto:
            return envio

        # 1. Id definitivo do envio
        if not envio.me_shipment_id:
            me_shipment_id = self.transportadora.finalizar_compra(envio.cart_item_id)
            envio = self.envio_repo.registrar_liberacao(envio.id, me_shipment_id)
            logger.info("Envio do pedido %s liberado (me_shipment_id=%s)", pedido.id, me_shipment_id)

        # 2. Etiqueta
        if not envio.url_etiqueta:
            try:
                url = self.transportadora.imprimir_etiqueta(envio.me_shipment_id)
            except ServicoIndisponivelError as e:
                logger.warning("Impressão da etiqueta %s falhou: %s", envio.me_shipment_id, e)
                url = None
            if url:
                envio = self.envio_repo.registrar_etiqueta(envio.id, url)

        # 3. Rastreio (polling com tentativas fixas)
        info = self._consultar(self.politica_polling, envio.me_shipment_id)
        return self._aplicar_rastreio(envio, info)

    def sincronizar(self, pedido_id, usuario_id: Optional[str] = None) -> Envio:
        """Idempotente: consulta a transportadora e recai no último estado gravado."""
        pedido = self._buscar_pedido(pedido_id, usuario_id)

        envio = self.envio_repo.buscar_por_pedido(pedido.id)
        if envio is None:
            raise EnvioNaoEncontradoError()

        me_shipment_id = envio.me_shipment_id
        if not me_shipment_id or len(me_shipment_id) < TAMANHO_MINIMO_ID_ENVIO:
            if me_shipment_id:
                logger.warning("Envio %s com id de transportadora inválido: %s", envio.id, me_shipment_id)
            return envio

        info = self._consultar(self.politica_sincronizacao, me_shipment_id)
        return self._aplicar_rastreio(envio, info)
