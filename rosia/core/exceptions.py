class BaseErroCore(Exception):
    """Classe base para todas as exceções da Camada Core."""
    codigo = 'INTERNAL_ERROR'
    mensagem_padrao = "Erro interno."

    def __init__(self, message=None, codigo=None):
        self.message = message or self.mensagem_padrao
        if codigo:
            self.codigo = codigo
        super().__init__(self.message)


# ===============================================
# ERROS DE VALIDAÇÃO (corrigíveis pelo cliente)
# ===============================================

class DadosInvalidosError(BaseErroCore):
    """Erro levantado quando dados inválidos são fornecidos."""
    codigo = 'INVALID_DATA'
    mensagem_padrao = "Os dados fornecidos são inválidos."


class QuantidadeInvalidaError(DadosInvalidosError):
    codigo = 'INVALID_QUANTITY'
    mensagem_padrao = "A quantidade deve ser um número inteiro positivo."


class IdentificadorInvalidoError(DadosInvalidosError):
    codigo = 'INVALID_ID'
    mensagem_padrao = "Identificador em formato inválido."


class EnderecoInvalidoError(DadosInvalidosError):
    """Erro levantado quando um endereço de entrega é inválido."""
    codigo = 'INVALID_ADDRESS'
    mensagem_padrao = "Endereço de entrega inválido."


class CarrinhoVazioError(DadosInvalidosError):
    """Erro levantado ao tentar fazer checkout com carrinho vazio."""
    codigo = 'EMPTY_CART'
    mensagem_padrao = "O carrinho de compras está vazio."


class ValorDivergenteError(DadosInvalidosError):
    codigo = 'AMOUNT_MISMATCH'
    mensagem_padrao = "O valor informado não confere com o total do pedido."


# ===============================================
# ERROS DE PERSISTÊNCIA E ENTIDADE
# ===============================================

class ItemNaoEncontradoError(BaseErroCore):
    """Erro levantado quando um item (genérico) não é encontrado."""
    codigo = 'NOT_FOUND'
    mensagem_padrao = "O item solicitado não foi encontrado."


class VarianteNaoEncontradaError(ItemNaoEncontradoError):
    codigo = 'VARIANT_NOT_FOUND'
    mensagem_padrao = "Variante de produto não encontrada."


class ItemCarrinhoNaoEncontradoError(ItemNaoEncontradoError):
    codigo = 'CART_ITEM_NOT_FOUND'
    mensagem_padrao = "Item não encontrado no carrinho."


class PedidoNaoEncontradoError(ItemNaoEncontradoError):
    """Erro específico para Pedidos não encontrados."""
    codigo = 'ORDER_NOT_FOUND'
    mensagem_padrao = "Pedido não encontrado."


class EnvioNaoEncontradoError(ItemNaoEncontradoError):
    codigo = 'SHIPMENT_NOT_FOUND'
    mensagem_padrao = "Nenhum envio registrado para este pedido."


class CobrancaNaoEncontradaError(ItemNaoEncontradoError):
    codigo = 'PAYMENT_NOT_FOUND'
    mensagem_padrao = "Pagamento não encontrado no gateway."


class ErroPersistencia(BaseErroCore):
    """Falha de escrita no banco de dados; aborta a operação inteira."""
    codigo = 'INTERNAL_ERROR'
    mensagem_padrao = "Falha ao gravar os dados. Nenhuma alteração foi aplicada."


# ===============================================
# CONFLITOS (o cliente deve reler o estado)
# ===============================================

class ConflitoError(BaseErroCore):
    codigo = 'CONFLICT'
    mensagem_padrao = "O estado atual do recurso impede a operação."


class EstoqueInsuficienteError(ConflitoError):
    """Erro levantado quando a quantidade solicitada excede o estoque."""
    codigo = 'INSUFFICIENT_STOCK'

    def __init__(self, variante_id: str, estoque_atual: int, quantidade_solicitada: int,
                 message=None, codigo=None):
        self.variante_id = variante_id
        self.estoque_atual = estoque_atual
        self.quantidade_solicitada = quantidade_solicitada
        if message is None:
            message = (f"Estoque insuficiente para a variante {variante_id}. "
                       f"Disponível: {estoque_atual}, Solicitado: {quantidade_solicitada}.")
        super().__init__(message, codigo)


class ProdutoInativoError(ConflitoError):
    codigo = 'PRODUCT_INACTIVE'

    def __init__(self, variante_id: str, nome_produto: str = ''):
        self.variante_id = variante_id
        super().__init__(f"O produto '{nome_produto or variante_id}' não está mais disponível para venda.")


class ReferenciaDuplicadaError(ConflitoError):
    codigo = 'DUPLICATE_REFERENCE'
    mensagem_padrao = "Já existe um pedido com esta referência externa."


class PedidoNaoPagavelError(ConflitoError):
    codigo = 'ORDER_NOT_PAYABLE'
    mensagem_padrao = "O pedido não está aguardando pagamento."


class StatusInvalidoError(ConflitoError):
    """Erro levantado ao tentar uma transição de status não permitida."""
    codigo = 'INVALID_STATUS_TRANSITION'
    mensagem_padrao = "O status atual do pedido não permite esta operação."


# ===============================================
# ERROS DE FLUXO DE PAGAMENTO E SERVIÇOS EXTERNOS
# ===============================================

class PagamentoFalhouError(BaseErroCore):
    """Erro levantado quando o Gateway de Pagamento rejeita a transação."""
    codigo = 'REJECTED'
    mensagem_padrao = "A transação de pagamento foi rejeitada."

    def __init__(self, message=None, motivo: str = 'other', pagamento_id=None):
        self.motivo = motivo
        self.pagamento_id = pagamento_id
        super().__init__(message)


class ServicoIndisponivelError(BaseErroCore):
    """Falha transitória de um serviço externo (timeout, 5xx, 429)."""
    codigo = 'TRANSIENT'
    mensagem_padrao = "Serviço externo temporariamente indisponível."


class GatewayIndisponivelError(ServicoIndisponivelError):
    mensagem_padrao = "Gateway de pagamento temporariamente indisponível."


class TransportadoraIndisponivelError(ServicoIndisponivelError):
    mensagem_padrao = "Transportadora temporariamente indisponível."


class IntegracaoFalhouError(BaseErroCore):
    """Resposta inesperada (não transitória) de um serviço externo."""
    codigo = 'PROVIDER_ERROR'
    mensagem_padrao = "O serviço externo recusou a requisição."
