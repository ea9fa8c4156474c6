from dataclasses import dataclass, field
from decimal import Decimal
from datetime import datetime
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple
import uuid

from rosia.core.exceptions import EnderecoInvalidoError

CENTAVOS = Decimal('0.01')


def arredondar(valor) -> Decimal:
    """Normaliza um valor monetário para duas casas decimais."""
    return Decimal(str(valor)).quantize(CENTAVOS)


# ====================================================================
# VOCABULÁRIO DE STATUS
# ====================================================================

class StatusPedido:
    PENDENTE = 'pendente'
    PAGO = 'pago'
    PAGAMENTO_REJEITADO = 'pagamento_rejeitado'
    CANCELADO = 'cancelado'
    REEMBOLSADO = 'reembolsado'
    CONFIRMADO = 'confirmed'

    TODOS = (PENDENTE, PAGO, PAGAMENTO_REJEITADO, CANCELADO, REEMBOLSADO, CONFIRMADO)
    PAGOS = (PAGO, CONFIRMADO)


class StatusEnvio:
    PENDENTE = 'pending'
    LIBERADO = 'released'
    PRONTO_PARA_ENVIO = 'pronto_para_envio'
    PROCESSANDO = 'processando_me'

    TODOS = (PENDENTE, LIBERADO, PRONTO_PARA_ENVIO, PROCESSANDO)


# ====================================================================
# ENTIDADES CORE
# Representam os objetos de negócio puros.
# ====================================================================

@dataclass(frozen=True)
class Conta:
    """Conta autenticada, independente do esquema de perfil que a originou."""
    id: str
    tipo: str
    email: str
    nome: str = ''
    cpf: Optional[str] = None
    telefone: Optional[str] = None

    @property
    def primeiro_nome(self) -> str:
        partes = self.nome.split()
        return partes[0] if partes else ''

    @property
    def sobrenome(self) -> str:
        partes = self.nome.split()
        return ' '.join(partes[1:]) if len(partes) > 1 else ''

    def dados_pagador(self, informado: Optional[dict] = None) -> dict:
        """Bloco `payer` do gateway; os campos enviados pelo cliente têm precedência."""
        informado = dict(informado or {})
        identificacao = dict(informado.get('identification') or {})
        if not identificacao.get('number') and self.cpf:
            identificacao = {'type': 'CPF', 'number': ''.join(ch for ch in self.cpf if ch.isdigit())}

        pagador = {
            'email': informado.get('email') or self.email,
            'first_name': informado.get('first_name') or self.primeiro_nome,
            'last_name': informado.get('last_name') or self.sobrenome,
        }
        if identificacao.get('number'):
            pagador['identification'] = {
                'type': identificacao.get('type') or 'CPF',
                'number': str(identificacao['number']),
            }
        return pagador


@dataclass
class Endereco:
    """Entidade do Endereço de Entrega (snapshot gravado no pedido)."""
    cep: str
    logradouro: str
    numero: str
    bairro: str
    cidade: str
    estado: str
    complemento: Optional[str] = None

    CAMPOS_OBRIGATORIOS = ('cep', 'logradouro', 'numero', 'bairro', 'cidade', 'estado')

    @classmethod
    def de_dict(cls, dados) -> 'Endereco':
        """Constrói e valida um endereço a partir do corpo da requisição."""
        if not isinstance(dados, dict):
            raise EnderecoInvalidoError("Endereço de entrega ausente ou em formato inválido.")

        faltando = [c for c in cls.CAMPOS_OBRIGATORIOS if not str(dados.get(c) or '').strip()]
        if faltando:
            raise EnderecoInvalidoError(f"Campos obrigatórios do endereço ausentes: {', '.join(faltando)}.")

        cep = ''.join(ch for ch in str(dados['cep']) if ch.isdigit())
        if len(cep) != 8:
            raise EnderecoInvalidoError("CEP deve conter 8 dígitos.")

        estado = str(dados['estado']).strip().upper()
        if len(estado) != 2 or not estado.isalpha():
            raise EnderecoInvalidoError("Estado deve ser a sigla da UF (ex: SP).")

        return cls(
            cep=cep,
            logradouro=str(dados['logradouro']).strip(),
            numero=str(dados['numero']).strip(),
            bairro=str(dados['bairro']).strip(),
            cidade=str(dados['cidade']).strip(),
            estado=estado,
            complemento=str(dados.get('complemento') or '').strip() or None,
        )


@dataclass
class VarianteProduto:
    """Combinação tamanho/cor de um produto: a unidade real de estoque."""
    id: str
    produto_id: str
    nome_produto: str
    preco: Decimal
    estoque: int
    tamanho: Optional[str] = None
    cor: Optional[str] = None
    preco_promocional: Optional[Decimal] = None
    em_promocao: bool = False
    produto_ativo: bool = True
    imagem_url: Optional[str] = None

    @property
    def preco_vigente(self) -> Decimal:
        """Preço cobrado no momento em que o item entra no carrinho."""
        if self.em_promocao and self.preco_promocional is not None:
            return self.preco_promocional
        return self.preco


@dataclass
class ItemCarrinho:
    """Entidade que representa um item no carrinho."""
    variante_id: str
    quantidade: int
    preco_unitario: Decimal
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def subtotal(self) -> Decimal:
        return self.preco_unitario * self.quantidade


@dataclass
class Carrinho:
    """Entidade do Carrinho de Compras."""
    usuario_id: str
    id: Optional[str] = None
    itens: List[ItemCarrinho] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((item.subtotal for item in self.itens), Decimal('0.00'))

    def item_da_variante(self, variante_id: str) -> Optional[ItemCarrinho]:
        return next((i for i in self.itens if str(i.variante_id) == str(variante_id)), None)

    def item_por_id(self, item_id: str) -> Optional[ItemCarrinho]:
        return next((i for i in self.itens if str(i.id) == str(item_id)), None)


@dataclass
class LinhaCarrinho:
    """Linha de exibição do carrinho (item + dados da variante e do produto)."""
    item_id: str
    variante_id: str
    produto_id: str
    nome_produto: str
    quantidade: int
    preco_unitario: Decimal
    tamanho: Optional[str] = None
    cor: Optional[str] = None
    imagem_url: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.preco_unitario * self.quantidade


class VisaoCarrinho:
    """
    Visão somente leitura do carrinho.

    As linhas são carregadas apenas quando a visão é iterada, e cada nova
    iteração consulta a fonte novamente.
    """

    def __init__(self, carregar: Callable[[], Iterable[LinhaCarrinho]]):
        self._carregar = carregar

    def __iter__(self) -> Iterator[LinhaCarrinho]:
        return iter(self._carregar())

    @property
    def subtotal(self) -> Decimal:
        return arredondar(sum((linha.subtotal for linha in self), Decimal('0.00')))

    @property
    def quantidade_itens(self) -> int:
        return sum(linha.quantidade for linha in self)


@dataclass
class ItemPedido:
    """Snapshot de um item no momento da compra (imutável)."""
    produto_id: str
    variante_id: str
    nome_produto: str
    preco_unitario: Decimal
    quantidade: int
    tamanho_selecionado: Optional[str] = None
    cor_selecionada: Optional[str] = None
    pedido_id: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.preco_unitario * self.quantidade


@dataclass
class Pedido:
    """Entidade do Pedido de Venda."""
    usuario_id: str
    itens: List[ItemPedido]
    subtotal: Decimal
    frete: Decimal
    total: Decimal
    forma_pagamento: str
    endereco_entrega: Endereco
    status: str = StatusPedido.PENDENTE
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    referencia_externa: Optional[str] = None
    pagamento_id: Optional[str] = None
    status_pagamento: Optional[str] = None
    codigo_rastreio: Optional[str] = None
    estoque_restaurado: bool = False
    criado_em: datetime = field(default_factory=datetime.now)
    atualizado_em: Optional[datetime] = None

    def __post_init__(self):
        if not self.referencia_externa:
            self.referencia_externa = str(self.id)


@dataclass(frozen=True)
class Transicao:
    """Transição condicional de status: só é aplicada se o status atual estiver em `origens`."""
    origens: Tuple[str, ...]
    destino: str
    restaurar_estoque: bool = False


_REJEICAO = Transicao(
    origens=(StatusPedido.PENDENTE, StatusPedido.PAGO, StatusPedido.CONFIRMADO),
    destino=StatusPedido.PAGAMENTO_REJEITADO,
    restaurar_estoque=True,
)
_REEMBOLSO = Transicao(origens=StatusPedido.PAGOS, destino=StatusPedido.REEMBOLSADO)

# Status canônico do pagamento -> transição do pedido.
# Status ausentes (pending, in_process, authorized) não alteram o pedido.
TRANSICOES_PAGAMENTO: Dict[str, Transicao] = {
    'approved': Transicao(origens=(StatusPedido.PENDENTE,), destino=StatusPedido.PAGO),
    'rejected': _REJEICAO,
    'cancelled': _REJEICAO,
    'refunded': _REEMBOLSO,
    'charged_back': _REEMBOLSO,
}

TRANSICAO_CANCELAMENTO = Transicao(
    origens=(StatusPedido.PENDENTE,),
    destino=StatusPedido.CANCELADO,
    restaurar_estoque=True,
)


# ====================================================================
# PAGAMENTO
# ====================================================================

@dataclass
class RequisicaoCobranca:
    """Dados enviados ao gateway para criar uma cobrança."""
    valor: Decimal
    metodo_pagamento_id: str
    referencia_externa: str
    pagador: dict
    token: Optional[str] = None
    parcelas: int = 1
    emissor_id: Optional[str] = None
    descricao: Optional[str] = None
    url_notificacao: Optional[str] = None


@dataclass
class ResultadoCobranca:
    """Estado canônico de uma cobrança, como reportado pelo gateway."""
    id: str
    status: str
    valor: Decimal
    referencia_externa: Optional[str] = None
    status_detalhe: Optional[str] = None
    motivo: Optional[str] = None
    dados: dict = field(default_factory=dict)

    @property
    def aprovado(self) -> bool:
        return self.status == 'approved'

    @property
    def rejeitado(self) -> bool:
        return self.status in ('rejected', 'cancelled')


@dataclass
class TokenCartao:
    id: str
    primeiros_seis: Optional[str] = None
    ultimos_quatro: Optional[str] = None
    expira_em: Optional[str] = None


@dataclass
class ResultadoWebhook:
    """Resultado do processamento de uma notificação de pagamento."""
    acao: str  # processed | ignored | not_associated | processing
    mensagem: str
    assinatura: str = 'skipped'
    pedido_id: Optional[str] = None
    status_pedido: Optional[str] = None
    transicao_aplicada: bool = False

    PROCESSADO = 'processed'
    IGNORADO = 'ignored'
    NAO_ASSOCIADO = 'not_associated'
    PROCESSANDO = 'processing'


# ====================================================================
# ENVIO
# ====================================================================

@dataclass
class InfoRastreio:
    codigo_rastreio: Optional[str] = None
    url_etiqueta: Optional[str] = None
    status_provedor: Optional[str] = None

    @property
    def disponivel(self) -> bool:
        return bool(self.codigo_rastreio or self.url_etiqueta)


@dataclass
class Envio:
    """Registro de envio (etiqueta) de um pedido junto à transportadora."""
    pedido_id: str
    cart_item_id: Optional[str] = None
    me_shipment_id: Optional[str] = None
    codigo_rastreio: Optional[str] = None
    url_etiqueta: Optional[str] = None
    status: str = StatusEnvio.PENDENTE
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    atualizado_em: Optional[datetime] = None

    @property
    def pronto(self) -> bool:
        return self.status == StatusEnvio.PRONTO_PARA_ENVIO


@dataclass
class CotacaoFrete:
    cep: str
    subtotal: Decimal
    quantidade_itens: int
    valor: Decimal

    @property
    def gratis(self) -> bool:
        return self.valor == Decimal('0.00')
