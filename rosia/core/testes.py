# rosia/core/testes.py

import json
import unittest
import uuid
from unittest.mock import Mock, call
from decimal import Decimal

# Importamos as classes que queremos testar
from rosia.core.use_cases import (
    CancelarPedidoUseCase,
    CriarPedidoUseCase,
    CriarTokenCartaoUseCase,
    GerenciarCarrinhoUseCase,
    ProcessarCobrancaUseCase,
    ProcessarWebhookPagamentoUseCase,
    SincronizarEnvioUseCase,
)
from rosia.core.entities import (
    Carrinho, Conta, Endereco, Envio, InfoRastreio, ItemCarrinho, ItemPedido, Pedido,
    ResultadoCobranca, ResultadoWebhook, StatusEnvio, StatusPedido, VarianteProduto,
    TRANSICAO_CANCELAMENTO, TRANSICOES_PAGAMENTO,
)
from rosia.core.exceptions import (
    CarrinhoVazioError,
    DadosInvalidosError,
    EnderecoInvalidoError,
    EstoqueInsuficienteError,
    GatewayIndisponivelError,
    IdentificadorInvalidoError,
    PagamentoFalhouError,
    PedidoNaoPagavelError,
    ProdutoInativoError,
    QuantidadeInvalidaError,
    ReferenciaDuplicadaError,
    StatusInvalidoError,
    ValorDivergenteError,
)
from rosia.core.frete import calcular_frete
from rosia.core.retry import PoliticaRetry
from rosia.core.assinatura import VerificadorAssinaturaWebhook


USUARIO_ID = '1'

ENDERECO = {
    'cep': '01310-100',
    'logradouro': 'Avenida Paulista',
    'numero': '1000',
    'bairro': 'Bela Vista',
    'cidade': 'São Paulo',
    'estado': 'sp',
}


def criar_variante(estoque=5, preco='10.00', ativo=True, variante_id=None):
    return VarianteProduto(
        id=variante_id or str(uuid.uuid4()),
        produto_id=str(uuid.uuid4()),
        nome_produto='Vestido Midi',
        preco=Decimal(preco),
        estoque=estoque,
        tamanho='M',
        cor='Azul',
        produto_ativo=ativo,
    )


def criar_pedido(status=StatusPedido.PENDENTE, total='35.00', forma='pix', usuario_id=USUARIO_ID):
    return Pedido(
        usuario_id=usuario_id,
        itens=[ItemPedido(produto_id='p', variante_id='v', nome_produto='Vestido Midi',
                          preco_unitario=Decimal('10.00'), quantidade=2)],
        subtotal=Decimal('20.00'),
        frete=Decimal('15.00'),
        total=Decimal(total),
        forma_pagamento=forma,
        endereco_entrega=Endereco.de_dict(ENDERECO),
        status=status,
    )


def politica_sem_espera(max_tentativas=3):
    dormir = Mock()
    return PoliticaRetry(max_tentativas=max_tentativas, intervalo=1, dormir=dormir), dormir


# ====================================================================
# CARRINHO
# ====================================================================

class TestGerenciarCarrinho(unittest.TestCase):

    def setUp(self):
        """
        Prepara o ambiente com objetos "Mock" para simular
        as dependências externas (banco de dados).
        """
        self.carrinho_repo_mock = Mock()
        self.inventario_repo_mock = Mock()
        self.use_case = GerenciarCarrinhoUseCase(self.carrinho_repo_mock, self.inventario_repo_mock)
        self.variante = criar_variante(estoque=5)

    def test_adicionar_item_com_sucesso(self):
        """
        Cenário: Adicionar uma variante a um carrinho vazio congela o preço vigente.
        """
        # ARRANGE
        self.inventario_repo_mock.buscar_variante.return_value = self.variante
        self.carrinho_repo_mock.buscar_por_usuario.return_value = Carrinho(usuario_id=USUARIO_ID)

        # ACT
        self.use_case.adicionar_item(USUARIO_ID, self.variante.id, 2)

        # ASSERT
        self.carrinho_repo_mock.salvar_item.assert_called_once_with(
            USUARIO_ID, self.variante.id, 2, Decimal('10.00')
        )

    def test_adicionar_item_soma_quantidade_ja_existente_no_carrinho(self):
        """
        Cenário: O estoque é verificado contra o total (carrinho + novo pedido).
        """
        # ARRANGE
        self.inventario_repo_mock.buscar_variante.return_value = self.variante
        self.carrinho_repo_mock.buscar_por_usuario.return_value = Carrinho(
            usuario_id=USUARIO_ID,
            itens=[ItemCarrinho(variante_id=self.variante.id, quantidade=4, preco_unitario=Decimal('10.00'))],
        )

        # ACT e ASSERT
        with self.assertRaises(EstoqueInsuficienteError) as ctx:
            self.use_case.adicionar_item(USUARIO_ID, self.variante.id, 2)

        self.assertEqual(ctx.exception.codigo, 'OUT_OF_STOCK')
        self.carrinho_repo_mock.salvar_item.assert_not_called()

    def test_adicionar_item_com_quantidade_invalida(self):
        """
        Cenário: Quantidade zero, negativa ou não inteira é erro de validação.
        """
        for quantidade in (0, -1, 'abc', 1.5):
            with self.assertRaises(QuantidadeInvalidaError):
                self.use_case.adicionar_item(USUARIO_ID, self.variante.id, quantidade)

        self.inventario_repo_mock.buscar_variante.assert_not_called()

    def test_adicionar_item_com_id_invalido(self):
        """
        Cenário: Identificador que não é UUID é recusado antes de consultar o banco.
        """
        with self.assertRaises(IdentificadorInvalidoError):
            self.use_case.adicionar_item(USUARIO_ID, 'nao-e-uuid', 1)

    def test_adicionar_item_de_produto_inativo(self):
        """
        Cenário: Produto desativado não pode entrar no carrinho.
        """
        self.inventario_repo_mock.buscar_variante.return_value = criar_variante(ativo=False)

        with self.assertRaises(ProdutoInativoError):
            self.use_case.adicionar_item(USUARIO_ID, str(uuid.uuid4()), 1)

    def test_atualizar_item_acima_do_estoque(self):
        """
        Cenário: Alterar a quantidade de um item para mais do que o estoque disponível.
        """
        # ARRANGE
        item = ItemCarrinho(variante_id=self.variante.id, quantidade=1, preco_unitario=Decimal('10.00'))
        self.carrinho_repo_mock.buscar_por_usuario.return_value = Carrinho(usuario_id=USUARIO_ID, itens=[item])
        self.inventario_repo_mock.buscar_variante.return_value = self.variante

        # ACT e ASSERT
        with self.assertRaises(EstoqueInsuficienteError) as ctx:
            self.use_case.atualizar_item(USUARIO_ID, item.id, 6)

        self.assertEqual(ctx.exception.codigo, 'OUT_OF_STOCK')
        self.carrinho_repo_mock.atualizar_quantidade.assert_not_called()

    def test_remover_item_inexistente(self):
        """
        Cenário: Remover um item que não pertence ao carrinho do usuário.
        """
        from rosia.core.exceptions import ItemCarrinhoNaoEncontradoError
        self.carrinho_repo_mock.remover_item.return_value = False

        with self.assertRaises(ItemCarrinhoNaoEncontradoError):
            self.use_case.remover_item(USUARIO_ID, str(uuid.uuid4()))


# ====================================================================
# CHECKOUT
# ====================================================================

class TestCriarPedido(unittest.TestCase):

    def setUp(self):
        self.carrinho_repo_mock = Mock()
        self.pedido_repo_mock = Mock()
        self.inventario_repo_mock = Mock()

        self.use_case = CriarPedidoUseCase(
            carrinho_repo=self.carrinho_repo_mock,
            pedido_repo=self.pedido_repo_mock,
            inventario_repo=self.inventario_repo_mock,
        )

        self.variante = criar_variante(estoque=5, preco='10.00')
        self.carrinho_repo_mock.buscar_por_usuario.return_value = Carrinho(
            usuario_id=USUARIO_ID,
            itens=[ItemCarrinho(variante_id=self.variante.id, quantidade=2, preco_unitario=Decimal('10.00'))],
        )
        self.inventario_repo_mock.buscar_variante.return_value = self.variante
        self.pedido_repo_mock.buscar_por_referencia.return_value = None
        # O repositório devolve o próprio pedido gravado
        self.pedido_repo_mock.criar_pedido.side_effect = lambda pedido: pedido

    def test_checkout_calcula_totais_e_limpa_carrinho(self):
        """
        Cenário: 2 unidades a 10.00, frete fixo de 15.00 (subtotal abaixo de 100).
        """
        # ACT
        pedido = self.use_case.executar(USUARIO_ID, ENDERECO, 'pix')

        # ASSERT
        self.assertEqual(pedido.subtotal, Decimal('20.00'))
        self.assertEqual(pedido.frete, Decimal('15.00'))
        self.assertEqual(pedido.total, Decimal('35.00'))
        self.assertEqual(pedido.status, StatusPedido.PENDENTE)
        self.assertEqual(pedido.referencia_externa, pedido.id)
        self.assertEqual(pedido.endereco_entrega.cep, '01310100')
        self.assertEqual(pedido.endereco_entrega.estado, 'SP')
        self.assertEqual(pedido.itens[0].preco_unitario, Decimal('10.00'))
        self.assertEqual(pedido.itens[0].tamanho_selecionado, 'M')
        self.pedido_repo_mock.criar_pedido.assert_called_once()
        self.carrinho_repo_mock.limpar.assert_called_once_with(USUARIO_ID)

    def test_checkout_com_carrinho_vazio_falha(self):
        """
        Cenário: Tentar finalizar a compra com o carrinho vazio.
        """
        self.carrinho_repo_mock.buscar_por_usuario.return_value = Carrinho(usuario_id=USUARIO_ID)

        with self.assertRaises(CarrinhoVazioError):
            self.use_case.executar(USUARIO_ID, ENDERECO)

        self.pedido_repo_mock.criar_pedido.assert_not_called()

    def test_checkout_com_estoque_insuficiente_nao_cria_pedido(self):
        """
        Cenário: 6 unidades no carrinho contra estoque 5.
        """
        self.carrinho_repo_mock.buscar_por_usuario.return_value = Carrinho(
            usuario_id=USUARIO_ID,
            itens=[ItemCarrinho(variante_id=self.variante.id, quantidade=6, preco_unitario=Decimal('10.00'))],
        )

        with self.assertRaises(EstoqueInsuficienteError) as ctx:
            self.use_case.executar(USUARIO_ID, ENDERECO)

        self.assertEqual(ctx.exception.codigo, 'INSUFFICIENT_STOCK')
        self.pedido_repo_mock.criar_pedido.assert_not_called()
        self.carrinho_repo_mock.limpar.assert_not_called()

    def test_checkout_com_produto_desativado_nao_cria_pedido(self):
        """
        Cenário: O produto foi desativado depois que a variante entrou no carrinho.
        """
        self.inventario_repo_mock.buscar_variante.return_value = criar_variante(
            ativo=False, variante_id=self.variante.id
        )

        with self.assertRaises(ProdutoInativoError) as ctx:
            self.use_case.executar(USUARIO_ID, ENDERECO)

        self.assertEqual(ctx.exception.codigo, 'PRODUCT_INACTIVE')
        self.pedido_repo_mock.criar_pedido.assert_not_called()
        self.carrinho_repo_mock.limpar.assert_not_called()

    def test_checkout_com_endereco_invalido(self):
        """
        Cenário: CEP com menos de 8 dígitos.
        """
        with self.assertRaises(EnderecoInvalidoError):
            self.use_case.executar(USUARIO_ID, dict(ENDERECO, cep='123'))

    def test_checkout_repetido_devolve_mesmo_pedido(self):
        """
        Cenário: Mesma referência externa, mesmo usuário: nenhum pedido novo é criado.
        """
        existente = criar_pedido()
        self.pedido_repo_mock.buscar_por_referencia.return_value = existente

        pedido = self.use_case.executar(USUARIO_ID, ENDERECO, referencia_externa=existente.referencia_externa)

        self.assertIs(pedido, existente)
        self.pedido_repo_mock.criar_pedido.assert_not_called()

    def test_checkout_com_referencia_de_outro_usuario(self):
        """
        Cenário: Referência externa já usada por outro comprador.
        """
        self.pedido_repo_mock.buscar_por_referencia.return_value = criar_pedido(usuario_id='99')

        with self.assertRaises(ReferenciaDuplicadaError):
            self.use_case.executar(USUARIO_ID, ENDERECO, referencia_externa='ref-123')

    def test_falha_ao_limpar_carrinho_nao_invalida_pedido(self):
        """
        Cenário: O pedido já foi gravado; erro na limpeza do carrinho é apenas registrado.
        """
        self.carrinho_repo_mock.limpar.side_effect = RuntimeError("falha no banco")

        with self.assertLogs('rosia.core.use_cases', level='ERROR'):
            pedido = self.use_case.executar(USUARIO_ID, ENDERECO)

        self.assertEqual(pedido.total, Decimal('35.00'))

    def test_forma_de_pagamento_nao_suportada(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.executar(USUARIO_ID, ENDERECO, 'bitcoin')


class TestCancelarPedido(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.use_case = CancelarPedidoUseCase(self.pedido_repo_mock)

    def test_cancelar_pedido_pendente(self):
        """
        Cenário: Pedido pendente é cancelado com a transição que devolve o estoque.
        """
        pedido = criar_pedido()
        self.pedido_repo_mock.buscar_por_id.return_value = pedido
        self.pedido_repo_mock.aplicar_transicao.return_value = True

        self.use_case.executar(USUARIO_ID, pedido.id)

        self.pedido_repo_mock.aplicar_transicao.assert_called_once_with(pedido.id, TRANSICAO_CANCELAMENTO)

    def test_cancelar_pedido_pago_falha(self):
        """
        Cenário: A transição condicional não encontra o status 'pendente'.
        """
        pedido = criar_pedido(status=StatusPedido.PAGO)
        self.pedido_repo_mock.buscar_por_id.return_value = pedido
        self.pedido_repo_mock.aplicar_transicao.return_value = False

        with self.assertRaises(StatusInvalidoError):
            self.use_case.executar(USUARIO_ID, pedido.id)


# ====================================================================
# FRETE, RETRY E ASSINATURA
# ====================================================================

class TestCalcularFrete(unittest.TestCase):

    def test_frete_fixo_para_uma_linha(self):
        self.assertEqual(calcular_frete(Decimal('20.00'), 1, '01310100'), Decimal('15.00'))

    def test_frete_com_linhas_adicionais(self):
        self.assertEqual(calcular_frete(Decimal('50.00'), 3, '01310-100'), Decimal('16.00'))

    def test_frete_gratis_a_partir_do_limite(self):
        self.assertEqual(calcular_frete(Decimal('100.00'), 4, '01310100'), Decimal('0.00'))

    def test_cep_invalido(self):
        with self.assertRaises(EnderecoInvalidoError):
            calcular_frete(Decimal('20.00'), 1, '1234')


class TestPoliticaRetry(unittest.TestCase):

    def test_retorna_primeiro_resultado_aceito(self):
        """
        Cenário: A operação só encontra o recurso na terceira tentativa.
        """
        politica, dormir = politica_sem_espera(max_tentativas=3)
        operacao = Mock(side_effect=[None, None, 'pedido'])

        self.assertEqual(politica.executar(operacao), 'pedido')
        self.assertEqual(operacao.call_count, 3)
        self.assertEqual(dormir.call_args_list, [call(1), call(1)])

    def test_esgotado_relanca_erro_transitorio(self):
        politica, dormir = politica_sem_espera(max_tentativas=2)
        operacao = Mock(side_effect=GatewayIndisponivelError())

        with self.assertRaises(GatewayIndisponivelError):
            politica.executar(operacao)

        self.assertEqual(operacao.call_count, 2)
        self.assertEqual(dormir.call_count, 1)

    def test_erro_nao_transitorio_propaga_imediatamente(self):
        politica, dormir = politica_sem_espera(max_tentativas=3)
        operacao = Mock(side_effect=ValueError("bug"))

        with self.assertRaises(ValueError):
            politica.executar(operacao)

        self.assertEqual(operacao.call_count, 1)
        dormir.assert_not_called()


class TestVerificadorAssinatura(unittest.TestCase):

    def setUp(self):
        self.verificador = VerificadorAssinaturaWebhook('segredo')
        self.corpo = b'{"type": "payment", "data": {"id": "123"}}'

    def test_assinatura_valida(self):
        assinatura = self.verificador.assinar('req-1', self.corpo)
        self.assertEqual(self.verificador.verificar('req-1', self.corpo, assinatura), 'ok')

    def test_assinatura_no_formato_ts_v1(self):
        assinatura = self.verificador.assinar('req-1', self.corpo)
        cabecalho = f"ts=1700000000,v1={assinatura}"
        self.assertEqual(self.verificador.verificar('req-1', self.corpo, cabecalho), 'ok')

    def test_assinatura_divergente(self):
        self.assertEqual(self.verificador.verificar('req-1', self.corpo, 'abc'), 'mismatch')

    def test_sem_segredo_nao_verifica(self):
        verificador = VerificadorAssinaturaWebhook('')
        self.assertEqual(verificador.verificar('req-1', self.corpo, 'abc'), 'skipped')


# ====================================================================
# PAGAMENTO
# ====================================================================

class TestProcessarCobranca(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.gateway_mock = Mock()
        self.use_case = ProcessarCobrancaUseCase(
            self.pedido_repo_mock, self.gateway_mock, url_notificacao='http://api/webhook/payment'
        )
        self.conta = Conta(id=USUARIO_ID, tipo='local', email='ana@exemplo.com',
                           nome='Ana Souza', cpf='12345678900')
        self.pedido = criar_pedido()
        self.pedido_repo_mock.buscar_por_id.return_value = self.pedido

    def test_cobranca_pix_pendente(self):
        """
        Cenário: PIX gera cobrança pendente; o pedido continua 'pendente'.
        """
        # ARRANGE
        self.gateway_mock.criar_cobranca.return_value = ResultadoCobranca(
            id='pag-1', status='pending', valor=Decimal('35.00'), referencia_externa=self.pedido.referencia_externa
        )

        # ACT
        _, resultado = self.use_case.criar(self.conta, {'order_id': self.pedido.id, 'amount': '35.00'})

        # ASSERT
        self.assertEqual(resultado.status, 'pending')
        requisicao, chave = self.gateway_mock.criar_cobranca.call_args[0]
        self.assertEqual(chave, f"{self.pedido.referencia_externa}:pix")
        self.assertEqual(requisicao.pagador['first_name'], 'Ana')
        self.assertEqual(requisicao.pagador['identification'], {'type': 'CPF', 'number': '12345678900'})
        self.assertEqual(requisicao.url_notificacao, 'http://api/webhook/payment')
        self.pedido_repo_mock.registrar_pagamento.assert_called_once_with(
            self.pedido.id, 'pag-1', 'pending', {}
        )
        self.pedido_repo_mock.aplicar_transicao.assert_not_called()

    def test_cobranca_rejeitada_informa_motivo(self):
        """
        Cenário: O emissor recusa o cartão por saldo insuficiente.
        """
        self.pedido.forma_pagamento = 'cartao_credito'
        self.gateway_mock.criar_cobranca.return_value = ResultadoCobranca(
            id='pag-2', status='rejected', valor=Decimal('35.00'), motivo='insufficient_funds'
        )

        with self.assertRaises(PagamentoFalhouError) as ctx:
            self.use_case.criar(self.conta, {
                'order_id': self.pedido.id, 'amount': '35.00', 'token': 'tok', 'payment_method_id': 'visa',
            }, chave_idempotencia='chave-cliente')

        self.assertEqual(ctx.exception.motivo, 'insufficient_funds')
        self.assertEqual(self.gateway_mock.criar_cobranca.call_args[0][1], 'chave-cliente')
        self.pedido_repo_mock.aplicar_transicao.assert_called_once_with(
            self.pedido.id, TRANSICOES_PAGAMENTO['rejected']
        )

    def test_valor_divergente(self):
        with self.assertRaises(ValorDivergenteError):
            self.use_case.criar(self.conta, {'order_id': self.pedido.id, 'amount': '30.00'})

        self.gateway_mock.criar_cobranca.assert_not_called()

    def test_pedido_nao_pendente(self):
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido(status=StatusPedido.PAGO)

        with self.assertRaises(PedidoNaoPagavelError):
            self.use_case.criar(self.conta, {'order_id': self.pedido.id, 'amount': '35.00'})


class TestCriarTokenCartao(unittest.TestCase):

    def test_dados_incompletos(self):
        gateway_mock = Mock()
        use_case = CriarTokenCartaoUseCase(gateway_mock)

        with self.assertRaises(DadosInvalidosError):
            use_case.executar({'card_number': '4111111111111111'})

        gateway_mock.criar_token_cartao.assert_not_called()


class TestProcessarWebhookPagamento(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.gateway_mock = Mock()
        self.politica, self.dormir = politica_sem_espera(max_tentativas=3)
        self.use_case = ProcessarWebhookPagamentoUseCase(
            pedido_repo=self.pedido_repo_mock,
            pagamento_gateway=self.gateway_mock,
            verificador=VerificadorAssinaturaWebhook(None),
            politica_retry=self.politica,
        )
        self.pedido = criar_pedido()
        self.corpo = json.dumps({'type': 'payment', 'data': {'id': '123'}}).encode()

    def _cobranca(self, status):
        return ResultadoCobranca(
            id='123', status=status, valor=Decimal('35.00'), referencia_externa=self.pedido.referencia_externa
        )

    def test_pagamento_aprovado_marca_pedido_como_pago(self):
        """
        Cenário: O status canônico é consultado no gateway e o pedido vai para 'pago'.
        """
        # ARRANGE
        self.gateway_mock.consultar_cobranca.return_value = self._cobranca('approved')
        self.pedido_repo_mock.buscar_por_referencia.return_value = self.pedido
        self.pedido_repo_mock.aplicar_transicao.return_value = True
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido(status=StatusPedido.PAGO)

        # ACT
        resultado = self.use_case.executar(self.corpo)

        # ASSERT
        self.assertEqual(resultado.acao, ResultadoWebhook.PROCESSADO)
        self.assertTrue(resultado.transicao_aplicada)
        self.assertEqual(resultado.status_pedido, StatusPedido.PAGO)
        self.gateway_mock.consultar_cobranca.assert_called_once_with('123')
        self.pedido_repo_mock.aplicar_transicao.assert_called_once_with(
            self.pedido.id, TRANSICOES_PAGAMENTO['approved']
        )

    def test_notificacao_duplicada_nao_reaplica_transicao(self):
        """
        Cenário: O pedido já está 'pago'; o UPDATE condicional não altera nada.
        """
        pago = criar_pedido(status=StatusPedido.PAGO)
        self.gateway_mock.consultar_cobranca.return_value = self._cobranca('approved')
        self.pedido_repo_mock.buscar_por_referencia.return_value = pago
        self.pedido_repo_mock.aplicar_transicao.return_value = False
        self.pedido_repo_mock.buscar_por_id.return_value = pago

        resultado = self.use_case.executar(self.corpo)

        self.assertEqual(resultado.acao, ResultadoWebhook.PROCESSADO)
        self.assertFalse(resultado.transicao_aplicada)
        self.assertEqual(resultado.status_pedido, StatusPedido.PAGO)

    def test_pagamento_rejeitado_usa_transicao_com_devolucao_de_estoque(self):
        self.gateway_mock.consultar_cobranca.return_value = self._cobranca('rejected')
        self.pedido_repo_mock.buscar_por_referencia.return_value = self.pedido
        self.pedido_repo_mock.aplicar_transicao.return_value = True

        self.use_case.executar(self.corpo)

        transicao = self.pedido_repo_mock.aplicar_transicao.call_args[0][1]
        self.assertEqual(transicao.destino, StatusPedido.PAGAMENTO_REJEITADO)
        self.assertTrue(transicao.restaurar_estoque)

    def test_cancelamento_de_cobranca_antiga_nao_afeta_pedido_pago(self):
        """
        Cenário: O pedido foi pago pela cobrança P2; chega o cancelamento do PIX expirado P1.
        """
        # ARRANGE
        pago = criar_pedido(status=StatusPedido.PAGO)
        pago.pagamento_id = 'P2'
        self.gateway_mock.consultar_cobranca.return_value = ResultadoCobranca(
            id='P1', status='cancelled', valor=Decimal('35.00'), referencia_externa=pago.referencia_externa
        )
        self.pedido_repo_mock.buscar_por_referencia.return_value = pago

        # ACT
        with self.assertLogs('rosia.core.use_cases', level='WARNING'):
            resultado = self.use_case.executar(json.dumps({'type': 'payment', 'data': {'id': 'P1'}}))

        # ASSERT
        self.assertEqual(resultado.acao, ResultadoWebhook.PROCESSADO)
        self.assertFalse(resultado.transicao_aplicada)
        self.assertEqual(resultado.status_pedido, StatusPedido.PAGO)
        self.pedido_repo_mock.registrar_pagamento.assert_not_called()
        self.pedido_repo_mock.aplicar_transicao.assert_not_called()

    def test_rejeicao_da_cobranca_atual_de_pedido_pago_devolve_estoque(self):
        """
        Cenário: Correção do gateway sobre a própria cobrança que pagou o pedido.
        """
        pago = criar_pedido(status=StatusPedido.PAGO)
        pago.pagamento_id = '123'
        self.gateway_mock.consultar_cobranca.return_value = self._cobranca('rejected')
        self.pedido_repo_mock.buscar_por_referencia.return_value = pago
        self.pedido_repo_mock.aplicar_transicao.return_value = True

        resultado = self.use_case.executar(self.corpo)

        self.assertTrue(resultado.transicao_aplicada)
        self.pedido_repo_mock.aplicar_transicao.assert_called_once_with(
            pago.id, TRANSICOES_PAGAMENTO['rejected']
        )

    def test_pedido_nao_encontrado_apos_retentativas(self):
        """
        Cenário: O pedido ainda não foi gravado; a busca é repetida e depois desiste.
        """
        self.gateway_mock.consultar_cobranca.return_value = self._cobranca('approved')
        self.pedido_repo_mock.buscar_por_referencia.return_value = None
        self.pedido_repo_mock.buscar_por_pagamento_id.return_value = None

        resultado = self.use_case.executar(self.corpo)

        self.assertEqual(resultado.acao, ResultadoWebhook.NAO_ASSOCIADO)
        self.assertEqual(resultado.mensagem, "Pagamento não associado a pedido")
        self.assertEqual(self.pedido_repo_mock.buscar_por_referencia.call_count, 3)
        self.assertEqual(self.dormir.call_count, 2)
        self.pedido_repo_mock.aplicar_transicao.assert_not_called()

    def test_gateway_indisponivel_responde_processando(self):
        self.gateway_mock.consultar_cobranca.side_effect = GatewayIndisponivelError()

        resultado = self.use_case.executar(self.corpo)

        self.assertEqual(resultado.acao, ResultadoWebhook.PROCESSANDO)
        self.assertEqual(self.gateway_mock.consultar_cobranca.call_count, 3)
        self.pedido_repo_mock.registrar_pagamento.assert_not_called()

    def test_evento_que_nao_e_pagamento_e_ignorado(self):
        corpo = json.dumps({'type': 'merchant_order', 'data': {'id': '9'}})

        resultado = self.use_case.executar(corpo)

        self.assertEqual(resultado.acao, ResultadoWebhook.IGNORADO)
        self.gateway_mock.consultar_cobranca.assert_not_called()

    def test_corpo_invalido(self):
        with self.assertRaises(DadosInvalidosError) as ctx:
            self.use_case.executar(b'isto nao e json')

        self.assertEqual(ctx.exception.codigo, 'INVALID_PAYLOAD')

    def test_assinatura_divergente_apenas_registra_aviso(self):
        """
        Cenário: A assinatura não confere, mas o estado é revalidado no gateway.
        """
        self.use_case.verificador = VerificadorAssinaturaWebhook('segredo')
        self.gateway_mock.consultar_cobranca.return_value = self._cobranca('approved')
        self.pedido_repo_mock.buscar_por_referencia.return_value = self.pedido
        self.pedido_repo_mock.aplicar_transicao.return_value = True

        with self.assertLogs('rosia.core.use_cases', level='WARNING'):
            resultado = self.use_case.executar(self.corpo, assinatura='invalida', request_id='req-1')

        self.assertEqual(resultado.assinatura, 'mismatch')
        self.assertEqual(resultado.acao, ResultadoWebhook.PROCESSADO)


# ====================================================================
# ENVIO
# ====================================================================

class TestSincronizarEnvio(unittest.TestCase):

    ME_ID = '9a1b2c3d-0000-4000-8000-123456789abc'

    def setUp(self):
        self.envio_repo_mock = Mock()
        self.pedido_repo_mock = Mock()
        self.transportadora_mock = Mock()
        self.politica, self.dormir = politica_sem_espera(max_tentativas=3)
        self.use_case = SincronizarEnvioUseCase(
            envio_repo=self.envio_repo_mock,
            pedido_repo=self.pedido_repo_mock,
            transportadora=self.transportadora_mock,
            politica_polling=self.politica,
        )
        self.pedido = criar_pedido(status=StatusPedido.PAGO)
        self.pedido_repo_mock.buscar_por_id.return_value = self.pedido

        self.envio = Envio(pedido_id=self.pedido.id, cart_item_id='cart-1')
        self.envio_repo_mock.buscar_por_pedido.return_value = None
        self.envio_repo_mock.obter_ou_criar.return_value = self.envio
        self.envio_repo_mock.registrar_liberacao.return_value = Envio(
            id=self.envio.id, pedido_id=self.pedido.id, cart_item_id='cart-1',
            me_shipment_id=self.ME_ID, status=StatusEnvio.LIBERADO,
        )
        self.transportadora_mock.finalizar_compra.return_value = self.ME_ID

    def test_compra_grava_cada_etapa_e_rastreio(self):
        """
        Cenário: Checkout, etiqueta e rastreio disponíveis na primeira consulta.
        """
        # ARRANGE
        self.transportadora_mock.imprimir_etiqueta.return_value = 'https://me/etiqueta.pdf'
        self.envio_repo_mock.registrar_etiqueta.return_value = Envio(
            id=self.envio.id, pedido_id=self.pedido.id, me_shipment_id=self.ME_ID,
            url_etiqueta='https://me/etiqueta.pdf', status=StatusEnvio.LIBERADO,
        )
        self.transportadora_mock.consultar_envio.return_value = InfoRastreio(codigo_rastreio='BR123')
        self.envio_repo_mock.registrar_rastreio.return_value = Envio(
            id=self.envio.id, pedido_id=self.pedido.id, status=StatusEnvio.PRONTO_PARA_ENVIO,
        )

        # ACT
        envio = self.use_case.comprar_e_liberar(self.pedido.id, 'cart-1')

        # ASSERT
        self.assertTrue(envio.pronto)
        self.envio_repo_mock.registrar_liberacao.assert_called_once_with(self.envio.id, self.ME_ID)
        self.envio_repo_mock.registrar_etiqueta.assert_called_once_with(self.envio.id, 'https://me/etiqueta.pdf')
        self.envio_repo_mock.registrar_rastreio.assert_called_once_with(
            self.envio.id, 'BR123', 'https://me/etiqueta.pdf'
        )
        self.pedido_repo_mock.registrar_codigo_rastreio.assert_called_once_with(self.pedido.id, 'BR123')
        self.dormir.assert_not_called()

    def test_rastreio_indisponivel_apos_tentativas_fica_em_processamento(self):
        """
        Cenário: A etiqueta ainda está sendo gerada na transportadora.
        """
        self.transportadora_mock.imprimir_etiqueta.return_value = None
        self.transportadora_mock.consultar_envio.return_value = None

        self.use_case.comprar_e_liberar(self.pedido.id, 'cart-1')

        self.assertEqual(self.transportadora_mock.consultar_envio.call_count, 3)
        self.assertEqual(self.dormir.call_count, 2)
        self.envio_repo_mock.atualizar_status.assert_called_once_with(self.envio.id, StatusEnvio.PROCESSANDO)
        self.envio_repo_mock.registrar_rastreio.assert_not_called()

    def test_pedido_nao_pago_nao_compra_etiqueta(self):
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido(status=StatusPedido.PENDENTE)

        with self.assertRaises(StatusInvalidoError):
            self.use_case.comprar_e_liberar(self.pedido.id, 'cart-1')

        self.transportadora_mock.finalizar_compra.assert_not_called()

    def test_sincronizar_com_id_curto_devolve_estado_gravado(self):
        """
        Cenário: O id gravado é um id de carrinho; a transportadora não é consultada.
        """
        gravado = Envio(pedido_id=self.pedido.id, me_shipment_id='curto', status=StatusEnvio.LIBERADO)
        self.envio_repo_mock.buscar_por_pedido.return_value = gravado

        envio = self.use_case.sincronizar(self.pedido.id)

        self.assertIs(envio, gravado)
        self.transportadora_mock.consultar_envio.assert_not_called()

    def test_sincronizar_recai_no_ultimo_estado_gravado(self):
        """
        Cenário: A transportadora não responde, mas a etiqueta já estava gravada.
        """
        gravado = Envio(pedido_id=self.pedido.id, me_shipment_id=self.ME_ID,
                        url_etiqueta='https://me/etiqueta.pdf', status=StatusEnvio.LIBERADO)
        self.envio_repo_mock.buscar_por_pedido.return_value = gravado
        self.transportadora_mock.consultar_envio.side_effect = GatewayIndisponivelError()

        self.use_case.sincronizar(self.pedido.id)

        self.envio_repo_mock.registrar_rastreio.assert_called_once_with(
            gravado.id, None, 'https://me/etiqueta.pdf'
        )


if __name__ == '__main__':
    unittest.main()
