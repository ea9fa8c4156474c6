"""
Camada de Infraestrutura: Implementação de Repositórios.

Esta camada traduz as operações abstratas definidas nas Portas da Core
em chamadas concretas ao Django ORM.
"""
import logging
from typing import List, Optional

from django.apps import apps
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Prefetch

# Importações da Camada CORE (ENTIDADES e PORTAS)
from rosia.core.entities import (
    Carrinho, Envio, Pedido, StatusEnvio, Transicao, VarianteProduto, VisaoCarrinho
)
from rosia.core.exceptions import (
    EnvioNaoEncontradoError,
    ErroPersistencia,
    EstoqueInsuficienteError,
    ItemCarrinhoNaoEncontradoError,
    PedidoNaoEncontradoError,
)
from rosia.core.ports import (
    ICarrinhoRepository,
    IEnvioRepository,
    IInventarioRepository,
    IPedidoRepository,
)

from .mappers import (
    CarrinhoMapper, EnvioMapper, ItemCarrinhoMapper, ItemPedidoMapper, PedidoMapper, VarianteMapper
)

logger = logging.getLogger(__name__)


# Helper para Lazy Loading
def get_model(app_label, model_name):
    """Busca o modelo Django de forma segura (Lazy Loading)."""
    return apps.get_model(app_label, model_name)


# ====================================================================
# 1. INVENTÁRIO
# ====================================================================

class InventarioRepositoryDjango(IInventarioRepository):
    """Estoque por variante. Reservas e devoluções são UPDATEs condicionais de uma única instrução."""

    @property
    def VarianteModel(self):
        return get_model('catalog', 'VarianteProduto')

    def buscar_variante(self, variante_id: str) -> Optional[VarianteProduto]:
        try:
            model = self.VarianteModel.objects.select_related('produto').get(pk=variante_id)
        except self.VarianteModel.DoesNotExist:
            return None
        return VarianteMapper.to_entity(model)

    def reservar(self, variante_id: str, quantidade: int) -> bool:
        """UPDATE ... SET estoque = estoque - q WHERE id = ? AND estoque >= q"""
        atualizadas = self.VarianteModel.objects.filter(
            pk=variante_id, estoque__gte=quantidade
        ).update(estoque=F('estoque') - quantidade)
        return atualizadas == 1

    def restaurar(self, variante_id: str, quantidade: int) -> None:
        self.VarianteModel.objects.filter(pk=variante_id).update(estoque=F('estoque') + quantidade)


# ====================================================================
# 2. CARRINHO
# ====================================================================

class CarrinhoRepositoryDjango(ICarrinhoRepository):
    """Implementação do CarrinhoRepository usando o Django ORM."""

    # Propriedades para carregar modelos de forma LAZY
    @property
    def CarrinhoModel(self):
        return get_model('carrinho', 'Carrinho')

    @property
    def ItemCarrinhoModel(self):
        return get_model('carrinho', 'ItemCarrinho')

    def _carrinho_model(self, usuario_id: str):
        carrinho_model, _ = self.CarrinhoModel.objects.get_or_create(usuario_id=usuario_id)
        return carrinho_model

    def buscar_por_usuario(self, usuario_id: str) -> Carrinho:
        """Busca o carrinho do usuário; o carrinho é criado na primeira consulta."""
        carrinho_model = self._carrinho_model(usuario_id)
        itens = self.ItemCarrinhoModel.objects.filter(carrinho=carrinho_model)
        return CarrinhoMapper.to_entity(carrinho_model, itens)

    @transaction.atomic
    def salvar_item(self, usuario_id: str, variante_id: str, quantidade: int, preco_unitario) -> Carrinho:
        carrinho_model = self._carrinho_model(usuario_id)
        item_model, created = self.ItemCarrinhoModel.objects.get_or_create(
            carrinho=carrinho_model,
            variante_id=variante_id,
            defaults={'quantidade': quantidade, 'preco_unitario': preco_unitario}
        )
        if not created:
            # Mantém o preço congelado na primeira adição.
            item_model.quantidade = quantidade
            item_model.save(update_fields=['quantidade'])
        carrinho_model.save(update_fields=['data_atualizacao'])
        return self.buscar_por_usuario(usuario_id)

    def atualizar_quantidade(self, item_id: str, quantidade: int) -> None:
        atualizados = self.ItemCarrinhoModel.objects.filter(pk=item_id).update(quantidade=quantidade)
        if not atualizados:
            raise ItemCarrinhoNaoEncontradoError()

    def remover_item(self, usuario_id: str, item_id: str) -> bool:
        removidos, _ = self.ItemCarrinhoModel.objects.filter(
            pk=item_id, carrinho__usuario_id=usuario_id
        ).delete()
        return removidos > 0

    def limpar(self, usuario_id: str) -> None:
        """Remove todos os itens do carrinho do usuário."""
        self.ItemCarrinhoModel.objects.filter(carrinho__usuario_id=usuario_id).delete()

    def visualizar(self, usuario_id: str) -> VisaoCarrinho:
        ItemCarrinhoModel = self.ItemCarrinhoModel

        def carregar():
            qs = ItemCarrinhoModel.objects.filter(
                carrinho__usuario_id=usuario_id
            ).select_related('variante__produto').order_by('data_adicao')
            return (ItemCarrinhoMapper.to_linha(model) for model in qs)

        return VisaoCarrinho(carregar)


# ====================================================================
# 3. PEDIDOS
# ====================================================================

class PedidoRepositoryDjango(IPedidoRepository):
    """Implementação do PedidoRepository usando o Django ORM."""

    # Propriedades para carregar modelos de forma LAZY
    @property
    def PedidoModel(self):
        return get_model('vendas', 'Pedido')

    @property
    def ItemPedidoModel(self):
        return get_model('vendas', 'ItemPedido')

    def __init__(self, inventario_repo: Optional[IInventarioRepository] = None):
        self.inventario_repo = inventario_repo or InventarioRepositoryDjango()

    def _queryset(self):
        return self.PedidoModel.objects.prefetch_related(
            Prefetch('itens', queryset=self.ItemPedidoModel.objects.order_by('id'))
        )

    def _buscar(self, **filtros) -> Optional[Pedido]:
        model = self._queryset().filter(**filtros).first()
        return PedidoMapper.to_entity(model)

    def criar_pedido(self, pedido: Pedido) -> Pedido:
        """
        Cria pedido + itens e reserva o estoque numa única transação.
        Qualquer falha desfaz tudo; nenhuma linha parcial fica visível.
        """
        try:
            with transaction.atomic():
                existente = self._buscar(referencia_externa=pedido.referencia_externa)
                if existente:
                    return existente

                model = PedidoMapper.to_model(pedido)
                model.save(force_insert=True)

                self.ItemPedidoModel.objects.bulk_create([
                    ItemPedidoMapper.to_model(item, pedido_id=model.id)
                    for item in pedido.itens
                ])

                for item in pedido.itens:
                    if not self.inventario_repo.reservar(item.variante_id, item.quantidade):
                        atual = self.inventario_repo.buscar_variante(item.variante_id)
                        raise EstoqueInsuficienteError(
                            variante_id=item.variante_id,
                            estoque_atual=atual.estoque if atual else 0,
                            quantidade_solicitada=item.quantidade,
                        )
        except IntegrityError:
            # Corrida entre duas requisições com a mesma referência externa.
            existente = self._buscar(referencia_externa=pedido.referencia_externa)
            if existente:
                return existente
            logger.exception("Falha de integridade ao gravar o pedido %s", pedido.id)
            raise ErroPersistencia()
        except DatabaseError:
            logger.exception("Falha ao gravar o pedido %s", pedido.id)
            raise ErroPersistencia()

        return self._buscar(pk=model.id)

    def buscar_por_id(self, pedido_id: str) -> Optional[Pedido]:
        return self._buscar(pk=pedido_id)

    def buscar_por_referencia(self, referencia_externa: str) -> Optional[Pedido]:
        return self._buscar(referencia_externa=referencia_externa)

    def buscar_por_pagamento_id(self, pagamento_id: str) -> Optional[Pedido]:
        return self._buscar(pagamento_id=pagamento_id)

    def listar_pedidos_por_usuario(self, usuario_id: str) -> List[Pedido]:
        """Lista todos os pedidos de um usuário, do mais recente ao mais antigo."""
        qs = self._queryset().filter(usuario_id=usuario_id).order_by('-data_pedido')
        return [PedidoMapper.to_entity(model) for model in qs]

    def registrar_pagamento(self, pedido_id: str, pagamento_id: str, status_pagamento: str,
                            dados: Optional[dict] = None) -> None:
        atualizados = self.PedidoModel.objects.filter(pk=pedido_id).update(
            pagamento_id=pagamento_id,
            status_pagamento=status_pagamento,
            dados_pagamento=dados or None,
        )
        if not atualizados:
            raise PedidoNaoEncontradoError()

    def aplicar_transicao(self, pedido_id: str, transicao: Transicao) -> bool:
        """
        UPDATE condicional no status. A devolução de estoque é protegida pela
        flag `estoque_restaurado`, alterada na mesma transação dos incrementos.
        """
        with transaction.atomic():
            alterados = self.PedidoModel.objects.filter(
                pk=pedido_id, status__in=transicao.origens
            ).update(status=transicao.destino)
            if not alterados:
                return False

            if transicao.restaurar_estoque:
                marcados = self.PedidoModel.objects.filter(
                    pk=pedido_id, estoque_restaurado=False
                ).update(estoque_restaurado=True)
                if marcados:
                    itens = self.ItemPedidoModel.objects.filter(pedido_id=pedido_id)
                    for item in itens:
                        self.inventario_repo.restaurar(item.variante_id, item.quantidade)
                    logger.info("Estoque do pedido %s devolvido (%s itens)", pedido_id, len(itens))
        return True

    def registrar_codigo_rastreio(self, pedido_id: str, codigo_rastreio: str) -> None:
        self.PedidoModel.objects.filter(pk=pedido_id).update(codigo_rastreio=codigo_rastreio)


# ====================================================================
# 4. ENVIOS
# ====================================================================

class EnvioRepositoryDjango(IEnvioRepository):
    """Registros de envio; cada método grava uma etapa e devolve o estado atualizado."""

    @property
    def EnvioModel(self):
        return get_model('envios', 'Envio')

    def _atualizar(self, envio_id: str, **campos) -> Envio:
        atualizados = self.EnvioModel.objects.filter(pk=envio_id).update(**campos)
        if not atualizados:
            raise EnvioNaoEncontradoError()
        return EnvioMapper.to_entity(self.EnvioModel.objects.get(pk=envio_id))

    def buscar_por_pedido(self, pedido_id: str) -> Optional[Envio]:
        model = self.EnvioModel.objects.filter(pedido_id=pedido_id).order_by('-data_criacao').first()
        return EnvioMapper.to_entity(model)

    def obter_ou_criar(self, envio: Envio) -> Envio:
        """
        Um único envio por pedido (`pedido` é único na tabela). Em chamadas
        concorrentes, a que perde a corrida recebe o registro já gravado.
        """
        defaults = {
            'id': envio.id,
            'cart_item_id': envio.cart_item_id,
            'me_shipment_id': envio.me_shipment_id,
            'status': envio.status,
        }
        try:
            model, criado = self.EnvioModel.objects.get_or_create(pedido_id=envio.pedido_id, defaults=defaults)
        except IntegrityError:
            model, criado = self.EnvioModel.objects.get(pedido_id=envio.pedido_id), False
        if not criado:
            logger.info("Envio do pedido %s já existia (%s)", envio.pedido_id, model.pk)
        return EnvioMapper.to_entity(model)

    def registrar_liberacao(self, envio_id: str, me_shipment_id: str) -> Envio:
        return self._atualizar(envio_id, me_shipment_id=me_shipment_id, status=StatusEnvio.LIBERADO)

    def registrar_etiqueta(self, envio_id: str, url_etiqueta: str) -> Envio:
        return self._atualizar(envio_id, url_etiqueta=url_etiqueta)

    def registrar_rastreio(self, envio_id: str, codigo_rastreio: Optional[str],
                           url_etiqueta: Optional[str]) -> Envio:
        return self._atualizar(
            envio_id,
            codigo_rastreio=codigo_rastreio,
            url_etiqueta=url_etiqueta,
            status=StatusEnvio.PRONTO_PARA_ENVIO,
        )

    def atualizar_status(self, envio_id: str, status: str) -> Envio:
        return self._atualizar(envio_id, status=status)
