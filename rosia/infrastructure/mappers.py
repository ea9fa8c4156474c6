"""
Mapeadores (Mappers) para converter entre:
1. Modelos do Django ORM
2. Entidades de Domínio (rosia.core.entities)
"""
from typing import Any, Optional

from django.apps import apps

from rosia.core.entities import (
    Carrinho as CarrinhoEntity,
    Endereco as EnderecoEntity,
    Envio as EnvioEntity,
    ItemCarrinho as ItemCarrinhoEntity,
    ItemPedido as ItemPedidoEntity,
    LinhaCarrinho,
    Pedido as PedidoEntity,
    VarianteProduto as VarianteEntity,
)


# ====================================================================
# Uso de apps.get_model para evitar dependências circulares
# ====================================================================

def get_model(app_label: str, model_name: str):
    """Retorna um modelo do Django de forma segura (lazy loading)."""
    return apps.get_model(app_label, model_name)


# ====================================================================
# MAPPERS DO CATÁLOGO
# ====================================================================

class VarianteMapper:
    """Variante + dados do produto pai (requer select_related('produto'))."""

    @staticmethod
    def to_entity(model: Any) -> Optional[VarianteEntity]:
        if not model: return None
        produto = model.produto
        return VarianteEntity(
            id=str(model.id),
            produto_id=str(produto.id),
            nome_produto=produto.nome,
            preco=model.preco,
            estoque=model.estoque,
            tamanho=model.tamanho,
            cor=model.cor,
            preco_promocional=model.preco_promocional,
            em_promocao=model.em_promocao,
            produto_ativo=produto.ativo,
            imagem_url=model.imagem_url or produto.imagem_url,
        )


# ====================================================================
# MAPPERS DO CARRINHO
# ====================================================================

class ItemCarrinhoMapper:

    @staticmethod
    def to_entity(model: Any) -> ItemCarrinhoEntity:
        return ItemCarrinhoEntity(
            id=str(model.id),
            variante_id=str(model.variante_id),
            quantidade=model.quantidade,
            preco_unitario=model.preco_unitario,
        )

    @staticmethod
    def to_linha(model: Any) -> LinhaCarrinho:
        """Linha de exibição (requer select_related('variante__produto'))."""
        variante = model.variante
        return LinhaCarrinho(
            item_id=str(model.id),
            variante_id=str(variante.id),
            produto_id=str(variante.produto_id),
            nome_produto=variante.produto.nome,
            quantidade=model.quantidade,
            preco_unitario=model.preco_unitario,
            tamanho=variante.tamanho,
            cor=variante.cor,
            imagem_url=variante.imagem_url or variante.produto.imagem_url,
        )


class CarrinhoMapper:

    @staticmethod
    def to_entity(model: Any, itens=None) -> CarrinhoEntity:
        if itens is None:
            itens = model.itens.all()
        return CarrinhoEntity(
            id=str(model.id),
            usuario_id=str(model.usuario_id),
            itens=[ItemCarrinhoMapper.to_entity(item) for item in itens],
        )


# ====================================================================
# MAPPERS DE VENDAS
# ====================================================================

class ItemPedidoMapper:

    @staticmethod
    def to_entity(model: Any) -> ItemPedidoEntity:
        return ItemPedidoEntity(
            pedido_id=str(model.pedido_id),
            produto_id=str(model.produto_id),
            variante_id=str(model.variante_id),
            nome_produto=model.nome_produto,
            preco_unitario=model.preco_unitario,
            quantidade=model.quantidade,
            tamanho_selecionado=model.tamanho_selecionado,
            cor_selecionada=model.cor_selecionada,
        )

    @staticmethod
    def to_model(entity: ItemPedidoEntity, pedido_id) -> Any:
        ItemPedidoModel = get_model('vendas', 'ItemPedido')
        return ItemPedidoModel(
            pedido_id=pedido_id,
            produto_id=entity.produto_id,
            variante_id=entity.variante_id,
            nome_produto=entity.nome_produto,
            preco_unitario=entity.preco_unitario,
            quantidade=entity.quantidade,
            tamanho_selecionado=entity.tamanho_selecionado,
            cor_selecionada=entity.cor_selecionada,
        )


class PedidoMapper:

    @staticmethod
    def to_entity(model: Any) -> Optional[PedidoEntity]:
        if not model: return None
        return PedidoEntity(
            id=str(model.id),
            usuario_id=str(model.usuario_id),
            itens=[ItemPedidoMapper.to_entity(item) for item in model.itens.all()],
            subtotal=model.subtotal,
            frete=model.frete,
            total=model.total,
            forma_pagamento=model.forma_pagamento,
            endereco_entrega=EnderecoEntity(
                cep=model.cep_entrega,
                logradouro=model.logradouro_entrega,
                numero=model.numero_entrega,
                bairro=model.bairro_entrega,
                cidade=model.cidade_entrega,
                estado=model.estado_entrega,
                complemento=model.complemento_entrega,
            ),
            status=model.status,
            referencia_externa=model.referencia_externa,
            pagamento_id=model.pagamento_id,
            status_pagamento=model.status_pagamento,
            codigo_rastreio=model.codigo_rastreio,
            estoque_restaurado=model.estoque_restaurado,
            criado_em=model.data_pedido,
            atualizado_em=model.data_modificacao,
        )

    @staticmethod
    def to_model(entity: PedidoEntity) -> Any:
        PedidoModel = get_model('vendas', 'Pedido')
        endereco = entity.endereco_entrega
        return PedidoModel(
            id=entity.id,
            usuario_id=entity.usuario_id,
            status=entity.status,
            subtotal=entity.subtotal,
            frete=entity.frete,
            total=entity.total,
            forma_pagamento=entity.forma_pagamento,
            referencia_externa=entity.referencia_externa,
            cep_entrega=endereco.cep,
            logradouro_entrega=endereco.logradouro,
            numero_entrega=endereco.numero,
            complemento_entrega=endereco.complemento,
            bairro_entrega=endereco.bairro,
            cidade_entrega=endereco.cidade,
            estado_entrega=endereco.estado,
        )


# ====================================================================
# MAPPERS DE ENVIO
# ====================================================================

class EnvioMapper:

    @staticmethod
    def to_entity(model: Any) -> Optional[EnvioEntity]:
        if not model: return None
        return EnvioEntity(
            id=str(model.id),
            pedido_id=str(model.pedido_id),
            cart_item_id=model.cart_item_id,
            me_shipment_id=model.me_shipment_id,
            codigo_rastreio=model.codigo_rastreio,
            url_etiqueta=model.url_etiqueta,
            status=model.status,
            atualizado_em=model.data_atualizacao,
        )
