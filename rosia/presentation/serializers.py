from rest_framework import serializers


# ====================================================================
# SERIALIZERS DE ENTRADA (validação de formato)
# As regras de negócio (estoque, UUID, quantidade > 0) ficam nos casos de uso.
# ====================================================================

class AdicionarItemSerializer(serializers.Serializer):
    variant_id = serializers.CharField()
    quantity = serializers.IntegerField(required=False, default=1)


class AtualizarItemSerializer(serializers.Serializer):
    cart_item_id = serializers.CharField()
    quantity = serializers.IntegerField()


class CheckoutSerializer(serializers.Serializer):
    """
    Serializer para os dados de checkout.
    O endereço é validado pela entidade Endereco (código INVALID_ADDRESS).
    """
    shipping_address = serializers.JSONField(required=False)
    payment_method = serializers.CharField(max_length=30, required=False, default='pix')
    external_reference = serializers.CharField(max_length=100, required=False, allow_blank=True)


class CotacaoFreteSerializer(serializers.Serializer):
    cep = serializers.CharField(max_length=9)


class CobrancaSerializer(serializers.Serializer):
    order_id = serializers.CharField(required=False)
    external_reference = serializers.CharField(max_length=100, required=False)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    token = serializers.CharField(required=False, allow_blank=True)
    payment_method_id = serializers.CharField(required=False)
    installments = serializers.IntegerField(required=False, min_value=1, default=1)
    issuer_id = serializers.CharField(required=False, allow_null=True)
    payer = serializers.DictField(required=False)


class LiberarEnvioSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    cart_item_id = serializers.CharField(required=False)


# ====================================================================
# SERIALIZERS DE SAÍDA (entidades do Core)
# ====================================================================

class LinhaCarrinhoSerializer(serializers.Serializer):
    id = serializers.CharField(source='item_id')
    variant_id = serializers.CharField(source='variante_id')
    product_id = serializers.CharField(source='produto_id')
    name = serializers.CharField(source='nome_produto')
    quantity = serializers.IntegerField(source='quantidade')
    unit_price = serializers.DecimalField(source='preco_unitario', max_digits=10, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    size = serializers.CharField(source='tamanho', allow_null=True)
    color = serializers.CharField(source='cor', allow_null=True)
    image_url = serializers.CharField(source='imagem_url', allow_null=True)


class EnderecoSerializer(serializers.Serializer):
    cep = serializers.CharField()
    logradouro = serializers.CharField()
    numero = serializers.CharField()
    complemento = serializers.CharField(allow_null=True)
    bairro = serializers.CharField()
    cidade = serializers.CharField()
    estado = serializers.CharField()


class ItemPedidoSerializer(serializers.Serializer):
    product_id = serializers.CharField(source='produto_id')
    variant_id = serializers.CharField(source='variante_id')
    name = serializers.CharField(source='nome_produto')
    unit_price = serializers.DecimalField(source='preco_unitario', max_digits=10, decimal_places=2)
    quantity = serializers.IntegerField(source='quantidade')
    size = serializers.CharField(source='tamanho_selecionado', allow_null=True)
    color = serializers.CharField(source='cor_selecionada', allow_null=True)


class PedidoSerializer(serializers.Serializer):
    """Representação pública de um Pedido (entidade do Core)."""
    id = serializers.CharField()
    status = serializers.CharField()
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2)
    shipping_cost = serializers.DecimalField(source='frete', max_digits=10, decimal_places=2)
    total = serializers.DecimalField(max_digits=10, decimal_places=2)
    payment_method = serializers.CharField(source='forma_pagamento')
    external_reference = serializers.CharField(source='referencia_externa')
    payment_id = serializers.CharField(source='pagamento_id', allow_null=True)
    payment_status = serializers.CharField(source='status_pagamento', allow_null=True)
    tracking_code = serializers.CharField(source='codigo_rastreio', allow_null=True)
    shipping_address = EnderecoSerializer(source='endereco_entrega')
    items = ItemPedidoSerializer(source='itens', many=True)
    created_at = serializers.DateTimeField(source='criado_em', allow_null=True)


class CobrancaResultadoSerializer(serializers.Serializer):
    id = serializers.CharField()
    status = serializers.CharField()
    status_detail = serializers.CharField(source='status_detalhe', allow_null=True)
    amount = serializers.DecimalField(source='valor', max_digits=12, decimal_places=2)
    external_reference = serializers.CharField(source='referencia_externa', allow_null=True)


class TokenCartaoSerializer(serializers.Serializer):
    id = serializers.CharField()
    first_six_digits = serializers.CharField(source='primeiros_seis', allow_null=True)
    last_four_digits = serializers.CharField(source='ultimos_quatro', allow_null=True)
    date_due = serializers.CharField(source='expira_em', allow_null=True)


class EnvioSerializer(serializers.Serializer):
    id = serializers.CharField()
    order_id = serializers.CharField(source='pedido_id')
    me_shipment_id = serializers.CharField(allow_null=True)
    tracking_code = serializers.CharField(source='codigo_rastreio', allow_null=True)
    label_url = serializers.CharField(source='url_etiqueta', allow_null=True)
    status = serializers.CharField()
