"""
Cálculo do frete da loja.

Função pura usada tanto pelo checkout quanto pela cotação de frete, para que os
dois pontos sempre cheguem ao mesmo valor.
"""
from decimal import Decimal

from rosia.core.entities import arredondar
from rosia.core.exceptions import EnderecoInvalidoError

FRETE_BASE = Decimal('15.00')
FRETE_POR_ITEM_EXTRA = Decimal('0.50')
FRETE_GRATIS_A_PARTIR_DE = Decimal('100.00')


def normalizar_cep(cep) -> str:
    digitos = ''.join(ch for ch in str(cep or '') if ch.isdigit())
    if len(digitos) != 8:
        raise EnderecoInvalidoError("CEP deve conter 8 dígitos.")
    return digitos


def calcular_frete(
    subtotal,
    quantidade_itens: int,
    cep,
    base: Decimal = FRETE_BASE,
    por_item_extra: Decimal = FRETE_POR_ITEM_EXTRA,
    gratis_a_partir_de: Decimal = FRETE_GRATIS_A_PARTIR_DE,
) -> Decimal:
    """
    Frete = base + incremento por linha adicional do carrinho.
    Gratuito quando o subtotal atinge o limite de frete grátis.
    """
    normalizar_cep(cep)

    if Decimal(str(subtotal)) >= Decimal(str(gratis_a_partir_de)):
        return Decimal('0.00')

    extras = max(int(quantidade_itens) - 1, 0)
    return arredondar(Decimal(str(base)) + Decimal(str(por_item_extra)) * extras)
