"""
Price calculation for the public catalog and for distributors.

Public prices apply the product discount only for buyers without a
distributor account. Distributors see the suggested public price, the
distributor base price and a net price with both discounts applied
multiplicatively.
"""
from dataclasses import asdict, dataclass
from decimal import Decimal, ROUND_HALF_UP

HUNDRED = Decimal('100')
CENT = Decimal('0.01')


@dataclass
class PricingResult:
    public_price: Decimal
    public_original_price: Decimal = None
    public_discount: Decimal = Decimal('0')
    public_has_discount: bool = False
    distributor_suggested_price: Decimal = None
    distributor_base_price: Decimal = None
    distributor_net_price: Decimal = None
    distributor_discount: Decimal = None
    distributor_product_discount: Decimal = None

    def to_dict(self):
        return asdict(self)


def _money(value):
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_product_pricing(product, distributor=None):
    price = product.price or Decimal('0')
    public_discount = product.discount_percentage or Decimal('0')

    public_has_discount = distributor is None and public_discount > 0
    result = PricingResult(
        public_price=_money(price * (1 - public_discount / HUNDRED)) if public_has_discount else price,
        public_original_price=price if public_has_discount else None,
        public_discount=public_discount,
        public_has_discount=public_has_discount,
    )

    if distributor is not None and product.distributor_price:
        product_discount = product.distributor_discount or Decimal('0')
        distributor_discount = distributor.discount_percentage or Decimal('0')
        result.distributor_suggested_price = price
        result.distributor_base_price = product.distributor_price
        result.distributor_discount = distributor_discount
        result.distributor_product_discount = product_discount
        result.distributor_net_price = _money(
            product.distributor_price
            * (1 - distributor_discount / HUNDRED)
            * (1 - product_discount / HUNDRED)
        )

    return result


def is_product_on_sale(product):
    """Only discounted products appear in the offers listing"""
    return (product.discount_percentage or 0) > 0
