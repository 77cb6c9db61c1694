"""Pizza and order pricing.

Line values are kept exact. Each component of the order breakdown is rounded
once, half-up, to the minor currency unit, and the total is the sum of the
rounded components, so ``total == subtotal + tax + delivery_fee - discount``
always holds exactly.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from pizzacraft.core.config import (
    BASE_PIZZA_PRICE,
    TAX_RATE,
    FREE_DELIVERY_THRESHOLD,
    DELIVERY_FEE,
)
from pizzacraft.core.exceptions import ValidationError
from pizzacraft.models.order import PizzaSize

MINOR_UNIT = Decimal("0.01")

SIZE_MULTIPLIERS = {
    PizzaSize.SMALL: Decimal("0.8"),
    PizzaSize.MEDIUM: Decimal("1.0"),
    PizzaSize.LARGE: Decimal("1.3"),
}


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total: Decimal

    def as_dict(self):
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "delivery_fee": self.delivery_fee,
            "discount": self.discount,
            "total": self.total,
        }


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Major currency units to the gateway's smallest unit (rupees -> paise)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def unit_price(ingredient_prices: Iterable[Decimal], size: PizzaSize,
               base_price: Decimal = BASE_PIZZA_PRICE) -> Decimal:
    """(base price + all selected ingredient prices) x size multiplier."""
    return (base_price + sum(ingredient_prices, Decimal("0"))) * SIZE_MULTIPLIERS[PizzaSize(size)]


def line_total(price: Decimal, quantity: int) -> Decimal:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    return price * quantity


def delivery_fee_for(subtotal: Decimal) -> Decimal:
    return Decimal("0") if subtotal > FREE_DELIVERY_THRESHOLD else DELIVERY_FEE


def price_order(line_totals: Iterable[Decimal], discount: Decimal = Decimal("0")) -> PricingBreakdown:
    exact_subtotal = sum(line_totals, Decimal("0"))
    subtotal = round_money(exact_subtotal)
    tax = round_money(exact_subtotal * TAX_RATE)
    fee = round_money(delivery_fee_for(exact_subtotal))
    discount = round_money(discount)

    if discount < 0:
        raise ValidationError("Discount cannot be negative")
    if discount > subtotal + tax + fee:
        raise ValidationError("Discount cannot exceed the order amount")

    return PricingBreakdown(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=fee,
        discount=discount,
        total=subtotal + tax + fee - discount,
    )
