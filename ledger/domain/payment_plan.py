"""
Payment plan for a cart: what is due now and what is left for later.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol

from ledger.domain.money import CENT, ZERO, to_money

DOWN_PAYMENT_RATE = Decimal("0.30")


class PricedLine(Protocol):
    unit_price: Decimal
    quantity: int
    is_customizable: bool


@dataclass(frozen=True)
class PaymentPlan:
    """Split of a cart into customized and normal subtotals."""
    customized_total: Decimal
    normal_total: Decimal
    full_amount: Decimal
    down_payment_amount: Decimal
    remaining_balance: Decimal

    @property
    def has_customized_items(self) -> bool:
        return self.customized_total > 0


def compute_plan(lines: Iterable[PricedLine]) -> PaymentPlan:
    """Compute the down-payment plan for priced lines."""
    customized_total = ZERO
    normal_total = ZERO
    for line in lines:
        subtotal = to_money(line.unit_price) * line.quantity
        if line.is_customizable:
            customized_total += subtotal
        else:
            normal_total += subtotal

    # Remaining balance is derived by subtraction so the two parts always add up.
    customized_down = (customized_total * DOWN_PAYMENT_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    return PaymentPlan(
        customized_total=to_money(customized_total),
        normal_total=to_money(normal_total),
        full_amount=to_money(customized_total + normal_total),
        down_payment_amount=to_money(customized_down + normal_total),
        remaining_balance=to_money(customized_total - customized_down),
    )
