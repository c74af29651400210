"""
Tests for the down-payment plan calculator.
"""
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase

from ledger.domain.order import OrderLine
from ledger.domain.payment_plan import DOWN_PAYMENT_RATE, compute_plan


def line(price, quantity=1, custom=False) -> OrderLine:
    return OrderLine(item_id=uuid4(), quantity=quantity, unit_price=Decimal(price), is_customizable=custom)


class ComputePlanTest(TestCase):
    """Tests for compute_plan."""

    def test_stock_only_cart_collapses_to_full_payment(self):
        plan = compute_plan([line("1000.00", quantity=2)])
        self.assertEqual(plan.full_amount, Decimal("2000.00"))
        self.assertEqual(plan.down_payment_amount, Decimal("2000.00"))
        self.assertEqual(plan.remaining_balance, Decimal("0.00"))
        self.assertFalse(plan.has_customized_items)

    def test_mixed_cart(self):
        plan = compute_plan([line("10000.00", custom=True), line("500.00")])
        self.assertEqual(plan.customized_total, Decimal("10000.00"))
        self.assertEqual(plan.normal_total, Decimal("500.00"))
        self.assertEqual(plan.full_amount, Decimal("10500.00"))
        self.assertEqual(plan.down_payment_amount, Decimal("3500.00"))
        self.assertEqual(plan.remaining_balance, Decimal("7000.00"))
        self.assertTrue(plan.has_customized_items)

    def test_quantity_counts_towards_totals(self):
        plan = compute_plan([line("100.00", quantity=3, custom=True), line("50.00", quantity=2)])
        self.assertEqual(plan.customized_total, Decimal("300.00"))
        self.assertEqual(plan.normal_total, Decimal("100.00"))
        self.assertEqual(plan.down_payment_amount, Decimal("190.00"))
        self.assertEqual(plan.remaining_balance, Decimal("210.00"))

    def test_empty_cart(self):
        plan = compute_plan([])
        self.assertEqual(plan.full_amount, Decimal("0.00"))
        self.assertEqual(plan.down_payment_amount, Decimal("0.00"))
        self.assertEqual(plan.remaining_balance, Decimal("0.00"))

    def test_rounding_keeps_parts_summing_to_full_amount(self):
        plan = compute_plan([line("33.33", custom=True)])
        self.assertEqual(plan.down_payment_amount, Decimal("10.00"))
        self.assertEqual(plan.remaining_balance, Decimal("23.33"))
        self.assertEqual(plan.down_payment_amount + plan.remaining_balance, plan.full_amount)

    def test_down_payment_and_balance_always_sum_to_full_amount(self):
        prices = ["0.01", "0.05", "1.00", "19.99", "33.33", "99.95", "1234.57", "10000.00"]
        for custom_price in prices:
            for normal_price in ("0.00", "0.99", "500.00"):
                for quantity in (1, 3, 7):
                    with self.subTest(custom=custom_price, normal=normal_price, quantity=quantity):
                        lines = [line(custom_price, quantity=quantity, custom=True)]
                        if normal_price != "0.00":
                            lines.append(line(normal_price, quantity=quantity))
                        plan = compute_plan(lines)
                        self.assertEqual(plan.down_payment_amount + plan.remaining_balance, plan.full_amount)
                        self.assertEqual(plan.down_payment_amount.as_tuple().exponent, -2)
                        self.assertEqual(plan.remaining_balance.as_tuple().exponent, -2)

    def test_down_payment_is_thirty_percent_of_customized_total(self):
        plan = compute_plan([line("2000.00", custom=True)])
        self.assertEqual(DOWN_PAYMENT_RATE, Decimal("0.30"))
        self.assertEqual(plan.down_payment_amount, Decimal("600.00"))
        self.assertEqual(plan.remaining_balance, Decimal("1400.00"))
