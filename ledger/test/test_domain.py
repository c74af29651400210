"""
Unit tests for the Order aggregate.
"""
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase
from django.utils import timezone

from ledger.domain.errors import InvalidState, ValidationError
from ledger.domain.order import (
    DeliveryOption,
    Order,
    OrderLine,
    OrderStatus,
    PaymentStatus,
    PaymentType,
)


def stock_line(price="1000.00", quantity=1) -> OrderLine:
    return OrderLine(item_id=uuid4(), quantity=quantity, unit_price=Decimal(price))


def custom_line(price="10000.00", quantity=1) -> OrderLine:
    return OrderLine(item_id=uuid4(), quantity=quantity, unit_price=Decimal(price), is_customizable=True)


def place(lines, delivery_option=DeliveryOption.SHIPPING, shipping_fee="0", payment_type=PaymentType.FULL_PAYMENT):
    return Order.place(
        user_id=uuid4(),
        lines=lines,
        delivery_option=delivery_option,
        shipping_fee=Decimal(shipping_fee),
        payment_type=payment_type,
    )


class OrderLineTest(TestCase):
    """Tests for OrderLine value object."""

    def test_subtotal(self):
        line = stock_line("100.00", quantity=2)
        self.assertEqual(line.subtotal, Decimal("200.00"))

    def test_non_positive_quantity_fails(self):
        with self.assertRaises(ValidationError):
            stock_line(quantity=0)

    def test_negative_price_fails(self):
        with self.assertRaises(ValidationError):
            stock_line(price="-1.00")


class PlaceOrderTest(TestCase):
    """Tests for Order.place."""

    def test_new_order_is_pending_and_owes_everything(self):
        order = place([stock_line(quantity=2)], shipping_fee="1500")
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertEqual(order.amount, Decimal("2000.00"))
        self.assertEqual(order.total_with_shipping, Decimal("3500.00"))
        self.assertEqual(order.down_payment, Decimal("0.00"))
        self.assertEqual(order.balance, Decimal("3500.00"))
        self.assertEqual(order.charge_amount, Decimal("3500.00"))

    def test_empty_order_fails(self):
        with self.assertRaises(ValidationError):
            place([])

    def test_negative_shipping_fee_fails(self):
        with self.assertRaises(ValidationError):
            place([stock_line()], shipping_fee="-1")

    def test_pickup_with_shipping_fee_fails(self):
        with self.assertRaises(ValidationError):
            place([stock_line()], delivery_option=DeliveryOption.PICKUP, shipping_fee="100")

    def test_down_payment_on_stock_only_cart_becomes_full_payment(self):
        order = place([stock_line()], payment_type=PaymentType.DOWN_PAYMENT)
        self.assertEqual(order.payment_type, PaymentType.FULL_PAYMENT)
        self.assertEqual(order.charge_amount, order.total_with_shipping)

    def test_down_payment_charge_includes_shipping(self):
        order = place(
            [custom_line(), stock_line("500.00")],
            shipping_fee="100",
            payment_type=PaymentType.DOWN_PAYMENT,
        )
        self.assertEqual(order.charge_amount, Decimal("3600.00"))

    def test_lines_are_a_copy(self):
        order = place([stock_line()])
        order.lines.append(stock_line("999.00"))
        self.assertEqual(len(order.lines), 1)
        self.assertEqual(order.amount, Decimal("1000.00"))


class ConfirmPaymentTest(TestCase):
    """Tests for gateway confirmation of the initial checkout."""

    def test_full_payment_for_shipping(self):
        order = place([stock_line(quantity=2)], shipping_fee="1500")
        order.confirm_payment()
        self.assertEqual(order.status, OrderStatus.ON_PROCESS)
        self.assertEqual(order.payment_status, PaymentStatus.FULLY_PAID)
        self.assertEqual(order.down_payment, Decimal("3500.00"))
        self.assertEqual(order.balance, Decimal("0.00"))

    def test_full_payment_for_pickup(self):
        order = place([stock_line()], delivery_option=DeliveryOption.PICKUP)
        order.confirm_payment()
        self.assertEqual(order.status, OrderStatus.READY_FOR_PICKUP)
        self.assertEqual(order.payment_status, PaymentStatus.FULLY_PAID)

    def test_full_payment_with_customized_lines(self):
        order = place([custom_line()], payment_type=PaymentType.FULL_PAYMENT)
        order.confirm_payment()
        self.assertEqual(order.payment_status, PaymentStatus.FULLY_PAID)
        self.assertEqual(order.balance, Decimal("0.00"))

    def test_down_payment(self):
        order = place(
            [custom_line(), stock_line("500.00")],
            shipping_fee="100",
            payment_type=PaymentType.DOWN_PAYMENT,
        )
        order.confirm_payment()
        self.assertEqual(order.status, OrderStatus.ON_PROCESS)
        self.assertEqual(order.payment_status, PaymentStatus.DOWNPAYMENT_RECEIVED)
        self.assertEqual(order.down_payment, Decimal("3600.00"))
        self.assertEqual(order.balance, Decimal("7000.00"))
        self.assertEqual(order.down_payment + order.balance, order.total_with_shipping)

    def test_down_payment_for_pickup_is_on_process(self):
        order = place([custom_line()], delivery_option=DeliveryOption.PICKUP, payment_type=PaymentType.DOWN_PAYMENT)
        order.confirm_payment()
        self.assertEqual(order.status, OrderStatus.ON_PROCESS)

    def test_confirm_twice_fails(self):
        order = place([stock_line()])
        order.confirm_payment()
        with self.assertRaises(InvalidState):
            order.confirm_payment()

    def test_payment_on_cancelled_order_goes_to_refund_review(self):
        order = place([stock_line()], shipping_fee="100")
        order.cancel()
        order.confirm_payment()
        self.assertEqual(order.status, OrderStatus.REQUESTING_REFUND)
        self.assertEqual(order.payment_status, PaymentStatus.REFUND_REQUESTED)
        self.assertEqual(order.down_payment, Decimal("1100.00"))
        self.assertEqual(order.balance, Decimal("0.00"))

    def test_down_payment_on_cancelled_order_keeps_balance_split(self):
        order = place([custom_line(), stock_line("500.00")], payment_type=PaymentType.DOWN_PAYMENT)
        order.cancel()
        order.confirm_payment()
        self.assertEqual(order.payment_status, PaymentStatus.REFUND_REQUESTED)
        self.assertEqual(order.down_payment + order.balance, order.total_with_shipping)
        self.assertEqual(order.down_payment, order.charge_amount)

    def test_paid_order_forced_back_to_pending_is_not_reconfirmed(self):
        order = place([custom_line(), stock_line("500.00")], payment_type=PaymentType.DOWN_PAYMENT)
        order.confirm_payment()
        order.open_balance_payment("cs_balance")
        order.settle_balance()
        order.force_status(OrderStatus.PENDING)
        with self.assertRaises(InvalidState):
            order.confirm_payment()
        self.assertEqual(order.payment_status, PaymentStatus.FULLY_PAID)
        self.assertEqual(order.balance, Decimal("0.00"))
        self.assertEqual(order.down_payment, order.total_with_shipping)

    def test_admin_set_status_survives_confirmation(self):
        order = place([stock_line()])
        order.force_status(OrderStatus.ON_PROCESS)
        order.confirm_payment()
        self.assertEqual(order.status, OrderStatus.ON_PROCESS)
        self.assertEqual(order.payment_status, PaymentStatus.FULLY_PAID)


class BalancePaymentTest(TestCase):
    """Tests for settling the remaining balance."""

    def setUp(self):
        self.order = place(
            [custom_line(), stock_line("500.00")],
            payment_type=PaymentType.DOWN_PAYMENT,
        )
        self.order.confirm_payment()

    def test_open_then_settle(self):
        self.order.open_balance_payment("cs_balance", "https://checkout.test/balance")
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING_FULL_PAYMENT)
        self.assertEqual(self.order.balance, Decimal("7000.00"))
        self.assertEqual(self.order.balance_session_id, "cs_balance")

        self.order.settle_balance()
        self.assertEqual(self.order.payment_status, PaymentStatus.FULLY_PAID)
        self.assertEqual(self.order.balance, Decimal("0.00"))
        self.assertEqual(self.order.down_payment, self.order.total_with_shipping)

    def test_settle_without_open_session_fails(self):
        with self.assertRaises(InvalidState):
            self.order.settle_balance()

    def test_open_on_fully_paid_order_fails(self):
        order = place([stock_line()])
        order.confirm_payment()
        with self.assertRaises(InvalidState):
            order.open_balance_payment("cs_balance")

    def test_open_on_pending_order_fails(self):
        order = place([custom_line()], payment_type=PaymentType.DOWN_PAYMENT)
        with self.assertRaises(InvalidState):
            order.ensure_balance_payable()

    def test_reopen_replaces_session(self):
        self.order.open_balance_payment("cs_balance", "https://checkout.test/old")
        replaced = self.order.open_balance_payment("cs_other", "https://checkout.test/new")
        self.assertEqual(replaced, "cs_balance")
        self.assertEqual(self.order.balance_session_id, "cs_other")
        self.assertEqual(self.order.balance_checkout_url, "https://checkout.test/new")
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING_FULL_PAYMENT)

    def test_first_open_replaces_nothing(self):
        self.assertIsNone(self.order.open_balance_payment("cs_balance"))

    def test_open_on_cancelled_order_fails(self):
        self.order.force_status(OrderStatus.CANCELLED)
        with self.assertRaises(InvalidState):
            self.order.open_balance_payment("cs_balance")


class RefundTest(TestCase):
    """Tests for refund transitions."""

    def test_request_refund_on_processing_order(self):
        order = place([stock_line()])
        order.confirm_payment()
        order.request_refund()
        self.assertEqual(order.status, OrderStatus.REQUESTING_REFUND)
        self.assertEqual(order.payment_status, PaymentStatus.REFUND_REQUESTED)

    def test_request_refund_requires_on_process(self):
        order = place([stock_line()], delivery_option=DeliveryOption.PICKUP)
        with self.assertRaises(InvalidState):
            order.request_refund()
        order.confirm_payment()
        self.assertEqual(order.status, OrderStatus.READY_FOR_PICKUP)
        with self.assertRaises(InvalidState):
            order.request_refund()

    def test_customized_order_refund_fails_in_every_status(self):
        for status in OrderStatus:
            with self.subTest(status=status):
                order = place([custom_line(), stock_line()], payment_type=PaymentType.DOWN_PAYMENT)
                order._status = status
                with self.assertRaises(InvalidState):
                    order.request_refund()
                self.assertEqual(order.status, status)

    def test_complete_refund(self):
        order = place([stock_line()])
        order.confirm_payment()
        order.request_refund()
        order.complete_refund()
        self.assertEqual(order.status, OrderStatus.REFUNDED)
        self.assertEqual(order.payment_status, PaymentStatus.REFUNDED)

    def test_complete_refund_without_request_fails(self):
        order = place([stock_line()])
        order.confirm_payment()
        with self.assertRaises(InvalidState):
            order.complete_refund()


class CancelTest(TestCase):
    """Tests for cancellation."""

    def test_cancel_pending_order(self):
        order = place([stock_line()])
        order.cancel()
        self.assertEqual(order.status, OrderStatus.CANCELLED)

    def test_cannot_cancel_paid_order(self):
        order = place([stock_line()])
        order.confirm_payment()
        with self.assertRaises(InvalidState):
            order.cancel()
        self.assertEqual(order.status, OrderStatus.ON_PROCESS)


class ForceStatusTest(TestCase):
    """Tests for the admin override."""

    def test_any_status_can_be_forced(self):
        order = place([stock_line()])
        previous = order.force_status(OrderStatus.DELIVERED)
        self.assertEqual(previous, OrderStatus.PENDING)
        self.assertEqual(order.status, OrderStatus.DELIVERED)

    def test_force_does_not_touch_money(self):
        order = place([stock_line()])
        order.force_status(OrderStatus.ON_PROCESS)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertEqual(order.balance, order.total_with_shipping)

    def test_refund_status_cannot_be_forced_on_customized_order(self):
        order = place([custom_line()])
        with self.assertRaises(InvalidState):
            order.force_status(OrderStatus.REQUESTING_REFUND)
        self.assertEqual(order.status, OrderStatus.PENDING)


class DeliveryProofTest(TestCase):
    """Tests for delivery proof submission."""

    def test_shipping_order_becomes_delivered(self):
        order = place([stock_line()])
        order.confirm_payment()
        now = timezone.now()
        order.submit_delivery_proof("https://cdn.test/proof.jpg", now)
        self.assertEqual(order.status, OrderStatus.DELIVERED)
        self.assertEqual(order.delivery_proof, "https://cdn.test/proof.jpg")
        self.assertEqual(order.delivery_date, now)

    def test_pickup_order_becomes_picked_up(self):
        order = place([stock_line()], delivery_option=DeliveryOption.PICKUP)
        order.confirm_payment()
        order.submit_delivery_proof("https://cdn.test/proof.jpg", timezone.now())
        self.assertEqual(order.status, OrderStatus.PICKED_UP)

    def test_proof_is_required(self):
        order = place([stock_line()])
        with self.assertRaises(ValidationError):
            order.submit_delivery_proof("", timezone.now())

    def test_proof_can_only_be_submitted_once(self):
        order = place([stock_line()])
        order.confirm_payment()
        order.submit_delivery_proof("https://cdn.test/a.jpg", timezone.now())
        with self.assertRaises(InvalidState):
            order.submit_delivery_proof("https://cdn.test/b.jpg", timezone.now())
