"""
Tests for the pricing resolver and pricing service.
"""
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase, override_settings

from ledger.domain.catalog import CatalogItem, CustomizationOptions
from ledger.domain.errors import (
    InvalidCustomization,
    MaterialNotFound,
    NotFound,
    ValidationError,
)
from ledger.domain.pricing import (
    CustomizationInput,
    PriceQuote,
    calculate_custom_price,
    quote_custom_price,
    resolve_unit_price,
)
from ledger.services.pricing import CheckoutLine, PricingService
from ledger.test.fakes import create_catalog, narra_options, table_customization


def make_item(**overrides) -> CatalogItem:
    data = {
        "id": uuid4(),
        "name": "Custom Table",
        "price": Decimal("4000.00"),
        "is_customizable": True,
        "customization_options": narra_options(),
        "stock": 10,
    }
    data.update(overrides)
    return CatalogItem(**data)


class CustomizationInputTest(TestCase):
    """Tests for CustomizationInput validation."""

    def test_values_are_coerced_to_decimal(self):
        custom = CustomizationInput(**table_customization(length=4, labor_days="1.5"))
        self.assertEqual(custom.length, Decimal("4"))
        self.assertEqual(custom.labor_days, Decimal("1.5"))
        self.assertEqual(custom.dimensions, {"length": Decimal("4"), "width": Decimal("2"), "height": Decimal("3")})

    def test_non_positive_dimension_fails(self):
        for name in ("length", "width", "height", "labor_days"):
            with self.subTest(name=name):
                with self.assertRaises(ValidationError):
                    CustomizationInput(**table_customization(**{name: "0"}))

    def test_non_numeric_dimension_fails(self):
        with self.assertRaises(ValidationError):
            CustomizationInput(**table_customization(width="wide"))

    def test_missing_material_fails(self):
        with self.assertRaises(ValidationError):
            CustomizationInput(**table_customization(material_name_2x12=""))


class CalculateCustomPriceTest(TestCase):
    """Tests for the default plank-count calculator."""

    costs = {
        "plank_3x3_cost": Decimal("500.00"),
        "plank_2x12_cost": Decimal("1200.00"),
        "labor_cost_per_day": Decimal("800.00"),
        "overhead_cost": Decimal("300.00"),
        "profit_margin": Decimal("0.25"),
    }

    def test_price_is_base_cost_plus_margin(self):
        quote = calculate_custom_price(
            {"length": Decimal("4"), "width": Decimal("2"), "height": Decimal("3")},
            Decimal("2"),
            self.costs,
        )
        self.assertEqual(quote.breakdown["planks_3x3"], 3)
        self.assertEqual(quote.breakdown["planks_2x12"], 1)
        self.assertEqual(quote.breakdown["material_cost"], Decimal("2700.00"))
        self.assertEqual(quote.breakdown["labor_cost"], Decimal("1600.00"))
        self.assertEqual(quote.cost, Decimal("4600.00"))
        self.assertEqual(quote.price, Decimal("5750.00"))

    def test_zero_margin_price_equals_cost(self):
        costs = dict(self.costs, profit_margin=Decimal("0"))
        quote = calculate_custom_price(
            {"length": Decimal("4"), "width": Decimal("2"), "height": Decimal("3")},
            Decimal("2"),
            costs,
        )
        self.assertEqual(quote.price, quote.cost)

    def test_larger_build_needs_more_planks(self):
        small = calculate_custom_price(
            {"length": Decimal("4"), "width": Decimal("2"), "height": Decimal("3")}, Decimal("1"), self.costs,
        )
        large = calculate_custom_price(
            {"length": Decimal("8"), "width": Decimal("4"), "height": Decimal("3")}, Decimal("1"), self.costs,
        )
        self.assertGreater(large.breakdown["planks_3x3"], small.breakdown["planks_3x3"])
        self.assertGreater(large.price, small.price)


class ResolveUnitPriceTest(TestCase):
    """Tests for resolve_unit_price."""

    def test_without_customization_returns_catalog_price(self):
        item = make_item(is_customizable=False, price=Decimal("1234.5"))
        self.assertEqual(resolve_unit_price(item), Decimal("1234.50"))

    def test_customizable_item_without_customization_returns_catalog_price(self):
        self.assertEqual(resolve_unit_price(make_item()), Decimal("4000.00"))

    def test_customization_on_standard_item_fails(self):
        item = make_item(is_customizable=False)
        with self.assertRaises(InvalidCustomization):
            resolve_unit_price(item, CustomizationInput(**table_customization()))

    def test_unknown_material_fails(self):
        with self.assertRaises(MaterialNotFound) as context:
            resolve_unit_price(make_item(), CustomizationInput(**table_customization(material_name_3x3="Oak")))
        self.assertEqual(context.exception.material_name, "Oak")
        self.assertEqual(context.exception.code, "MATERIAL_NOT_FOUND")

    def test_customized_price(self):
        price = resolve_unit_price(make_item(), CustomizationInput(**table_customization()))
        self.assertEqual(price, Decimal("5750.00"))

    def test_materials_are_looked_up_per_role(self):
        """Frame cost comes from the 3x3 material, top cost from the 2x12 one."""
        captured = {}

        def calculator(dimensions, labor_days, costs):
            captured.update(costs)
            return PriceQuote(cost=Decimal("1"), price=Decimal("2"))

        quote_custom_price(
            make_item(),
            CustomizationInput(**table_customization(material_name_3x3="Narra", material_name_2x12="Mahogany")),
            calculator,
        )
        self.assertEqual(captured["plank_3x3_cost"], Decimal("500.00"))
        self.assertEqual(captured["plank_2x12_cost"], Decimal("1500.00"))
        self.assertEqual(captured["labor_cost_per_day"], Decimal("800.00"))

    def test_item_without_materials_rejects_customization(self):
        item = make_item(customization_options=CustomizationOptions())
        with self.assertRaises(MaterialNotFound):
            resolve_unit_price(item, CustomizationInput(**table_customization()))


class PricingServiceTest(TestCase):
    """Tests for PricingService."""

    def setUp(self):
        self.items = create_catalog()
        self.service = PricingService()

    def test_quote(self):
        quote = self.service.quote(self.items["custom_table"], CustomizationInput(**table_customization()))
        self.assertEqual(quote.price, Decimal("5750.00"))

    @override_settings(LEDGER_PRICE_CALCULATOR="ledger.test.fakes.flat_calculator")
    def test_calculator_setting_replaces_default(self):
        quote = PricingService().quote(self.items["custom_table"], CustomizationInput(**table_customization()))
        self.assertEqual(quote.price, Decimal("1000.00"))
        lines, _ = PricingService().price_lines([
            CheckoutLine(
                item_id=self.items["custom_table"],
                quantity=1,
                customization=CustomizationInput(**table_customization()),
            ),
        ])
        self.assertEqual(lines[0].unit_price, Decimal("1000.00"))

    def test_quote_unknown_item(self):
        with self.assertRaises(NotFound):
            self.service.quote(uuid4(), CustomizationInput(**table_customization()))

    def test_price_lines_ignores_client_price_and_resolves_each_line(self):
        lines, items = self.service.price_lines([
            CheckoutLine(item_id=self.items["chair"], quantity=2),
            CheckoutLine(
                item_id=self.items["custom_table"],
                quantity=1,
                customization=CustomizationInput(**table_customization()),
            ),
        ])
        self.assertEqual([line.unit_price for line in lines], [Decimal("1000.00"), Decimal("5750.00")])
        self.assertFalse(lines[0].is_customizable)
        self.assertTrue(lines[1].is_customizable)
        self.assertEqual(lines[1].legs_frame_material, "Narra")
        self.assertEqual(set(items), {self.items["chair"], self.items["custom_table"]})

    def test_price_lines_missing_item(self):
        with self.assertRaises(NotFound):
            self.service.price_lines([CheckoutLine(item_id=uuid4(), quantity=1)])

    def test_price_lines_empty(self):
        with self.assertRaises(ValidationError):
            self.service.price_lines([])

    def test_checkout_line_rejects_bad_quantity(self):
        for quantity in (0, -1, 1.5):
            with self.subTest(quantity=quantity):
                with self.assertRaises(ValidationError):
                    CheckoutLine(item_id=uuid4(), quantity=quantity)

    def test_preview_plan(self):
        plan = self.service.preview_plan([
            CheckoutLine(
                item_id=self.items["dining_table"],
                quantity=1,
                customization=CustomizationInput(**table_customization()),
            ),
            CheckoutLine(item_id=self.items["lamp"], quantity=1),
        ])
        self.assertEqual(plan.customized_total, Decimal("10000.00"))
        self.assertEqual(plan.down_payment_amount, Decimal("3500.00"))
        self.assertEqual(plan.remaining_balance, Decimal("7000.00"))

    def test_injected_calculator_is_used(self):
        def flat(dimensions, labor_days, costs):
            return PriceQuote(cost=Decimal("10"), price=Decimal("99.99"))

        service = PricingService(calculator=flat)
        quote = service.quote(self.items["custom_table"], CustomizationInput(**table_customization()))
        self.assertEqual(quote.price, Decimal("99.99"))
