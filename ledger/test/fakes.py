"""
Test doubles and catalog fixtures.
"""
import hashlib
import hmac
from decimal import Decimal
from uuid import uuid4

from ledger.domain.catalog import CustomizationOptions, Material
from ledger.domain.errors import GatewayError
from ledger.domain.pricing import PriceQuote
from ledger.infra.gateway import CheckoutSession, SessionState
from ledger.infra.repositories import ItemRepository

FAKE_GATEWAY = "ledger.test.fakes.FakeGateway"


class FakeGateway:
    """In-memory checkout session provider.

    Sessions are recorded on the class so tests can inspect calls made by
    services that build their own gateway instance.
    """

    sessions = []
    states = {}
    fail = False

    @classmethod
    def reset(cls):
        cls.sessions = []
        cls.states = {}
        cls.fail = False

    @classmethod
    def from_settings(cls):
        return cls()

    def create_checkout_session(self, line_items, total_amount, success_url, cancel_url, description=""):
        if self.fail:
            raise GatewayError(detail="simulated outage")
        session = CheckoutSession(
            session_id=f"cs_test_{uuid4().hex[:12]}",
            checkout_url=f"https://checkout.test/{len(self.sessions) + 1}",
        )
        type(self).sessions.append({
            "session": session,
            "line_items": list(line_items),
            "total_amount": total_amount,
            "success_url": success_url,
            "cancel_url": cancel_url,
        })
        return session

    def get_checkout_session_state(self, session_id):
        if self.fail:
            raise GatewayError(detail="simulated outage")
        return self.states.get(session_id, SessionState.ACTIVE)


def flat_calculator(dimensions, labor_days, costs) -> PriceQuote:
    """Cut-list stand-in that charges a flat 1,000 per unit."""
    return PriceQuote(cost=Decimal("800.00"), price=Decimal("1000.00"))


def narra_options(overhead_cost="300") -> CustomizationOptions:
    """Options under which a 4x2x3 build with 2 labor days costs
    2700 in planks, 1600 in labor and ``overhead_cost`` in overhead, at 25% margin.
    """
    return CustomizationOptions(
        materials=(
            Material(name="Narra", plank_3x3x10_cost=Decimal("500.00"), plank_2x12x10_cost=Decimal("1200.00")),
            Material(name="Mahogany", plank_3x3x10_cost=Decimal("650.00"), plank_2x12x10_cost=Decimal("1500.00")),
        ),
        labor_cost_per_day=Decimal("800.00"),
        profit_margin=Decimal("0.25"),
        overhead_cost=Decimal(overhead_cost),
    )


def table_customization(**overrides) -> dict:
    data = {
        "length": "4",
        "width": "2",
        "height": "3",
        "labor_days": "2",
        "material_name_3x3": "Narra",
        "material_name_2x12": "Narra",
    }
    data.update(overrides)
    return data


def create_catalog(item_repo: ItemRepository | None = None) -> dict:
    """Create a stock chair, a stock lamp and two customizable tables.

    ``custom_table`` prices the standard build at 5750.00 and
    ``dining_table`` at 10000.00.
    """
    item_repo = item_repo or ItemRepository()
    return {
        "chair": item_repo.create(name="Chair", price=Decimal("1000.00"), stock=10),
        "lamp": item_repo.create(name="Lamp", price=Decimal("500.00"), stock=5),
        "custom_table": item_repo.create(
            name="Custom Table",
            price=Decimal("4000.00"),
            is_customizable=True,
            customization_options=narra_options(),
            stock=100,
        ),
        "dining_table": item_repo.create(
            name="Dining Table",
            price=Decimal("9000.00"),
            is_customizable=True,
            customization_options=narra_options(overhead_cost="3700"),
            stock=100,
        ),
    }


def sign(body: bytes, secret: str, timestamp: str = "1700000000", key: str = "te") -> str:
    """Build a webhook signature header for body."""
    digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + body, hashlib.sha256).hexdigest()
    return f"t={timestamp},{key}={digest}"
