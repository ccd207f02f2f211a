"""
order_processing.py — e-commerce order pipeline built on the request pipeline.

Flow:
    Validate -> Payment (fallback group of gateways)
             -> Transaction[ Timing[ Inventory -> Fulfillment ] ]
             -> Logged Notification

Each handler reports expected failures through OrderContext.fail and returns
HANDLED. The inventory stage reserves stock in a shared table and can be
compensated by the transaction when a later stage fails.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, auto
from typing import Deque, Dict, List, Optional

from request_pipeline.chain import Chain
from request_pipeline.compensation import Compensatable, TransactionDecorator
from request_pipeline.decorators import LoggingDecorator, TimingDecorator
from request_pipeline.handler import Handler
from request_pipeline.request import FailureReport, HandlerResult, Request
from request_pipeline.scenarios.delays import NO_DELAY, SimulatedDelay
from request_pipeline.sub_chain import FallbackGroup, failed_previously

__all__ = [
    "PaymentMethod",
    "Customer",
    "OrderItem",
    "PaymentInfo",
    "Order",
    "OrderContext",
    "OrderFact",
    "STOCK",
    "OrderValidationHandler",
    "InventoryCheckHandler",
    "OrderFulfillmentHandler",
    "NotificationHandler",
    "PaymentProcessingHandler",
    "CreditCardGatewayHandler",
    "PaypalGatewayHandler",
    "CryptoGatewayHandler",
    "build_order_pipeline",
]

logger = logging.getLogger(__name__)


# ----------------------------- Domain ----------------------------------- #
class PaymentMethod(Enum):
    CREDIT_CARD = auto()
    PAYPAL = auto()
    CRYPTO = auto()


class OrderFact(Enum):
    """Facts the order pipeline records in request metadata."""
    INVENTORY_RESERVED = auto()


@dataclass
class Customer:
    name: str
    email: str


@dataclass
class OrderItem:
    product_id: str
    quantity: int
    unit_price: Decimal = Decimal("0")


@dataclass
class PaymentInfo:
    method: PaymentMethod
    card_number: str = ""
    email: str = ""
    wallet_address: str = ""


def _new_order_id() -> str:
    return f"ORD-{uuid.uuid4().hex[:8].upper()}"


@dataclass
class Order:
    """
    :ivar customer: Buyer; None is reported as a validation failure.
    :ivar items: Ordered lines.
    :ivar payment_info: How the buyer intends to pay.
    :ivar shipment_id: Set by fulfillment.
    """
    customer: Optional[Customer]
    items: List[OrderItem] = field(default_factory=list)
    payment_info: PaymentInfo = field(default_factory=lambda: PaymentInfo(PaymentMethod.CREDIT_CARD))
    id: str = field(default_factory=_new_order_id)
    shipment_id: Optional[str] = None

    @property
    def total_amount(self) -> Decimal:
        return sum((i.unit_price * i.quantity for i in self.items), Decimal("0"))


@dataclass
class OrderContext(FailureReport):
    """Payload of the order pipeline: the order plus the shared failure flag."""
    order: Order


# Process-wide stock table keyed by product id; mutated in place, no locking.
STOCK: Dict[str, int] = {"PROD-001": 10, "PROD-002": 50, "PROD-003": 20}


# ----------------------------- Main stages ------------------------------ #
class OrderValidationHandler(Handler[OrderContext]):
    """Checks customer and item presence; records one error per problem."""

    def process(self, request: Request[OrderContext]) -> HandlerResult:
        context = request.payload
        order = context.order
        logger.info("[%s] Validating order %s", self.name, order.id)

        if order.customer is None:
            context.fail("Customer information is missing.")
        elif "@" not in order.customer.email:
            context.fail(f"Invalid customer email: {order.customer.email}")

        if not order.items:
            context.fail("Order must contain at least one item.")

        if not context.is_successful:
            logger.warning("[%s] Validation failed", self.name)
            return HandlerResult.HANDLED

        logger.info("[%s] Validation passed", self.name)
        return HandlerResult.CONTINUE


class InventoryCheckHandler(Handler[OrderContext], Compensatable):
    """
    Reserves stock for every line, all or nothing.

    Lines for the same product are totalled before the check.

    :param stock: Stock table to reserve from; defaults to the shared STOCK.
    """

    def __init__(self, stock: Optional[Dict[str, int]] = None) -> None:
        super().__init__()
        self._stock = STOCK if stock is None else stock

    @staticmethod
    def _demand(order: Order) -> Counter:
        demand: Counter = Counter()
        for item in order.items:
            demand[item.product_id] += item.quantity
        return demand

    def process(self, request: Request[OrderContext]) -> HandlerResult:
        context = request.payload
        logger.info("[%s] Checking inventory", self.name)

        demand = self._demand(context.order)
        for product_id, quantity in demand.items():
            if self._stock.get(product_id, 0) < quantity:
                context.fail(f"Product '{product_id}' is out of stock or does not exist.")

        if not context.is_successful:
            logger.warning("[%s] Inventory check failed", self.name)
            return HandlerResult.HANDLED

        for product_id, quantity in demand.items():
            self._stock[product_id] -= quantity
        request.add_metadata(OrderFact.INVENTORY_RESERVED, True)
        logger.info("[%s] Inventory confirmed and reserved", self.name)
        return HandlerResult.CONTINUE

    def compensate(self, request: Request[OrderContext]) -> bool:
        if not request.get_metadata(OrderFact.INVENTORY_RESERVED, False):
            return False
        logger.warning("[%s] Reverting inventory reservation", self.name)
        for product_id, quantity in self._demand(request.payload.order).items():
            if product_id in self._stock:
                self._stock[product_id] += quantity
        request.discard_metadata(OrderFact.INVENTORY_RESERVED)
        return True


class OrderFulfillmentHandler(Handler[OrderContext]):
    """
    Creates a shipment for the order.

    :param delay: Simulated preparation time.
    """

    def __init__(self, delay: SimulatedDelay = NO_DELAY) -> None:
        super().__init__()
        self._delay = delay

    def process(self, request: Request[OrderContext]) -> HandlerResult:
        order = request.payload.order
        logger.info("[%s] Preparing for fulfillment", self.name)
        self._delay.wait()
        order.shipment_id = f"SHP-{uuid.uuid4().hex[:12].upper()}"
        logger.info("[%s] Shipment %s created", self.name, order.shipment_id)
        return HandlerResult.CONTINUE


class NotificationHandler(Handler[OrderContext]):
    """
    Sends the confirmation; skips sending for failed orders.

    :param delay: Simulated send time.
    :param history: How many recent recipients `sent_to` keeps.
    """

    def __init__(self, delay: SimulatedDelay = NO_DELAY, history: int = 100) -> None:
        super().__init__()
        self._delay = delay
        self.sent_to: Deque[str] = deque(maxlen=history)

    def process(self, request: Request[OrderContext]) -> HandlerResult:
        context = request.payload
        if not context.is_successful:
            return HandlerResult.HANDLED

        email = context.order.customer.email
        logger.info("[%s] Sending confirmation to %s", self.name, email)
        self._delay.wait()
        self.sent_to.append(email)
        return HandlerResult.HANDLED


# ----------------------------- Payment sub-chain ------------------------ #
class PaymentProcessingHandler(FallbackGroup[OrderContext]):
    """Runs the configured gateways; fails the order if none approves."""

    def add_gateway(self, gateway: Handler[OrderContext]) -> "PaymentProcessingHandler":
        self.add(gateway)
        return self

    def prepare(self, request: Request[OrderContext]) -> None:
        logger.info("[%s] Starting payment processing for %s", self.name,
                    request.payload.order.total_amount)
        super().prepare(request)

    def on_exhausted(self, request: Request[OrderContext]) -> None:
        request.payload.fail("All payment gateways failed.")


class CreditCardGatewayHandler(Handler[OrderContext]):
    """Primary gateway for card payments. Cards starting with 9999 are declined."""

    def __init__(self, delay: SimulatedDelay = NO_DELAY) -> None:
        super().__init__()
        self._delay = delay

    def can_handle(self, request: Request[OrderContext]) -> bool:
        return request.payload.order.payment_info.method is PaymentMethod.CREDIT_CARD

    def process(self, request: Request[OrderContext]) -> HandlerResult:
        logger.info("  -> [%s] Trying credit card", self.name)
        if request.payload.order.payment_info.card_number.startswith("9999"):
            logger.warning("  -> [%s] Card declined", self.name)
            request.set_result(False)
            return HandlerResult.CONTINUE

        self._delay.wait()
        logger.info("  -> [%s] Payment approved", self.name)
        request.set_result(True)
        return HandlerResult.HANDLED


class PaypalGatewayHandler(Handler[OrderContext]):
    """Primary gateway for PayPal, and the fallback after any declined attempt."""

    def __init__(self, delay: SimulatedDelay = NO_DELAY) -> None:
        super().__init__()
        self._delay = delay

    def can_handle(self, request: Request[OrderContext]) -> bool:
        is_primary = request.payload.order.payment_info.method is PaymentMethod.PAYPAL
        return is_primary or failed_previously(request)

    def process(self, request: Request[OrderContext]) -> HandlerResult:
        logger.info("  -> [%s] Trying PayPal", self.name)
        self._delay.wait()
        logger.info("  -> [%s] PayPal payment successful", self.name)
        request.set_result(True)
        return HandlerResult.HANDLED


class CryptoGatewayHandler(Handler[OrderContext]):
    """
    :param admin_wallet: Address the buyer is asked to pay to.
    """

    def __init__(self, admin_wallet: str) -> None:
        super().__init__()
        self.admin_wallet = admin_wallet

    def can_handle(self, request: Request[OrderContext]) -> bool:
        return request.payload.order.payment_info.method is PaymentMethod.CRYPTO

    def process(self, request: Request[OrderContext]) -> HandlerResult:
        logger.info("  -> [%s] Trying crypto, payment to %s", self.name, self.admin_wallet)
        request.set_result(True)
        return HandlerResult.HANDLED


# ----------------------------- Builder ---------------------------------- #
def build_order_pipeline(
    stock: Optional[Dict[str, int]] = None,
    delay: SimulatedDelay = NO_DELAY,
) -> Chain[OrderContext]:
    """
    Builds the canonical order pipeline.

    :param stock: Stock table for the inventory stage; defaults to STOCK.
    :param delay: Simulated delay used by slow stages.
    :return: Ready-to-execute chain.
    """
    payment = PaymentProcessingHandler() \
        .add_gateway(CreditCardGatewayHandler(delay)) \
        .add_gateway(PaypalGatewayHandler(delay)) \
        .add_gateway(CryptoGatewayHandler("BTC-Wallet-Address"))

    operations = Chain[OrderContext]() \
        .add_handler(InventoryCheckHandler(stock)) \
        .add_handler(OrderFulfillmentHandler(delay))

    return Chain[OrderContext]().add_handlers(
        OrderValidationHandler(),
        payment,
        TransactionDecorator.around_chain(operations, wrap=[TimingDecorator]),
        LoggingDecorator(NotificationHandler(delay), tag="notification"),
    )


# ------------------------------- Demo ----------------------------------- #
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    pipeline = build_order_pipeline(delay=SimulatedDelay(0.1))

    orders = {
        "Successful order": Order(
            Customer("Hoang Le", "hoang.le@example.com"),
            [OrderItem("PROD-001", 1, Decimal("999.99")), OrderItem("PROD-002", 2, Decimal("49.50"))],
            PaymentInfo(PaymentMethod.CREDIT_CARD, card_number="1234-5678-9876-5432"),
        ),
        "Validation failure": Order(
            Customer("Anonymous", "invalid-email"),
            [OrderItem("PROD-999", 1, Decimal("10.0"))],
            PaymentInfo(PaymentMethod.PAYPAL, email="anon@paypal.com"),
        ),
        "Payment failover": Order(
            Customer("Charlie", "charlie@example.com"),
            [OrderItem("PROD-003", 5, Decimal("25.00"))],
            PaymentInfo(PaymentMethod.CREDIT_CARD, card_number="9999-9999-9999-9999"),
        ),
    }
    for title, order in orders.items():
        print(f"--- {title} ---")
        _, req = pipeline.execute_payload(OrderContext(order=order))
        ctx = req.payload
        print(f"Order {order.id}: {'SUCCESS' if ctx.is_successful else 'FAILED'}")
        if ctx.is_successful:
            print(f"Shipment ID: {order.shipment_id}")
        for error in ctx.errors:
            print(f"  - {error}")
