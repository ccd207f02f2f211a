from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet, Iterable, List

from request_pipeline.handler import Handler
from request_pipeline.request import FailureReport, HandlerResult, Request

__all__ = ["PurchaseOrderLine", "PurchaseOrder", "PurchaseOrderValidationHandler"]

logger = logging.getLogger(__name__)

KNOWN_PRODUCTS = ("Prod1", "Prod2", "Prod3")


@dataclass
class PurchaseOrderLine:
    product_name: str
    quantity: int = 1
    unit_price: Decimal = Decimal("0")


@dataclass
class PurchaseOrder(FailureReport):
    """
    :ivar doc_code: Document code; orders that already carry one are not revalidated.
    """
    id: int
    doc_code: str = ""
    total_amount: Decimal = Decimal("0")
    lines: List[PurchaseOrderLine] = field(default_factory=list)


class PurchaseOrderValidationHandler(Handler[PurchaseOrder]):
    """
    Accepts new purchase orders whose lines reference known products.

    Unknown products are reported as a domain failure, not raised.

    :param catalog: Product names that exist.
    """

    def __init__(self, catalog: Iterable[str] = KNOWN_PRODUCTS) -> None:
        super().__init__()
        self._catalog: FrozenSet[str] = frozenset(catalog)

    def process(self, request: Request[PurchaseOrder]) -> HandlerResult:
        order = request.payload
        # Already documented or empty-valued orders need no validation.
        if order.doc_code.strip() or order.total_amount <= 0:
            return HandlerResult.HANDLED

        unknown = [line.product_name for line in order.lines if line.product_name not in self._catalog]
        if unknown:
            order.fail(f"Unknown products: {', '.join(unknown)}")
            logger.warning("[%s] Purchase order %d rejected", self.name, order.id)
            return HandlerResult.HANDLED
        return HandlerResult.CONTINUE
