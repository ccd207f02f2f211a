from decimal import Decimal

import pytest
from request_pipeline.request import HandlerResult, Request
from request_pipeline.scenarios.purchase_order import (
    PurchaseOrder, PurchaseOrderLine, PurchaseOrderValidationHandler,
)


@pytest.mark.unit
def test_unknown_product_is_reported_not_raised():
    order = PurchaseOrder(1, total_amount=Decimal("10"), lines=[PurchaseOrderLine("Prod1"), PurchaseOrderLine("Nope")])
    assert PurchaseOrderValidationHandler().handle(Request(order)) is HandlerResult.HANDLED
    assert order.is_successful is False
    assert order.errors == ["Unknown products: Nope"]


@pytest.mark.unit
def test_known_products_continue():
    order = PurchaseOrder(2, total_amount=Decimal("10"), lines=[PurchaseOrderLine("Prod2")])
    assert PurchaseOrderValidationHandler().handle(Request(order)) is HandlerResult.CONTINUE
    assert order.is_successful is True


@pytest.mark.unit
def test_documented_or_zero_orders_are_not_validated():
    documented = PurchaseOrder(3, doc_code="PO-3", total_amount=Decimal("5"), lines=[PurchaseOrderLine("Nope")])
    empty = PurchaseOrder(4, lines=[PurchaseOrderLine("Nope")])
    handler = PurchaseOrderValidationHandler()
    assert handler.handle(Request(documented)) is HandlerResult.HANDLED
    assert handler.handle(Request(empty)) is HandlerResult.HANDLED
    assert documented.is_successful and empty.is_successful
