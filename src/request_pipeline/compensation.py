from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from request_pipeline.chain import Chain
from request_pipeline.decorators import HandlerDecorator, decorate
from request_pipeline.handler import Handler
from request_pipeline.request import EmptyChainError, FailureReport, HandlerResult, PipelineError, Request

__all__ = [
    "Compensatable",
    "CompensationError",
    "TransactionDecorator",
    "domain_failed",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ==========================
# Module: compensation
# Purpose: Application-level transactions. A handler that mutates shared state
#          exposes a compensating operation; a TransactionDecorator invokes it
#          when the wrapped stages end the run with a domain failure.
# ==========================


class CompensationError(PipelineError):
    """
    Raised when one or more compensations failed.

    :param message: Human-readable description of the failure.
    :param failures: Names of the handles whose compensation raised.
    """

    def __init__(self, message: str, failures: Sequence[str]) -> None:
        super().__init__(message)
        self.failures = list(failures)


class Compensatable(ABC):
    """
    Capability of a handler whose forward work can be undone.

    Not part of the Handler contract; invoked only by a TransactionDecorator
    that was given this instance at assembly time.
    """

    @abstractmethod
    def compensate(self, request: Request) -> bool:
        """
        Reverts the forward mutation recorded for this request.

        Must check request metadata first and do nothing if the forward
        mutation never took effect.

        :param request: The request whose run failed.
        :return: True if something was undone; False for a no-op.
        """


def domain_failed(request: Request) -> bool:
    """
    Default failure predicate: the payload reported a domain failure.

    :param request: The request after the wrapped stages ran.
    """
    payload = request.payload
    return isinstance(payload, FailureReport) and not payload.is_successful


class TransactionDecorator(HandlerDecorator[T]):
    """
    Compensates explicit handles when the wrapped stages end in failure.

    After delegation, a HANDLED result combined with `failed(request)` rolls
    back every handle in reverse order. Any other outcome is a commit.
    Exceptions raised by the wrapped stages are not caught.

    :param inner: Handler (usually a ChainHead) to run inside the transaction.
    :param compensations: Handles to roll back, in forward order.
    :param failed: Predicate reading the shared failure flag.
    """

    def __init__(
        self,
        inner: Handler[T],
        compensations: Iterable[Compensatable],
        failed: Callable[[Request[T]], bool] = domain_failed,
    ) -> None:
        super().__init__(inner)
        self._compensations: List[Compensatable] = list(compensations)
        self._failed = failed

    @classmethod
    def around_chain(
        cls,
        chain: Chain[T],
        failed: Callable[[Request[T]], bool] = domain_failed,
        wrap: Sequence[Callable[[Handler[T]], Handler[T]]] = (),
    ) -> "TransactionDecorator[T]":
        """
        Wraps a whole chain, taking its Compensatable members as the handles.

        :param chain: Non-empty chain to run inside the transaction.
        :param failed: Predicate reading the shared failure flag.
        :param wrap: Extra decorators applied to the chain head, innermost first.
        :raises EmptyChainError: If the chain has no handlers.
        """
        head = chain.build()
        if head is None:
            raise EmptyChainError("Cannot wrap an empty chain in a transaction.")
        handles = [h for h in chain.get_handlers() if isinstance(h, Compensatable)]
        return cls(decorate(head, *wrap), handles, failed)

    @property
    def compensations(self) -> List[Compensatable]:
        return list(self._compensations)

    def before(self, request: Request[T]) -> None:
        logger.info("[Transaction] Begin transaction")

    def after(self, request: Request[T], result: HandlerResult) -> HandlerResult:
        if result is HandlerResult.HANDLED and self._failed(request):
            self.rollback(request)
            return HandlerResult.HANDLED
        logger.info("[Transaction] Commit transaction")
        return result

    def rollback(self, request: Request[T]) -> None:
        """
        Invokes every compensation in reverse order.

        All handles are attempted even if one raises; failures are then
        reported together.

        :raises CompensationError: If any compensation raised.
        """
        logger.warning("[Transaction] Rollback initiated due to handler failure")
        failures: List[str] = []
        first_exc: Optional[Exception] = None
        for handle in reversed(self._compensations):
            label = getattr(handle, "name", type(handle).__name__)
            try:
                undone = handle.compensate(request)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Compensation failed for '%s': %r", label, exc)
                failures.append(label)
                first_exc = first_exc or exc
                continue
            logger.info("[Transaction] %s: %s", label, "compensated" if undone else "nothing to undo")
        if first_exc is not None:
            raise CompensationError(
                f"Rollback incomplete for: {', '.join(failures)}", failures
            ) from first_exc
