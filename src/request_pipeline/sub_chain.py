"""
sub_chain.py — handlers that own a private chain (hierarchical pipelines).

A SubChainHandler appears to its owner as one handler and runs its members
against the same request. FallbackGroup specializes it for "try B only if A
failed": the members' gates read the provisional outcome in the result slot.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple, TypeVar

from request_pipeline.chain import Chain
from request_pipeline.handler import Handler
from request_pipeline.request import HandlerResult, Request

__all__ = ["SubChainHandler", "FallbackGroup", "failed_previously"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


def failed_previously(request: Request) -> bool:
    """
    Pure gate helper for fallback members.

    :param request: The request being processed.
    :return: True only when the result slot is set and holds the boolean False.
    """
    return request.peek_result() is False


class SubChainHandler(Handler[T]):
    """
    Handler delegating its processing to a privately owned chain.

    :param name: Optional display name.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        super().__init__(name=name)
        self._chain: Chain[T] = Chain()

    def add(self, handler: Handler[T]) -> "SubChainHandler[T]":
        """
        Appends a member to the private chain.

        :param handler: Member handler.
        :return: This handler, for fluent assembly.
        """
        self._chain.add_handler(handler)
        return self

    @property
    def members(self) -> Tuple[Handler[T], ...]:
        return self._chain.get_handlers()

    def prepare(self, request: Request[T]) -> None:
        """Hook run before the private chain executes."""

    def conclude(self, request: Request[T], result: HandlerResult) -> HandlerResult:
        """
        Maps the private chain's result to this handler's result.

        :return: The private chain's result unchanged, by default.
        """
        return result

    def process(self, request: Request[T]) -> HandlerResult:
        self.prepare(request)
        result = self._chain.execute(request)
        return self.conclude(request, result)


class FallbackGroup(SubChainHandler[T]):
    """
    Sub-chain of alternatives where each member may admit itself after a failure.

    The result slot is seeded with False ("no success yet"). Members set it to
    True on success and return HANDLED; on failure they set False and return
    CONTINUE. Members meant as fallbacks admit themselves via
    `failed_previously(request)` in `can_handle`.
    """

    def prepare(self, request: Request[T]) -> None:
        request.set_result(False)

    def conclude(self, request: Request[T], result: HandlerResult) -> HandlerResult:
        if request.peek_result() is True:
            logger.info("[%s] An alternative succeeded", self.name)
            return HandlerResult.CONTINUE
        logger.warning("[%s] All alternatives failed", self.name)
        self.on_exhausted(request)
        return HandlerResult.HANDLED

    def on_exhausted(self, request: Request[T]) -> None:
        """Hook run when no member reported success."""
