"""
chain.py — ordered, mutable collection of handlers and the execution entry point.

Members run strictly in insertion order. Every mutation rebuilds the link
snapshot (an immutable tuple) from scratch; traversals iterate the snapshot
that was current when they started.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from request_pipeline.handler import Handler, traverse
from request_pipeline.request import EmptyChainError, HandlerResult, Request

__all__ = ["Chain", "ChainHead"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChainHead(Handler[T]):
    """
    Handler-like view of a chain, as materialized by `Chain.build`.

    Processing it runs the whole captured chain, so an outer decorator can
    wrap a chain as a single unit.

    :param links: Snapshot of chain members at build time (non-empty).
    """

    def __init__(self, links: Tuple[Handler[T], ...]) -> None:
        super().__init__(name=links[0].name)
        self._links = links

    @property
    def head(self) -> Handler[T]:
        """
        :return: First member of the captured chain.
        """
        return self._links[0]

    @property
    def links(self) -> Tuple[Handler[T], ...]:
        return self._links

    def process(self, request: Request[T]) -> HandlerResult:
        return traverse(self._links, request)


class Chain(Generic[T]):
    """
    Ordered sequence of handlers wired into a single continuation path.

    Mutating methods (except `execute`) return the chain for fluent use:

        chain = Chain().add_handler(a).add_handlers(b, c)
    """

    def __init__(self) -> None:
        self._handlers: List[Handler[T]] = []
        self._links: Tuple[Handler[T], ...] = ()
        self._head: Optional[ChainHead[T]] = None

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[Handler[T]]:
        return iter(self._links)

    def __contains__(self, handler: object) -> bool:
        return any(h is handler for h in self._handlers)

    def _relink(self) -> None:
        """Replace the link snapshot wholesale from the member list."""
        self._links = tuple(self._handlers)
        self._head = ChainHead(self._links) if self._links else None

    # ---------- Configuration ----------

    def add_handler(self, handler: Handler[T]) -> "Chain[T]":
        """
        Appends a handler.

        :param handler: Handler to append.
        :return: This chain.
        """
        self._handlers.append(handler)
        self._relink()
        return self

    def add_handlers(self, *handlers: Handler[T]) -> "Chain[T]":
        """
        Appends handlers in the given order.

        :return: This chain.
        """
        self._handlers.extend(handlers)
        self._relink()
        return self

    def remove_handler(self, handler: Handler[T]) -> "Chain[T]":
        """
        Removes a handler by identity. Removing a non-member is a no-op.

        :param handler: Member to remove.
        :return: This chain.
        """
        self._handlers = [h for h in self._handlers if h is not handler]
        self._relink()
        return self

    def remove_handlers_of_type(self, kind: Type[Handler[Any]]) -> "Chain[T]":
        """
        Removes every member that is an instance of `kind`.

        :param kind: Handler class to drop.
        :return: This chain.
        """
        self._handlers = [h for h in self._handlers if not isinstance(h, kind)]
        self._relink()
        return self

    def clear(self) -> "Chain[T]":
        """
        Drops all members and the head.

        :return: This chain.
        """
        self._handlers.clear()
        self._links = ()
        self._head = None
        return self

    # ---------- Inspection ----------

    def build(self) -> Optional[ChainHead[T]]:
        """
        Materializes the current head so the chain can be wrapped as one handler.

        :return: A ChainHead over the current members, or None when empty.
        """
        self._relink()
        return self._head

    def get_handlers(self) -> Tuple[Handler[T], ...]:
        """
        :return: Immutable snapshot of the members, in order.
        """
        return self._links

    # ---------- Execution ----------

    def execute(self, request: Request[T]) -> HandlerResult:
        """
        Runs the request through the chain.

        :param request: Request shared by all handlers.
        :return: The terminal result.
        :raises EmptyChainError: If the chain has no handlers.
        """
        links = self._links
        if not links:
            raise EmptyChainError("Chain is empty. Add handlers first.")
        logger.debug("Executing chain of %d handler(s) starting at %s", len(links), links[0].name)
        return traverse(links, request)

    def execute_payload(
        self, payload: T, context: Optional[Dict[str, Any]] = None
    ) -> Tuple[HandlerResult, Request[T]]:
        """
        Wraps a payload in a fresh Request and executes it.

        :param payload: Data to process.
        :param context: Optional caller-supplied values.
        :return: Tuple of (terminal result, the request after the run).
        """
        request = Request(payload, context)
        return self.execute(request), request
