"""
Chain of Responsibility (Behavioral)

Intent:
    Pass a request along an ordered sequence of handlers; each handler decides
    whether it applies, processes the request, and either stops the run or
    lets the next handler continue.

Participants:
    - Handler (abstract): gate (`can_handle`) + unit of work (`process`).
    - traverse: walks an ordered tuple of handlers with a position counter.
    - Chain (see chain.py): owns the ordered members and starts traversals.

Notes:
    - Handlers keep no reference to their successor. The order lives in the
      tuple given to `traverse`, so one handler instance may sit in several
      chains at once.
    - Exceptions raised by a handler propagate unchanged to the caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Generic, Optional, Sequence, TypeVar

from request_pipeline.request import HandlerResult, Request

__all__ = ["Handler", "traverse"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Handler(ABC, Generic[T]):
    """Abstract unit of request processing.

    Subclasses implement `process` and may override `can_handle`.

    :param name: Display name used in logs; defaults to the class name.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        self._name = name or type(self).__name__

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._name!r}>"

    def can_handle(self, request: Request[T]) -> bool:
        """Gate evaluated once per visit, before `process`.

        :param request: The request being processed.
        :return: True to run `process`; False to pass the request on untouched.
        """
        return True

    @abstractmethod
    def process(self, request: Request[T]) -> HandlerResult:
        """Perform this handler's work.

        May mutate the payload, the result slot and the metadata.

        :param request: The request being processed.
        :return: HANDLED to stop the run; CONTINUE or SKIP to move on.
        """
        raise NotImplementedError

    def handle(self, request: Request[T]) -> HandlerResult:
        """Run this handler as a one-element chain.

        :param request: The request being processed.
        :return: The terminal result.
        """
        return traverse((self,), request)


def traverse(handlers: Sequence[Handler[T]], request: Request[T], start: int = 0) -> HandlerResult:
    """Walk `handlers` from position `start` until one stops the run.

    At each position the gate is checked once. A rejected handler is passed
    over; a rejected last handler ends the run as HANDLED. Otherwise the
    handler's result is returned when it is HANDLED or when no handler
    follows, and CONTINUE/SKIP advance to the next position.

    :param handlers: Ordered handlers; the caller must not mutate it during the walk.
    :param request: Request shared by all handlers.
    :param start: Position to begin at.
    :return: The terminal result.
    """
    last = len(handlers) - 1
    position = start
    while True:
        handler = handlers[position]
        if not handler.can_handle(request):
            logger.debug("%s declined request", handler.name)
            if position == last:
                return HandlerResult.HANDLED
            position += 1
            continue

        result = handler.process(request)
        if result is HandlerResult.SKIP:
            logger.debug("%s skipped", handler.name)
        else:
            logger.debug("%s -> %s", handler.name, result.name)

        if result is HandlerResult.HANDLED or position == last:
            return result
        position += 1
