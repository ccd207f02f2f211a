"""
decorators.py — handlers that wrap exactly one inner handler.

A decorator takes over the inner handler's gate, runs `before`, delegates
to the inner handler's `process`, then runs `after`. Wrapping H with A and
then with B gives the ordering

    B.before -> A.before -> H -> A.after -> B.after

Use `decorate(handler, *wrappers)` to build such stacks.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, Deque, Optional, TypeVar

from request_pipeline.handler import Handler
from request_pipeline.request import HandlerResult, Request

__all__ = [
    "HandlerDecorator",
    "LoggingDecorator",
    "TimingDecorator",
    "PayloadTransformDecorator",
    "decorate",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HandlerDecorator(Handler[T]):
    """
    Composite that wraps one inner handler and preserves the Handler contract.

    Subclasses override `before` and/or `after` rather than `process`. The
    inner gate is the decorator's gate, so a refused request passes on to the
    next handler exactly as it would without the decorator.

    :param inner: The wrapped handler (may itself be a decorator or a ChainHead).
    :param name: Optional display name; defaults to "<Class>(<inner name>)".
    """

    def __init__(self, inner: Handler[T], name: Optional[str] = None) -> None:
        super().__init__(name=name or f"{type(self).__name__}({inner.name})")
        self._inner = inner

    @property
    def inner(self) -> Handler[T]:
        return self._inner

    def before(self, request: Request[T]) -> None:
        """Hook run before delegation."""

    def after(self, request: Request[T], result: HandlerResult) -> HandlerResult:
        """
        Hook run after delegation.

        :return: The result reported to this decorator's caller.
        """
        return result

    def can_handle(self, request: Request[T]) -> bool:
        return self._inner.can_handle(request)

    def process(self, request: Request[T]) -> HandlerResult:
        self.before(request)
        result = self._inner.process(request)
        return self.after(request, result)


class LoggingDecorator(HandlerDecorator[T]):
    """
    Logs a trace before and after the inner handler runs.

    :param inner: Handler to wrap.
    :param tag: Optional label included in every line.
    """

    def __init__(self, inner: Handler[T], tag: str = "") -> None:
        super().__init__(inner)
        self._tag = tag

    @property
    def label(self) -> str:
        return f"LogDecorator ({self._tag})" if self._tag else "LogDecorator"

    def before(self, request: Request[T]) -> None:
        logger.info("[%s] Before executing %s", self.label, self.inner.name)

    def after(self, request: Request[T], result: HandlerResult) -> HandlerResult:
        logger.info("[%s] After executing %s. Result: %s", self.label, self.inner.name, result.name)
        return result


class TimingDecorator(HandlerDecorator[T]):
    """
    Measures wall-clock time spent in the inner handler.

    :param inner: Handler to wrap.
    :param on_timing: Optional callback receiving (handler name, elapsed milliseconds).
    :param max_samples: How many recent durations `samples` keeps.
    """

    def __init__(
        self,
        inner: Handler[T],
        on_timing: Optional[Callable[[str, float], None]] = None,
        max_samples: int = 100,
    ) -> None:
        super().__init__(inner)
        self._on_timing = on_timing
        self.last_elapsed_ms: Optional[float] = None
        self.samples: Deque[float] = deque(maxlen=max_samples)

    def process(self, request: Request[T]) -> HandlerResult:
        started = time.perf_counter()
        try:
            return super().process(request)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.last_elapsed_ms = elapsed_ms
            self.samples.append(elapsed_ms)
            logger.info("[PerfMonitor] %s executed in %.1fms", self.inner.name, elapsed_ms)
            if self._on_timing is not None:
                self._on_timing(self.inner.name, elapsed_ms)


class PayloadTransformDecorator(HandlerDecorator[T]):
    """
    Mutates the payload before delegating, so the inner handler sees the new state.

    :param inner: Handler to wrap.
    :param transform: Callable applied to `request.payload` in place.
    :param label: Name used in logs; defaults to the transform's name.
    """

    def __init__(
        self,
        inner: Handler[T],
        transform: Callable[[T], None],
        label: Optional[str] = None,
    ) -> None:
        self._label = label or getattr(transform, "__name__", "transform")
        super().__init__(inner, name=f"{self._label}({inner.name})")
        self._transform = transform

    def before(self, request: Request[T]) -> None:
        logger.info("[%s] Transforming payload before %s", self._label, self.inner.name)
        self._transform(request.payload)


def decorate(handler: Handler[T], *wrappers: Callable[[Handler[T]], Handler[T]]) -> Handler[T]:
    """
    Applies wrappers innermost first.

    `decorate(h, A, B)` is `B(A(h))`. Wrappers taking extra arguments can be
    passed as `functools.partial(LoggingDecorator, tag="x")` or a lambda.

    :param handler: Handler to wrap.
    :param wrappers: Callables turning a handler into a decorated handler.
    :return: The outermost handler.
    """
    for wrap in wrappers:
        handler = wrap(handler)
    return handler
