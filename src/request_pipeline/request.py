"""
request.py — the unit of work carried through a handler chain.

A Request wraps the caller's payload together with two same-run channels:

  - a single result slot (last write wins) used by cooperating handlers,
    e.g. alternative payment gateways reporting a provisional outcome;
  - a metadata mapping keyed by members of a pipeline-declared Enum, used
    to signal facts such as "inventory reserved" to later stages.

Requests are created per invocation and discarded when the run returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar

__all__ = [
    "HandlerResult",
    "PipelineError",
    "EmptyChainError",
    "ResultNotSetError",
    "ResultTypeError",
    "MetadataKeyError",
    "FailureReport",
    "Request",
]

T = TypeVar("T")
R = TypeVar("R")


# ---------- Outcome ----------

class HandlerResult(Enum):
    """Tri-state outcome returned by a handler.

    HANDLED stops the pipeline. CONTINUE and SKIP both move on to the next
    handler; SKIP only differs in how the step is reported.
    """
    HANDLED = auto()
    CONTINUE = auto()
    SKIP = auto()


# ---------- Errors ----------

class PipelineError(RuntimeError):
    """
    Base class for configuration/programming errors raised by the pipeline.
    """


class EmptyChainError(PipelineError):
    """
    Raised when executing a chain that has no handlers.
    """


class ResultNotSetError(PipelineError):
    """
    Raised when reading a request's result slot before any handler set it.
    """


class ResultTypeError(PipelineError):
    """
    Raised when the result slot holds a value of an unexpected type.

    :param expected: Type the caller asked for.
    :param actual: Value actually stored in the slot.
    """

    def __init__(self, expected: type, actual: Any) -> None:
        super().__init__(
            f"Result is {type(actual).__name__}, expected {expected.__name__}."
        )
        self.expected = expected
        self.actual = actual


class MetadataKeyError(TypeError):
    """
    Raised when a metadata key is not a member of an Enum.
    """


# ---------- Domain failure channel ----------

@dataclass
class FailureReport:
    """
    Payload base for pipelines that report expected domain failures.

    Handlers call `fail` and return HandlerResult.HANDLED instead of raising.

    :ivar is_successful: False once any handler reported a failure.
    :ivar errors: One message per reported failure, in report order.
    """
    is_successful: bool = field(default=True, kw_only=True)
    errors: List[str] = field(default_factory=list, kw_only=True)

    def fail(self, message: str) -> None:
        """
        Marks the run as failed and records the message.

        :param message: Human-readable reason.
        """
        self.is_successful = False
        self.errors.append(message)


_UNSET: Any = object()


# ---------- Request ----------

class Request(Generic[T]):
    """
    Mutable request passed by reference through every handler of one run.

    :param payload: The caller's data; handlers may mutate it in place.
    :param context: Optional caller-supplied values available to all handlers.
    """

    def __init__(self, payload: T, context: Optional[Dict[str, Any]] = None) -> None:
        self.payload = payload
        self.context: Dict[str, Any] = context if context is not None else {}
        self._result: Any = _UNSET
        self._metadata: Dict[Enum, Any] = {}

    def __repr__(self) -> str:
        result = "<unset>" if self._result is _UNSET else repr(self._result)
        return f"Request(payload={self.payload!r}, result={result})"

    # Result slot

    def set_result(self, value: Any) -> None:
        """
        Stores a value in the result slot, replacing any previous one.

        :param value: Any value, including None.
        """
        self._result = value

    def get_result(self, expected_type: Optional[Type[R]] = None) -> R:
        """
        Reads the result slot.

        :param expected_type: When given, the stored value must be an instance of it.
        :return: The stored value.
        :raises ResultNotSetError: If no handler has set a result yet.
        :raises ResultTypeError: If the value is not of `expected_type`.
        """
        if self._result is _UNSET:
            raise ResultNotSetError("Result not set.")
        if expected_type is not None and not isinstance(self._result, expected_type):
            raise ResultTypeError(expected_type, self._result)
        return self._result

    def has_result(self) -> bool:
        return self._result is not _UNSET

    def peek_result(self, default: Any = None) -> Any:
        """
        Reads the result slot without failing.

        :param default: Returned when the slot has not been set.
        """
        return default if self._result is _UNSET else self._result

    # Metadata

    @staticmethod
    def _check_key(key: Any) -> None:
        if not isinstance(key, Enum):
            raise MetadataKeyError(
                f"Metadata keys must be Enum members, got {type(key).__name__}: {key!r}"
            )

    def add_metadata(self, key: Enum, value: Any) -> None:
        """
        Records a fact for later handlers in this run.

        :param key: Member of the pipeline's metadata Enum.
        :param value: Associated value.
        :raises MetadataKeyError: If `key` is not an Enum member.
        """
        self._check_key(key)
        self._metadata[key] = value

    def get_metadata(self, key: Enum, default: Any = None) -> Any:
        self._check_key(key)
        return self._metadata.get(key, default)

    def has_metadata(self, key: Enum) -> bool:
        self._check_key(key)
        return key in self._metadata

    def discard_metadata(self, key: Enum) -> None:
        """Removes a fact if present."""
        self._check_key(key)
        self._metadata.pop(key, None)

    @property
    def metadata(self) -> Mapping[Enum, Any]:
        """
        :return: Read-only view of the metadata mapping.
        """
        return MappingProxyType(self._metadata)
