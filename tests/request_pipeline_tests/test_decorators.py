import logging
from functools import partial

import pytest
from request_pipeline.chain import Chain
from request_pipeline.decorators import (
    HandlerDecorator, LoggingDecorator, PayloadTransformDecorator, TimingDecorator, decorate,
)
from request_pipeline.handler import Handler
from request_pipeline.request import HandlerResult, Request


class Core(Handler):
    def process(self, request):
        request.payload["trace"].append("H")
        return HandlerResult.CONTINUE


class Tracing(HandlerDecorator):
    def __init__(self, inner, label):
        super().__init__(inner)
        self.label = label

    def before(self, request):
        request.payload["trace"].append(f"{self.label}-before")

    def after(self, request, result):
        request.payload["trace"].append(f"{self.label}-after")
        return result


@pytest.mark.unit
def test_nesting_preserves_stack_discipline():
    handler = decorate(Core(), partial(Tracing, label="A"), partial(Tracing, label="B"))
    payload = {"trace": []}
    handler.handle(Request(payload))
    assert payload["trace"] == ["B-before", "A-before", "H", "A-after", "B-after"]


@pytest.mark.unit
def test_decorator_is_transparent_inside_a_chain():
    class Tail(Handler):
        def process(self, request):
            request.payload["trace"].append("tail")
            return HandlerResult.HANDLED

    payload = {"trace": []}
    result = Chain().add_handlers(Tracing(Core(), "A"), Tail()).execute(Request(payload))
    assert payload["trace"] == ["A-before", "H", "A-after", "tail"]
    assert result is HandlerResult.HANDLED


@pytest.mark.unit
def test_decorator_name_and_inner():
    core = Core()
    wrapped = LoggingDecorator(core)
    assert wrapped.inner is core
    assert wrapped.name == "LoggingDecorator(Core)"


@pytest.mark.unit
def test_logging_decorator_traces_tag_and_result(caplog):
    caplog.set_level(logging.INFO, logger="request_pipeline.decorators")
    LoggingDecorator(Core(), tag="notification").handle(Request({"trace": []}))
    messages = [r.getMessage() for r in caplog.records]
    assert "[LogDecorator (notification)] Before executing Core" in messages
    assert "[LogDecorator (notification)] After executing Core. Result: CONTINUE" in messages


@pytest.mark.unit
def test_timing_decorator_measures_delegated_call(monkeypatch):
    ticks = iter([1.0, 1.25])
    monkeypatch.setattr("request_pipeline.decorators.time.perf_counter", lambda: next(ticks, 1.25))
    seen = []
    timed = TimingDecorator(Core(), on_timing=lambda name, ms: seen.append((name, ms)))
    assert timed.handle(Request({"trace": []})) is HandlerResult.CONTINUE
    assert timed.last_elapsed_ms == pytest.approx(250.0)
    assert list(timed.samples) == [pytest.approx(250.0)]
    assert seen == [("Core", pytest.approx(250.0))]


@pytest.mark.unit
def test_timing_decorator_records_even_when_inner_raises():
    class Boom(Handler):
        def process(self, request):
            raise RuntimeError("boom")

    timed = TimingDecorator(Boom())
    with pytest.raises(RuntimeError):
        timed.handle(Request(None))
    assert len(timed.samples) == 1


@pytest.mark.unit
def test_payload_transform_runs_before_inner_handler():
    class SeesFlag(Handler):
        def process(self, request):
            request.set_result(request.payload["compressed"])
            return HandlerResult.HANDLED

    def mark_compressed(payload):
        payload["compressed"] = True

    req = Request({"compressed": False})
    handler = PayloadTransformDecorator(SeesFlag(), mark_compressed)
    assert handler.name == "mark_compressed(SeesFlag)"
    handler.handle(req)
    assert req.get_result(bool) is True


class GatedOff(Handler):
    def __init__(self):
        super().__init__()
        self.gate_calls = 0

    def can_handle(self, request):
        self.gate_calls += 1
        return False

    def process(self, request):
        request.payload["trace"].append("gated")
        return HandlerResult.HANDLED


class Tail(Handler):
    def process(self, request):
        request.payload["trace"].append("tail")
        return HandlerResult.HANDLED


@pytest.mark.unit
@pytest.mark.parametrize("wrap", [
    LoggingDecorator,
    TimingDecorator,
    partial(Tracing, label="A"),
    lambda h: decorate(h, partial(Tracing, label="A"), LoggingDecorator),
])
def test_decorated_gate_passes_request_on_like_undecorated(wrap):
    plain = {"trace": []}
    Chain().add_handlers(GatedOff(), Tail()).execute(Request(plain))

    gated = GatedOff()
    decorated = {"trace": []}
    result = Chain().add_handlers(wrap(gated), Tail()).execute(Request(decorated))

    assert decorated["trace"] == plain["trace"] == ["tail"]
    assert result is HandlerResult.HANDLED
    assert gated.gate_calls == 1


@pytest.mark.unit
def test_decorated_gate_on_last_handler_is_terminal_handled():
    payload = {"trace": []}
    result = Chain().add_handlers(Tracing(Core(), "A"), Tracing(GatedOff(), "B")).execute(Request(payload))
    assert payload["trace"] == ["A-before", "H", "A-after"]
    assert result is HandlerResult.HANDLED


@pytest.mark.unit
def test_timing_samples_keep_only_recent_runs():
    timed = TimingDecorator(Core(), max_samples=3)
    for _ in range(5):
        timed.handle(Request({"trace": []}))
    assert len(timed.samples) == 3
