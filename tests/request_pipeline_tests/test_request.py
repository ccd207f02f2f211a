from enum import Enum, auto

import pytest
from request_pipeline.request import (
    FailureReport, MetadataKeyError, Request, ResultNotSetError, ResultTypeError,
)


class Fact(Enum):
    RESERVED = auto()


@pytest.mark.unit
def test_reading_unset_result_fails():
    req = Request({"a": 1})
    assert req.has_result() is False
    with pytest.raises(ResultNotSetError):
        req.get_result()


@pytest.mark.unit
def test_result_slot_last_write_wins_and_none_is_a_value():
    req = Request(None)
    req.set_result(False)
    req.set_result(None)
    assert req.has_result() is True
    assert req.get_result() is None


@pytest.mark.unit
def test_typed_result_read():
    req = Request(None)
    req.set_result(True)
    assert req.get_result(bool) is True
    with pytest.raises(ResultTypeError):
        req.get_result(str)


@pytest.mark.unit
def test_peek_result_never_fails():
    req = Request(None)
    assert req.peek_result() is None
    assert req.peek_result(default="x") == "x"
    req.set_result(3)
    assert req.peek_result(default="x") == 3


@pytest.mark.unit
def test_metadata_requires_enum_keys():
    req = Request(None)
    req.add_metadata(Fact.RESERVED, True)
    assert req.has_metadata(Fact.RESERVED) and req.get_metadata(Fact.RESERVED) is True
    req.discard_metadata(Fact.RESERVED)
    assert req.get_metadata(Fact.RESERVED, "missing") == "missing"
    with pytest.raises(MetadataKeyError):
        req.add_metadata("reserved", True)


@pytest.mark.unit
def test_metadata_view_is_read_only():
    req = Request(None)
    req.add_metadata(Fact.RESERVED, 1)
    with pytest.raises(TypeError):
        req.metadata[Fact.RESERVED] = 2


@pytest.mark.unit
def test_context_defaults_to_empty_dict():
    assert Request(None).context == {}
    assert Request(None, {"trace_id": "t1"}).context["trace_id"] == "t1"


@pytest.mark.unit
def test_failure_report_records_one_message_per_failure():
    report = FailureReport()
    assert report.is_successful is True
    report.fail("first")
    report.fail("second")
    assert report.is_successful is False
    assert report.errors == ["first", "second"]
