import asyncio
import json
import logging
import sys
import uuid

import pytest

from services.common.core.logging_config import CustomJsonFormatter
from services.common.core.request_context import (
    clear_request_id,
    generate_request_id,
    get_request_id,
    set_request_id,
)


def make_record(msg="Test message", **extra):
    record = logging.LogRecord(
        name="test-logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=None,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_request_context_basic():
    clear_request_id()
    assert get_request_id() is None

    rid = set_request_id("test-id")
    assert rid == "test-id"
    assert get_request_id() == "test-id"

    clear_request_id()
    assert get_request_id() is None


def test_generate_request_id_creates_uuid():
    req_id = generate_request_id()

    assert str(uuid.UUID(req_id)) == req_id
    assert get_request_id() == req_id
    assert generate_request_id() != req_id
    clear_request_id()


@pytest.mark.asyncio
async def test_request_context_isolation():
    async def task(name, delay):
        set_request_id(name)
        await asyncio.sleep(delay)
        return get_request_id()

    results = await asyncio.gather(task("rid-1", 0.02), task("rid-2", 0.01))
    assert results[0] == "rid-1"
    assert results[1] == "rid-2"


def test_custom_json_formatter():
    formatter = CustomJsonFormatter()

    # Without RequestID
    clear_request_id()
    output = json.loads(formatter.format(make_record()))
    assert output["message"] == "Test message"
    assert output["level"] == "INFO"
    assert output["logger"] == "test-logger"
    assert "request_id" not in output

    # With RequestID
    set_request_id("rid-123")
    output = json.loads(formatter.format(make_record()))
    assert output["request_id"] == "rid-123"

    clear_request_id()


def test_custom_json_formatter_includes_extra_fields():
    formatter = CustomJsonFormatter()

    record = make_record("GET / 200", method="GET", status=200, request_id="rid-extra")
    output = json.loads(formatter.format(record))

    assert output["method"] == "GET"
    assert output["status"] == 200
    assert output["request_id"] == "rid-extra"


def test_custom_json_formatter_includes_exception():
    formatter = CustomJsonFormatter()
    try:
        raise ValueError("boom")
    except ValueError:
        record = make_record()
        record.exc_info = sys.exc_info()

    output = json.loads(formatter.format(record))
    assert "ValueError: boom" in output["exception"]
