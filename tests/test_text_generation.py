"""Tests for the text generation boundary."""

import asyncio

import pytest

from grocery_health.errors import DependencyDegradedError
from grocery_health.services.retry import call_with_retry, status_code_from_exception
from grocery_health.services.text_generation import (
    TextGenerationService,
    extract_json_array,
    extract_json_object,
)
from tests.conftest import FakeTextClient


def test_extract_json_array_skips_prose() -> None:
    assert extract_json_array('Sure! ["a", "b"] and ["c"]') == ["a", "b"]
    assert extract_json_array('[not json] then ["x"]') == ["x"]
    assert extract_json_array("no json here") is None
    assert extract_json_array("") is None


def test_extract_json_object_handles_fences() -> None:
    reply = '```json\n{"servingsPerContainer": 2, "nested": {"a": 1}}\n```'

    assert extract_json_object(reply) == {
        "servingsPerContainer": 2,
        "nested": {"a": 1},
    }
    assert extract_json_object('["list"]') is None


def test_retry_recovers_from_one_failure() -> None:
    client = FakeTextClient(replies=[RuntimeError("timeout"), "ok"])
    service = TextGenerationService(client, retry_attempts=1, retry_delay_seconds=0)

    assert asyncio.run(service.generate("hello", action="test")) == "ok"
    assert len(client.calls) == 2


def test_failures_become_degraded_errors() -> None:
    client = FakeTextClient(replies=[RuntimeError("boom")])
    service = TextGenerationService(client, retry_attempts=0, retry_delay_seconds=0)

    with pytest.raises(DependencyDegradedError) as excinfo:
        asyncio.run(service.generate("hello", action="price estimate"))

    assert excinfo.value.action == "price estimate"


@pytest.mark.parametrize("reply", ["", "   ", "[]", "no array"])
def test_unusable_array_replies_degrade(reply: str) -> None:
    service = TextGenerationService(
        FakeTextClient(replies=[reply]), retry_attempts=0, retry_delay_seconds=0
    )

    with pytest.raises(DependencyDegradedError):
        asyncio.run(service.generate_json_array("list", action="alternatives"))


def test_slow_replies_time_out() -> None:
    class SlowClient:
        async def complete(self, messages: list[dict[str, str]]) -> str:
            await asyncio.sleep(1)
            return "late"

    service = TextGenerationService(
        SlowClient(), timeout_seconds=0.01, retry_attempts=0, retry_delay_seconds=0
    )

    with pytest.raises(DependencyDegradedError):
        asyncio.run(service.generate("hello", action="slow"))


def test_call_with_retry_reraises_last_error() -> None:
    attempts = 0

    async def failing() -> None:
        nonlocal attempts
        attempts += 1
        raise ValueError(f"attempt {attempts}")

    with pytest.raises(ValueError, match="attempt 3"):
        asyncio.run(
            call_with_retry(failing, action="test", attempts=2, delay_seconds=0)
        )


def test_status_code_from_exception() -> None:
    class WithResponse(Exception):
        response = type("Resp", (), {"status_code": 429})()

    class WithStatus(Exception):
        status_code = 500

    assert status_code_from_exception(WithResponse()) == "429"
    assert status_code_from_exception(WithStatus()) == "500"
    assert status_code_from_exception(RuntimeError()) == "n/a"
