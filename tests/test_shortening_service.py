"""Shortening service tests: request validation, custom codes, and generated codes."""

import asyncio
import datetime
from unittest.mock import MagicMock, patch

import httpx
import pytest

from shortlink.enums import LogLevel, LogPackage, LogStack
from shortlink.exceptions import (
    DuplicateKeyError,
    InvalidShortcodeError,
    InvalidUrlError,
    InvalidValidityError,
    ShortcodeExhaustedError,
    ShortcodeTakenError,
    StoreUnavailableError,
)
from shortlink.remote_logger import RemoteLogger
from shortlink.shortening_service import ShorteningService


# ============================================================================
# CREATION
# ============================================================================


@pytest.mark.asyncio
async def test_create_with_generated_code(shortening_service, memory_store, clock) -> None:
    created = await shortening_service.create_short_url("https://example.com/a", validity=10)

    assert len(created.shortcode) == 6
    assert created.short_link == f"http://sho.rt/{created.shortcode}"
    assert created.expires_at == clock() + datetime.timedelta(minutes=10)

    record = await memory_store.find_by_shortcode(created.shortcode)
    assert record.original_url == "https://example.com/a"
    assert record.created_at == clock()
    assert record.clicks == []


@pytest.mark.asyncio
async def test_default_validity_is_thirty_minutes(shortening_service, clock) -> None:
    created = await shortening_service.create_short_url("https://example.com")
    assert created.expires_at == clock() + datetime.timedelta(minutes=30)


@pytest.mark.asyncio
@pytest.mark.parametrize("validity", ["", "   "])
async def test_blank_validity_uses_default(shortening_service, clock, validity) -> None:
    created = await shortening_service.create_short_url("https://example.com", validity=validity)
    assert created.expires_at == clock() + datetime.timedelta(minutes=30)


@pytest.mark.asyncio
async def test_validity_digit_string_accepted(shortening_service, clock) -> None:
    created = await shortening_service.create_short_url("https://example.com", validity="15")
    assert created.expires_at == clock() + datetime.timedelta(minutes=15)


@pytest.mark.asyncio
async def test_create_with_custom_code(shortening_service, memory_store) -> None:
    created = await shortening_service.create_short_url("https://example.com", shortcode="MyCode1")

    assert created.shortcode == "MyCode1"
    assert created.short_link == "http://sho.rt/MyCode1"
    assert await memory_store.exists("MyCode1")


@pytest.mark.asyncio
async def test_blank_custom_code_generates_one(shortening_service) -> None:
    created = await shortening_service.create_short_url("https://example.com", shortcode="")
    assert len(created.shortcode) == 6


@pytest.mark.asyncio
async def test_custom_code_taken(shortening_service, memory_store) -> None:
    await shortening_service.create_short_url("https://example.com/first", shortcode="abc123")

    with pytest.raises(ShortcodeTakenError):
        await shortening_service.create_short_url("https://example.com/second", shortcode="abc123")

    record = await memory_store.find_by_shortcode("abc123")
    assert record.original_url == "https://example.com/first"


@pytest.mark.asyncio
async def test_concurrent_custom_code_claims(shortening_service) -> None:
    results = await asyncio.gather(
        *(shortening_service.create_short_url(f"https://example.com/{i}", shortcode="shared") for i in range(10)),
        return_exceptions=True,
    )

    assert sum(1 for r in results if isinstance(r, ShortcodeTakenError)) == 9
    assert sum(1 for r in results if not isinstance(r, Exception)) == 1


@pytest.mark.asyncio
async def test_many_generated_codes_are_unique(shortening_service, memory_store) -> None:
    results = await asyncio.gather(
        *(shortening_service.create_short_url(f"https://example.com/{i}") for i in range(100))
    )

    assert len({r.shortcode for r in results}) == 100
    assert len(memory_store) == 100


# ============================================================================
# VALIDATION
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("url", [None, "", "   ", "not-a-url", "example", "ftp//broken", 42])
async def test_invalid_url_rejected(shortening_service, memory_store, url) -> None:
    with pytest.raises(InvalidUrlError):
        await shortening_service.create_short_url(url)
    assert len(memory_store) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("validity", [0, -5, "-5", "abc", "10.5", 1.5, True, 10**9])
async def test_invalid_validity_rejected(shortening_service, memory_store, validity) -> None:
    with pytest.raises(InvalidValidityError):
        await shortening_service.create_short_url("https://example.com", validity=validity)
    assert len(memory_store) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("shortcode", ["ab", "a" * 13, "my-code", "abc 12", "health", "Metrics", 1234])
async def test_invalid_shortcode_rejected(shortening_service, memory_store, shortcode) -> None:
    with pytest.raises(InvalidShortcodeError):
        await shortening_service.create_short_url("https://example.com", shortcode=shortcode)
    assert len(memory_store) == 0


def test_build_command(shortening_service) -> None:
    command = shortening_service.build_command(" https://example.com ", "5", " code42 ")

    assert command.original_url == "https://example.com"
    assert command.validity_minutes == 5
    assert command.custom_shortcode == "code42"


# ============================================================================
# GENERATED CODE RACES AND STORE FAILURES
# ============================================================================


@pytest.mark.asyncio
async def test_lost_insert_race_is_retried(shortening_service, memory_store) -> None:
    real_insert = memory_store.insert
    calls = []

    async def flaky_insert(record):
        calls.append(record.shortcode)
        if len(calls) == 1:
            raise DuplicateKeyError("claimed by a concurrent request")
        await real_insert(record)

    with patch.object(memory_store, "insert", side_effect=flaky_insert):
        created = await shortening_service.create_short_url("https://example.com")

    assert len(calls) == 2
    assert created.shortcode == calls[1]
    assert await memory_store.exists(created.shortcode)


@pytest.mark.asyncio
async def test_repeated_insert_races_exhaust(shortening_service, memory_store) -> None:
    with patch.object(memory_store, "insert", side_effect=DuplicateKeyError("always taken")):
        with pytest.raises(ShortcodeExhaustedError):
            await shortening_service.create_short_url("https://example.com")


@pytest.mark.asyncio
async def test_store_unavailable_propagates(shortening_service, memory_store) -> None:
    with patch.object(memory_store, "insert", side_effect=StoreUnavailableError("down")):
        with pytest.raises(StoreUnavailableError):
            await shortening_service.create_short_url("https://example.com")


# ============================================================================
# REMOTE LOGGING
# ============================================================================


@pytest.mark.asyncio
async def test_remote_log_event_on_success(memory_store, generator, settings, clock) -> None:
    remote = MagicMock(spec=RemoteLogger)
    service = ShorteningService(memory_store, generator, settings, remote_logger=remote, clock=clock)

    created = await service.create_short_url("https://example.com")

    remote.log.assert_called_once_with(
        LogStack.BACKEND, LogLevel.INFO, LogPackage.SERVICE, f"Short URL created: {created.short_link}"
    )


@pytest.mark.asyncio
async def test_remote_log_event_on_failure(memory_store, generator, settings, clock) -> None:
    remote = MagicMock(spec=RemoteLogger)
    service = ShorteningService(memory_store, generator, settings, remote_logger=remote, clock=clock)

    with pytest.raises(InvalidUrlError):
        await service.create_short_url("nope")

    args = remote.log.call_args.args
    assert args[1] == LogLevel.ERROR


@pytest.mark.asyncio
async def test_remote_log_failure_does_not_fail_creation(memory_store, generator, settings, clock) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("collector down", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as http_client:
        remote = RemoteLogger("http://collector.test/logs", client=http_client)
        service = ShorteningService(memory_store, generator, settings, remote_logger=remote, clock=clock)

        created = await service.create_short_url("https://example.com")
        await remote.drain()

    assert await memory_store.exists(created.shortcode)
