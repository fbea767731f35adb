"""Tests for random shortcode generation and the bounded uniqueness loop."""

from unittest.mock import AsyncMock, patch

import pytest

from shortlink.exceptions import ShortcodeExhaustedError
from shortlink.generator import ALPHABET, ShortcodeGenerator
from shortlink.records import ShortURLRecord, utc_now
from shortlink.store import InMemoryURLRecordStore


def test_generate_default_length(generator: ShortcodeGenerator) -> None:
    code = generator.generate()
    assert len(code) == 6
    assert all(c in ALPHABET for c in code)


def test_generate_custom_length(generator: ShortcodeGenerator) -> None:
    assert len(generator.generate(10)) == 10


def test_alphabet_is_alphanumeric() -> None:
    assert len(ALPHABET) == 62
    assert ALPHABET.isalnum()


def test_generate_is_random(generator: ShortcodeGenerator) -> None:
    codes = {generator.generate() for _ in range(1000)}
    assert len(codes) == 1000


def test_candidate_lengths() -> None:
    assert ShortcodeGenerator(length=6, fallback_length=10).candidate_lengths() == [6, 10]
    assert ShortcodeGenerator(length=8, fallback_length=8).candidate_lengths() == [8]


def test_invalid_configuration_rejected() -> None:
    with pytest.raises(AssertionError):
        ShortcodeGenerator(length=0)
    with pytest.raises(AssertionError):
        ShortcodeGenerator(length=8, fallback_length=6)
    with pytest.raises(AssertionError):
        ShortcodeGenerator(max_attempts=0)


@pytest.mark.asyncio
async def test_generate_unique_skips_taken_codes(generator: ShortcodeGenerator) -> None:
    store = InMemoryURLRecordStore()
    await store.insert(ShortURLRecord(shortcode="taken1", original_url="https://example.com", created_at=utc_now()))

    with patch.object(generator, "generate", side_effect=["taken1", "taken1", "fresh1"]):
        code = await generator.generate_unique(store)

    assert code == "fresh1"


@pytest.mark.asyncio
async def test_generate_unique_falls_back_to_longer_codes(generator: ShortcodeGenerator) -> None:
    store = AsyncMock()
    store.exists.side_effect = [True] * generator.max_attempts + [False]

    code = await generator.generate_unique(store)

    assert len(code) == generator.fallback_length
    assert store.exists.await_count == generator.max_attempts + 1


@pytest.mark.asyncio
async def test_generate_unique_exhausted(generator: ShortcodeGenerator) -> None:
    store = AsyncMock()
    store.exists.return_value = True

    with patch.object(generator, "generate", wraps=generator.generate) as spy:
        with pytest.raises(ShortcodeExhaustedError):
            await generator.generate_unique(store)

    lengths = [c.args[0] for c in spy.call_args_list]
    assert lengths == [6] * generator.max_attempts + [10] * generator.max_attempts
    assert store.exists.await_count == 2 * generator.max_attempts
