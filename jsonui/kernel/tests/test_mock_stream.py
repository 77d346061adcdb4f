"""Tests for MockStream — deterministic byte chunking with configurable delays."""

from __future__ import annotations

import time
from pathlib import Path

import pytest

from jsonui.kernel.mock_stream import GOLDEN_DIR, MockStream

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_stream() -> MockStream:
    """MockStream pointed at the real golden directory."""
    return MockStream()


@pytest.fixture
def mock_stream_tmp(tmp_path: Path) -> MockStream:
    """MockStream pointed at a temporary directory for custom fixtures."""
    return MockStream(golden_dir=tmp_path)


async def collect(stream) -> list[bytes]:
    return [chunk async for chunk in stream]


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_chunks_reassemble_to_file(mock_stream: MockStream) -> None:
    """Concatenated chunks equal the golden file bytes."""
    chunks = await collect(mock_stream.stream("signup_form", chunk_size=7))
    assert b"".join(chunks) == (GOLDEN_DIR / "signup_form.jsonl").read_bytes()
    assert all(len(c) <= 7 for c in chunks)


@pytest.mark.asyncio
async def test_chunk_size_one_splits_multibyte_characters(mock_stream: MockStream) -> None:
    """Single-byte chunks cut through UTF-8 sequences; each chunk is one byte."""
    chunks = await collect(mock_stream.stream("signup_form", chunk_size=1))
    assert all(len(c) == 1 for c in chunks)
    assert any(c[0] >= 0x80 for c in chunks)


@pytest.mark.asyncio
async def test_large_chunk_yields_whole_file(mock_stream_tmp: MockStream, tmp_path: Path) -> None:
    (tmp_path / "tiny.jsonl").write_text('{"op":"set","path":"/root","value":"a"}\n')
    chunks = await collect(mock_stream_tmp.stream("tiny", chunk_size=4096))
    assert len(chunks) == 1


# ---------------------------------------------------------------------------
# Profiles and errors
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_instant_profile_no_delay(mock_stream: MockStream) -> None:
    """Instant profile completes in under 200ms even with one-byte chunks."""
    start = time.perf_counter()
    await collect(mock_stream.stream("signup_form", chunk_size=1, profile="instant"))
    assert time.perf_counter() - start < 0.2


@pytest.mark.asyncio
async def test_unknown_profile_raises(mock_stream: MockStream) -> None:
    with pytest.raises(ValueError, match="Unknown delay profile"):
        await collect(mock_stream.stream("signup_form", profile="warp"))


@pytest.mark.asyncio
async def test_bad_chunk_size_raises(mock_stream: MockStream) -> None:
    with pytest.raises(ValueError, match="chunk_size"):
        await collect(mock_stream.stream("signup_form", chunk_size=0))


@pytest.mark.asyncio
async def test_missing_scenario_raises(mock_stream: MockStream) -> None:
    with pytest.raises(FileNotFoundError):
        await collect(mock_stream.stream("does_not_exist"))


def test_list_scenarios(mock_stream: MockStream) -> None:
    scenarios = mock_stream.list_scenarios()
    assert {"card_with_text", "signup_form", "out_of_order"} <= set(scenarios)
    assert scenarios == sorted(scenarios)
