"""
Mock patch stream for deterministic testing and UX timing simulation.

Streams golden JSONL files as raw byte chunks of a fixed size, so chunk
boundaries land mid-line (and mid-character) the way a network transport
delivers them. Used in tests (instant profile) and demos (realistic profiles).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

GOLDEN_DIR = Path(__file__).parent / "tests" / "fixtures" / "golden"

DELAY_PROFILES: dict[str, dict[str, int]] = {
    "instant": {"think_ms": 0, "per_chunk_ms": 0},
    "realistic": {"think_ms": 400, "per_chunk_ms": 30},
    "slow": {"think_ms": 1500, "per_chunk_ms": 150},
}


class MockStream:
    """Streams golden files as byte chunks with configurable delays."""

    def __init__(self, golden_dir: Path = GOLDEN_DIR):
        self.golden_dir = golden_dir

    def read(self, scenario: str) -> bytes:
        path = self.golden_dir / f"{scenario}.jsonl"
        if not path.exists():
            raise FileNotFoundError(f"Golden file not found: {path}")
        return path.read_bytes()

    async def stream(
        self,
        scenario: str,
        chunk_size: int = 64,
        profile: str = "instant",
    ) -> AsyncIterator[bytes]:
        """
        Stream a golden file in chunk_size byte slices.

        Args:
            scenario: Golden file name without extension (e.g., "signup_form")
            chunk_size: Bytes per chunk; 1 splits every character
            profile: Delay profile ("instant", "realistic", "slow")

        Yields:
            Consecutive byte slices of the golden file

        Raises:
            FileNotFoundError: If the golden file does not exist
            ValueError: If the profile is not recognized or chunk_size < 1
        """
        delays = DELAY_PROFILES.get(profile)
        if delays is None:
            raise ValueError(f"Unknown delay profile: {profile!r}. Valid profiles: {list(DELAY_PROFILES)}")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        data = self.read(scenario)

        # Think time before first chunk
        if delays["think_ms"] > 0:
            await asyncio.sleep(delays["think_ms"] / 1000)

        for offset in range(0, len(data), chunk_size):
            yield data[offset : offset + chunk_size]

            # Per-chunk delay after each chunk except the last
            if offset + chunk_size < len(data) and delays["per_chunk_ms"] > 0:
                await asyncio.sleep(delays["per_chunk_ms"] / 1000)

    def list_scenarios(self) -> list[str]:
        """Return names of all available golden file scenarios."""
        return sorted(p.stem for p in self.golden_dir.glob("*.jsonl"))
