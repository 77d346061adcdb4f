"""
JSONL stream parser for model output.

Buffers streaming text until newlines and parses each complete line into a
patch dict. Blank lines, // comments, and lines that are not a JSON object
are skipped; the model's formatting noise never aborts a stream.
"""

from __future__ import annotations

import json
import logging

from jsonui.config import settings

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "//"


def parse_patch_line(line: str) -> dict | None:
    """
    Parse one line into a patch dict.

    Returns None for blank lines, comments, malformed JSON, and JSON values
    that are not objects.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_PREFIX):
        return None
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError:
        logger.debug("jsonl_parser: skipping malformed line: %r", stripped[: settings.LOG_LINE_PREVIEW])
        return None
    if not isinstance(parsed, dict):
        logger.debug("jsonl_parser: skipping non-object line: %r", stripped[: settings.LOG_LINE_PREVIEW])
        return None
    return parsed


class JSONLParser:
    """
    Parses streaming JSONL from model output.

    Accumulates partial chunks in a buffer, emits complete parsed lines
    as they become available. Chunk boundaries may fall anywhere, including
    mid-line.
    """

    def __init__(self) -> None:
        self.buffer = ""

    def feed(self, chunk: str) -> list[dict]:
        """
        Feed a text chunk (may be partial), return any complete parsed lines.

        Args:
            chunk: Raw text from the stream

        Returns:
            List of patch dicts for each complete JSONL line
        """
        self.buffer += chunk
        if "\n" not in self.buffer:
            return []

        *lines, self.buffer = self.buffer.split("\n")
        patches = []
        for line in lines:
            patch = parse_patch_line(line)
            if patch is not None:
                patches.append(patch)
        return patches

    def flush(self) -> list[dict]:
        """
        Flush any remaining content in the buffer as a final line.

        Call this after the stream ends to handle output with no trailing newline.

        Returns:
            List of patch dicts (0 or 1 items)
        """
        remaining = self.buffer
        self.buffer = ""
        patch = parse_patch_line(remaining)
        return [patch] if patch is not None else []
