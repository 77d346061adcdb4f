"""
jsonui configuration — all environment variables in one place.

Read from environment at runtime. Every setting has a default so the kernel
works without any configuration.
"""

from __future__ import annotations

import os


class Settings:
    """Settings from JSONUI_* environment variables."""

    # Generator endpoint that streams JSONL patches back
    API_URL: str = os.environ.get("JSONUI_API_URL", "http://localhost:3000/api/generate")

    # Streaming request timeouts (seconds). Read timeout covers gaps between chunks.
    READ_TIMEOUT: float = float(os.environ.get("JSONUI_READ_TIMEOUT", "60"))
    CONNECT_TIMEOUT: float = float(os.environ.get("JSONUI_CONNECT_TIMEOUT", "10"))

    # What happens when a second confirm-requiring action arrives: "queue" or "replace"
    CONFIRMATION_POLICY: str = os.environ.get("JSONUI_CONFIRMATION_POLICY", "queue")

    # Longest malformed line echoed into the logs
    LOG_LINE_PREVIEW: int = int(os.environ.get("JSONUI_LOG_LINE_PREVIEW", "200"))


# Singleton instance
settings = Settings()
