"""
UI stream client.

Sends a prompt to a generator endpoint and builds the UI tree from the JSONL
patch stream it answers with, committing a snapshot after every applied
patch.

    ui = UIStream("https://example.com/api/generate", on_data_patch=store.apply_data_patch)
    ui.subscribe(lambda tree: render(tree))
    await ui.send("a login form")

Calling send() again while a stream is in flight aborts the older one. Every
invocation carries a generation number and only the newest generation may
commit, so late snapshots from an aborted stream never overwrite the newer
tree. Aborts are silent; transport failures land in `error` and on_error.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from contextlib import aclosing
from typing import Any

import httpx

from jsonui.config import settings
from jsonui.kernel.tree import empty_tree
from jsonui.services.patch_stream import AbortController, DataPatchSink, PatchStreamProcessor

logger = logging.getLogger(__name__)

TreeListener = Callable[[dict[str, Any] | None], None]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StreamHTTPError(Exception):
    """The generator endpoint answered with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response) -> StreamHTTPError:
        message = f"HTTP error: {response.status_code}"
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        if isinstance(body, dict):
            if body.get("message"):
                message = str(body["message"])
            elif body.get("error"):
                message = str(body["error"])
        return cls(response.status_code, message)


def seed_tree(context: dict[str, Any] | None) -> dict[str, Any]:
    """Start from context["previousTree"] when it has a root, else from an empty tree."""
    previous = (context or {}).get("previousTree")
    if isinstance(previous, dict) and previous.get("root"):
        return {**previous, "elements": dict(previous.get("elements") or {})}
    return empty_tree()


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class UIStream:
    """Streams UI patches from a generator endpoint into a reactive tree."""

    def __init__(
        self,
        api: str | None = None,
        client: httpx.AsyncClient | None = None,
        on_complete: Callable[[dict[str, Any]], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        on_data_patch: DataPatchSink | None = None,
        is_known_type: Callable[[str], bool] | None = None,
    ) -> None:
        self.api = api or settings.API_URL
        self._client = client
        self._owns_client = client is None
        self.on_complete = on_complete
        self.on_error = on_error
        self.on_data_patch = on_data_patch
        self.is_known_type = is_known_type

        self.tree: dict[str, Any] | None = None
        self.is_streaming = False
        self.error: Exception | None = None

        self._generation = 0
        self._controller: AbortController | None = None
        self._task: asyncio.Task | None = None
        self._listeners: list[TreeListener] = []

    async def __aenter__(self) -> UIStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # -----------------------------------------------------------------------
    # Reactive tree
    # -----------------------------------------------------------------------

    def subscribe(self, listener: TreeListener) -> Callable[[], None]:
        """Register a listener called with every committed tree; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_tree(self, tree: dict[str, Any] | None) -> None:
        self.tree = tree
        for listener in list(self._listeners):
            listener(tree)

    def _commit(self, generation: int, tree: dict[str, Any]) -> bool:
        if generation != self._generation:
            return False
        self._set_tree(tree)
        return True

    # -----------------------------------------------------------------------
    # Control
    # -----------------------------------------------------------------------

    def abort(self) -> None:
        """Stop the in-flight stream, if any. Never reported as an error."""
        if self._controller is not None:
            self._controller.abort("superseded")
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def clear(self) -> None:
        self.error = None
        self._set_tree(None)

    async def aclose(self) -> None:
        self.abort()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            timeout = httpx.Timeout(settings.READ_TIMEOUT, connect=settings.CONNECT_TIMEOUT)
            self._client = httpx.AsyncClient(timeout=timeout)
        return self._client

    # -----------------------------------------------------------------------
    # Send
    # -----------------------------------------------------------------------

    async def send(self, prompt: str, context: dict[str, Any] | None = None) -> None:
        """
        Stream a new tree for prompt. Returns when the stream completes,
        fails, or is superseded by a newer send().
        """
        self.abort()
        self._generation += 1
        generation = self._generation
        controller = AbortController()
        self._controller = controller

        self.is_streaming = True
        self.error = None
        tree = seed_tree(context)
        self._commit(generation, tree)

        task = asyncio.ensure_future(self._run(generation, controller, prompt, context, tree))
        self._task = task
        try:
            final_tree = await task
        except asyncio.CancelledError:
            if controller.aborted:
                logger.debug("ui_stream: generation %d aborted", generation)
                return
            raise
        except Exception as exc:
            if controller.aborted or generation != self._generation:
                logger.debug("ui_stream: ignoring failure of aborted generation %d: %s", generation, exc)
                return
            logger.warning("ui_stream: stream failed: %s", exc)
            self.error = exc
            if self.on_error is not None:
                self.on_error(exc)
        else:
            if generation == self._generation and not controller.aborted:
                logger.info("ui_stream: generation %d complete, %d elements", generation, len(final_tree["elements"]))
                if self.on_complete is not None:
                    self.on_complete(final_tree)
        finally:
            if generation == self._generation:
                self.is_streaming = False
                self._task = None

    async def _run(
        self,
        generation: int,
        controller: AbortController,
        prompt: str,
        context: dict[str, Any] | None,
        tree: dict[str, Any],
    ) -> dict[str, Any]:
        processor = PatchStreamProcessor(
            tree=tree,
            on_data_patch=self.on_data_patch,
            is_known_type=self.is_known_type,
            signal=controller,
        )
        body = {"prompt": prompt, "context": context, "currentTree": tree}

        async with self._get_client().stream(
            "POST",
            self.api,
            json=body,
            headers={"Accept": "application/x-ndjson, text/plain"},
        ) as response:
            if response.is_error:
                await response.aread()
                raise StreamHTTPError.from_response(response)

            async with aclosing(processor.stream(response.aiter_bytes())) as snapshots:
                async for snapshot in snapshots:
                    if not self._commit(generation, snapshot):
                        controller.abort("superseded")
                        break

        return processor.tree
