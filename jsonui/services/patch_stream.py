"""
Patch stream processor.

Turns an ordered sequence of text (or byte) chunks into tree snapshots,
one snapshot per patch that changed the tree, while the stream is still
arriving:

    processor = PatchStreamProcessor(on_data_patch=store.apply_data_patch)
    async for tree in processor.stream(response.aiter_bytes()):
        render(tree)

Patches with a dataPath go to the data sink, never to the reducer. Once the
processor's AbortController is aborted nothing more is emitted and the
source is closed.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any

from jsonui.kernel.reducer import reduce
from jsonui.kernel.tree import empty_tree
from jsonui.services.jsonl_parser import JSONLParser

logger = logging.getLogger(__name__)

DataPatchSink = Callable[[dict[str, Any]], None]


async def _next_or_end(iterator: AsyncIterator[str | bytes]) -> tuple[bool, str | bytes | None]:
    """(True, chunk) for the next chunk, (False, None) once the source is exhausted."""
    try:
        return True, await iterator.__anext__()
    except StopAsyncIteration:
        return False, None


class AbortController:
    """One-shot cancellation signal shared between a stream and its owner."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self, reason: str = "aborted") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


class PatchStreamProcessor:
    """
    Folds parsed patch lines through the reducer.

    One instance per streaming invocation: it owns the line buffer, the
    UTF-8 decoder state, and the tree being built.
    """

    def __init__(
        self,
        tree: dict[str, Any] | None = None,
        on_data_patch: DataPatchSink | None = None,
        is_known_type: Callable[[str], bool] | None = None,
        signal: AbortController | None = None,
    ) -> None:
        self.tree = tree if tree is not None else empty_tree()
        self.on_data_patch = on_data_patch
        self.is_known_type = is_known_type
        self.signal = signal or AbortController()
        self.parser = JSONLParser()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.applied = 0
        self.skipped = 0

    # -----------------------------------------------------------------------
    # Synchronous feeding
    # -----------------------------------------------------------------------

    def feed(self, chunk: str | bytes) -> list[dict[str, Any]]:
        """Feed one chunk; return the snapshots produced by its complete lines."""
        if self.signal.aborted:
            return []
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        return self._apply(self.parser.feed(chunk))

    def finish(self) -> list[dict[str, Any]]:
        """Process whatever is left in the buffer once the source is exhausted."""
        if self.signal.aborted:
            return []
        patches = self.parser.feed(self._decoder.decode(b"", final=True))
        patches.extend(self.parser.flush())
        return self._apply(patches)

    def _apply(self, patches: list[dict[str, Any]]) -> list[dict[str, Any]]:
        snapshots = []
        for patch in patches:
            if self.signal.aborted:
                break

            if patch.get("dataPath") is not None:
                if self.on_data_patch is not None:
                    self.on_data_patch(patch)
                else:
                    logger.debug("patch_stream: no data sink, dropping %r", patch)
                continue

            result = reduce(self.tree, patch, self.is_known_type)
            if result.tree is self.tree:
                self.skipped += 1
                logger.debug("patch_stream: patch not applied: %s", result.reason)
                continue

            self.tree = result.tree
            self.applied += 1
            snapshots.append(self.tree)
        return snapshots

    # -----------------------------------------------------------------------
    # Async streaming
    # -----------------------------------------------------------------------

    async def stream(self, source: AsyncIterable[str | bytes]) -> AsyncIterator[dict[str, Any]]:
        """
        Consume source and yield a snapshot after every applied patch.

        Stops as soon as the signal is aborted, even while a read is still
        pending; the remaining buffer is only processed when the source
        completes normally.
        """
        iterator = source.__aiter__()
        try:
            while not self.signal.aborted:
                more, chunk = await self._read(iterator)
                if self.signal.aborted or not more:
                    break
                for snapshot in self.feed(chunk):
                    if self.signal.aborted:
                        return
                    yield snapshot
            if self.signal.aborted:
                return
        finally:
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()

        for snapshot in self.finish():
            if self.signal.aborted:
                return
            yield snapshot

        logger.debug("patch_stream: complete, applied=%d skipped=%d", self.applied, self.skipped)

    async def _read(self, iterator: AsyncIterator[str | bytes]) -> tuple[bool, str | bytes | None]:
        """Wait for the next chunk or for the abort signal, whichever comes first."""
        read = asyncio.ensure_future(_next_or_end(iterator))
        aborted = asyncio.ensure_future(self.signal.wait())
        try:
            await asyncio.wait({read, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (read, aborted):
                if not task.done():
                    task.cancel()
            # The source must be idle before it can be closed
            await asyncio.wait({read, aborted})

        if self.signal.aborted:
            if not read.cancelled() and read.exception() is not None:
                logger.debug("patch_stream: read failed after abort: %s", read.exception())
            logger.debug("patch_stream: aborted (%s)", self.signal.reason)
            return False, None
        return read.result()
