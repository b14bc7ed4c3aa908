"""Server-Sent Events framing for streamed chat fragments."""

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable

from errors import UpstreamError

logger = logging.getLogger(__name__)

DONE_EVENT = "data: [DONE]\n\n"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(payload: dict | str) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def _close(fragments: AsyncIterator[str]) -> None:
    aclose = getattr(fragments, "aclose", None)
    if aclose is not None:
        await aclose()


async def open_stream(fragments: AsyncIterator[str]) -> AsyncGenerator[str, None]:
    """
    Pull the first fragment eagerly so that an upstream failure raises here,
    while an ordinary error response can still be sent, instead of after the
    stream headers have gone out.
    """
    try:
        first = await fragments.__anext__()
    except StopAsyncIteration:
        first = None

    async def _chained() -> AsyncGenerator[str, None]:
        try:
            if first is None:
                return
            yield first
            async for fragment in fragments:
                yield fragment
        finally:
            await _close(fragments)

    return _chained()


async def event_stream(
    fragments: AsyncIterator[str],
    *,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncGenerator[str, None]:
    """
    Frame each fragment as ``data: {"content": ...}`` and finish with ``[DONE]``.

    Once headers are out the status code is fixed, so an upstream failure
    mid-stream just ends the stream without the terminator. A client that
    went away stops the upstream read.
    """
    try:
        async for fragment in fragments:
            if is_disconnected is not None and await is_disconnected():
                logger.info("Client disconnected, aborting upstream stream")
                return
            yield format_event({"content": fragment})
        yield DONE_EVENT
    except UpstreamError as e:
        logger.warning("Chat stream ended early: %s", e)
    finally:
        await _close(fragments)
