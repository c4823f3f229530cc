"""Incremental decoder for ``text/event-stream`` response bodies."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

logger = logging.getLogger(__name__)

_DATA_PREFIX = "data: "
_DONE_MARKER = "[DONE]"


async def iter_sse_data(text_chunks: AsyncIterable[str]) -> AsyncIterator[Any]:
    """Yield the JSON payload of every ``data:`` line in an SSE body.

    Reads may split a line anywhere, so text is buffered and only complete
    lines are processed; the trailing partial line waits for the next read.
    Payloads that are not valid JSON are skipped. A ``[DONE]`` payload ends
    the iteration without reading the rest of the body.

    Args:
        text_chunks: Decoded body text, in whatever pieces the transport
            delivered it.

    Yields:
        Parsed JSON values, in body order.
    """
    buffer = ""
    async for piece in text_chunks:
        buffer += piece
        *lines, buffer = buffer.split("\n")

        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith(_DATA_PREFIX):
                continue
            payload = line[len(_DATA_PREFIX):].strip()
            if not payload:
                continue
            if payload == _DONE_MARKER:
                return
            try:
                event = json.loads(payload)
            except json.JSONDecodeError:
                logger.debug("Skipping unparsable SSE frame: %.200s", payload)
                continue
            yield event
