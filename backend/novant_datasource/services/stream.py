"""Push-stream channel.

Only the ``stream`` path can be subscribed to. It emits synthetic values
on a fixed timer; nothing is read from the Novant API.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Callable

from ..schemas.models import Frame, FrameField, PublishStreamResponse, SubscribeStreamResponse

LOGGER = logging.getLogger(__name__)

STREAM_PATH = "stream"


def subscribe_stream(path: str) -> SubscribeStreamResponse:
    LOGGER.info("SubscribeStream called for path %r", path)
    if path == STREAM_PATH:
        return SubscribeStreamResponse(status="OK")
    return SubscribeStreamResponse(status="PERMISSION_DENIED")


def publish_stream(path: str) -> PublishStreamResponse:
    LOGGER.info("PublishStream called for path %r", path)
    return PublishStreamResponse(status="PERMISSION_DENIED")


async def run_stream(
    path: str,
    interval: float = 1.0,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> AsyncIterator[Frame]:
    """Yield a one-row frame every ``interval`` seconds until the consumer stops.

    The same frame object is updated in place and yielded each tick.
    """
    LOGGER.info("RunStream called for path %r", path)
    frame = Frame(
        fields=[
            FrameField(name="time", type="time", values=[clock()]),
            FrameField(name="values", type="number", values=[0]),
        ]
    )
    counter = 0
    try:
        while True:
            await asyncio.sleep(interval)
            frame.fields[0].values[0] = clock()
            frame.fields[1].values[0] = 10 * (counter % 2 + 1)
            counter += 1
            yield frame
    finally:
        LOGGER.info("Context done, finish streaming %r", path)
