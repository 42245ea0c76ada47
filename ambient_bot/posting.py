"""The one "generate and post" operation shared by the scheduler and /ambient_post_now."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from ambient_bot.generator import AmbientContext, AmbientGenerator
from ambient_bot.models import ConfigDocument, now_iso

logger = logging.getLogger(__name__)


class Destination(Protocol):
    """A place text can be sent to, e.g. a Discord text channel."""

    name: str

    async def send(self, content: str) -> object: ...


class ChannelResolver(Protocol):
    async def resolve(self, channel_id: str) -> Destination | None:
        """Return the destination, or None when it is gone or not postable."""
        ...


async def post_to_channel(
    channel_id: str,
    doc: ConfigDocument,
    *,
    resolver: ChannelResolver,
    generator: AmbientGenerator,
    clock: Callable[[], str] = now_iso,
) -> bool:
    """Generate and send one ambient message for channel_id.

    Returns False without side effects if the channel cannot be resolved or
    is not configured and enabled. On success stamps lastPostedAt in doc;
    the caller saves. Generation and send errors propagate.
    """
    destination = await resolver.resolve(channel_id)
    if destination is None:
        logger.debug("channel %s unavailable, skipping", channel_id)
        return False

    config = doc.channels.get(channel_id)
    if config is None or not config.enabled:
        logger.debug("channel %s not enabled, skipping", channel_id)
        return False

    message = await generator.generate(AmbientContext(
        location_name=config.location,
        lore=config.lore,
        criteria=config.criteria,
        channel_name=getattr(destination, "name", None) or "unknown",
        danger_level=config.danger or "low",
    ))

    await destination.send(message)
    config.last_posted_at = clock()
    logger.info("posted to channel %s (%d chars)", channel_id, len(message))
    return True
