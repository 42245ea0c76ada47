"""Command handlers, independent of the chat platform.

Each handler takes plain arguments (channel id, option values), reads or
mutates the store, and returns a Reply for the platform layer to deliver.
Every handler does its own load -> mutate -> save.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable

import httpx
from pydantic import BaseModel, ValidationError

from ambient_bot.generator import AmbientGenerator
from ambient_bot.models import DANGER_LEVELS, ChannelConfig, ConfigDocument, now_iso
from ambient_bot.posting import ChannelResolver, post_to_channel
from ambient_bot.storage import ConfigStore

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "channel-config.json"
GENERIC_FAILURE = "❌ Something went wrong. Check logs."

Downloader = Callable[[str], Awaitable[bytes]]


class Reply(BaseModel):
    """What to send back to the invoker."""

    content: str
    filename: str | None = None
    data: bytes | None = None
    ephemeral: bool = True


class ImportValidationError(ValueError):
    """An uploaded config was rejected; the message is shown to the user."""


async def download_attachment(url: str) -> bytes:
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(url)
            resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("attachment download failed: %s", e)
        raise ImportValidationError("Could not download the uploaded file.") from e
    return resp.content


def parse_import(raw: bytes | str) -> ConfigDocument:
    """Validate uploaded bytes as a config document."""
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportValidationError("That file is not valid JSON.") from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("channels"), dict):
        raise ImportValidationError(
            "JSON must contain a top-level object with a 'channels' object."
        )
    try:
        return ConfigDocument.model_validate(parsed)
    except ValidationError as e:
        raise ImportValidationError(
            f"Channel configs are malformed ({e.error_count()} problem(s))."
        ) from e


def format_config(config: ChannelConfig) -> str:
    return (
        f"Location: {config.location}\n"
        f"Danger: {config.danger}\n"
        f"Enabled: {'Yes' if config.enabled else 'No'}\n"
        f"Lore: {config.lore}\n"
        f"Criteria: {config.criteria}\n"
        f"Last posted: {config.last_posted_at or '(never)'}"
    )


class CommandRouter:
    def __init__(
        self,
        store: ConfigStore,
        *,
        resolver: ChannelResolver,
        generator: AmbientGenerator,
        downloader: Downloader = download_attachment,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._generator = generator
        self._downloader = downloader

    # ------------------------------------------------------------------
    # Channel configuration
    # ------------------------------------------------------------------

    async def set(
        self, channel_id: str, *, location: str, danger: str, lore: str, criteria: str,
    ) -> Reply:
        if danger not in DANGER_LEVELS:
            return Reply(content=f"❌ Danger must be one of: {', '.join(DANGER_LEVELS)}.")

        doc = self._store.load()
        existing = doc.channels.get(channel_id)
        if existing is None:
            existing = ChannelConfig(enabled=True)
        doc.channels[channel_id] = existing.model_copy(update={
            "location": location,
            "danger": danger,
            "lore": lore,
            "criteria": criteria,
            "updated_at": now_iso(),
        })
        self._store.save(doc)
        logger.info("channel %s configured: %s (%s)", channel_id, location, danger)
        return Reply(content="✅ Location configured.")

    def _set_enabled(self, channel_id: str, enabled: bool) -> None:
        doc = self._store.load()
        config = doc.channels.setdefault(channel_id, ChannelConfig())
        config.enabled = enabled
        config.updated_at = now_iso()
        self._store.save(doc)
        logger.info("channel %s %s", channel_id, "enabled" if enabled else "disabled")

    async def enable(self, channel_id: str) -> Reply:
        self._set_enabled(channel_id, True)
        return Reply(content="✅ Enabled for this channel.")

    async def disable(self, channel_id: str) -> Reply:
        self._set_enabled(channel_id, False)
        return Reply(content="🛑 Disabled for this channel.")

    async def show(self, channel_id: str) -> Reply:
        config = self._store.load().channels.get(channel_id)
        if config is None:
            return Reply(content="No config set yet. Use /ambient_set.")
        return Reply(content=format_config(config))

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    async def post_now(self, channel_id: str) -> Reply:
        doc = self._store.load()
        try:
            await post_to_channel(
                channel_id, doc, resolver=self._resolver, generator=self._generator,
            )
            self._store.save(doc)
        except Exception as e:
            logger.exception("post_now failed for channel %s", channel_id)
            return Reply(content=f"❌ Failed: {str(e) or 'Check bot logs.'}")
        return Reply(content="✅ Posted.")

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    async def export(self) -> Reply:
        doc = self._store.load()
        return Reply(
            content="Here's the current ambient config file:",
            filename=EXPORT_FILENAME,
            data=self._store.dumps(doc).encode("utf-8"),
        )

    async def import_config(self, filename: str, url: str) -> Reply:
        """Replace every channel config with the uploaded document."""
        try:
            if not filename.lower().endswith(".json"):
                raise ImportValidationError("Please upload a .json file.")
            doc = parse_import(await self._downloader(url))
        except ImportValidationError as e:
            logger.info("import rejected: %s", e)
            return Reply(content=f"❌ {e}")

        self._store.replace(doc)
        return Reply(content="✅ Imported successfully. (This replaces existing configs.)")
