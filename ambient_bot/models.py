"""Core domain models.

The whole persisted state is one ConfigDocument: a mapping of channel id to
ChannelConfig. Pydantic is used for validation and serialisation at the file
and import boundaries. JSON keys for timestamps are camelCase.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

DangerLevel = Literal["low", "medium", "high"]

DANGER_LEVELS: tuple[str, ...] = ("low", "medium", "high")

_TIMESTAMP_KEYS = {"last_posted_at": "lastPostedAt", "updated_at": "updatedAt"}


def now_iso() -> str:
    """Current UTC time as ISO-8601 with milliseconds, e.g. 2026-01-01T09:30:00.000Z."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


class ChannelConfig(BaseModel):
    """Ambient settings for one channel."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    location: str = "Unknown"
    danger: DangerLevel = "low"
    lore: str = ""
    criteria: str = ""
    enabled: bool = False
    last_posted_at: str | None = Field(default=None, alias="lastPostedAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")

    def to_json(self) -> dict:
        """Dump with JSON keys. Timestamps are omitted only if never given, so
        an explicit null survives export and import."""
        data = self.model_dump(by_alias=True)
        for name, key in _TIMESTAMP_KEYS.items():
            if getattr(self, name) is None and name not in self.model_fields_set:
                data.pop(key)
        return data


class ConfigDocument(BaseModel):
    """Everything the bot persists."""

    model_config = ConfigDict(extra="allow")

    channels: dict[str, ChannelConfig] = Field(default_factory=dict)

    # Stored entries that failed validation: skipped by every operation but
    # written back untouched unless the channel is configured again.
    _unreadable: dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def unreadable_channels(self) -> dict[str, Any]:
        return dict(self._unreadable)

    def keep_unreadable(self, channel_id: str, raw: Any) -> None:
        self._unreadable[channel_id] = raw

    def to_json(self) -> dict:
        channels: dict[str, Any] = {cid: c.to_json() for cid, c in self.channels.items()}
        for cid, raw in self._unreadable.items():
            channels.setdefault(cid, raw)
        return {"channels": channels, **self.model_dump(by_alias=True, exclude={"channels"})}
