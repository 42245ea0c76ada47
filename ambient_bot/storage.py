"""JSON file storage for channel configs.

All state lives in a single JSON document:

    {
      "channels": {
        "<channel id>": {
          "location": "...", "danger": "low", "lore": "...", "criteria": "...",
          "enabled": true, "lastPostedAt": "...", "updatedAt": "..."
        }
      }
    }

Every operation reads the file, mutates, and writes the whole document back.
There is no locking: two interleaved writers are last-write-wins. A channel
entry that fails validation is skipped on load and written back as it was.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ambient_bot.models import ChannelConfig, ConfigDocument

logger = logging.getLogger(__name__)


class PersistenceReadError(RuntimeError):
    """The document could not be read or parsed. Recovered inside load()."""


class PersistenceWriteError(RuntimeError):
    """The document could not be written."""


class ConfigStore:
    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read(self) -> ConfigDocument:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceReadError(f"Cannot read {self._path}: {e}") from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceReadError(f"Invalid JSON in {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceReadError(f"{self._path} does not hold a JSON object")
        channels = data.pop("channels", None)
        if not isinstance(channels, dict):
            channels = {}
        try:
            doc = ConfigDocument.model_validate(data)
        except ValidationError as e:
            raise PersistenceReadError(f"Invalid config in {self._path}: {e}") from e

        # One bad entry must not cost the other channels.
        for channel_id, entry in channels.items():
            try:
                doc.channels[channel_id] = ChannelConfig.model_validate(entry)
            except ValidationError as e:
                logger.warning(
                    "skipping invalid config for channel %s in %s (%d problem(s)); kept on disk",
                    channel_id, self._path, e.error_count(),
                )
                doc.keep_unreadable(channel_id, entry)
        return doc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self) -> ConfigDocument:
        """Read the document; anything unreadable becomes an empty document."""
        if not self._path.exists():
            logger.debug("no config at %s, starting empty", self._path)
            return ConfigDocument()
        try:
            return self._read()
        except PersistenceReadError as e:
            logger.warning("%s; starting with an empty config", e)
            return ConfigDocument()

    @staticmethod
    def dumps(doc: ConfigDocument) -> str:
        return json.dumps(doc.to_json(), indent=2, ensure_ascii=False)

    def save(self, doc: ConfigDocument) -> None:
        """Overwrite the file with the full document."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(self.dumps(doc), encoding="utf-8")
        except OSError as e:
            raise PersistenceWriteError(f"Cannot write {self._path}: {e}") from e
        logger.debug("saved %d channel config(s) to %s", len(doc.channels), self._path)

    def replace(self, doc: ConfigDocument) -> None:
        """Discard whatever is stored and write doc in its place.

        The caller validates doc's shape first.
        """
        logger.info("replacing config at %s (%d channels)", self._path, len(doc.channels))
        self.save(doc)
