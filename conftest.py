from datetime import datetime
from pathlib import Path

import pytest

from ambient_bot.generator import AmbientGenerator
from ambient_bot.storage import ConfigStore


class StubLLM:
    """Deterministic LLM stand-in for tests.

    Returns the queued responses in call order; an Exception in the queue is
    raised instead of returned.
    """

    def __init__(self, responses: list) -> None:
        self._queue = list(responses)
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, system: str, prompt: str) -> str:
        self.calls.append((system, prompt))
        if not self._queue:
            raise AssertionError(f"StubLLM: unexpected call. calls so far: {self.calls}")
        item = self._queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeChannel:
    def __init__(self, name: str = "the-prancing-pony", fail_with: Exception | None = None) -> None:
        self.name = name
        self.sent: list[str] = []
        self._fail_with = fail_with

    async def send(self, content: str) -> None:
        if self._fail_with is not None:
            raise self._fail_with
        self.sent.append(content)


class FakeResolver:
    """Resolves only the channel ids it was given."""

    def __init__(self, channels: dict[str, FakeChannel] | None = None) -> None:
        self.channels = dict(channels or {})

    async def resolve(self, channel_id: str) -> FakeChannel | None:
        return self.channels.get(channel_id)


@pytest.fixture
def store(tmp_path: Path) -> ConfigStore:
    return ConfigStore(tmp_path / "channel-config.json")


@pytest.fixture
def make_llm():
    return StubLLM


@pytest.fixture
def make_channel():
    return FakeChannel


@pytest.fixture
def make_resolver():
    return FakeResolver


@pytest.fixture
def make_generator():
    """AmbientGenerator pinned to noon so prompts are predictable."""
    def _make(llm, **kwargs) -> AmbientGenerator:
        kwargs.setdefault("clock", lambda: datetime(2026, 3, 1, 12, 0))
        return AmbientGenerator(llm, **kwargs)
    return _make
