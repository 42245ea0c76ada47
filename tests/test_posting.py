"""Tests for the shared per-channel post operation."""

import pytest

from ambient_bot.llm import GenerationError
from ambient_bot.models import ChannelConfig, ConfigDocument
from ambient_bot.posting import post_to_channel

STAMP = "2026-03-01T12:00:00.000Z"


def _doc(**channels: ChannelConfig) -> ConfigDocument:
    return ConfigDocument(channels=dict(channels))


async def test_posts_and_stamps(make_llm, make_generator, make_channel, make_resolver):
    channel = make_channel("bree-square")
    doc = _doc(**{"1": ChannelConfig(location="Bree", enabled=True)})
    llm = make_llm(["Carts rattle over the cobbles."])

    posted = await post_to_channel(
        "1", doc,
        resolver=make_resolver({"1": channel}),
        generator=make_generator(llm),
        clock=lambda: STAMP,
    )

    assert posted is True
    assert channel.sent == ["Carts rattle over the cobbles."]
    assert doc.channels["1"].last_posted_at == STAMP
    assert "Channel: #bree-square" in llm.calls[0][1]


async def test_unresolvable_channel_aborts_silently(make_llm, make_generator, make_resolver):
    doc = _doc(**{"1": ChannelConfig(enabled=True)})
    llm = make_llm([])
    posted = await post_to_channel("1", doc, resolver=make_resolver(), generator=make_generator(llm))
    assert posted is False
    assert llm.calls == []
    assert doc.channels["1"].last_posted_at is None


async def test_unconfigured_channel_aborts(make_llm, make_generator, make_channel, make_resolver):
    channel = make_channel()
    llm = make_llm([])
    posted = await post_to_channel(
        "1", _doc(), resolver=make_resolver({"1": channel}), generator=make_generator(llm),
    )
    assert posted is False
    assert channel.sent == []


async def test_disabled_channel_aborts(make_llm, make_generator, make_channel, make_resolver):
    channel = make_channel()
    doc = _doc(**{"1": ChannelConfig(enabled=False)})
    llm = make_llm([])
    posted = await post_to_channel(
        "1", doc, resolver=make_resolver({"1": channel}), generator=make_generator(llm),
    )
    assert posted is False
    assert channel.sent == []
    assert llm.calls == []


async def test_generation_error_propagates(make_llm, make_generator, make_channel, make_resolver):
    channel = make_channel()
    doc = _doc(**{"1": ChannelConfig(enabled=True)})
    llm = make_llm([GenerationError(503, "overloaded")])
    with pytest.raises(GenerationError):
        await post_to_channel(
            "1", doc, resolver=make_resolver({"1": channel}), generator=make_generator(llm),
        )
    assert channel.sent == []
    assert doc.channels["1"].last_posted_at is None


async def test_send_error_propagates(make_llm, make_generator, make_channel, make_resolver):
    channel = make_channel(fail_with=RuntimeError("missing access"))
    doc = _doc(**{"1": ChannelConfig(enabled=True)})
    with pytest.raises(RuntimeError, match="missing access"):
        await post_to_channel(
            "1", doc,
            resolver=make_resolver({"1": channel}),
            generator=make_generator(make_llm(["text"])),
        )
    assert doc.channels["1"].last_posted_at is None
