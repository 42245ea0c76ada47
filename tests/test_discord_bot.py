"""Tests for the Discord adapter: channel lookup and reply delivery."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from ambient_bot.commands import GENERIC_FAILURE, CommandRouter, Reply
from ambient_bot.discord_bot import AmbientTree, DiscordChannelResolver, register_commands, send_reply


def _client(cached=None, fetched=None, fetch_error=None) -> MagicMock:
    client = MagicMock()
    client.get_channel = MagicMock(return_value=cached)
    client.fetch_channel = AsyncMock(return_value=fetched, side_effect=fetch_error)
    return client


def _interaction(done: bool = False) -> MagicMock:
    interaction = MagicMock()
    interaction.response.is_done = MagicMock(return_value=done)
    interaction.response.send_message = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


# ── DiscordChannelResolver ───────────────────────────────────


class TestDiscordChannelResolver:
    async def test_cached_text_channel(self) -> None:
        channel = MagicMock(spec=discord.TextChannel)
        client = _client(cached=channel)
        assert await DiscordChannelResolver(client).resolve("123") is channel
        client.get_channel.assert_called_once_with(123)
        client.fetch_channel.assert_not_called()

    async def test_fetches_when_not_cached(self) -> None:
        channel = MagicMock(spec=discord.TextChannel)
        client = _client(fetched=channel)
        assert await DiscordChannelResolver(client).resolve("123") is channel

    async def test_fetch_failure_returns_none(self) -> None:
        response = MagicMock(status=404, reason="Not Found")
        client = _client(fetch_error=discord.NotFound(response, "Unknown Channel"))
        assert await DiscordChannelResolver(client).resolve("123") is None

    async def test_non_text_channel_returns_none(self) -> None:
        client = _client(cached=MagicMock(spec=discord.CategoryChannel))
        assert await DiscordChannelResolver(client).resolve("123") is None

    async def test_bad_id_returns_none(self) -> None:
        client = _client()
        assert await DiscordChannelResolver(client).resolve("general") is None
        client.get_channel.assert_not_called()


# ── send_reply ───────────────────────────────────────────────


class TestSendReply:
    async def test_initial_response(self) -> None:
        interaction = _interaction(done=False)
        await send_reply(interaction, Reply(content="✅ Posted."))
        interaction.response.send_message.assert_awaited_once_with(
            content="✅ Posted.", ephemeral=True,
        )
        interaction.followup.send.assert_not_called()

    async def test_followup_after_defer(self) -> None:
        interaction = _interaction(done=True)
        await send_reply(interaction, Reply(content="✅ Posted."))
        interaction.followup.send.assert_awaited_once_with(content="✅ Posted.", ephemeral=True)

    async def test_attachment(self) -> None:
        interaction = _interaction()
        await send_reply(interaction, Reply(content="here", filename="channel-config.json", data=b"{}"))
        sent = interaction.response.send_message.call_args.kwargs["file"]
        assert isinstance(sent, discord.File)
        assert sent.filename == "channel-config.json"


# ── command tree ─────────────────────────────────────────────


def _tree() -> AmbientTree:
    client = MagicMock()
    client._connection._command_tree = None
    return AmbientTree(client)


def test_register_commands_names_and_permissions():
    tree = _tree()
    register_commands(tree, MagicMock(spec=CommandRouter))
    commands = {c.name: c for c in tree.get_commands()}
    assert set(commands) == {
        "ambient_set", "ambient_enable", "ambient_disable", "ambient_show",
        "ambient_post_now", "ambient_export", "ambient_import",
    }
    assert commands["ambient_show"].default_permissions is None
    for name in ("ambient_set", "ambient_enable", "ambient_disable", "ambient_post_now"):
        assert commands[name].default_permissions.manage_channels
    for name in ("ambient_export", "ambient_import"):
        assert commands[name].default_permissions.manage_guild


async def test_tree_error_reports_generic_message():
    tree = _tree()
    interaction = _interaction(done=False)
    error = discord.app_commands.CommandInvokeError(MagicMock(), RuntimeError("secret detail"))
    await tree.on_error(interaction, error)
    interaction.response.send_message.assert_awaited_once_with(
        content=GENERIC_FAILURE, ephemeral=True,
    )
