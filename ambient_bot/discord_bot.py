"""Discord wiring: slash commands, channel lookup, and the bot lifecycle."""

import io
import logging
from functools import partial

import discord
from discord import app_commands

from ambient_bot.commands import EXPORT_FILENAME, GENERIC_FAILURE, CommandRouter, Reply
from ambient_bot.generator import AmbientGenerator
from ambient_bot.models import DANGER_LEVELS
from ambient_bot.posting import Destination
from ambient_bot.scheduler import AmbientScheduler, run_scheduled_posts
from ambient_bot.storage import ConfigStore

logger = logging.getLogger(__name__)


class DiscordChannelResolver:
    """Looks channels up by id, cache first, then over HTTP."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def resolve(self, channel_id: str) -> Destination | None:
        try:
            snowflake = int(channel_id)
        except ValueError:
            logger.warning("ignoring non-numeric channel id %r", channel_id)
            return None

        channel = self._client.get_channel(snowflake)
        if channel is None:
            try:
                channel = await self._client.fetch_channel(snowflake)
            except (discord.HTTPException, discord.InvalidData) as e:
                logger.info("channel %s unavailable: %s", channel_id, e)
                return None

        if not isinstance(channel, discord.abc.Messageable):
            return None
        return channel


async def send_reply(interaction: discord.Interaction, reply: Reply) -> None:
    kwargs: dict = {"content": reply.content, "ephemeral": reply.ephemeral}
    if reply.data is not None:
        kwargs["file"] = discord.File(
            io.BytesIO(reply.data), filename=reply.filename or EXPORT_FILENAME,
        )
    if interaction.response.is_done():
        await interaction.followup.send(**kwargs)
    else:
        await interaction.response.send_message(**kwargs)


class AmbientTree(app_commands.CommandTree):
    async def on_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError,
    ) -> None:
        name = interaction.command.name if interaction.command else "?"
        logger.error("command %s failed", name, exc_info=error)
        try:
            await send_reply(interaction, Reply(content=GENERIC_FAILURE))
        except discord.HTTPException:
            logger.warning("could not report failure of %s to the user", name)


def _channel_key(interaction: discord.Interaction) -> str:
    return str(interaction.channel_id)


def register_commands(tree: app_commands.CommandTree, router: CommandRouter) -> None:
    """Add the seven /ambient_* commands to tree."""

    @tree.command(name="ambient_export", description="Export all ambient channel configs as a JSON file.")
    @app_commands.default_permissions(manage_guild=True)
    async def ambient_export(interaction: discord.Interaction) -> None:
        await send_reply(interaction, await router.export())

    @tree.command(
        name="ambient_import",
        description="Import ambient configs from a JSON file (replaces current configs).",
    )
    @app_commands.describe(file="Upload channel-config.json")
    @app_commands.default_permissions(manage_guild=True)
    async def ambient_import(interaction: discord.Interaction, file: discord.Attachment) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        await send_reply(interaction, await router.import_config(file.filename, file.url))

    @tree.command(name="ambient_set", description="Configure ambient LOTR events for this channel.")
    @app_commands.describe(
        location="Location name",
        danger="How ominous this place gets overall",
        lore="Location lore",
        criteria="Extra rules",
    )
    @app_commands.choices(danger=[app_commands.Choice(name=d, value=d) for d in DANGER_LEVELS])
    @app_commands.default_permissions(manage_channels=True)
    async def ambient_set(
        interaction: discord.Interaction,
        location: str,
        danger: app_commands.Choice[str],
        lore: str,
        criteria: str,
    ) -> None:
        reply = await router.set(
            _channel_key(interaction),
            location=location, danger=danger.value, lore=lore, criteria=criteria,
        )
        await send_reply(interaction, reply)

    @tree.command(name="ambient_enable", description="Enable scheduled ambient posts in this channel.")
    @app_commands.default_permissions(manage_channels=True)
    async def ambient_enable(interaction: discord.Interaction) -> None:
        await send_reply(interaction, await router.enable(_channel_key(interaction)))

    @tree.command(name="ambient_disable", description="Disable scheduled ambient posts in this channel.")
    @app_commands.default_permissions(manage_channels=True)
    async def ambient_disable(interaction: discord.Interaction) -> None:
        await send_reply(interaction, await router.disable(_channel_key(interaction)))

    @tree.command(name="ambient_show", description="Show the current ambient configuration for this channel.")
    async def ambient_show(interaction: discord.Interaction) -> None:
        await send_reply(interaction, await router.show(_channel_key(interaction)))

    @tree.command(
        name="ambient_post_now",
        description="Generate and post an ambient message immediately (test).",
    )
    @app_commands.default_permissions(manage_channels=True)
    async def ambient_post_now(interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        await send_reply(interaction, await router.post_now(_channel_key(interaction)))


class AmbientBot(discord.Client):
    """Discord client that owns the command tree and the posting schedule."""

    def __init__(
        self,
        store: ConfigStore,
        generator: AmbientGenerator,
        *,
        period: float,
        first_delay: float,
    ) -> None:
        super().__init__(intents=discord.Intents(guilds=True))
        self.tree = AmbientTree(self)
        self.resolver = DiscordChannelResolver(self)
        self.router = CommandRouter(store, resolver=self.resolver, generator=generator)
        self.scheduler = AmbientScheduler(
            partial(run_scheduled_posts, store, resolver=self.resolver, generator=generator),
            period=period,
            first_delay=first_delay,
        )

    async def setup_hook(self) -> None:
        register_commands(self.tree, self.router)
        synced = await self.tree.sync()
        logger.info("slash commands registered (%d)", len(synced))
        self.scheduler.start()

    async def on_ready(self) -> None:
        logger.info("bot logged in as %s", self.user)

    async def close(self) -> None:
        await self.scheduler.stop()
        await super().close()
