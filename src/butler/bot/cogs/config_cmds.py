"""
Config cog: registries for documentation aliases, release announcements and
contributor repositories.

Every mutation is written to ``config/app_config.yml`` right away; if saving
fails the invoker is told and the error is logged.

Commands
- /config aliases add|remove|list
- /config releases add|remove|list      (add creates a webhook in the channel)
- /config contributor-repos add|remove|list
"""

import discord
from discord import Option
from discord.ext import commands

from butler.configuration.app_configuration import AppConfig, app_config
from butler.util.logger import get_logger

logger = get_logger("config_cog")


class ConfigCog(commands.Cog):
    """The /config command group."""

    config = discord.SlashCommandGroup(
        "config",
        "Used to configure aliases and release announcements.",
        default_member_permissions=discord.Permissions(manage_guild=True),
    )
    aliases = config.create_subgroup("aliases", "Used to configure module aliases.")
    releases = config.create_subgroup("releases", "Used to configure release announcements.")
    contributor_repos = config.create_subgroup("contributor-repos", "Used to configure contributor repositories.")

    def __init__(self, discord_bot_instance, settings: AppConfig = app_config):
        self.bot = discord_bot_instance
        self.settings = settings
        logger.info("Config cog loaded")

    async def _save_and_respond(self, ctx: discord.ApplicationContext, message: str) -> None:
        try:
            self.settings.save()
        except OSError as exc:
            logger.error("Failed to save config after /%s: %s", ctx.command.qualified_name, exc)
            await ctx.respond(f"Failed to save config: {exc}", ephemeral=True)
            return
        await ctx.respond(message, ephemeral=True)

    # -------- aliases --------

    @aliases.command(name="add", description="Used to add a module alias.")
    async def aliases_add(
        self,
        ctx: discord.ApplicationContext,
        module: Option(str, "The module you want to add an alias for.", required=True),  # type: ignore
        alias: Option(str, "The alias you want to add for the module.", required=True),  # type: ignore
    ):
        self.settings.set_alias(alias, module)
        await self._save_and_respond(ctx, f"Added alias `{alias}` for module `{module}`.")

    @aliases.command(name="remove", description="Used to remove a module alias.")
    async def aliases_remove(
        self,
        ctx: discord.ApplicationContext,
        alias: Option(str, "The alias you want to remove.", required=True),  # type: ignore
    ):
        if not self.settings.remove_alias(alias):
            await ctx.respond(f"Alias `{alias}` does not exist.", ephemeral=True)
            return
        await self._save_and_respond(ctx, f"Removed alias `{alias}`.")

    @aliases.command(name="list", description="Used to list all module aliases.")
    async def aliases_list(self, ctx: discord.ApplicationContext):
        lines = [f"• `{alias}` -> `{module}`" for alias, module in self.settings.docs_aliases.items()]
        await ctx.respond("Aliases:\n" + ("\n".join(lines) or "none"), ephemeral=True)

    # -------- releases --------

    @releases.command(name="add", description="Used to add a release announcement.")
    async def releases_add(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "The name of the release announcement.", required=True),  # type: ignore
        channel: Option(discord.TextChannel, "The channel to release the announcement in.", required=True),  # type: ignore
        ping_role: Option(discord.Role, "The role to ping when a new release is available.", name="ping-role", required=True),  # type: ignore
    ):
        await ctx.defer(ephemeral=True)
        try:
            webhook = await channel.create_webhook(name=name)
        except discord.HTTPException as exc:
            logger.error("Failed to create release webhook %r in %s: %s", name, channel.id, exc)
            await ctx.respond(f"Failed to create a webhook in {channel.mention}: {exc}", ephemeral=True)
            return
        self.settings.set_release(name, webhook.id, webhook.token, ping_role.id)
        await self._save_and_respond(ctx, f"Added release announcement for `{name}`.")

    @releases.command(name="remove", description="Used to remove a release announcement.")
    async def releases_remove(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "The release announcement you want to remove.", required=True),  # type: ignore
    ):
        if not self.settings.remove_release(name):
            await ctx.respond(f"Release `{name}` does not exist.", ephemeral=True)
            return
        await self._save_and_respond(ctx, f"Removed release announcement for `{name}`.")

    @releases.command(name="list", description="Used to list all release announcements.")
    async def releases_list(self, ctx: discord.ApplicationContext):
        lines = [f"• `{name}`" for name in self.settings.github_releases]
        await ctx.respond("Releases:\n" + ("\n".join(lines) or "none"), ephemeral=True)

    # -------- contributor repositories --------

    @contributor_repos.command(name="add", description="Used to add a contributor repository.")
    async def contributor_repos_add(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "The name of the contributor repository.", required=True),  # type: ignore
        role: Option(discord.Role, "The role to assign if a user is a contributor.", required=True),  # type: ignore
    ):
        self.settings.set_contributor_repo(name, role.id)
        await self._save_and_respond(ctx, f"Added contributor repository `{name}`.")

    @contributor_repos.command(name="remove", description="Used to remove a contributor repository.")
    async def contributor_repos_remove(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "The contributor repository you want to remove.", required=True),  # type: ignore
    ):
        if not self.settings.remove_contributor_repo(name):
            await ctx.respond(f"Contributor repository `{name}` does not exist.", ephemeral=True)
            return
        await self._save_and_respond(ctx, f"Removed contributor repository `{name}`.")

    @contributor_repos.command(name="list", description="Used to list all contributor repositories.")
    async def contributor_repos_list(self, ctx: discord.ApplicationContext):
        lines = [f"• `{name}` -> <@&{role_id}>" for name, role_id in self.settings.contributor_repos.items()]
        await ctx.respond("Repositories:\n" + ("\n".join(lines) or "none"), ephemeral=True)


def setup(discord_bot_instance):
    """Add the config cog to the supplied Discord bot instance."""
    discord_bot_instance.add_cog(ConfigCog(discord_bot_instance))
