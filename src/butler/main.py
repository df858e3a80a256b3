"""
Butler Discord Bot
==================

A Discord bot that relays mod-mail conversations between users' DMs and
private staff threads, and keeps a few server registries (documentation
aliases, release announcements, contributor repositories).
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. BUTLER_HOME environment variable, if set.
    2. If running in a frozen/compiled context, the executable's directory.
    3. Otherwise, the project root two levels above this package.
    """
    if env_home := os.getenv("BUTLER_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from butler.configuration.app_configuration import app_config
from butler.database import db_connection, initialize_database
from butler.mod_mail.lifecycle import LifecycleManager
from butler.mod_mail.link_store import LinkStore
from butler.mod_mail.relay_engine import RelayEngine
from butler.mod_mail.transport import DiscordTransport
from butler.repositories.mod_mail_link_repo import ModMailLinkRepo
from butler.ui.console import ConsoleControl, close_bot_instance, console_session
from butler.util.logger import get_logger, handle_exception


logger = get_logger("main")

RESTART_EXIT_CODE = 42


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for guild and DM messages, typing, and message content."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.guild_messages = True
    intents.dm_messages = True
    intents.guild_typing = True
    intents.dm_typing = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, engine: RelayEngine, lifecycle: LifecycleManager) -> None:
    """Register all cogs with the provided bot instance."""
    from butler.bot.cogs import config_cmds, events_listener, mod_mail_cmds

    events_listener.setup(discord_bot_instance)
    mod_mail_cmds.setup(discord_bot_instance, engine, lifecycle)
    config_cmds.setup(discord_bot_instance)

    logger.info("All cogs loaded successfully.")


def create_mod_mail(bot: discord.Bot) -> tuple[LinkStore, RelayEngine, LifecycleManager]:
    """Wire the link store, relay engine and lifecycle manager to ``bot``."""
    store = LinkStore()
    transport = DiscordTransport(bot, app_config.mod_mail_channel_id)
    engine = RelayEngine(store, transport)
    lifecycle = LifecycleManager(
        store,
        transport,
        ModMailLinkRepo(db_connection),
        thread_name_template=app_config.thread_name_template,
    )
    if app_config.mod_mail_channel_id is None:
        logger.warning("mod_mail.channel_id is not configured; /modmail open will fail until it is set.")
    return store, engine, lifecycle


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection lifecycle."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, lifecycle: LifecycleManager | None) -> None:
    """Close the bot, persist open conversations and close the database.

    The snapshot is taken after the gateway closes so no new conversation can
    open in between.
    """
    await close_bot_instance(bot, log_close=True)

    if lifecycle is not None:
        try:
            await lifecycle.shutdown()
        except Exception as exc:
            logger.exception("Error while persisting open conversations: %s", exc)

    try:
        await db_connection.close()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def run_bot_session(bot: discord.Bot, token: str, control: ConsoleControl, lifecycle: LifecycleManager) -> int:
    """Run the bot alongside the console, returning an exit code."""
    control.set_bot(bot)
    exit_code = 0

    try:
        async with console_session(control):
            try:
                await start_bot(bot, token)
            except asyncio.CancelledError:
                logger.info("Bot start cancelled; proceeding to shutdown")
            except Exception as exc:
                logger.critical("Discord bot runtime error: %s", exc)
                exit_code = 1
    finally:
        control.set_bot(None)
        await shutdown_runtime(bot, lifecycle)

    return exit_code


async def async_main() -> int:
    """Bootstrap the database, bot and console, returning an exit code."""
    token = load_environment()

    try:
        logger.info("Initializing database...")
        await initialize_database()
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        bot = discord.Bot(intents=build_intents())
        store, engine, lifecycle = create_mod_mail(bot)
        load_cogs(bot, engine, lifecycle)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await db_connection.close()
        return 1

    try:
        await lifecycle.restore()
    except Exception as exc:
        logger.critical("Failed to restore open conversations: %s", exc)
        await db_connection.close()
        return 1

    control = ConsoleControl(store)
    exit_code = await run_bot_session(bot, token, control, lifecycle)

    if control.is_restart_requested():
        logger.info("Restart requested, returning exit code %d to trigger restart", RESTART_EXIT_CODE)
        return RESTART_EXIT_CODE

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting Butler…")
    try:
        exit_code = asyncio.run(async_main())

        if exit_code == RESTART_EXIT_CODE:
            logger.info("Restart requested; replacing current process with new instance.")
            os.execv(sys.executable, [sys.executable] + sys.argv)
            return 0  # pragma: no cover

        return exit_code
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
