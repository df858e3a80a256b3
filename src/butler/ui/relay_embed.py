"""
Conversion of Discord messages into relay payloads.

The relayed copy carries the original author in an embed, followed by any
embeds the original message had. Attachments are passed through so the
transport can re-upload them.
"""

import discord

from butler.datatypes.mod_mail_datatypes import MessageContent

# Discord rejects messages with more than ten embeds
MAX_EMBEDS = 10

RELAY_COLOR = discord.Color.blurple()


def build_author_embed(message: discord.Message) -> discord.Embed:
    embed = discord.Embed(
        description=message.content or None,
        color=RELAY_COLOR,
        timestamp=message.created_at,
    )
    author = message.author
    embed.set_author(name=str(author), icon_url=author.display_avatar.url)
    return embed


def build_relay_content(message: discord.Message) -> MessageContent:
    """Return the payload used to mirror ``message`` on the other side of its link."""
    embeds: list[discord.Embed] = []
    if message.content or message.attachments:
        embeds.append(build_author_embed(message))
    embeds.extend(message.embeds)

    return MessageContent(
        embeds=embeds[:MAX_EMBEDS],
        attachments=list(message.attachments),
        author_name=str(message.author),
    )
