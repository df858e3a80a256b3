"""
User interface components for Butler.

- **console.py**: Interactive console for live bot management: status, open
  conversation listing, graceful shutdown and restart. Uses prompt_toolkit so
  input does not block Discord event handling.

- **relay_embed.py**: Builds the embeds and attachment list used when a
  message is mirrored to the other side of a conversation.
"""
