"""
Butler - Discord mod-mail bridge and server helper bot

Butler relays conversations between a user's direct messages and a private
staff thread, so moderators can talk to a user without that user joining the
staff's server.

Core Components:

- **Mod-mail relay**: Mirrors message creation, edits, deletions and typing
  indicators in both directions, with echo-loop protection and a symmetric
  message index
- **Conversation lifecycle**: Opens and closes conversations through slash
  commands and persists open conversations across restarts in SQLite
- **Server configuration**: ``/config`` commands for documentation aliases,
  release announcement webhooks and contributor repository roles, stored in
  ``config/app_config.yml``
- **Interactive Console**: Live administration interface for status checks,
  open conversation listing and graceful shutdown

Usage:
    from butler.main import main
    main()  # Starts the bot with console interface
"""
