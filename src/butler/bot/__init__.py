"""
Discord bot cogs for Butler.

- **events_listener.py**: Bot lifecycle (on_ready presence) and application
  command error reporting

- **mod_mail_cmds.py**: Relay listeners for messages, edits, deletions and
  typing on both the staff threads and users' DMs, plus /modmail open, close
  and list

- **config_cmds.py**: /config commands for documentation aliases, release
  announcement webhooks and contributor repository roles
"""
