"""
Configuration management for Butler.

- **app_configuration.py**: File-locked YAML configuration loader and writer.
  Holds the mod-mail settings (parent channel for staff threads, thread name
  template) and the ``/config`` registries: documentation aliases, release
  announcement webhooks and contributor repository roles. Falls back
  gracefully on missing or malformed config files.
"""
