"""
Utility helpers for Butler.

- **logger.py**: Centralized logging configuration with colored console output,
  a shared per-session rotating log file, and suppression of noisy library
  loggers (Discord internals, aiohttp, aiosqlite). Uses prompt_toolkit so log
  output does not break the interactive console prompt.
"""
