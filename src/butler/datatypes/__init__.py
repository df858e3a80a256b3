"""Shared data types: typed Discord snowflakes and mod-mail records."""
