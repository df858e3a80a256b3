from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from butler.datatypes.discord_datatypes import ChannelID
from butler.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml``, exposes
    typed accessors for the mod-mail settings and the ``/config`` registries
    (documentation aliases, release announcements, contributor repositories)
    and writes changes back with :meth:`save`. fcntl locks guard concurrent
    access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _section(self, key: str) -> Dict[str, Any]:
        """Return a mutable top-level mapping, creating it if missing or malformed."""
        section = self._data.get(key)
        if not isinstance(section, dict):
            section = {}
            self._data[key] = section
        return section

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping."""
        self._data = self.load_from_disk()
        return self._data

    def save(self) -> None:
        """Write the cached configuration back to disk under an exclusive lock.

        Raises:
            OSError: If the file cannot be written.
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self.config_path.open("a+", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    f.seek(0)
                    f.truncate()
                    yaml.safe_dump(self._data, f, sort_keys=False, allow_unicode=True)
                    f.flush()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except OSError as exc:
            logger.error("[APP CONFIGURATION] Failed to save config %s: %s", self.config_path, exc)
            raise
        logger.debug("[APP CONFIGURATION] Saved config to %s", self.config_path)

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (shallow reference)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # Mod-mail
    # --------------------------
    @property
    def mod_mail_channel_id(self) -> ChannelID | None:
        """Text channel under which conversation threads are created, if configured."""
        value = self._section("mod_mail").get("channel_id")
        if value in (None, ""):
            return None
        try:
            return ChannelID(value)
        except ValueError:
            logger.error("[APP CONFIGURATION] Invalid mod_mail.channel_id %r", value)
            return None

    @property
    def thread_name_template(self) -> str:
        value = self._section("mod_mail").get("thread_name_template")
        return str(value) if value else "modmail-{user_id}"

    # --------------------------
    # Documentation aliases
    # --------------------------
    @property
    def docs_aliases(self) -> Dict[str, str]:
        docs = self._section("docs")
        aliases = docs.get("aliases")
        if not isinstance(aliases, dict):
            aliases = {}
            docs["aliases"] = aliases
        return aliases

    def set_alias(self, alias: str, module: str) -> None:
        self.docs_aliases[alias] = module

    def remove_alias(self, alias: str) -> bool:
        return self.docs_aliases.pop(alias, None) is not None

    # --------------------------
    # Release announcements
    # --------------------------
    @property
    def github_releases(self) -> Dict[str, Dict[str, Any]]:
        """Release announcement registrations keyed by repository name.

        Each entry holds ``webhook_id``, ``webhook_token`` and ``ping_role``.
        """
        return self._section("github_releases")

    def set_release(self, name: str, webhook_id: int, webhook_token: str, ping_role: int) -> None:
        self.github_releases[name] = {
            "webhook_id": int(webhook_id),
            "webhook_token": str(webhook_token),
            "ping_role": int(ping_role),
        }

    def remove_release(self, name: str) -> bool:
        return self.github_releases.pop(name, None) is not None

    # --------------------------
    # Contributor repositories
    # --------------------------
    @property
    def contributor_repos(self) -> Dict[str, int]:
        """Role id granted to contributors, keyed by repository name."""
        return self._section("contributor_repos")

    def set_contributor_repo(self, name: str, role_id: int) -> None:
        self.contributor_repos[name] = int(role_id)

    def remove_contributor_repo(self, name: str) -> bool:
        return self.contributor_repos.pop(name, None) is not None


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
