"""Credential store for the LocalRank API key.

Keys are resolved in priority order: the ``LOCALRANK_API_KEY`` environment
variable, then a project-local ``.localrank/config.yaml``, then the global
``~/.config/localrank/config.yaml``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

API_KEY_ENV = "LOCALRANK_API_KEY"
API_KEY_PREFIX = "lr_"


class ConfigurationError(RuntimeError):
    """Raised when the API key is missing or malformed."""


def default_paths(cwd: Optional[Path] = None, home: Optional[Path] = None) -> dict[str, Path]:
    cwd = cwd or Path.cwd()
    home = home or Path.home()
    return {
        "local": cwd / ".localrank" / "config.yaml",
        "global": home / ".config" / "localrank" / "config.yaml",
    }


def validate_api_key(api_key: Optional[str]) -> str:
    """Return *api_key* stripped, or raise :class:`ConfigurationError`."""
    key = (api_key or "").strip()
    if not key.startswith(API_KEY_PREFIX):
        raise ConfigurationError(
            "Invalid API key. Keys start with " + repr(API_KEY_PREFIX)
        )
    return key


class CredentialStore:
    """Read and write LocalRank credential files.

    Usage::

        store = CredentialStore()
        api_key, source = store.resolve()
        store.save("lr_live_123", location="global")
    """

    def __init__(
        self,
        paths: Optional[dict[str, Path]] = None,
        environ: Optional[dict[str, str]] = None,
    ):
        self.paths = paths or default_paths()
        self._environ = environ if environ is not None else os.environ

    def _read(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (yaml.YAMLError, OSError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: expected a mapping", path)
            return {}
        return data

    def resolve(self) -> tuple[Optional[str], str]:
        """Return ``(api_key, source)``; key is ``None`` when nothing is configured."""
        env_key = self._environ.get(API_KEY_ENV)
        if env_key:
            return env_key, "environment variable"

        for location in ("local", "global"):
            data = self._read(self.paths[location])
            if data.get("api_key"):
                return data["api_key"], location + " config"

        return None, "none"

    def save(self, api_key: str, location: str = "global") -> Path:
        """Persist *api_key* to the local or global config file."""
        if location not in self.paths:
            raise ValueError("Unknown config location: " + repr(location))
        key = validate_api_key(api_key)
        path = self.paths[location]
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self._read(path)
        data["api_key"] = key
        with open(path, "w", encoding="utf-8") as fh:
            yaml.safe_dump(data, fh, default_flow_style=False)
        logger.info("Saved API key to %s", path)
        return path
