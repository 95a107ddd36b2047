"""Application configuration: ``.env``, ``config/settings.yaml``, and credentials.

The resolved :class:`LocalRankConfig` is built once at the CLI boundary and
passed explicitly to the API client and report workflow.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from localrank.integrations.localrank_client import DEFAULT_API_BASE
from localrank.modules.portfolio.policy import AnalyticsPolicy
from localrank.utils.config_store import CredentialStore
from localrank.utils.helpers import DEFAULT_SHARE_BASE, mask_secret

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = "config/settings.yaml"
API_URL_ENV = "LOCALRANK_API_URL"


@dataclass(frozen=True)
class FetchSettings:
    max_concurrent: int = 5
    timeout: Optional[float] = 20.0


@dataclass(frozen=True)
class ReportSettings:
    portfolio_page_size: int = 100
    client_page_size: int = 50
    scan_list_default: int = 10
    scan_list_max: int = 50
    max_pages: int = 1


@dataclass(frozen=True)
class LocalRankConfig:
    """Everything a command needs to talk to the API and build reports."""
    api_key: Optional[str] = None
    api_key_source: str = "none"
    api_base: str = DEFAULT_API_BASE
    share_base: str = DEFAULT_SHARE_BASE
    request_timeout: float = 30.0
    max_retries: int = 3
    requests_per_minute: Optional[int] = 120
    fetch: FetchSettings = field(default_factory=FetchSettings)
    reports: ReportSettings = field(default_factory=ReportSettings)
    policy: AnalyticsPolicy = field(default_factory=AnalyticsPolicy)

    def describe(self) -> dict[str, Any]:
        """Safe-to-print view of the configuration (key masked)."""
        return {
            "api_key": mask_secret(self.api_key),
            "source": self.api_key_source,
            "api_base": self.api_base,
        }


def load_settings(path: str = DEFAULT_SETTINGS_PATH) -> dict[str, Any]:
    """Load the YAML settings file; missing file yields an empty mapping."""
    settings_file = Path(path)
    if not settings_file.exists():
        logger.debug("Settings file not found: %s, using defaults.", path)
        return {}
    with open(settings_file, "r", encoding="utf-8") as fh:
        settings = yaml.safe_load(fh) or {}
    logger.debug("Settings loaded from %s", path)
    return settings


def _known(cls, data: Optional[dict[str, Any]]) -> dict[str, Any]:
    names = set(cls.__dataclass_fields__)
    return {k: v for k, v in (data or {}).items() if k in names}


def build_config(
    settings: dict[str, Any],
    credentials: Optional[CredentialStore] = None,
    environ: Optional[dict[str, str]] = None,
) -> LocalRankConfig:
    """Merge settings, credentials, and environment into a config value."""
    environ = environ if environ is not None else os.environ
    credentials = credentials or CredentialStore(environ=environ)
    api_key, source = credentials.resolve()

    api_cfg = settings.get("api", {}) or {}
    api_base = environ.get(API_URL_ENV) or api_cfg.get("base_url") or DEFAULT_API_BASE

    return LocalRankConfig(
        api_key=api_key,
        api_key_source=source,
        api_base=api_base,
        share_base=api_cfg.get("share_base", DEFAULT_SHARE_BASE),
        request_timeout=api_cfg.get("timeout", 30.0),
        max_retries=api_cfg.get("max_retries", 3),
        requests_per_minute=api_cfg.get("requests_per_minute", 120),
        fetch=FetchSettings(**_known(FetchSettings, settings.get("fetch"))),
        reports=ReportSettings(**_known(ReportSettings, settings.get("reports"))),
        policy=AnalyticsPolicy.from_mapping(settings.get("analytics")),
    )


def load_config(
    settings_path: str = DEFAULT_SETTINGS_PATH,
    env_path: str = ".env",
) -> LocalRankConfig:
    """Load ``.env`` (if present) and settings, then resolve credentials."""
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)
        logger.debug("Loaded environment from %s", env_path)
    return build_config(load_settings(settings_path))
