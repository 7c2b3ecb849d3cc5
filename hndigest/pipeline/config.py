"""Application configuration loaded from a YAML (or JSON) file.

JSON is a subset of YAML, so config files written for earlier releases
(``config.json``) load unchanged. String values may reference environment
variables as ``${NAME}``; they are expanded at load time.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from hndigest.denoise.filters import ItemFilter
from hndigest.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./config.json"
DEFAULT_DB_FILE = "./db.sqlite3"
DEFAULT_HN_API_BASE_URL = "https://hacker-news.firebaseio.com/v0"
DEFAULT_TELEGRAM_API_BASE_URL = "https://api.telegram.org"
DEFAULT_PURGE_AFTER_DAYS = 30
DEFAULT_MAX_CONCURRENT = 10
DEFAULT_TIMEOUT = 30

HN_SOURCE_ID = "hackernews"
HN_STORY_LISTS = ("topstories", "newstories", "beststories", "askstories", "showstories", "jobstories")

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")


def _resolve_env(value: Any) -> Any:
    """Expand ${ENV_VAR} in strings, recursively through lists and dicts."""
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, list):
        return [_resolve_env(v) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    return value


def _mapping(cfg: Any, section: str) -> Dict[str, Any]:
    if not isinstance(cfg, dict):
        raise ConfigError(f"{section} must be a mapping, got {type(cfg).__name__}")
    return cfg


def _require(cfg: Dict[str, Any], key: str, section: str) -> str:
    value = cfg.get(key)
    if value is None or str(value).strip() == "":
        raise ConfigError(f"{section}.{key} is required")
    return str(value)


def _as_int(value: Any, key: str, minimum: int = 0) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    if number < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {number}")
    return number


@dataclass
class SmtpConfig:
    host: str
    username: str
    password: str
    from_addr: str
    to: List[str]
    subject: str = "Digest"
    port: int = 465
    use_ssl: bool = True
    use_tls: bool = False

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> SmtpConfig:
        cfg = _mapping(cfg, "smtp")
        to = cfg.get("to") or cfg.get("email_to") or []
        if isinstance(to, str):
            to = [a.strip() for a in to.split(",") if a.strip()]
        if not to:
            raise ConfigError("smtp.to is required")
        use_ssl = bool(cfg.get("use_ssl", True))
        return cls(
            host=_require(cfg, "host", "smtp"),
            username=str(cfg.get("username", "")),
            password=str(cfg.get("password", "")),
            from_addr=_require(cfg, "from", "smtp"),
            to=list(to),
            subject=str(cfg.get("subject", "Digest")),
            port=_as_int(cfg.get("port", 465 if use_ssl else 587), "smtp.port", 1),
            use_ssl=use_ssl,
            use_tls=bool(cfg.get("use_tls", False)),
        )


@dataclass
class TelegramConfig:
    token: str
    chat_id: str
    api_base_url: str = DEFAULT_TELEGRAM_API_BASE_URL

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> TelegramConfig:
        cfg = _mapping(cfg, "telegram")
        return cls(
            token=_require(cfg, "token", "telegram"),
            chat_id=_require(cfg, "chat_id", "telegram"),
            api_base_url=str(cfg.get("api_base_url") or DEFAULT_TELEGRAM_API_BASE_URL).rstrip("/"),
        )


@dataclass
class RssSource:
    """An RSS/Atom channel; ``name`` is the ledger source key."""

    name: str
    url: str
    user_agent: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> RssSource:
        cfg = _mapping(cfg, "rss_sources[]")
        name = _require(cfg, "name", "rss_sources[]").strip()
        if "," in name or name.splitlines() != [name] or not name.isprintable():
            raise ConfigError(
                f"rss_sources[].name may not contain commas, line breaks or control characters: {name!r}"
            )
        if name == HN_SOURCE_ID:
            raise ConfigError(f"rss_sources[].name {name!r} is reserved for HackerNews")
        return cls(
            name=name,
            url=_require(cfg, "url", f"rss_sources[{name}]"),
            user_agent=cfg.get("user_agent"),
        )

    def to_connector_config(self) -> Dict[str, Any]:
        return {"type": "rss", "id": self.name, "url": self.url, "user_agent": self.user_agent}


@dataclass
class HackerNewsConfig:
    enabled: bool = True
    api_base_url: str = DEFAULT_HN_API_BASE_URL
    story_list: str = "topstories"
    max_items: Optional[int] = None

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> HackerNewsConfig:
        cfg = _mapping(cfg, "hackernews")
        story_list = str(cfg.get("story_list", "topstories"))
        if story_list not in HN_STORY_LISTS:
            raise ConfigError(
                f"hackernews.story_list must be one of {', '.join(HN_STORY_LISTS)}; got {story_list!r}"
            )
        max_items = cfg.get("max_items")
        return cls(
            enabled=bool(cfg.get("enabled", True)),
            api_base_url=str(cfg.get("api_base_url") or DEFAULT_HN_API_BASE_URL).rstrip("/"),
            story_list=story_list,
            max_items=_as_int(max_items, "hackernews.max_items", 1) if max_items is not None else None,
        )

    def to_connector_config(self) -> Dict[str, Any]:
        return {
            "type": "hackernews",
            "id": HN_SOURCE_ID,
            "url": self.api_base_url,
            "story_list": self.story_list,
            "max_items": self.max_items,
        }


@dataclass
class PerformanceConfig:
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT
    request_timeout_seconds: int = DEFAULT_TIMEOUT

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> PerformanceConfig:
        cfg = _mapping(cfg, "performance")
        return cls(
            max_concurrent_requests=_as_int(
                cfg.get("max_concurrent_requests", DEFAULT_MAX_CONCURRENT),
                "performance.max_concurrent_requests", 1,
            ),
            request_timeout_seconds=_as_int(
                cfg.get("request_timeout_seconds", DEFAULT_TIMEOUT),
                "performance.request_timeout_seconds", 1,
            ),
        )


@dataclass
class AppConfig:
    """Everything a run needs, passed explicitly to the orchestrator."""

    blacklisted_domains: List[str] = field(default_factory=list)
    filters: List[ItemFilter] = field(default_factory=list)
    purge_after_days: int = DEFAULT_PURGE_AFTER_DAYS
    db_file: str = DEFAULT_DB_FILE
    db_backend: str = "file"
    smtp: Optional[SmtpConfig] = None
    telegram: Optional[TelegramConfig] = None
    rss_sources: List[RssSource] = field(default_factory=list)
    hackernews: HackerNewsConfig = field(default_factory=HackerNewsConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> AppConfig:
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError("Config root must be a mapping")
        cfg = _resolve_env(raw)

        blacklisted = cfg.get("blacklisted_domains") or []
        if not isinstance(blacklisted, list):
            raise ConfigError("blacklisted_domains must be a list of host names")
        filters = cfg.get("filters") or []
        if not isinstance(filters, list):
            raise ConfigError("filters must be a list of {title, value} entries")
        rss = cfg.get("rss_sources") or []
        if not isinstance(rss, list):
            raise ConfigError("rss_sources must be a list of {name, url} entries")
        rss_sources = [RssSource.from_config(s) for s in rss]
        names = [s.name for s in rss_sources]
        if len(set(names)) != len(names):
            raise ConfigError("rss_sources names must be unique")

        db_backend = str(cfg.get("db_backend", "file")).lower()
        if db_backend not in ("file", "sqlite"):
            raise ConfigError(f"db_backend must be 'file' or 'sqlite', got {db_backend!r}")

        return cls(
            blacklisted_domains=[str(d) for d in blacklisted],
            filters=[ItemFilter.from_config(_mapping(f, "filters[]")) for f in filters],
            purge_after_days=_as_int(
                cfg.get("purge_after_days", DEFAULT_PURGE_AFTER_DAYS), "purge_after_days"
            ),
            db_file=str(cfg.get("db_file") or DEFAULT_DB_FILE),
            db_backend=db_backend,
            smtp=SmtpConfig.from_config(cfg["smtp"]) if cfg.get("smtp") else None,
            telegram=TelegramConfig.from_config(cfg["telegram"]) if cfg.get("telegram") else None,
            rss_sources=rss_sources,
            hackernews=HackerNewsConfig.from_config(cfg.get("hackernews") or {}),
            performance=PerformanceConfig.from_config(cfg.get("performance") or {}),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> AppConfig:
        """Load and validate the config file at *path*."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}") from None
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot load config {path}: {e}") from e
        config = cls.from_dict(raw)
        logger.debug(
            "Config loaded from %s: %d filter group(s), %d RSS source(s)",
            path, len(config.filters), len(config.rss_sources),
        )
        return config
