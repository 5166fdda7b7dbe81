"""Container configuration and its TOML representation."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from platformdirs import user_config_dir

from .errors import ConfigError

DEFAULT_APP_NAME = "tendril"
CONFIG_FILE_NAME = "config.toml"
DEFAULT_GRACE_PERIOD = 1.0


def default_config_path() -> Path:
    """Return the platform-specific default config path."""

    base_dir = Path(user_config_dir(DEFAULT_APP_NAME, appauthor=False))
    return base_dir / CONFIG_FILE_NAME


@dataclass(frozen=True)
class CrawlSpec:
    """One directory to discover services in."""

    path: Path
    postfix: str = ""
    lazy: bool = True
    order: tuple[str, ...] = ()

    @classmethod
    def coerce(cls, value: "CrawlSpec | Mapping[str, Any] | str | Path") -> "CrawlSpec":
        if isinstance(value, CrawlSpec):
            return value
        if isinstance(value, (str, Path)):
            return cls(path=Path(value))
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        raise ConfigError(f"cannot build a crawl entry from {value!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base_dir: Path | None = None) -> "CrawlSpec":
        raw_path = data.get("path")
        if not isinstance(raw_path, (str, Path)) or not str(raw_path).strip():
            raise ConfigError("crawl entry is missing 'path'")
        path = Path(raw_path)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path

        postfix = data.get("postfix", "")
        if not isinstance(postfix, str):
            raise ConfigError("'postfix' must be a string")
        lazy = data.get("lazy", True)
        if not isinstance(lazy, bool):
            raise ConfigError("'lazy' must be a boolean")
        order = data.get("order", ())
        if isinstance(order, str) or not all(isinstance(item, str) for item in order):
            raise ConfigError("'order' must be a list of strings")
        return cls(path=path, postfix=postfix, lazy=lazy, order=tuple(order))


def coerce_crawls(
    value: "CrawlSpec | Mapping[str, Any] | str | Path | Iterable[Any]",
) -> tuple[CrawlSpec, ...]:
    """Accept one crawl entry or a sequence of them."""

    if isinstance(value, (CrawlSpec, Mapping, str, Path)):
        return (CrawlSpec.coerce(value),)
    return tuple(CrawlSpec.coerce(item) for item in value)


@dataclass(frozen=True)
class TendrilConfig:
    debug: bool = False
    grace_period: float = DEFAULT_GRACE_PERIOD
    crawls: tuple[CrawlSpec, ...] = field(default_factory=tuple)

    @classmethod
    def load(cls, path: Path) -> "TendrilConfig":
        """Load the ``[tendril]`` table of a TOML document."""

        try:
            with path.open("rb") as handle:
                document = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"unable to read config at {path}") from exc
        return cls.from_document(document, base_dir=path.parent)

    @classmethod
    def from_document(
        cls,
        document: Mapping[str, Any],
        *,
        base_dir: Path | None = None,
    ) -> "TendrilConfig":
        section = document.get("tendril", {})
        if not isinstance(section, dict):
            raise ConfigError("malformed [tendril] section")

        debug = section.get("debug", False)
        if not isinstance(debug, bool):
            raise ConfigError("'debug' must be a boolean")
        grace_period = section.get("grace_period", DEFAULT_GRACE_PERIOD)
        if isinstance(grace_period, bool) or not isinstance(grace_period, (int, float)):
            raise ConfigError("'grace_period' must be a number")
        if grace_period <= 0:
            raise ConfigError("'grace_period' must be positive")

        raw_crawls = section.get("crawl", [])
        if not isinstance(raw_crawls, list):
            raise ConfigError("'crawl' must be an array of tables")
        crawls = []
        for entry in raw_crawls:
            if not isinstance(entry, dict):
                raise ConfigError("'crawl' must be an array of tables")
            crawls.append(CrawlSpec.from_mapping(entry, base_dir=base_dir))

        return cls(debug=debug, grace_period=float(grace_period), crawls=tuple(crawls))

    @classmethod
    def load_default(cls) -> "TendrilConfig":
        """Load the default config file, or defaults when none exists."""

        path = default_config_path()
        if not path.is_file():
            return cls()
        return cls.load(path)
