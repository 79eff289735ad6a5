"""Settings resolved from defaults, git config and command line options."""

from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Optional

from twig.git import DEFAULT_SORT
from twig.logger import get_logger

logger = get_logger(__name__)

TRUE_VALUES = ("true", "yes", "on", "1")
FALSE_VALUES = ("false", "no", "off", "0")

# Settings field -> git config key
GIT_CONFIG_KEYS = {
    "include_remotes": "twig.remotes",
    "sort": "twig.sort",
    "page_size": "twig.pageSize",
    "show_prs": "twig.prs",
    "track_remotes": "twig.track",
}


class ConfigError(Exception):
    """Invalid configuration value."""


@dataclass(frozen=True)
class Settings:
    """How branches are listed, shown and checked out."""

    include_remotes: bool = True
    sort: str = DEFAULT_SORT
    page_size: int = 18
    show_prs: bool = True
    track_remotes: bool = True


def parse_bool(key: str, value: str) -> bool:
    """Parse a boolean the way git config spells it."""
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {key}: {value!r}")


def parse_page_size(key: str, value: str) -> int:
    try:
        size = int(value)
    except ValueError as err:
        raise ConfigError(f"Invalid number for {key}: {value!r}") from err
    if size < 1:
        raise ConfigError(f"{key} must be at least 1, got {size}")
    return size


def _convert(name: str, key: str, value: str) -> Any:
    if name == "page_size":
        return parse_page_size(key, value)
    if name == "sort":
        return value.strip()
    return parse_bool(key, value)


def load_settings(get_config: Callable[[str], Optional[str]], **overrides: Any) -> Settings:
    """Resolve settings.

    Args:
        get_config: Reads a git config key, returning None when unset
        **overrides: Command line values; None means "not given"

    Raises:
        ConfigError: If a git config value or override is invalid
    """
    values: dict[str, Any] = {}
    for name, key in GIT_CONFIG_KEYS.items():
        raw = get_config(key)
        if raw is not None:
            values[name] = _convert(name, key, raw)
            logger.debug("Using %s=%s from git config", key, raw)

    known = {field.name for field in fields(Settings)}
    for name, value in overrides.items():
        if name not in known:
            raise ConfigError(f"Unknown setting: {name}")
        if value is not None:
            values[name] = value

    if "page_size" in values and values["page_size"] < 1:
        raise ConfigError(f"page size must be at least 1, got {values['page_size']}")

    return replace(Settings(), **values)
