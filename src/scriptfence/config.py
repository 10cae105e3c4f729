"""Option loading, defaults, validation, and change hooks."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from scriptfence.blacklist import parse_blacklist
from scriptfence.patterns import compile_glob, compile_match
from scriptfence.rules import RuleSyntaxError
from scriptfence.suffix import StaticSuffixResolver
from scriptfence.utils import deep_merge, load_json, save_json

logger = logging.getLogger(__name__)

CONFIG_DIR = ".scriptfence"
CONFIG_FILE = "options.json"

DEFAULT_CONFIG: dict = {
    "version": 1,
    "blacklist": "",
    "pattern_cache_size": 2000,
    "blacklist_cache_max_length": 100_000,
}

OptionsHook = Callable[[dict], None]


class ConfigError(ValueError):
    """Option values that failed validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def get_config_path(start_dir: Path | None = None) -> Path:
    """Find .scriptfence/options.json by walking up from start_dir."""
    search = start_dir or Path.cwd()
    for d in [search, *search.parents]:
        candidate = d / CONFIG_DIR / CONFIG_FILE
        if candidate.exists():
            return candidate
    return (start_dir or Path.cwd()) / CONFIG_DIR / CONFIG_FILE


def load_config(start_dir: Path | None = None) -> dict:
    """Load options from .scriptfence/options.json, merged with defaults."""
    config_path = get_config_path(start_dir)
    if config_path.exists():
        user_config = load_json(config_path)
        if not user_config:
            logger.warning(
                "Options file exists but could not be loaded (corrupt?): %s "
                "Using defaults.", config_path
            )
        return deep_merge(DEFAULT_CONFIG, user_config)
    return DEFAULT_CONFIG.copy()


def save_config(config: dict, target_dir: Path | None = None) -> Path:
    """Save options to .scriptfence/options.json."""
    target = target_dir or Path.cwd()
    config_path = target / CONFIG_DIR / CONFIG_FILE
    save_json(config_path, config)
    return config_path


def _blacklist_errors(blacklist: Any) -> list[str]:
    # Only explicit /regex/ rules can fail, and those never consult the suffix list
    suffixes = StaticSuffixResolver(ready=False)
    try:
        parse_blacklist(
            blacklist,
            lambda rule: compile_glob(rule, suffixes),
            lambda rule: compile_match(rule, suffixes),
        )
    except RuleSyntaxError as exc:
        return [f"Blacklist: {exc}"]
    return []


def validate_config(config: dict) -> list[str]:
    """Validate options, returning list of error messages (empty if valid)."""
    errors = []
    blacklist = config.get("blacklist", "")
    if isinstance(blacklist, list):
        if not all(isinstance(line, str) for line in blacklist):
            errors.append("'blacklist' list entries must be strings")
    elif blacklist is not None and not isinstance(blacklist, str):
        errors.append("'blacklist' must be a string or a list of strings")
    for key in ("pattern_cache_size", "blacklist_cache_max_length"):
        value = config.get(key)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            errors.append(f"'{key}' must be a positive integer, got {value!r}")
    if not errors:
        errors.extend(_blacklist_errors(blacklist))
    return errors


class OptionStore:
    """In-memory options with optional persistence and change notification.

    When `project_dir` is set, every accepted change is written back to
    .scriptfence/options.json under it.
    """

    def __init__(self, config: dict | None = None, project_dir: Path | None = None) -> None:
        self._config = deep_merge(DEFAULT_CONFIG, config or {})
        self.project_dir = project_dir
        self._hooks: list[OptionsHook] = []

    @classmethod
    def load(cls, project_dir: Path | None = None) -> OptionStore:
        project_dir = project_dir or Path.cwd()
        config_path = get_config_path(project_dir)
        return cls(load_config(project_dir), project_dir=config_path.parent.parent)

    def get_option(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def as_dict(self) -> dict:
        return dict(self._config)

    def set_options(self, changes: dict) -> dict:
        """Apply `changes`, returning the keys whose values actually changed.

        Raises ConfigError without touching the current options if the
        result does not validate.
        """
        candidate = deep_merge(self._config, changes)
        errors = validate_config(candidate)
        if errors:
            logger.warning("Rejected option change: %s", "; ".join(errors))
            raise ConfigError(errors)
        changed = {
            key: candidate[key]
            for key in changes
            if self._config.get(key) != candidate[key]
        }
        self._config = candidate
        if not changed:
            return changed
        if self.project_dir is not None:
            save_config(self._config, self.project_dir)
        for hook in list(self._hooks):
            hook(changed)
        return changed

    def hook_options(self, callback: OptionsHook) -> Callable[[], None]:
        """Call `callback` with the changed options after each change.

        Returns a function that removes the hook.
        """
        self._hooks.append(callback)

        def unhook() -> None:
            if callback in self._hooks:
                self._hooks.remove(callback)

        return unhook
