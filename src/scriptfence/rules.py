"""Rule definitions, enums, and script rule sets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

Tester = Callable[[str], bool]


class Mode(str, Enum):
    INCLUDE = "@include"
    EXCLUDE = "@exclude"
    MATCH = "@match"
    EXCLUDE_MATCH = "@exclude-match"


# Modes that whitelist a URL instead of blocking it
WHITELIST_MODES: frozenset[str] = frozenset({Mode.INCLUDE.value, Mode.MATCH.value})

# Modes whose body is a glob rule rather than a match pattern
GLOB_MODES: frozenset[str] = frozenset({Mode.INCLUDE.value, Mode.EXCLUDE.value})


class RuleSyntaxError(re.error):
    """An explicit /regex/ rule that does not compile."""

    def __init__(self, rule: str, cause: re.error) -> None:
        super().__init__(f"invalid regex in rule {rule!r}: {cause.msg}")
        self.rule = rule
        self.cause = cause


@dataclass
class BlacklistRule:
    reject: bool
    test: Tester
    text: str


@dataclass
class ScriptMeta:
    """Rules declared in the script's metadata block."""

    match: list[str] = field(default_factory=list)
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    exclude_match: list[str] = field(default_factory=list)


@dataclass
class ScriptCustom:
    """User-edited rules plus per-category flags to keep the metadata rules."""

    match: list[str] = field(default_factory=list)
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    exclude_match: list[str] = field(default_factory=list)
    orig_match: bool = False
    orig_include: bool = False
    orig_exclude: bool = False
    orig_exclude_match: bool = False


@dataclass
class Script:
    custom: ScriptCustom = field(default_factory=ScriptCustom)
    meta: ScriptMeta = field(default_factory=ScriptMeta)

    @classmethod
    def from_dict(cls, data: dict) -> Script:
        """Build a Script from a persisted dict.

        Accepts snake_case keys and the camelCase keys of stored scripts
        (``excludeMatch``, ``origMatch`` ...). Missing keys fall back to empty
        lists and ``False`` flags.
        """
        custom = data.get("custom") or {}
        meta = data.get("meta") or {}
        return cls(
            custom=ScriptCustom(
                match=_list(custom, "match"),
                include=_list(custom, "include"),
                exclude=_list(custom, "exclude"),
                exclude_match=_list(custom, "exclude_match", "excludeMatch"),
                orig_match=bool(_pick(custom, "orig_match", "origMatch")),
                orig_include=bool(_pick(custom, "orig_include", "origInclude")),
                orig_exclude=bool(_pick(custom, "orig_exclude", "origExclude")),
                orig_exclude_match=bool(
                    _pick(custom, "orig_exclude_match", "origExcludeMatch")
                ),
            ),
            meta=ScriptMeta(
                match=_list(meta, "match"),
                include=_list(meta, "include"),
                exclude=_list(meta, "exclude"),
                exclude_match=_list(meta, "exclude_match", "excludeMatch"),
            ),
        )


def _pick(data: dict, *keys: str):
    for key in keys:
        if key in data:
            return data[key]
    return None


def _list(data: dict, *keys: str) -> list[str]:
    value = _pick(data, *keys)
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]
