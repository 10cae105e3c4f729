"""Matching engine: cached rule testing, script applicability, blacklist."""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable

from scriptfence.blacklist import BlacklistSource, evaluate, parse_blacklist
from scriptfence.cache import MAX_BLACKLIST_CACHE_LENGTH, BlacklistCache, PatternCache
from scriptfence.config import OptionStore
from scriptfence.patterns import compile_glob, compile_match
from scriptfence.rules import BlacklistRule, Script, Tester
from scriptfence.suffix import StaticSuffixResolver, SuffixResolver, TldExtractResolver

logger = logging.getLogger(__name__)


def merge_lists(*lists: list[str] | None) -> list[str]:
    """Concatenate the given lists, skipping empty or missing ones."""
    merged: list[str] = []
    for item in lists:
        if item:
            merged.extend(item)
    return merged


class MatchEngine:
    """Owns the compiled-rule cache, the suffix resolver and the blacklist.

    `options` is anything with ``get_option(key)`` and, optionally,
    ``hook_options(callback)``; it is only needed when the blacklist is
    reset from stored options.
    """

    def __init__(
        self,
        cache: PatternCache | None = None,
        suffixes: SuffixResolver | None = None,
        options=None,
        blacklist_max_length: int = MAX_BLACKLIST_CACHE_LENGTH,
    ) -> None:
        self.cache = cache if cache is not None else PatternCache()
        self.suffixes = suffixes if suffixes is not None else StaticSuffixResolver(ready=False)
        self.options = None
        self.blacklist_rules: list[BlacklistRule] = []
        self.blacklist_cache = BlacklistCache(blacklist_max_length)
        self._unhook: Callable[[], None] | None = None
        if options is not None:
            self.attach(options)

    # -- option store -----------------------------------------------------

    def attach(self, options) -> None:
        """Use `options` as the blacklist source and follow its changes."""
        self.detach()
        self.options = options
        hook = getattr(options, "hook_options", None)
        if hook is not None:
            self._unhook = hook(self._on_options_changed)

    def detach(self) -> None:
        if self._unhook is not None:
            self._unhook()
            self._unhook = None
        self.options = None

    def _on_options_changed(self, changes: dict) -> None:
        if "blacklist" in changes:
            self.reset_blacklist(changes["blacklist"] or "")

    # -- cached compilation -----------------------------------------------

    def test_regex(self, pattern: re.Pattern, text: str) -> bool:
        """`pattern.search(text)`, memoized per pattern source and text."""
        key = f"re-test:{pattern.pattern}:{text}"
        result = self.cache.get(key)
        if result is None:
            result = 1 if pattern.search(text) else -1
            self.cache.put(key, result)
        return result == 1

    def _cached(self, key: str, build: Callable[[], Tester]) -> Tester:
        tester = self.cache.get(key)
        if tester is not None:
            self.cache.hit(key)
        else:
            tester = build()
            self.cache.put(key, tester)
        return tester

    def glob_tester(self, rule: str) -> Tester:
        return self._cached(
            f"re:{rule}",
            lambda: compile_glob(rule, self.suffixes, self.test_regex),
        )

    def match_tester(self, rule: str) -> Tester:
        return self._cached(
            f"match:{rule}",
            lambda: compile_match(rule, self.suffixes, self.test_regex),
        )

    # -- public tests -----------------------------------------------------

    def test_glob(self, url: str, rules: Iterable[str]) -> bool:
        """True if `url` matches any `@include`/`@exclude` style rule."""
        return any(self.glob_tester(rule)(url) for rule in rules)

    def test_match(self, url: str, rules: Iterable[str]) -> bool:
        """True if `url` matches any `@match`/`@exclude-match` style rule."""
        return any(self.match_tester(rule)(url) for rule in rules)

    def test_script(self, url: str, script: Script) -> bool:
        """Decide whether `script` should run on `url`.

        Custom rules replace the metadata rules of the same category unless
        the matching ``orig_*`` flag keeps them. With no match or include
        rules at all the script runs everywhere. Exclusions always win.
        """
        custom, meta = script.custom, script.meta
        mat = merge_lists(custom.match, meta.match if custom.orig_match else None)
        inc = merge_lists(custom.include, meta.include if custom.orig_include else None)
        exc = merge_lists(custom.exclude, meta.exclude if custom.orig_exclude else None)
        exc_mat = merge_lists(
            custom.exclude_match,
            meta.exclude_match if custom.orig_exclude_match else None,
        )
        ok = not mat and not inc
        ok = ok or self.test_match(url, mat)
        ok = ok or self.test_glob(url, inc)
        ok = ok and not self.test_match(url, exc_mat)
        ok = ok and not self.test_glob(url, exc)
        return ok

    # -- blacklist --------------------------------------------------------

    def reset_blacklist(self, source: BlacklistSource = None) -> None:
        """Recompile the blacklist and drop all cached verdicts.

        With no `source`, the `blacklist` option is read from the attached
        option store, and ValueError is raised when there is none. Raises
        RuleSyntaxError on a malformed `/regex/` rule, in which case the
        previous rules stay in effect.
        """
        if source is None:
            if self.options is None:
                raise ValueError("No blacklist given and no option store attached")
            source = self.options.get_option("blacklist")
        logger.debug("Reset blacklist: %r", source)
        self.blacklist_rules = parse_blacklist(source, self.glob_tester, self.match_tester)
        self.blacklist_cache.clear()

    def test_blacklist(self, url: str) -> str | bool:
        """Return the text of the blacklist rule blocking `url`, or False."""
        verdict = self.blacklist_cache.get(url)
        if verdict is None:
            verdict = evaluate(self.blacklist_rules, url)
            self.blacklist_cache.put(url, verdict)
        return verdict


_default_engine: MatchEngine | None = None


def get_engine() -> MatchEngine:
    """Return the process-wide engine, creating it on first use.

    The new engine follows the options saved for the current directory and
    starts with their blacklist.
    """
    global _default_engine
    if _default_engine is None:
        suffixes = TldExtractResolver()
        suffixes.load()
        engine = MatchEngine(suffixes=suffixes, options=OptionStore.load())
        engine.reset_blacklist()
        _default_engine = engine
    return _default_engine


def set_engine(engine: MatchEngine | None) -> None:
    global _default_engine
    _default_engine = engine


def test_glob(url: str, rules: Iterable[str]) -> bool:
    return get_engine().test_glob(url, rules)


def test_match(url: str, rules: Iterable[str]) -> bool:
    return get_engine().test_match(url, rules)


def test_script(url: str, script: Script) -> bool:
    return get_engine().test_script(url, script)


def test_blacklist(url: str) -> str | bool:
    return get_engine().test_blacklist(url)


def reset_blacklist(source: BlacklistSource = None) -> None:
    get_engine().reset_blacklist(source)
