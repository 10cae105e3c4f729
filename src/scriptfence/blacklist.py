"""Blacklist parsing and first-match-wins evaluation."""

from __future__ import annotations

import re
from typing import Callable, Iterable, Iterator, Optional, Union

from scriptfence.rules import GLOB_MODES, WHITELIST_MODES, BlacklistRule, Tester

Compiler = Callable[[str], Tester]

BlacklistSource = Optional[Union[str, Iterable[str]]]

_RE_WHITESPACE = re.compile(r"\s")


def iter_lines(source: BlacklistSource) -> Iterator[str]:
    """Yield the meaningful lines of a blacklist.

    `source` is newline separated text, or a list of lines as stored by older
    versions. Lines are trimmed; blank lines and `#` comments are skipped.
    """
    if not source:
        return
    lines = source.split("\n") if isinstance(source, str) else source
    for line in lines:
        text = line.strip()
        if text and not text.startswith("#"):
            yield text


def parse_line(text: str) -> tuple[str | None, str]:
    """Split a trimmed line into its `@mode` (or None) and the rule body."""
    if not text.startswith("@"):
        return None, text
    mode = _RE_WHITESPACE.split(text, 1)[0]
    return mode, text[len(mode) + 1:].strip()


def compile_line(
    text: str,
    compile_glob: Compiler,
    compile_match: Compiler,
) -> BlacklistRule:
    mode, body = parse_line(text)
    if mode in GLOB_MODES:
        test = compile_glob(body)
    elif mode is None and "/" not in body:
        # bare domain
        test = compile_match(f"*://{body}/*")
    else:
        test = compile_match(body)
    return BlacklistRule(reject=mode not in WHITELIST_MODES, test=test, text=text)


def parse_blacklist(
    source: BlacklistSource,
    compile_glob: Compiler,
    compile_match: Compiler,
) -> list[BlacklistRule]:
    """Compile a blacklist into rules, in the order they were written.

    Raises RuleSyntaxError if a `/regex/` glob rule does not compile.
    """
    return [compile_line(text, compile_glob, compile_match) for text in iter_lines(source)]


def find_rule(rules: Iterable[BlacklistRule], url: str) -> BlacklistRule | None:
    for rule in rules:
        if rule.test(url):
            return rule
    return None


def evaluate(rules: Iterable[BlacklistRule], url: str) -> str | bool:
    """Return the text of the first matching rule if it blocks, else False."""
    rule = find_rule(rules, url)
    if rule is not None and rule.reject:
        return rule.text
    return False
