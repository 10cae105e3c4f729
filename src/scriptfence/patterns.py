"""Glob and match-pattern compilers - pure functions, no caching.

Every compiler takes the regex test it should use, so the engine can plug in
a memoized one without changing how rules are compiled.
"""

from __future__ import annotations

import re
from typing import Callable

from scriptfence.rules import RuleSyntaxError, Tester
from scriptfence.suffix import SuffixResolver

RegexTest = Callable[[re.Pattern, str], bool]

# scheme://host/path
RE_MATCH_PARTS = re.compile(r"(.*?)://([^/]*)/(.*)", re.DOTALL)
RE_HTTP_OR_HTTPS = re.compile(r"https?", re.IGNORECASE)

# Zero or more leading labels for `*.example.com`
RE_STR_ANY = r"(?:|.*?\.)"
# One or more trailing labels, checked against the suffix list afterwards
RE_STR_TLD = r"((?:\.\w+)+)"

ALL_URLS = "<all_urls>"


def search_regex(pattern: re.Pattern[str], text: str) -> bool:
    return pattern.search(text) is not None


def _always(_: str) -> bool:
    return True


def _never(_: str) -> bool:
    return False


def str_to_regex(text: str) -> str:
    """Escape `text` for use in a regex, turning each `*` into a lazy wildcard."""
    return ".*?".join(re.escape(part) for part in text.split("*"))


def _is_public_suffix(labels: str, suffixes: SuffixResolver) -> bool:
    candidate = labels[1:]
    return suffixes.get_public_suffix(candidate) == candidate


def compile_glob(
    rule: str,
    suffixes: SuffixResolver,
    regex_test: RegexTest = search_regex,
) -> Tester:
    """Compile an `@include`/`@exclude` style rule.

    ``/.../`` is an explicit regular expression. Anything else is a wildcard
    pattern anchored at both ends. When the suffix resolver is ready, a
    ``.tld/`` token matches any public suffix.

    Raises RuleSyntaxError for an explicit regex that does not compile.
    """
    if len(rule) > 1 and rule[0] == "/" and rule[-1] == "/":
        try:
            pattern = re.compile(rule[1:-1])
        except re.error as exc:
            raise RuleSyntaxError(rule, exc) from exc
        return lambda text: regex_test(pattern, text)

    if suffixes.is_ready() and ".tld/" in rule:
        head, _, tail = rule.partition(".tld/")
        tld_pattern = re.compile(
            rf"^{str_to_regex(head)}{RE_STR_TLD}/{str_to_regex(tail)}\Z"
        )

        def test_tld(text: str) -> bool:
            found = tld_pattern.search(text)
            return bool(found) and _is_public_suffix(found.group(1), suffixes)

        return test_tld

    pattern = re.compile(rf"^{str_to_regex(rule)}\Z")
    return lambda text: regex_test(pattern, text)


def scheme_matcher(rule: str) -> Tester:
    """`*` and `http*` match both http and https, anything else is literal."""
    wildcard = rule in ("*", "http*")

    def test(scheme: str) -> bool:
        if rule == scheme:
            return True
        return wildcard and RE_HTTP_OR_HTTPS.fullmatch(scheme) is not None

    return test


def host_matcher(rule: str, suffixes: SuffixResolver) -> Tester:
    """Host part of a match pattern: `*`, `*.example.com`, `www.google.tld`."""
    prefix = ""
    base = rule
    suffix = ""
    if rule.startswith("*."):
        base = base[2:]
        prefix = RE_STR_ANY
    if suffixes.is_ready() and rule.endswith(".tld"):
        base = base[:-4]
        suffix = RE_STR_TLD
    pattern = re.compile(rf"^{prefix}{str_to_regex(base)}{suffix}\Z")

    def test(host: str) -> bool:
        if rule == "*" or rule == host:
            return True
        found = pattern.search(host)
        if not found:
            return False
        if not suffix:
            return True
        return _is_public_suffix(found.group(1), suffixes)

    return test


def path_matcher(rule: str, regex_test: RegexTest = search_regex) -> Tester:
    """Path part of a match pattern.

    Without an explicit fragment the rule may be followed by a query or a
    fragment (or by a fragment only, when the rule has its own query).
    """
    i_hash = rule.find("#")
    i_query = rule.find("?")
    expr = str_to_regex(rule)
    if i_hash < 0:
        if i_query < 0:
            expr = rf"^{expr}(?:[?#]|\Z)"
        else:
            expr = rf"^{expr}(?:#|\Z)"
    pattern = re.compile(expr)
    return lambda path: regex_test(pattern, path)


def compile_match(
    rule: str,
    suffixes: SuffixResolver,
    regex_test: RegexTest = search_regex,
) -> Tester:
    """Compile an `@match`/`@exclude-match` rule into a tester over full URLs.

    Rules that are not `<all_urls>` and do not split into scheme, host and
    path are ignored: they never match.
    """
    if rule == ALL_URLS:
        return _always
    parts = RE_MATCH_PARTS.match(rule)
    if not parts:
        return _never
    scheme, host, path = parts.groups()
    match_scheme = scheme_matcher(scheme)
    match_host = host_matcher(host, suffixes)
    match_path = path_matcher(path, regex_test)

    def test(url: str) -> bool:
        url_parts = RE_MATCH_PARTS.match(url)
        return bool(
            url_parts
            and match_scheme(url_parts.group(1))
            and match_host(url_parts.group(2))
            and match_path(url_parts.group(3))
        )

    return test
