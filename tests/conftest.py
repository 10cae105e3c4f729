"""Shared fixtures: an offline suffix list and an engine built on it."""

import pytest

from scriptfence.matcher import MatchEngine
from scriptfence.suffix import StaticSuffixResolver

SUFFIXES = ["com", "org", "net", "uk", "co.uk", "jp", "co.jp"]


@pytest.fixture
def suffixes() -> StaticSuffixResolver:
    return StaticSuffixResolver(SUFFIXES)


@pytest.fixture
def cold_suffixes() -> StaticSuffixResolver:
    """Suffix list that has not finished loading yet."""
    return StaticSuffixResolver(SUFFIXES, ready=False)


@pytest.fixture
def engine(suffixes: StaticSuffixResolver) -> MatchEngine:
    return MatchEngine(suffixes=suffixes)
