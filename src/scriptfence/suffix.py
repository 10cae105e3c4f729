"""Public suffix resolvers used by `.tld` rules."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

import tldextract

logger = logging.getLogger(__name__)


class SuffixResolver(Protocol):
    def is_ready(self) -> bool: ...

    def get_public_suffix(self, candidate: str) -> str: ...


class TldExtractResolver:
    """Resolver backed by the public suffix snapshot bundled with tldextract.

    Not ready until :meth:`load` has run. Rules compiled before that treat
    ``.tld`` as literal text.
    """

    def __init__(self, include_private: bool = False) -> None:
        self._include_private = include_private
        self._extractor: tldextract.TLDExtract | None = None

    def load(self) -> None:
        # Empty URL list: never fetch, use the bundled snapshot
        self._extractor = tldextract.TLDExtract(
            suffix_list_urls=(),
            include_psl_private_domains=self._include_private,
        )
        logger.debug("Public suffix snapshot loaded")

    def is_ready(self) -> bool:
        return self._extractor is not None

    def get_public_suffix(self, candidate: str) -> str:
        if self._extractor is None:
            return ""
        return self._extractor(candidate).suffix


class StaticSuffixResolver:
    """Resolver over a fixed set of suffixes."""

    def __init__(self, suffixes: Iterable[str] = (), ready: bool = True) -> None:
        self.suffixes = {s.lower().strip(".") for s in suffixes}
        self.ready = ready

    def is_ready(self) -> bool:
        return self.ready

    def get_public_suffix(self, candidate: str) -> str:
        """Return the longest known suffix of `candidate`, or ``""``."""
        labels = candidate.lower().split(".")
        for i in range(len(labels)):
            suffix = ".".join(labels[i:])
            if suffix in self.suffixes:
                return suffix
        return ""
