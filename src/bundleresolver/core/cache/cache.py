"""In-memory catalog cache.

The cache is a read-only index over already-loaded entries. Queries never
perform I/O and never mutate state, so any number of resolutions can query
one cache concurrently without locking. A catalog refresh builds a new
``Cache`` and swaps it into a ``CacheHolder``; readers holding the old
snapshot keep a consistent view until they are done with it.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Iterable, Iterator, Sequence

from bundleresolver.core.cache.models import Entry
from bundleresolver.core.cache.predicates import Predicate
from bundleresolver.exceptions import CacheError

logger = logging.getLogger(__name__)


class Cache:
    """A queryable collection of catalog entries.

    Args:
        entries: Entries to index. No two may share a
            (package, bundle name, version) identity.
        namespaces: When given, only entries whose source namespace is in
            this collection are visible (a namespaced view). When None, every
            entry is visible (a global view).

    Raises:
        CacheError: If two entries share an identity triple.
    """

    def __init__(
        self,
        entries: Iterable[Entry],
        *,
        namespaces: Sequence[str] | None = None,
    ) -> None:
        self._namespaces = None if namespaces is None else frozenset(namespaces)

        seen: set[tuple[str, str, str]] = set()
        visible: list[Entry] = []
        for entry in entries:
            if entry.key in seen:
                raise CacheError(
                    f"duplicate entry {entry.package!r}/{entry.name!r}@{entry.version!r}"
                )
            seen.add(entry.key)
            if self._namespaces is not None and entry.source.namespace not in self._namespaces:
                continue
            visible.append(entry)

        self._entries: tuple[Entry, ...] = tuple(_ordered(visible))
        self._by_package: dict[str, list[Entry]] = defaultdict(list)
        for entry in self._entries:
            self._by_package[entry.package].append(entry)
        logger.debug("Built cache with %d visible entries", len(self._entries))

    @property
    def namespaces(self) -> frozenset[str] | None:
        return self._namespaces

    def find(self, *predicates: Predicate) -> list[Entry]:
        """Return every entry satisfying all *predicates*, in cache order.

        With no predicates every visible entry is returned.
        """
        return [e for e in self._entries if all(p.test(e) for p in predicates)]

    def packages(self) -> list[str]:
        return sorted(self._by_package)

    def versions_of(self, package: str) -> list[Entry]:
        """Return a package's entries, newest version first."""
        return list(self._by_package.get(package, ()))

    def get(self, package: str, name: str, version: str) -> Entry | None:
        for entry in self._by_package.get(package, ()):
            if entry.name == name and entry.version == version:
                return entry
        return None

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry: object) -> bool:
        return entry in self._entries


def _ordered(entries: list[Entry]) -> list[Entry]:
    """Order entries by package, then version descending, then bundle name."""
    parsable = [e for e in entries if e.parsed_version is not None]
    unparsable = [e for e in entries if e.parsed_version is None]

    # Stable sorts applied from least to most significant key.
    parsable.sort(key=lambda e: e.name)
    parsable.sort(key=lambda e: e.parsed_version, reverse=True)
    parsable.sort(key=lambda e: e.package)
    unparsable.sort(key=lambda e: (e.package, e.name))

    return sorted(parsable + unparsable, key=_sort_key_bucket)


def _sort_key_bucket(entry: Entry) -> tuple[str, int]:
    # Python's sort is stable: within one (package, bucket) the version
    # order established above is preserved.
    return (entry.package, 0 if entry.parsed_version is not None else 1)


class CacheHolder:
    """Copy-on-write reference to the current cache.

    ``current`` always returns a complete cache; ``replace`` swaps in a newly
    built one. Callers never observe a partially rebuilt cache.
    """

    def __init__(self, cache: Cache | None = None) -> None:
        self._lock = threading.Lock()
        self._cache = cache if cache is not None else Cache(())

    @property
    def current(self) -> Cache:
        with self._lock:
            return self._cache

    def replace(self, cache: Cache) -> Cache:
        """Install *cache* as the current cache and return the previous one."""
        with self._lock:
            previous, self._cache = self._cache, cache
        logger.info("Replaced catalog cache (%d -> %d entries)", len(previous), len(cache))
        return previous
