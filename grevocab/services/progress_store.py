"""
Per-user record of which words have already been studied
"""
from typing import Iterator, Optional, Set

import structlog

from grevocab.services.cache import CacheService, cache as default_cache

logger = structlog.get_logger()

KEY_PREFIX = "gre_studied_words:"


class StudiedWordStore:
    """Set of studied entry ids, written through to the cache on every change.

    Only grows until ``reset()`` is called; the cache entry never expires.
    """

    def __init__(self, user_id, cache: Optional[CacheService] = None):
        self.user_id = user_id
        self.cache = cache or default_cache
        self._ids: Set = set(self.load())

    @property
    def key(self) -> str:
        return f"{KEY_PREFIX}{self.user_id}"

    def load(self) -> Set:
        stored = self.cache.get(self.key)
        return set(stored) if stored else set()

    def _save(self) -> None:
        self.cache.set(self.key, sorted(self._ids, key=str), expire=None)

    def add(self, entry_id) -> None:
        # re-read first so a reset made elsewhere is not undone
        self._ids = self.load()
        if entry_id in self._ids:
            return
        self._ids.add(entry_id)
        self._save()

    def reset(self) -> None:
        self._ids.clear()
        self.cache.delete(self.key)
        logger.info("study_progress_reset", user_id=self.user_id)

    def __contains__(self, entry_id) -> bool:
        return entry_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator:
        return iter(self._ids)
