"""
Search, ordering and summary figures for a user's word list
"""
from datetime import datetime, time as dt_time, timezone
from typing import Iterable, List, Optional

from grevocab.models import VocabularyEntry

SORT_ORDERS = ("newest", "oldest", "alphabetical")


def _as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    # SQLite hands timestamps back without an offset; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _created(entry: VocabularyEntry) -> datetime:
    return _as_utc(entry.created_at)


def filter_entries(entries: Iterable[VocabularyEntry], search: Optional[str]) -> List[VocabularyEntry]:
    term = (search or "").lower()
    if not term:
        return list(entries)
    return [e for e in entries if term in e.word.lower() or term in e.definition.lower()]


def sort_entries(entries: Iterable[VocabularyEntry], order: str = "newest") -> List[VocabularyEntry]:
    if order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order {order!r}; expected one of {', '.join(SORT_ORDERS)}")
    if order == "alphabetical":
        return sorted(entries, key=lambda e: e.word.lower())
    return sorted(entries, key=_created, reverse=(order == "newest"))


def vocabulary_stats(entries: List[VocabularyEntry], now: Optional[datetime] = None) -> dict:
    if not entries:
        return {"total_words": 0, "words_added_today": 0, "last_addition": None}

    now = _as_utc(now or datetime.now(timezone.utc))
    today_start = datetime.combine(now.date(), dt_time.min, tzinfo=timezone.utc)
    newest = max(entries, key=_created)
    return {
        "total_words": len(entries),
        "words_added_today": sum(1 for e in entries if e.created_at and _created(e) >= today_start),
        "last_addition": _created(newest).isoformat() if newest.created_at else None,
    }
