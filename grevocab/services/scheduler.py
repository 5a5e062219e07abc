"""
Study session scheduling.

Two policies are offered over the same word selection:

* timed sessions present one word at a time and move on either manually or
  when the per-word countdown runs out (``StudySession``);
* checklists present every word at once and finish when all of them have been
  marked read (``ChecklistSession``).

Nothing here does I/O. The set of already studied word ids is injected by the
caller (a plain ``set`` or a ``StudiedWordStore``) and is only written to when
unique-words mode is on.
"""
from __future__ import annotations

import random
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Collection, List, Optional, Sequence

CONFIGURING = "configuring"
ACTIVE = "active"
READING = "reading"
COMPLETE = "complete"

Clock = Callable[[], float]


class EmptyPoolError(Exception):
    """No words are available to build a session from."""

    def __init__(self, unique_words_mode: bool = False):
        self.unique_words_mode = unique_words_mode
        if unique_words_mode:
            message = "All words studied! Reset progress to study again."
        else:
            message = "No words available."
        super().__init__(message)


class SessionStateError(Exception):
    """The requested action does not apply in the session's current state."""


@dataclass
class StudySettings:
    words_per_session: int = 25
    time_per_word: int = 30
    auto_advance: bool = True
    shuffle_words: bool = True
    unique_words_mode: bool = True

    def __post_init__(self):
        if self.words_per_session < 1:
            raise ValueError("words_per_session must be at least 1")
        if self.time_per_word < 1:
            raise ValueError("time_per_word must be at least 1 second")

    def to_dict(self) -> dict:
        return asdict(self)


def entry_to_dict(entry: Any) -> dict:
    return {"id": entry.id, "word": entry.word, "definition": entry.definition}


def candidate_pool(pool: Sequence[Any], settings: StudySettings, already_studied: Collection = ()) -> List[Any]:
    if settings.unique_words_mode:
        return [entry for entry in pool if entry.id not in already_studied]
    return list(pool)


def shuffle_entries(entries: Sequence[Any], rng: Optional[random.Random] = None) -> List[Any]:
    """Fisher-Yates shuffle into a new list."""
    rng = rng or random
    shuffled = list(entries)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def select_words(pool: Sequence[Any], settings: StudySettings, already_studied: Collection = (),
                 rng: Optional[random.Random] = None) -> List[Any]:
    available = candidate_pool(pool, settings, already_studied)
    if not available:
        raise EmptyPoolError(settings.unique_words_mode)
    if settings.shuffle_words:
        available = shuffle_entries(available, rng)
    return available[:settings.words_per_session]


class StudySession:
    """A timed session: one word at a time, ``Active -> Complete``."""

    def __init__(self, words: List[Any], settings: StudySettings, studied=None, clock: Clock = time.time):
        self.words = words
        self.settings = settings
        self.studied = studied
        self.clock = clock

        self.current_index = 0
        self.time_per_word = settings.time_per_word
        self.time_left = settings.time_per_word
        self.total_time = 0
        self.is_active = True
        self.is_paused = False
        self.show_definition = True
        self.words_studied = 0
        self.session_start_time = clock()

    @property
    def state(self) -> str:
        return ACTIVE if self.is_active else COMPLETE

    @property
    def current_word(self) -> Optional[Any]:
        if not self.is_active or self.current_index >= len(self.words):
            return None
        return self.words[self.current_index]

    def _mark_studied(self, entry: Any) -> None:
        if self.settings.unique_words_mode and self.studied is not None and entry is not None:
            self.studied.add(entry.id)

    def advance(self) -> None:
        if not self.is_active:
            raise SessionStateError("Session is already complete")

        self._mark_studied(self.current_word)
        self.words_studied += 1

        if self.current_index + 1 >= len(self.words):
            self.is_active = False
            self.total_time = max(0, int(self.clock() - self.session_start_time))
        else:
            self.current_index += 1
            self.show_definition = True
        self.time_left = self.time_per_word

    def tick(self) -> bool:
        """One second of countdown; the only place the timer mutates the session.

        Returns True when the tick advanced to the next word (or finished).
        """
        if not self.is_active or self.is_paused:
            return False
        self.time_left -= 1
        if self.time_left > 0:
            return False
        if self.settings.auto_advance:
            self.advance()
            return True
        self.time_left = self.time_per_word
        return False

    def toggle_pause(self) -> bool:
        if not self.is_active:
            raise SessionStateError("Session is already complete")
        self.is_paused = not self.is_paused
        return self.is_paused

    def toggle_definition(self) -> bool:
        if not self.is_active:
            raise SessionStateError("Session is already complete")
        self.show_definition = not self.show_definition
        return self.show_definition

    def progress(self) -> float:
        if not self.words:
            return 0.0
        return (self.current_index + 1) / len(self.words) * 100

    def to_dict(self) -> dict:
        current = self.current_word
        return {
            "mode": "timed",
            "state": self.state,
            "words": [entry_to_dict(w) for w in self.words],
            "current_index": self.current_index,
            "current_word": entry_to_dict(current) if current is not None else None,
            "time_per_word": self.time_per_word,
            "time_left": self.time_left,
            "total_time": self.total_time,
            "is_active": self.is_active,
            "is_paused": self.is_paused,
            "show_definition": self.show_definition,
            "words_studied": self.words_studied,
            "session_start_time": self.session_start_time,
            "progress": round(self.progress(), 2),
            "settings": self.settings.to_dict(),
        }


def build_session(pool: Sequence[Any], settings: StudySettings, already_studied=None,
                  clock: Clock = time.time, rng: Optional[random.Random] = None) -> StudySession:
    """Pick the words for a timed session and start it.

    Raises EmptyPoolError when nothing is left to study; no session is created
    in that case.
    """
    studied = already_studied if already_studied is not None else set()
    words = select_words(pool, settings, studied, rng)
    return StudySession(words, settings, studied=studied, clock=clock)


@dataclass
class ChecklistItem:
    entry: Any
    read: bool = False

    def to_dict(self) -> dict:
        data = entry_to_dict(self.entry)
        data["read"] = self.read
        return data


class ChecklistSession:
    """Every word shown at once, ``Reading -> Complete``; no timer applies."""

    def __init__(self, words: List[Any], settings: StudySettings, studied=None, clock: Clock = time.time):
        self.items = [ChecklistItem(entry) for entry in words]
        self.settings = settings
        self.studied = studied
        self.clock = clock
        self.session_start_time = clock()
        self.total_time = 0

    @property
    def read_count(self) -> int:
        return sum(1 for item in self.items if item.read)

    @property
    def is_complete(self) -> bool:
        return bool(self.items) and all(item.read for item in self.items)

    @property
    def state(self) -> str:
        return COMPLETE if self.is_complete else READING

    def toggle_item(self, index: int) -> ChecklistItem:
        if index < 0 or index >= len(self.items):
            raise IndexError(f"No checklist item at position {index}")
        item = self.items[index]
        item.read = not item.read
        if item.read and self.settings.unique_words_mode and self.studied is not None:
            self.studied.add(item.entry.id)

        if self.is_complete:
            self.total_time = max(0, int(self.clock() - self.session_start_time))
        else:
            self.total_time = 0
        return item

    def progress(self) -> float:
        if not self.items:
            return 0.0
        return self.read_count / len(self.items) * 100

    def to_dict(self) -> dict:
        return {
            "mode": "checklist",
            "state": self.state,
            "items": [item.to_dict() for item in self.items],
            "read_count": self.read_count,
            "total_time": self.total_time,
            "progress": round(self.progress(), 2),
            "settings": self.settings.to_dict(),
        }


def build_checklist(pool: Sequence[Any], settings: StudySettings, already_studied=None,
                    clock: Clock = time.time, rng: Optional[random.Random] = None) -> ChecklistSession:
    studied = already_studied if already_studied is not None else set()
    words = select_words(pool, settings, studied, rng)
    return ChecklistSession(words, settings, studied=studied, clock=clock)
