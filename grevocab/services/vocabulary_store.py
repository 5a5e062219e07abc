"""
Vocabulary persistence, scoped to one owner at a time
"""
from __future__ import annotations

from typing import Iterable, List, Set, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from grevocab.models import VocabularyEntry

logger = structlog.get_logger()


class StoreError(Exception):
    """The store could not complete the operation; safe to retry."""


class VocabularyStore:
    def __init__(self, session: Session):
        self.session = session

    def _commit(self, action: str, owner_id: int) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("store_commit_failed", action=action, owner_id=owner_id, error=str(e))
            raise StoreError(f"Failed to {action}") from e

    def add_entry(self, owner_id: int, word: str, definition: str) -> VocabularyEntry:
        word = (word or "").strip()
        definition = (definition or "").strip()
        if not word or not definition:
            raise ValueError("Both word and definition are required")

        entry = VocabularyEntry(word=word, definition=definition, owner_id=owner_id)
        self.session.add(entry)
        self._commit("add word", owner_id)
        self.session.refresh(entry)
        logger.info("word_added", owner_id=owner_id, entry_id=entry.id)
        return entry

    def add_entries_batch(self, owner_id: int, pairs: Iterable[Tuple[str, str]]) -> List[VocabularyEntry]:
        """Insert all pairs in one transaction; nothing is written if any insert fails."""
        entries = [
            VocabularyEntry(word=word.strip(), definition=definition.strip(), owner_id=owner_id)
            for word, definition in pairs
        ]
        if not entries:
            return []
        self.session.add_all(entries)
        self._commit("import words", owner_id)
        for entry in entries:
            self.session.refresh(entry)
        logger.info("words_imported", owner_id=owner_id, count=len(entries))
        return entries

    def get_entry(self, owner_id: int, entry_id: int) -> VocabularyEntry | None:
        entry = self.session.get(VocabularyEntry, entry_id)
        if entry is None or entry.owner_id != owner_id:
            return None
        return entry

    def delete_entry(self, owner_id: int, entry_id: int) -> bool:
        entry = self.get_entry(owner_id, entry_id)
        if entry is None:
            return False
        self.session.delete(entry)
        self._commit("delete word", owner_id)
        logger.info("word_deleted", owner_id=owner_id, entry_id=entry_id)
        return True

    def query_by_owner(self, owner_id: int) -> List[VocabularyEntry]:
        try:
            return list(self.session.exec(
                select(VocabularyEntry)
                .where(VocabularyEntry.owner_id == owner_id)
                .order_by(VocabularyEntry.id)
            ).all())
        except SQLAlchemyError as e:
            logger.error("store_query_failed", owner_id=owner_id, error=str(e))
            raise StoreError("Failed to load vocabulary") from e

    def existing_words(self, owner_id: int) -> Set[str]:
        return {entry.word.strip().lower() for entry in self.query_by_owner(owner_id)}

    def count(self) -> int:
        return len(self.session.exec(select(VocabularyEntry.id)).all())


def added_event(entries: Iterable[VocabularyEntry]) -> dict:
    return {"type": "added", "entries": [entry.to_dict() for entry in entries]}


def deleted_event(entry_ids: Iterable[int]) -> dict:
    return {"type": "deleted", "ids": list(entry_ids)}
