import asyncio
from typing import Optional, Set

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from grevocab.auth import get_current_user
from grevocab.db import get_session
from grevocab.models import User
from grevocab.notifications import notify_user
from grevocab.services.monitoring import STUDY_SESSIONS
from grevocab.services.progress_store import StudiedWordStore
from grevocab.services.scheduler import (
    EmptyPoolError, SessionStateError, StudySettings, build_checklist, build_session, candidate_pool,
)
from grevocab.services.study_sessions import SessionNotFoundError, SessionRegistry
from grevocab.services.vocabulary_store import StoreError, VocabularyStore

logger = structlog.get_logger()

router = APIRouter(prefix="/study", tags=["study"])

_pending_pushes: Set[asyncio.Task] = set()


def _push_study_update(user_id: str, session) -> None:
    """Runs on the event loop from the session ticker."""
    task = asyncio.get_running_loop().create_task(
        notify_user(user_id, {"type": "study", "session": session.to_dict()})
    )
    _pending_pushes.add(task)
    task.add_done_callback(_pending_pushes.discard)


registry = SessionRegistry(on_change=_push_study_update)


class SettingsIn(BaseModel):
    words_per_session: int = Field(25, ge=1, le=500)
    time_per_word: int = Field(30, ge=1, le=3600)
    auto_advance: bool = True
    shuffle_words: bool = True
    unique_words_mode: bool = True

    def to_settings(self) -> StudySettings:
        return StudySettings(**self.model_dump())


def _load_pool(session: Session, user: User):
    try:
        entries = VocabularyStore(session).query_by_owner(user.id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail="Failed to load study data. Please try again.") from e
    return sorted(entries, key=lambda e: e.word.lower())


def _not_found(e: SessionNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


# ----------------- Progress -----------------

@router.get("/progress")
def get_progress(unique_words_mode: bool = True, user: User = Depends(get_current_user),
                 session: Session = Depends(get_session)):
    pool = _load_pool(session, user)
    studied = StudiedWordStore(user.id)
    settings = StudySettings(unique_words_mode=unique_words_mode)
    return {
        "studied": sum(1 for entry in pool if entry.id in studied),
        "total": len(pool),
        "available": len(candidate_pool(pool, settings, studied)),
    }


@router.post("/progress/reset")
def reset_progress(user: User = Depends(get_current_user)):
    StudiedWordStore(user.id).reset()
    return {"message": "Your study progress has been reset."}


# ----------------- Timed sessions -----------------

@router.post("/session")
async def start_session(settings_in: Optional[SettingsIn] = None, user: User = Depends(get_current_user),
                        session: Session = Depends(get_session)):
    settings = (settings_in or SettingsIn()).to_settings()
    pool = _load_pool(session, user)
    try:
        study = build_session(pool, settings, StudiedWordStore(user.id))
    except EmptyPoolError as e:
        raise _conflict(e)
    registry.start_timed(user.id, study)
    STUDY_SESSIONS.labels(mode="timed").inc()
    return study.to_dict()


@router.get("/session")
async def get_session_state(user: User = Depends(get_current_user)):
    try:
        return registry.get_timed(user.id).to_dict()
    except SessionNotFoundError as e:
        raise _not_found(e)


@router.post("/session/advance")
async def advance_session(user: User = Depends(get_current_user)):
    try:
        return registry.advance(user.id).to_dict()
    except SessionNotFoundError as e:
        raise _not_found(e)
    except SessionStateError as e:
        raise _conflict(e)


@router.post("/session/pause")
async def pause_session(user: User = Depends(get_current_user)):
    try:
        return registry.toggle_pause(user.id).to_dict()
    except SessionNotFoundError as e:
        raise _not_found(e)
    except SessionStateError as e:
        raise _conflict(e)


@router.post("/session/definition")
async def toggle_definition(user: User = Depends(get_current_user)):
    try:
        return registry.toggle_definition(user.id).to_dict()
    except SessionNotFoundError as e:
        raise _not_found(e)
    except SessionStateError as e:
        raise _conflict(e)


@router.post("/session/tick")
async def tick_session(user: User = Depends(get_current_user)):
    try:
        return registry.tick(user.id).to_dict()
    except SessionNotFoundError as e:
        raise _not_found(e)


@router.delete("/session")
async def reset_session(user: User = Depends(get_current_user)):
    registry.reset_timed(user.id)
    return {"state": "configuring"}


# ----------------- Checklists -----------------

@router.post("/checklist")
async def start_checklist(settings_in: Optional[SettingsIn] = None, user: User = Depends(get_current_user),
                          session: Session = Depends(get_session)):
    settings = (settings_in or SettingsIn()).to_settings()
    pool = _load_pool(session, user)
    try:
        checklist = build_checklist(pool, settings, StudiedWordStore(user.id))
    except EmptyPoolError as e:
        raise _conflict(e)
    registry.start_checklist(user.id, checklist)
    STUDY_SESSIONS.labels(mode="checklist").inc()
    return checklist.to_dict()


@router.get("/checklist")
async def get_checklist(user: User = Depends(get_current_user)):
    try:
        return registry.get_checklist(user.id).to_dict()
    except SessionNotFoundError as e:
        raise _not_found(e)


@router.post("/checklist/items/{index}")
async def toggle_checklist_item(index: int, user: User = Depends(get_current_user)):
    try:
        return registry.toggle_item(user.id, index).to_dict()
    except SessionNotFoundError as e:
        raise _not_found(e)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/checklist")
async def reset_checklist(user: User = Depends(get_current_user)):
    registry.reset_checklist(user.id)
    return {"state": "configuring"}
