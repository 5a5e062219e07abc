from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Request, UploadFile
from sqlmodel import Session

from grevocab import config
from grevocab.auth import get_current_user
from grevocab.db import get_session
from grevocab.middleware.rate_limit import import_limit
from grevocab.models import User
from grevocab.notifications import notify_user
from grevocab.services.browse import SORT_ORDERS, filter_entries, sort_entries, vocabulary_stats
from grevocab.services.importer import SAMPLE_ENTRIES, ImportParseError, parse_import
from grevocab.services.monitoring import WORDS_IMPORTED
from grevocab.services.vocabulary_store import StoreError, VocabularyStore, added_event, deleted_event


router = APIRouter(prefix="/words", tags=["words"])


def store_unavailable(e: StoreError) -> HTTPException:
    return HTTPException(status_code=503, detail=f"{e}. Please try again.")


@router.get("")
def list_words(search: str = "", sort: str = "newest", user: User = Depends(get_current_user),
               session: Session = Depends(get_session)):
    if sort not in SORT_ORDERS:
        raise HTTPException(status_code=400, detail=f"sort must be one of: {', '.join(SORT_ORDERS)}")
    try:
        entries = VocabularyStore(session).query_by_owner(user.id)
    except StoreError as e:
        raise store_unavailable(e)
    entries = sort_entries(filter_entries(entries, search), sort)
    return {"words": [e.to_dict() for e in entries], "count": len(entries)}


@router.get("/stats")
def word_stats(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    try:
        entries = VocabularyStore(session).query_by_owner(user.id)
    except StoreError as e:
        raise store_unavailable(e)
    return vocabulary_stats(entries)


@router.post("")
def add_word(background_tasks: BackgroundTasks, word: str = Form(...), definition: str = Form(...),
             user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    try:
        entry = VocabularyStore(session).add_entry(user.id, word, definition)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise store_unavailable(e)
    WORDS_IMPORTED.labels(source="manual").inc()
    background_tasks.add_task(notify_user, user.id, added_event([entry]))
    return entry.to_dict()


@router.delete("/{entry_id}")
def delete_word(entry_id: int, background_tasks: BackgroundTasks, user: User = Depends(get_current_user),
                session: Session = Depends(get_session)):
    try:
        deleted = VocabularyStore(session).delete_entry(user.id, entry_id)
    except StoreError as e:
        raise store_unavailable(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Word not found")
    background_tasks.add_task(notify_user, user.id, deleted_event([entry_id]))
    return {"deleted": entry_id}


@router.get("/import/sample")
def import_sample():
    return SAMPLE_ENTRIES


@router.post("/import")
@import_limit()
async def import_words(request: Request, file: UploadFile = File(...), user: User = Depends(get_current_user),
                       session: Session = Depends(get_session)):
    content = await file.read()
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File is too large")

    store = VocabularyStore(session)
    try:
        report = parse_import(content, store.existing_words(user.id))
    except ImportParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise store_unavailable(e)

    if not report.valid:
        raise HTTPException(status_code=400, detail={"message": "No valid word entries found.", **report.to_dict()})

    try:
        entries = store.add_entries_batch(user.id, report.valid)
    except StoreError as e:
        raise store_unavailable(e)

    WORDS_IMPORTED.labels(source="json").inc(len(entries))
    await notify_user(user.id, added_event(entries))
    return {"imported": len(entries), **report.to_dict()}
