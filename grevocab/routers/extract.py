from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from pydantic import BaseModel
from sqlmodel import Session

from grevocab import config
from grevocab.auth import get_current_user
from grevocab.db import get_session
from grevocab.middleware.rate_limit import extraction_limit
from grevocab.models import User
from grevocab.notifications import notify_user
from grevocab.services.document_text import UnsupportedDocumentError, decode_document
from grevocab.services.extractor import extract, visible_candidates
from grevocab.services.monitoring import EXTRACTION_REQUESTS, WORDS_IMPORTED
from grevocab.services.vocabulary_store import StoreError, VocabularyStore, added_event

import structlog

logger = structlog.get_logger()

router = APIRouter(prefix="/extract", tags=["extract"])


class CandidateIn(BaseModel):
    word: str
    definition: str
    selected: bool = True


class ExtractImportRequest(BaseModel):
    candidates: List[CandidateIn]


@router.post("")
@extraction_limit()
async def extract_from_document(request: Request, file: UploadFile = File(...), show_low_confidence: bool = False,
                                user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    content = await file.read()
    if len(content) > config.MAX_UPLOAD_BYTES:
        EXTRACTION_REQUESTS.labels(status="rejected").inc()
        raise HTTPException(status_code=413, detail="File is too large")

    try:
        text = decode_document(file.filename, file.content_type, content)
    except UnsupportedDocumentError as e:
        EXTRACTION_REQUESTS.labels(status="rejected").inc()
        raise HTTPException(status_code=400, detail=str(e))

    try:
        existing = VocabularyStore(session).existing_words(user.id)
    except StoreError as e:
        EXTRACTION_REQUESTS.labels(status="error").inc()
        raise HTTPException(status_code=503, detail="Failed to process document. Please try again.") from e

    candidates = extract(text, existing)
    EXTRACTION_REQUESTS.labels(status="success").inc()
    logger.info("document_extracted", user_id=user.id, filename=file.filename, chars=len(text),
                candidates=len(candidates))

    shown = visible_candidates(candidates, show_low_confidence)
    return {
        "words": [c.to_dict() for c in shown],
        "total_found": len(candidates),
        # candidates already known to the user are filtered out during extraction
        "duplicates": [],
    }


@router.post("/import")
async def import_candidates(payload: ExtractImportRequest, user: User = Depends(get_current_user),
                            session: Session = Depends(get_session)):
    chosen = [(c.word, c.definition) for c in payload.candidates if c.selected]
    if not chosen:
        raise HTTPException(status_code=400, detail="Please select at least one word to import.")
    if any(not word.strip() or not definition.strip() for word, definition in chosen):
        raise HTTPException(status_code=400, detail="Every selected word needs a word and a definition.")

    try:
        entries = VocabularyStore(session).add_entries_batch(user.id, chosen)
    except StoreError as e:
        raise HTTPException(status_code=503, detail="Failed to import words. Please try again.") from e

    WORDS_IMPORTED.labels(source="extract").inc(len(entries))
    await notify_user(user.id, added_event(entries))
    return {"imported": len(entries), "words": [e.to_dict() for e in entries]}
