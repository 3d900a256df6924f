# tutor_app/main.py
from __future__ import annotations

import datetime as dt
import os
import uuid
from typing import List, Optional

import pytz
import structlog
from fastapi import FastAPI, HTTPException, Depends, Header, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .logging_setup import configure_logging
from .db_pg import engine, get_db, init_models, ping
from .models import Conversation
from .schema import (
    DailyVocabularyResponse,
    DailyWord,
    DeleteVocabularyResponse,
    VocabularyItem,
)
from .daily_set import DailySetError, TextGenerator, get_or_generate_daily_set
from .llm_client import generate_text
from .vocabulary import (
    delete_vocabulary_entry,
    get_vocabulary_entry,
    list_conversation_vocabulary,
    list_user_vocabulary,
)

configure_logging()
log = structlog.get_logger()

# ───────── Config ─────────
TZ = pytz.timezone(os.getenv("APP_TIMEZONE", "Europe/Riga"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# ───────── App ─────────
app = FastAPI(title="Latvian Tutor API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET","DELETE","OPTIONS"],
    allow_headers=["*"],
)

# ───────── Dependencies ─────────
# identity is resolved upstream; this service trusts the forwarded user id
async def current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()

def get_text_generator() -> TextGenerator:
    return generate_text

def today_local() -> dt.date:
    return dt.datetime.now(TZ).date()

# ───────── Lifecycle ─────────
@app.on_event("startup")
async def on_startup():
    await ping()
    await init_models()

@app.on_event("shutdown")
async def on_shutdown():
    await engine.dispose()

@app.get("/healthz")
async def healthz():
    return {"ok": True}

# ───────── /api/vocabulary ─────────
@app.get("/api/vocabulary", response_model=List[VocabularyItem])
async def all_vocabulary(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(current_user_id),
):
    items = await list_user_vocabulary(db, user_id)
    log.info("Vocabulary retrieved", user_id=user_id, count=len(items))
    return [VocabularyItem.model_validate(item) for item in items]

# ───────── /api/vocabulary/daily (generated once per user per day) ─────────
@app.get("/api/vocabulary/daily", response_model=DailyVocabularyResponse)
async def daily_vocabulary(
    day: Optional[dt.date] = Query(None, alias="date", description="User-local date, defaults to today"),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(current_user_id),
    generate: TextGenerator = Depends(get_text_generator),
):
    day = day or today_local()
    try:
        daily = await get_or_generate_daily_set(db, user_id, day, generate)
        return DailyVocabularyResponse(
            topic=daily.topic,
            date=daily.date,
            words=[DailyWord.model_validate(w) for w in daily.words],
        )
    except HTTPException:
        raise
    except DailySetError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        log.error("Failed to get/generate daily vocabulary", user_id=user_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to get daily vocabulary")

# ───────── /api/conversations/{id}/vocabulary ─────────
@app.get("/api/conversations/{conversation_id}/vocabulary", response_model=List[VocabularyItem])
async def conversation_vocabulary(
    conversation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(current_user_id),
):
    res = await db.execute(select(Conversation).where(Conversation.id == conversation_id))
    conversation = res.scalar_one_or_none()
    if conversation is None:
        log.warning("Conversation not found", conversation_id=str(conversation_id), user_id=user_id)
        raise HTTPException(status_code=404, detail="Conversation not found")
    if conversation.user_id != user_id:
        log.warning("User not authorized to access conversation", conversation_id=str(conversation_id), user_id=user_id)
        raise HTTPException(status_code=403, detail="Not authorized")

    items = await list_conversation_vocabulary(db, conversation_id)
    return [VocabularyItem.model_validate(item) for item in items]

# ───────── DELETE /api/vocabulary/{id} ─────────
@app.delete("/api/vocabulary/{vocabulary_id}", response_model=DeleteVocabularyResponse)
async def remove_vocabulary(
    vocabulary_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(current_user_id),
):
    entry = await get_vocabulary_entry(db, vocabulary_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Vocabulary item not found")
    if entry.user_id != user_id:
        log.warning("User not authorized to delete vocabulary", vocabulary_id=str(vocabulary_id), user_id=user_id)
        raise HTTPException(status_code=403, detail="Not authorized")

    await delete_vocabulary_entry(db, entry)
    log.info("Vocabulary item deleted", vocabulary_id=str(vocabulary_id), user_id=user_id)
    return DeleteVocabularyResponse(success=True)
