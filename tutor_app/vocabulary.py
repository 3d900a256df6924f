# tutor_app/vocabulary.py
from __future__ import annotations

import uuid
from typing import Iterable, List, Optional, Sequence

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .extractor import VocabularyPair, extract_vocabulary, pair_key
from .models import VocabularyEntry

log = structlog.get_logger()


def filter_new_pairs(
    pairs: Iterable[VocabularyPair],
    existing: Iterable[VocabularyEntry],
) -> List[VocabularyPair]:
    """Drop pairs already stored for the conversation or repeated in ``pairs`` (case-insensitive)."""
    seen = {pair_key(e.word, e.translation) for e in existing}
    fresh: List[VocabularyPair] = []
    for p in pairs:
        key = pair_key(p.word, p.translation)
        # also collapses repeats within the incoming batch
        if key in seen:
            continue
        seen.add(key)
        fresh.append(p)
    return fresh


async def list_conversation_vocabulary(db: AsyncSession, conversation_id: uuid.UUID) -> List[VocabularyEntry]:
    res = await db.execute(
        select(VocabularyEntry)
        .where(VocabularyEntry.conversation_id == conversation_id)
        .order_by(VocabularyEntry.created_at.desc())
    )
    return list(res.scalars().all())


async def list_user_vocabulary(db: AsyncSession, user_id: str) -> List[VocabularyEntry]:
    res = await db.execute(
        select(VocabularyEntry)
        .where(VocabularyEntry.user_id == user_id)
        .order_by(VocabularyEntry.created_at.desc())
    )
    return list(res.scalars().all())


async def get_vocabulary_entry(db: AsyncSession, entry_id: uuid.UUID) -> Optional[VocabularyEntry]:
    res = await db.execute(select(VocabularyEntry).where(VocabularyEntry.id == entry_id))
    return res.scalar_one_or_none()


async def delete_vocabulary_entry(db: AsyncSession, entry: VocabularyEntry) -> None:
    await db.execute(delete(VocabularyEntry).where(VocabularyEntry.id == entry.id))
    await db.commit()


async def persist_new_pairs(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    user_id: str,
    pairs: Sequence[VocabularyPair],
) -> List[VocabularyEntry]:
    """
    Store the pairs not yet known for this conversation and return the new rows.

    Read, filter and insert run in that order on one session. Two concurrent
    calls on the same conversation can still both insert the same pair: there
    is no unique index behind the filter.
    """
    if not pairs:
        return []

    existing = await list_conversation_vocabulary(db, conversation_id)
    fresh = filter_new_pairs(pairs, existing)
    if not fresh:
        log.info("No new vocabulary", conversation_id=str(conversation_id), candidates=len(pairs))
        return []

    rows = [
        VocabularyEntry(
            conversation_id=conversation_id,
            user_id=user_id,
            word=p.word,
            translation=p.translation,
            context=p.context,
        )
        for p in fresh
    ]
    db.add_all(rows)
    await db.commit()

    log.info("Vocabulary items saved", conversation_id=str(conversation_id), count=len(rows))
    return rows


async def extract_and_persist_vocabulary(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    user_id: str,
    tutor_response: str,
) -> List[VocabularyEntry]:
    pairs = extract_vocabulary(tutor_response)
    log.info("Extracted vocabulary", conversation_id=str(conversation_id), candidates=len(pairs))
    return await persist_new_pairs(db, conversation_id, user_id, pairs)


async def capture_tutor_turn_vocabulary(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    user_id: str,
    tutor_response: str,
) -> List[VocabularyEntry]:
    """Chat-turn hook: a storage failure here must not fail the turn."""
    try:
        return await extract_and_persist_vocabulary(db, conversation_id, user_id, tutor_response)
    except Exception as e:
        log.warning(
            "Failed to extract vocabulary (continuing without vocabulary save)",
            conversation_id=str(conversation_id),
            error=str(e),
            exc_info=True,
        )
        try:
            await db.rollback()
        except Exception as rollback_error:
            log.warning("Rollback after vocabulary failure failed", error=str(rollback_error))
        return []
