# tutor_app/daily_set.py
from __future__ import annotations

import datetime as dt
import json
from dataclasses import dataclass
from typing import Awaitable, Callable, List

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import DailyWordEntry
from .schema import GeneratedDailySet

log = structlog.get_logger()

# prompt in, raw completion text out
TextGenerator = Callable[[str], Awaitable[str]]

DAILY_SET_SIZE = 5
TOPICS = [
    "Food", "Travel", "Weather", "Family", "Work",
    "Shopping", "Health", "Education", "Sports", "Nature",
]

DAILY_SET_PROMPT = f"""Generate {DAILY_SET_SIZE} Latvian vocabulary words for language learning. Pick a specific topic (like {', '.join(TOPICS[:-1])}, or {TOPICS[-1]}). Return ONLY valid JSON in this exact format with no markdown or extra text:
{{
  "topic": "topic name",
  "words": [
    {{"latvian": "word1", "english": "translation1", "context": "example sentence in Latvian"}},
    {{"latvian": "word2", "english": "translation2", "context": "example sentence in Latvian"}},
    {{"latvian": "word3", "english": "translation3", "context": "example sentence in Latvian"}},
    {{"latvian": "word4", "english": "translation4", "context": "example sentence in Latvian"}},
    {{"latvian": "word5", "english": "translation5", "context": "example sentence in Latvian"}}
  ]
}}"""


class DailySetError(RuntimeError):
    """The generator answered, but not with a usable daily set."""


@dataclass
class DailySet:
    topic: str
    date: dt.date
    words: List[DailyWordEntry]


def parse_daily_set(raw: str) -> GeneratedDailySet:
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        log.error("Failed to parse AI response as JSON", error=str(e), response=raw)
        raise DailySetError("Failed to parse AI response") from e

    try:
        return GeneratedDailySet.model_validate(payload)
    except ValidationError as e:
        log.error("Invalid AI response structure", error=str(e), response=raw)
        raise DailySetError("Invalid AI response format") from e


async def load_daily_rows(db: AsyncSession, user_id: str, day: dt.date) -> List[DailyWordEntry]:
    res = await db.execute(
        select(DailyWordEntry)
        .where(DailyWordEntry.user_id == user_id, DailyWordEntry.date == day)
        .order_by(DailyWordEntry.created_at, DailyWordEntry.word)
    )
    return list(res.scalars().all())


async def get_or_generate_daily_set(
    db: AsyncSession,
    user_id: str,
    day: dt.date,
    generate: TextGenerator,
) -> DailySet:
    """
    Return the user's themed word set for ``day``, generating it on first use.

    A complete set already stored for (user, day) is served as is, topic taken
    from its first row. Otherwise the generator is asked once; a response that
    is not JSON or not exactly five words raises DailySetError and nothing is
    written. Leftover partial rows for the day are replaced in the same commit
    as the new set. Two requests racing through generation for the same user
    and day can both insert.
    """
    existing = await load_daily_rows(db, user_id, day)
    if len(existing) >= DAILY_SET_SIZE:
        log.info("Returning existing daily vocabulary", user_id=user_id, date=day.isoformat(), count=len(existing))
        return DailySet(topic=existing[0].topic, date=day, words=existing)

    log.info("Generating new daily vocabulary", user_id=user_id, date=day.isoformat())
    raw = await generate(DAILY_SET_PROMPT)
    log.info("AI generated daily vocabulary", user_id=user_id, response_length=len(raw or ""))

    generated = parse_daily_set(raw)

    if existing:
        # partial set from an earlier run: treat as not generated
        log.warning("Replacing partial daily vocabulary", user_id=user_id, date=day.isoformat(), count=len(existing))
        await db.execute(
            delete(DailyWordEntry).where(DailyWordEntry.user_id == user_id, DailyWordEntry.date == day)
        )

    rows = [
        DailyWordEntry(
            user_id=user_id,
            word=w.latvian,
            translation=w.english,
            context=w.context,
            topic=generated.topic,
            date=day,
        )
        for w in generated.words
    ]
    db.add_all(rows)
    await db.commit()

    log.info("Daily vocabulary saved", user_id=user_id, topic=generated.topic, count=len(rows))
    return DailySet(topic=generated.topic, date=day, words=rows)
