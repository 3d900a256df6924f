# tutor_app/models.py
from __future__ import annotations

import uuid
import datetime as dt
from typing import List

from sqlalchemy import Date, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db_pg import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# Owner of chat messages and extracted vocabulary (CRUD lives elsewhere)
class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    language: Mapped[str] = mapped_column(String(64), nullable=False)
    level: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    last_message_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    vocabulary: Mapped[List["VocabularyEntry"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# Pairs extracted from tutor turns; (lower(word), lower(translation)) is unique
# per conversation, enforced in vocabulary.py and not by an index
class VocabularyEntry(Base):
    __tablename__ = "vocabulary"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # source-language word and its English translation
    word: Mapped[str] = mapped_column("latvian_word", Text, nullable=False)
    translation: Mapped[str] = mapped_column("english_translation", Text, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    conversation: Mapped[Conversation] = relationship(back_populates="vocabulary")


# One row per word of a user's daily set; 5 rows share (user_id, date, topic)
class DailyWordEntry(Base):
    __tablename__ = "daily_vocabulary"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    word: Mapped[str] = mapped_column("latvian_word", Text, nullable=False)
    translation: Mapped[str] = mapped_column("english_translation", Text, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
