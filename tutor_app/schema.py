import datetime as dt
import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class VocabularyItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    word: str                      # source language (Latvian)
    translation: str               # English
    context: Optional[str] = None
    created_at: dt.datetime
    conversation_id: Optional[uuid.UUID] = None


class DailyWord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    word: str
    translation: str
    context: Optional[str] = None
    date: dt.date


class DailyVocabularyResponse(BaseModel):
    topic: str
    date: dt.date
    words: List[DailyWord]


class DeleteVocabularyResponse(BaseModel):
    success: bool


# Shape the text generator must return for a daily set
class GeneratedWord(BaseModel):
    latvian: str = Field(min_length=1)
    english: str = Field(min_length=1)
    context: Optional[str] = None


class GeneratedDailySet(BaseModel):
    topic: str = Field(min_length=1)
    words: List[GeneratedWord] = Field(min_length=5, max_length=5)
