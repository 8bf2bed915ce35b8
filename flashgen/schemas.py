from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Flashcard(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    front: str = Field(min_length=1)
    back: str = Field(min_length=1)


class FlashcardDeck(BaseModel):
    """Shape the model is instructed to return: ``{"flashcards": [...]}``."""

    flashcards: List[Flashcard]


class SavedSetWrite(BaseModel):
    flashcards: List[Flashcard] = Field(min_length=1)


class SavedSetRead(BaseModel):
    name: str
    flashcards: List[Flashcard]


class SavedSetList(BaseModel):
    sets: List[str]
