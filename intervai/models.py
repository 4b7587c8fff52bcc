"""
Domain types shared by the API, the worker and the persistence layer.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ExperienceLevel(str, Enum):
    ENTRY_LEVEL = "entry-level"
    JUNIOR = "junior"
    MID_LEVEL = "mid-level"
    SENIOR = "senior"
    LEAD = "lead"
    EXPERT = "expert"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ExportFormat(str, Enum):
    PDF = "pdf"
    CSV = "csv"
    DOCX = "docx"


QUESTION_MIN_LENGTH = 5
QUESTION_MAX_LENGTH = 2000
ANSWER_MIN_LENGTH = 10
ANSWER_MAX_LENGTH = 5000


class QuestionCreate(BaseModel):
    """Validated fields of a question row about to be inserted."""
    question: str = Field(min_length=QUESTION_MIN_LENGTH, max_length=QUESTION_MAX_LENGTH)
    answer: str = Field(min_length=ANSWER_MIN_LENGTH, max_length=ANSWER_MAX_LENGTH)
    difficulty: Difficulty = Difficulty.MEDIUM
    category: str = Field(default="", max_length=100)
    notes: str = Field(default="", max_length=1000)
    is_pinned: bool = False

    @field_validator("question", "answer", "category", "notes", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class QuestionUpdate(BaseModel):
    question: Optional[str] = Field(default=None, min_length=QUESTION_MIN_LENGTH, max_length=QUESTION_MAX_LENGTH)
    answer: Optional[str] = Field(default=None, min_length=ANSWER_MIN_LENGTH, max_length=ANSWER_MAX_LENGTH)
    difficulty: Optional[Difficulty] = None
    category: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("question", "answer", "category", "notes", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v
