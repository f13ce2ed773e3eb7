"""
quizsmith — Quiz Schemas
========================
Question tagged union, oracle response contract and persisted records.

The oracle response models are a versioned contract: prompts in
``services/prompts.py`` describe exactly these shapes, and anything that does
not validate against them is rejected as a parse failure.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

RESPONSE_CONTRACT_VERSION = "2"


class QuestionType(str, Enum):
    MCQ = "MCQ"
    TF = "TF"
    SAQ = "SAQ"
    FIB = "FIB"


class Difficulty(str, Enum):
    basic = "Basic"
    regular = "Regular"
    intermediate = "Intermediate"
    advanced = "Advanced"
    expert = "Expert"


class RecordKind(str, Enum):
    quiz = "Quiz"
    clear_up = "Clear-up"


class Provenance(str, Enum):
    image = "image pdf"
    text = "text pdf"

    @classmethod
    def from_file_type(cls, file_type: str) -> "Provenance":
        return cls.image if file_type == "image" else cls.text


# ── Questions ────────────────────────────────────────────────────────────────

class _QuestionBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question: str = Field(..., min_length=1)
    explanation: str = ""


class MCQOption(BaseModel):
    answer: str
    correct: bool


class TFOption(BaseModel):
    answer: bool
    correct: bool


class MCQ(_QuestionBase):
    type: Literal["MCQ"] = "MCQ"
    options: List[MCQOption] = Field(..., min_length=2)


class TF(_QuestionBase):
    type: Literal["TF"] = "TF"
    options: List[TFOption]

    @field_validator("options")
    @classmethod
    def both_booleans(cls, v: List[TFOption]) -> List[TFOption]:
        if len(v) != 2 or {o.answer for o in v} != {True, False}:
            raise ValueError("TF options must be exactly one True and one False entry")
        return v


class SAQ(_QuestionBase):
    type: Literal["SAQ"] = "SAQ"
    answers: str


class FIB(_QuestionBase):
    type: Literal["FIB"] = "FIB"
    answers: Union[str, List[str]]


Question = Annotated[Union[MCQ, TF, SAQ, FIB], Field(discriminator="type")]
QuestionList = TypeAdapter(List[Question])


# ── Oracle response contract ─────────────────────────────────────────────────

# An explicit rejection ({"status": "error", "message": ...}) is handled by the
# generator client before any of these models is validated.

class QuestionsPayload(BaseModel):
    """Output of one quiz generation round."""
    model_config = ConfigDict(extra="ignore")

    topic: str = ""
    questions: List[Question]


class ClearUpPayload(BaseModel):
    """Output of one clear-up segment."""
    model_config = ConfigDict(extra="ignore")

    questions: List[Question]


class AnswerVerdict(BaseModel):
    model_config = ConfigDict(extra="ignore")

    valid: bool
    correct: Optional[bool] = None
    reason: Optional[str] = None


# ── Generation ───────────────────────────────────────────────────────────────

class GenerationRequest(BaseModel):
    subject: List[str]
    question_types: List[QuestionType]
    difficulty: Difficulty
    requested_count: int


class GenerationResult(BaseModel):
    topic: str = ""
    questions: List[Question] = []


# ── Persisted records ────────────────────────────────────────────────────────

class QuizRecord(BaseModel):
    """Quiz or clear-up as stored in the history. Immutable once inserted."""
    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    kind: RecordKind
    created_at: datetime
    provenance: Provenance
    question_types: List[QuestionType]
    difficulty: Optional[Difficulty] = None
    title: str
    question_count: int
    credits_charged: Decimal = Field(..., ge=0)
    questions: List[Question]


class QuizHistoryPage(BaseModel):
    quizzes: List[QuizRecord]
    length: int


class QuizCount(BaseModel):
    total_quizzes: int


class CreditBalance(BaseModel):
    owner_id: str
    credits: Decimal


class AnswerCheckRequest(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    explanation: str = ""
