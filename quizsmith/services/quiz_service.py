"""
quizsmith — Quiz Service
========================
End-to-end pipelines behind the HTTP surface:

  create_quiz   validate → preflight → plan → sequential rounds → persist → debit
  clear_up      validate → preflight → concurrent segments → persist → debit
  check_answer  one unbilled oracle call grading a free-text answer

The record is always inserted before the debit. If the debit is refused, the
record is removed again so no history entry exists without its charge.
"""

import json
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from quizsmith.core.config import settings
from quizsmith.core.errors import (
    OracleRejection,
    PersistenceFailure,
    QuizServiceError,
    QuizValidationError,
    Unauthorized,
)
from quizsmith.db.store import QuizStore, new_record_id
from quizsmith.schemas.quiz import (
    AnswerCheckRequest,
    AnswerVerdict,
    Difficulty,
    GenerationRequest,
    Provenance,
    QuestionType,
    QuizRecord,
    RecordKind,
)
from quizsmith.services.file_service import FILE_TYPES, ExtractedDocument
from quizsmith.services.generator import GeneratorClient
from quizsmith.services.ledger import CreditLedger
from quizsmith.services.orchestrators import ClearUpOrchestrator, RoundOrchestrator
from quizsmith.services.planner import plan
from quizsmith.services.prompts import render_answer_check_prompt

logger = logging.getLogger(__name__)


# ── Validation ───────────────────────────────────────────────────────────────

def parse_question_types(raw: Any) -> List[QuestionType]:
    """Accept a list or a JSON-encoded list of question type names."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise QuizValidationError("Invalid question types")
    if not isinstance(raw, list) or not raw:
        raise QuizValidationError("Invalid question types")
    try:
        types = [QuestionType(q) for q in raw]
    except (ValueError, TypeError):
        raise QuizValidationError("Invalid question types")
    return list(dict.fromkeys(types))


def parse_difficulty(raw: Any) -> Difficulty:
    try:
        return Difficulty(raw)
    except ValueError:
        raise QuizValidationError("Invalid difficulty level")


def parse_count(raw: Any) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise QuizValidationError("Number of questions is required")
    try:
        if isinstance(raw, float) and not raw.is_integer():
            raise ValueError(raw)
        number = int(raw)
    except (TypeError, ValueError):
        raise QuizValidationError("Number of questions must be a whole number")
    if not settings.MIN_QUESTIONS <= number <= settings.MAX_QUESTIONS:
        raise QuizValidationError(
            f"Invalid number of questions. Allowed range is "
            f"{settings.MIN_QUESTIONS}-{settings.MAX_QUESTIONS}."
        )
    return number


def validate_file_type(file_type: str) -> str:
    if file_type not in FILE_TYPES:
        raise QuizValidationError("Invalid file type")
    return file_type


def validate_subject(segments: List[str]) -> List[str]:
    if not segments or not any(s and s.strip() for s in segments):
        raise QuizValidationError("Subject is required")
    return segments


def rate_per_page(file_type: str) -> Decimal:
    return settings.CREDITS_PER_PAGE_IMAGE if file_type == "image" else settings.CREDITS_PER_PAGE_TEXT


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SERVICE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class QuizService:
    def __init__(self, store: QuizStore, generator: GeneratorClient):
        self.store = store
        self.generator = generator
        self.ledger = CreditLedger(store)

    async def _persist_and_charge(self, record: QuizRecord) -> QuizRecord:
        if not await self.store.insert(record):
            raise PersistenceFailure("Could not store quiz data")
        try:
            await self.ledger.commit(record.credits_charged, record.owner_id)
        except QuizServiceError:
            logger.warning(f"[QUIZ] Charge for {record.id} failed, removing the stored record")
            try:
                await self.store.delete(record.owner_id, record.id)
            except QuizServiceError as e:
                logger.error(f"[QUIZ] Could not remove uncharged record {record.id}: {e.message}")
            raise
        return record

    # ── Quiz ─────────────────────────────────────────────────────────────────

    async def create_quiz(
        self,
        *,
        owner_id: str,
        document: ExtractedDocument,
        question_types: Any,
        difficulty: Any,
        number: Any,
        file_type: str,
    ) -> QuizRecord:
        if not owner_id:
            raise Unauthorized()
        request = GenerationRequest(
            subject=validate_subject(document.segments),
            question_types=parse_question_types(question_types),
            difficulty=parse_difficulty(difficulty),
            requested_count=parse_count(number),
        )
        validate_file_type(file_type)

        base = self.ledger.estimate(document.page_count, rate_per_page(file_type))
        anticipated = self.ledger.finalize(base, settings.CREDITS_PER_QUESTION, request.requested_count)
        await self.ledger.check(owner_id, anticipated)

        rounds = plan(request.requested_count)
        logger.info(f"[QUIZ] {request.requested_count} questions → rounds {list(rounds)}")
        result = await RoundOrchestrator(self.generator).run(request, rounds)

        record = QuizRecord(
            id=new_record_id(),
            owner_id=owner_id,
            kind=RecordKind.quiz,
            created_at=datetime.now(timezone.utc),
            provenance=Provenance.from_file_type(file_type),
            question_types=request.question_types,
            difficulty=request.difficulty,
            title=result.topic,
            question_count=len(result.questions),
            credits_charged=self.ledger.finalize(base, settings.CREDITS_PER_QUESTION, len(result.questions)),
            questions=result.questions,
        )
        return await self._persist_and_charge(record)

    # ── Clear-up ─────────────────────────────────────────────────────────────

    async def clear_up(
        self,
        *,
        owner_id: str,
        document: ExtractedDocument,
        question_types: Any,
        file_type: str,
        title: Optional[str] = None,
    ) -> QuizRecord:
        if not owner_id:
            raise Unauthorized()
        segments = validate_subject(document.segments)
        types = parse_question_types(question_types)
        validate_file_type(file_type)

        charge = self.ledger.estimate(document.page_count, rate_per_page(file_type))
        await self.ledger.check(owner_id, charge)

        questions = await ClearUpOrchestrator(self.generator).run(segments, types)

        record = QuizRecord(
            id=new_record_id(),
            owner_id=owner_id,
            kind=RecordKind.clear_up,
            created_at=datetime.now(timezone.utc),
            provenance=Provenance.from_file_type(file_type),
            question_types=types,
            title=title or f"Quiz-{int(time.time() * 1000)}",
            question_count=len(questions),
            credits_charged=charge,
            questions=questions,
        )
        return await self._persist_and_charge(record)

    # ── Answer check ─────────────────────────────────────────────────────────

    async def check_answer(self, request: AnswerCheckRequest) -> AnswerVerdict:
        prompt = render_answer_check_prompt(request.question, request.answer, request.explanation)
        verdict = await self.generator.generate(prompt, AnswerVerdict)
        if not verdict.valid:
            raise OracleRejection(verdict.reason or "Invalid input: not a question or not an answer.")
        return verdict
