"""
QuizStore — persistence boundary for quiz history and credit balances.

Session work is synchronous SQLAlchemy pushed to a worker thread so the event
loop never blocks. Every database error surfaces as PersistenceFailure.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from quizsmith.core.errors import PersistenceFailure
from quizsmith.db.models import QuizHistory, User
from quizsmith.schemas.quiz import QuestionList, QuizRecord

logger = logging.getLogger(__name__)


def new_record_id() -> str:
    return uuid.uuid4().hex


def _to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


def _from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


def _to_row(record: QuizRecord) -> QuizHistory:
    return QuizHistory(
        id=record.id,
        owner_id=record.owner_id,
        kind=record.kind.value,
        created_at=record.created_at,
        provenance=record.provenance.value,
        question_types=[q.value for q in record.question_types],
        difficulty=record.difficulty.value if record.difficulty else None,
        title=record.title,
        question_count=record.question_count,
        credits_charged=record.credits_charged,
        questions=QuestionList.dump_python(record.questions, mode="json"),
    )


def _to_record(row: QuizHistory) -> QuizRecord:
    created_at = row.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return QuizRecord(
        id=row.id,
        owner_id=row.owner_id,
        kind=row.kind,
        created_at=created_at,
        provenance=row.provenance,
        question_types=row.question_types,
        difficulty=row.difficulty,
        title=row.title,
        question_count=row.question_count,
        credits_charged=Decimal(row.credits_charged),
        questions=QuestionList.validate_python(row.questions),
    )


class QuizStore:
    def __init__(self, session_factory: sessionmaker):
        self.SessionLocal = session_factory

    async def _run(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            logger.error(f"[STORE] {fn.__name__} failed: {e}")
            raise PersistenceFailure() from e

    # ── Credits ──────────────────────────────────────────────────────────────

    def _create_user(self, owner_id: str, credits: Decimal) -> None:
        with self.SessionLocal() as db, db.begin():
            db.add(User(id=owner_id, credit_cents=_to_cents(credits), created_at=datetime.now(timezone.utc)))

    async def create_user(self, owner_id: str, credits: Decimal = Decimal("0")) -> None:
        await self._run(self._create_user, owner_id, credits)

    def _find_balance(self, owner_id: str) -> Optional[Decimal]:
        with self.SessionLocal() as db:
            cents = db.scalar(select(User.credit_cents).where(User.id == owner_id))
        return None if cents is None else _from_cents(cents)

    async def find_balance(self, owner_id: str) -> Optional[Decimal]:
        """Current balance, or None for an unknown owner."""
        return await self._run(self._find_balance, owner_id)

    def _debit(self, owner_id: str, amount: Decimal) -> bool:
        cents = _to_cents(amount)
        with self.SessionLocal() as db, db.begin():
            result = db.execute(
                update(User)
                .where(User.id == owner_id, User.credit_cents >= cents)
                .values(credit_cents=User.credit_cents - cents)
            )
            return result.rowcount == 1

    async def debit(self, owner_id: str, amount: Decimal) -> bool:
        """
        Atomic conditional decrement: subtract ``amount`` only if the balance
        covers it. Returns False, leaving the balance untouched, otherwise.
        """
        return await self._run(self._debit, owner_id, amount)

    # ── History ──────────────────────────────────────────────────────────────

    def _insert(self, record: QuizRecord) -> bool:
        with self.SessionLocal() as db, db.begin():
            db.add(_to_row(record))
        return True

    async def insert(self, record: QuizRecord) -> bool:
        acknowledged = await self._run(self._insert, record)
        logger.info(f"[STORE] ✓ Stored {record.kind.value} {record.id} for {record.owner_id}")
        return acknowledged

    def _get(self, owner_id: str, record_id: str) -> Optional[QuizRecord]:
        with self.SessionLocal() as db:
            row = db.scalar(
                select(QuizHistory).where(QuizHistory.owner_id == owner_id, QuizHistory.id == record_id)
            )
            return _to_record(row) if row else None

    async def get(self, owner_id: str, record_id: str) -> Optional[QuizRecord]:
        return await self._run(self._get, owner_id, record_id)

    def _list_records(self, owner_id: str, page: int, limit: int) -> Tuple[List[QuizRecord], int]:
        with self.SessionLocal() as db:
            total = db.scalar(select(func.count(QuizHistory.id)).where(QuizHistory.owner_id == owner_id))
            rows = db.scalars(
                select(QuizHistory)
                .where(QuizHistory.owner_id == owner_id)
                .order_by(QuizHistory.created_at.desc(), QuizHistory.id.desc())
                .offset(page * limit)
                .limit(limit)
            ).all()
            return [_to_record(r) for r in rows], total or 0

    async def list_records(self, owner_id: str, page: int = 0, limit: int = 10) -> Tuple[List[QuizRecord], int]:
        """One page of the owner's history, newest first, plus the owner's total."""
        return await self._run(self._list_records, owner_id, page, limit)

    def _count(self, owner_id: str) -> int:
        with self.SessionLocal() as db:
            return db.scalar(select(func.count(QuizHistory.id)).where(QuizHistory.owner_id == owner_id)) or 0

    async def count(self, owner_id: str) -> int:
        return await self._run(self._count, owner_id)

    def _delete(self, owner_id: str, record_id: str) -> bool:
        with self.SessionLocal() as db, db.begin():
            result = db.execute(
                delete(QuizHistory).where(QuizHistory.owner_id == owner_id, QuizHistory.id == record_id)
            )
            return result.rowcount == 1

    async def delete(self, owner_id: str, record_id: str) -> bool:
        return await self._run(self._delete, owner_id, record_id)
