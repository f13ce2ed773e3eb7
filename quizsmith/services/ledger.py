"""
quizsmith — Credit Ledger
=========================
Estimate → preflight → (work) → finalize → persist → commit.

All amounts are Decimals rounded to 2 places (ROUND_HALF_UP). ``commit`` is
an atomic conditional decrement in the store, so a balance drained by a
concurrent request is refused instead of overdrawn.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from quizsmith.core.errors import InsufficientCredits, PersistenceFailure
from quizsmith.db.store import QuizStore

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_credits(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class CreditLedger:
    def __init__(self, store: QuizStore):
        self.store = store

    @staticmethod
    def estimate(page_count: int, rate_per_page: Decimal) -> Decimal:
        """Base cost from measured page count only, never from output size."""
        if page_count < 0:
            raise ValueError("page_count must be non-negative")
        return to_credits(Decimal(page_count) * Decimal(rate_per_page))

    @staticmethod
    def finalize(base_estimate: Decimal, per_question_rate: Decimal, accepted_count: int) -> Decimal:
        return to_credits(Decimal(base_estimate) + Decimal(per_question_rate) * accepted_count)

    @staticmethod
    def preflight(estimate: Decimal, balance: Decimal) -> None:
        if Decimal(balance) < Decimal(estimate):
            logger.info(f"[LEDGER] Preflight refused: needs {estimate}, has {balance}")
            raise InsufficientCredits()

    async def balance(self, owner_id: str) -> Decimal:
        balance = await self.store.find_balance(owner_id)
        if balance is None:
            raise PersistenceFailure("Could not fetch user credits")
        return balance

    async def check(self, owner_id: str, estimate: Decimal) -> Decimal:
        """Read the owner's balance and gate on it. Returns the balance read."""
        balance = await self.balance(owner_id)
        self.preflight(estimate, balance)
        return balance

    async def commit(self, charge: Decimal, owner_id: str) -> None:
        """Debit ``charge``. Only call once the record has been persisted."""
        charge = to_credits(charge)
        if charge < 0:
            raise ValueError("charge must be non-negative")
        if not await self.store.debit(owner_id, charge):
            logger.warning(f"[LEDGER] Debit of {charge} refused for {owner_id}")
            raise InsufficientCredits()
        logger.info(f"[LEDGER] ✓ Debited {charge} from {owner_id}")
