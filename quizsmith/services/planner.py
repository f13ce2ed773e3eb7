from typing import Tuple

from quizsmith.core.config import settings
from quizsmith.core.errors import QuizValidationError

RoundPlan = Tuple[int, ...]


def plan(total: int, round_cap: int | None = None) -> RoundPlan:
    """
    Split ``total`` questions into rounds of at most ``round_cap``.

    Full rounds come first; a smaller remainder round, if any, is last.
    45 with a cap of 20 gives (20, 20, 5).
    """
    if round_cap is None:
        round_cap = settings.QUESTIONS_PER_ROUND
    if round_cap < 1:
        raise QuizValidationError("Round size must be at least 1")
    if total < 1:
        raise QuizValidationError("Number of questions is required")

    full_rounds, remainder = divmod(total, round_cap)
    rounds = [round_cap] * full_rounds
    if remainder:
        rounds.append(remainder)
    return tuple(rounds)
