"""
quizsmith — Orchestrators
=========================
Two pipelines over the same GeneratorClient, with opposite concurrency rules:

  RoundOrchestrator    rounds run strictly one after another; each round's
                       exclusion list holds every question accepted so far.
  ClearUpOrchestrator  one call per segment, all in flight at once; no
                       exclusion threading, output flattened in segment order.

Both fail fast: any failure aborts the whole run and nothing partial escapes.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from quizsmith.core.config import settings
from quizsmith.core.errors import EmptyResult, ParseFailure
from quizsmith.schemas.quiz import (
    ClearUpPayload,
    GenerationRequest,
    GenerationResult,
    Question,
    QuestionsPayload,
    QuestionType,
)
from quizsmith.services.generator import GeneratorClient
from quizsmith.services.planner import RoundPlan
from quizsmith.services.prompts import (
    ClearUpPrompt,
    QuizPrompt,
    render_clear_up_prompt,
    render_quiz_prompt,
)

logger = logging.getLogger(__name__)


def join_subject(segments: Sequence[str]) -> str:
    return "\n\n".join(s.strip() for s in segments if s and s.strip())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# QUIZ: SEQUENTIAL ROUNDS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RoundOrchestrator:
    def __init__(
        self,
        generator: GeneratorClient,
        render: Callable[[QuizPrompt], str] = render_quiz_prompt,
        max_attempts: Optional[int] = None,
    ):
        self.generator = generator
        self.render = render
        self.max_attempts = max_attempts or settings.ROUND_MAX_ATTEMPTS

    async def _round(self, prompt: QuizPrompt, round_no: int) -> QuestionsPayload:
        """
        One oracle call. Only a malformed response is re-issued, and only up to
        ``max_attempts`` in total; rejections and transport errors propagate.
        """
        text = self.render(prompt)
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.generator.generate(text, QuestionsPayload)
            except ParseFailure:
                logger.warning(f"[QUIZ] Round {round_no} attempt {attempt}/{self.max_attempts} unparseable")
                if attempt == self.max_attempts:
                    raise

    async def run(self, request: GenerationRequest, plan: RoundPlan) -> GenerationResult:
        subject = join_subject(request.subject)
        accepted: List[Question] = []
        topic = ""

        for round_no, size in enumerate(plan, start=1):
            prompt = QuizPrompt(
                subject=subject,
                question_types=request.question_types,
                difficulty=request.difficulty,
                number=size,
                exclude=[q.question for q in accepted],
            )
            payload = await self._round(prompt, round_no)
            if len(payload.questions) > size:
                logger.warning(
                    f"[QUIZ] Round {round_no}: asked {size}, got {len(payload.questions)}; extras dropped"
                )
            accepted.extend(payload.questions[:size])
            topic = payload.topic
            logger.info(
                f"[QUIZ] Round {round_no}/{len(plan)}: asked {size}, "
                f"got {len(payload.questions)} (total {len(accepted)})"
            )

        if not accepted:
            raise EmptyResult()
        return GenerationResult(topic=topic, questions=accepted)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CLEAR-UP: CONCURRENT SEGMENTS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ClearUpOrchestrator:
    def __init__(
        self,
        generator: GeneratorClient,
        render: Callable[[ClearUpPrompt], str] = render_clear_up_prompt,
        max_segments: Optional[int] = None,
    ):
        self.generator = generator
        self.render = render
        self.max_segments = max_segments or settings.MAX_CLEAR_UP_SEGMENTS

    async def _segment(self, segment: str, question_types: List[QuestionType]) -> List[Question]:
        prompt = ClearUpPrompt(subject=segment, question_types=question_types)
        payload = await self.generator.generate(self.render(prompt), ClearUpPayload)
        return payload.questions

    async def run(self, segments: Sequence[str], question_types: List[QuestionType]) -> List[Question]:
        # blank pages carry no questions
        non_blank = [s for s in segments if s and s.strip()]
        if len(non_blank) < len(segments):
            logger.info(f"[CLEARUP] Skipping {len(segments) - len(non_blank)} blank segments")

        selected = non_blank[: self.max_segments]
        if len(non_blank) > self.max_segments:
            logger.warning(
                f"[CLEARUP] {len(non_blank)} segments received, "
                f"only the first {self.max_segments} are processed"
            )

        logger.info(f"[CLEARUP] Dispatching {len(selected)} segments concurrently...")
        per_segment = await asyncio.gather(*(self._segment(s, question_types) for s in selected))

        questions = [q for batch in per_segment for q in batch]
        if not questions:
            raise EmptyResult()
        logger.info(f"[CLEARUP] ✓ {len(questions)} questions from {len(selected)} segments")
        return questions
