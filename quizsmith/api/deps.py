import logging
from typing import Optional

from fastapi import Depends, Header

from quizsmith.core.errors import Unauthorized
from quizsmith.db.database import SessionLocal
from quizsmith.db.store import QuizStore
from quizsmith.services.generator import GeneratorClient
from quizsmith.services.llm_service import LLMTransport
from quizsmith.services.quiz_service import QuizService

logger = logging.getLogger(__name__)

# Initialized on first use
_store: Optional[QuizStore] = None
_generator: Optional[GeneratorClient] = None


def get_store() -> QuizStore:
    global _store
    if _store is None:
        _store = QuizStore(SessionLocal)
    return _store


def get_generator() -> GeneratorClient:
    global _generator
    if _generator is None:
        logger.info("Initializing generator client...")
        _generator = GeneratorClient(LLMTransport())
    return _generator


def get_quiz_service(
    store: QuizStore = Depends(get_store),
    generator: GeneratorClient = Depends(get_generator),
) -> QuizService:
    return QuizService(store, generator)


def get_owner_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Owner identity is supplied by the gateway in front of this service."""
    if not x_user_id or not x_user_id.strip():
        raise Unauthorized()
    return x_user_id.strip()
