import logging

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile

from quizsmith.api.deps import get_owner_id, get_quiz_service, get_store
from quizsmith.core.config import settings
from quizsmith.core.errors import RecordNotFound
from quizsmith.db.store import QuizStore
from quizsmith.schemas.quiz import (
    AnswerCheckRequest,
    AnswerVerdict,
    CreditBalance,
    QuizCount,
    QuizHistoryPage,
    QuizRecord,
)
from quizsmith.services.file_service import extract_document
from quizsmith.services.ledger import CreditLedger
from quizsmith.services.quiz_service import QuizService, validate_file_type

logger = logging.getLogger(__name__)

router = APIRouter()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 1. GENERATION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/quizzes", response_model=QuizRecord, status_code=201)
async def create_quiz(
    file: UploadFile = File(...),
    file_type: str = Form(...),
    q_types: str = Form(...),
    difficulty: str = Form(...),
    number: str = Form(...),
    owner_id: str = Depends(get_owner_id),
    service: QuizService = Depends(get_quiz_service),
):
    """Generate a new quiz from an uploaded PDF, billed per page and per question."""
    validate_file_type(file_type)
    content = await file.read()
    document = await extract_document(content, file.filename or "", file_type)
    return await service.create_quiz(
        owner_id=owner_id,
        document=document,
        question_types=q_types,
        difficulty=difficulty,
        number=number,
        file_type=file_type,
    )


@router.post("/clear-ups", response_model=QuizRecord, status_code=201)
async def clear_up_paper(
    file: UploadFile = File(...),
    file_type: str = Form(...),
    q_types: str = Form(...),
    owner_id: str = Depends(get_owner_id),
    service: QuizService = Depends(get_quiz_service),
):
    """Extract and clean up the questions already present in an uploaded paper."""
    validate_file_type(file_type)
    content = await file.read()
    document = await extract_document(content, file.filename or "", file_type)
    return await service.clear_up(
        owner_id=owner_id,
        document=document,
        question_types=q_types,
        file_type=file_type,
        title=file.filename,
    )


@router.post("/quizzes/check-answer", response_model=AnswerVerdict)
async def check_question_answer(
    request: AnswerCheckRequest,
    owner_id: str = Depends(get_owner_id),
    service: QuizService = Depends(get_quiz_service),
):
    return await service.check_answer(request)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 2. HISTORY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.get("/quizzes", response_model=QuizHistoryPage)
async def get_quizzes(
    page: int = Query(default=0, ge=0),
    owner_id: str = Depends(get_owner_id),
    store: QuizStore = Depends(get_store),
):
    quizzes, length = await store.list_records(owner_id, page, settings.HISTORY_PAGE_SIZE)
    return QuizHistoryPage(quizzes=quizzes, length=length)


@router.get("/quizzes/count", response_model=QuizCount)
async def get_total_quizzes(
    owner_id: str = Depends(get_owner_id),
    store: QuizStore = Depends(get_store),
):
    return QuizCount(total_quizzes=await store.count(owner_id))


@router.get("/quizzes/{quiz_id}", response_model=QuizRecord)
async def get_quiz(
    quiz_id: str,
    owner_id: str = Depends(get_owner_id),
    store: QuizStore = Depends(get_store),
):
    record = await store.get(owner_id, quiz_id)
    if record is None:
        raise RecordNotFound()
    return record


@router.delete("/quizzes/{quiz_id}", status_code=204)
async def delete_quiz(
    quiz_id: str,
    owner_id: str = Depends(get_owner_id),
    store: QuizStore = Depends(get_store),
):
    if not await store.delete(owner_id, quiz_id):
        raise RecordNotFound()
    logger.info(f"[HISTORY] Deleted {quiz_id} for {owner_id}")
    return Response(status_code=204)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 3. CREDITS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.get("/credits", response_model=CreditBalance)
async def get_credits(
    owner_id: str = Depends(get_owner_id),
    store: QuizStore = Depends(get_store),
):
    return CreditBalance(owner_id=owner_id, credits=await CreditLedger(store).balance(owner_id))
