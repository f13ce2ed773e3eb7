from decimal import Decimal

import pytest

from quizsmith.core.errors import (
    InsufficientCredits,
    OracleRejection,
    ParseFailure,
    PersistenceFailure,
    QuizValidationError,
    Unauthorized,
)
from quizsmith.schemas.quiz import AnswerCheckRequest, Difficulty, Provenance, RecordKind
from quizsmith.services.file_service import ExtractedDocument
from quizsmith.services.quiz_service import QuizService

from conftest import OWNER, mcq, payload, quiz_oracle, segment_text

DOC = ExtractedDocument(segments=["Photosynthesis converts light to chemical energy."] * 3, page_count=3)


async def create(service, **overrides):
    kwargs = dict(
        owner_id=OWNER,
        document=DOC,
        question_types='["MCQ", "TF"]',
        difficulty="Regular",
        number=45,
        file_type="text",
    )
    kwargs.update(overrides)
    return await service.create_quiz(**kwargs)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CREATE QUIZ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def test_create_quiz_charges_for_accepted_questions(funded_store, generator, transport):
    transport.responses = [
        payload([f"A{i}?" for i in range(20)]),
        payload([f"B{i}?" for i in range(20)]),
        payload(["C0?", "C1?", "C2?"], topic="Light reactions"),
    ]
    service = QuizService(funded_store, generator)

    record = await create(service)

    # 3 text pages at 0.10 + 43 questions at 0.05
    assert record.question_count == 43
    assert record.credits_charged == Decimal("2.45")
    assert record.kind == RecordKind.quiz
    assert record.provenance == Provenance.text
    assert record.difficulty == Difficulty.regular
    assert record.title == "Light reactions"
    assert await funded_store.find_balance(OWNER) == Decimal("7.55")
    assert await funded_store.get(OWNER, record.id) == record


async def test_create_quiz_prices_image_pages_higher(funded_store, generator, transport):
    transport.handler = quiz_oracle()
    service = QuizService(funded_store, generator)

    record = await create(service, number=5, file_type="image")

    # 3 image pages at 0.50 + 5 questions at 0.05
    assert record.credits_charged == Decimal("1.75")
    assert record.provenance == Provenance.image


async def test_preflight_failure_makes_no_oracle_call(store, generator, transport):
    await store.create_user(OWNER, Decimal("10.00"))
    transport.handler = quiz_oracle()
    service = QuizService(store, generator)
    # 70 text pages at 0.10 + 100 questions at 0.05 = 12.00
    document = ExtractedDocument(segments=["text"], page_count=70)

    with pytest.raises(InsufficientCredits):
        await create(service, document=document, number=100)

    assert transport.prompts == []
    assert await store.find_balance(OWNER) == Decimal("10.00")
    assert await store.count(OWNER) == 0


async def test_rejection_on_round_one_charges_nothing(funded_store, generator, transport):
    transport.responses = [{"status": "error", "message": "Invalid entry."}, payload(["x"]), payload(["y"])]
    service = QuizService(funded_store, generator)

    with pytest.raises(OracleRejection):
        await create(service)

    assert len(transport.prompts) == 1
    assert await funded_store.count(OWNER) == 0
    assert await funded_store.find_balance(OWNER) == Decimal("10.00")


async def test_parse_failure_mid_run_persists_nothing(funded_store, generator, transport):
    transport.responses = [payload(["A?"]), "<html>502 Bad Gateway</html>"]
    service = QuizService(funded_store, generator)

    with pytest.raises(ParseFailure):
        await create(service, number=25)

    assert await funded_store.count(OWNER) == 0
    assert await funded_store.find_balance(OWNER) == Decimal("10.00")


@pytest.mark.parametrize(
    "overrides",
    [
        {"question_types": '["MCQ", "ESSAY"]'},
        {"question_types": "[]"},
        {"question_types": "not-json"},
        {"difficulty": "Impossible"},
        {"number": 0},
        {"number": 101},
        {"number": "many"},
        {"file_type": "docx"},
        {"document": ExtractedDocument(segments=["", "  "], page_count=1)},
    ],
)
async def test_invalid_requests_are_rejected_before_any_work(funded_store, generator, transport, overrides):
    transport.handler = quiz_oracle()
    service = QuizService(funded_store, generator)

    with pytest.raises(QuizValidationError):
        await create(service, **overrides)

    assert transport.prompts == []


async def test_missing_owner_is_unauthorized(funded_store, generator, transport):
    with pytest.raises(Unauthorized):
        await create(QuizService(funded_store, generator), owner_id="")


async def test_debit_refused_after_persist_removes_the_record(funded_store, generator, transport):
    oracle = quiz_oracle()

    async def drain_then_answer(prompt):
        # a concurrent request spends the balance while this one is generating
        await funded_store.debit(OWNER, Decimal("9.80"))
        return oracle(prompt)

    transport.handler = drain_then_answer
    service = QuizService(funded_store, generator)

    with pytest.raises(InsufficientCredits):
        await create(service, number=5)

    assert await funded_store.count(OWNER) == 0
    assert await funded_store.find_balance(OWNER) == Decimal("0.20")


async def test_persistence_failure_leaves_balance_untouched(funded_store, generator, transport):
    transport.handler = quiz_oracle()

    async def failing_insert(record):
        raise PersistenceFailure("Could not store quiz data")

    funded_store.insert = failing_insert
    service = QuizService(funded_store, generator)

    with pytest.raises(PersistenceFailure):
        await create(service, number=5)

    assert await funded_store.find_balance(OWNER) == Decimal("10.00")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CLEAR-UP
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def test_clear_up_charges_only_the_page_estimate(funded_store, generator, transport):
    transport.handler = lambda prompt: {"questions": [mcq(f"{segment_text(prompt)}?")]}
    service = QuizService(funded_store, generator)
    document = ExtractedDocument(segments=["A", "B", "C"], page_count=3)

    record = await service.clear_up(
        owner_id=OWNER, document=document, question_types=["MCQ"], file_type="image", title="paper.pdf"
    )

    assert [q.question for q in record.questions] == ["A?", "B?", "C?"]
    assert record.kind == RecordKind.clear_up
    assert record.title == "paper.pdf"
    assert record.difficulty is None
    assert record.credits_charged == Decimal("1.50")
    assert await funded_store.find_balance(OWNER) == Decimal("8.50")


async def test_clear_up_failure_in_one_segment_persists_and_charges_nothing(funded_store, generator, transport):
    def handler(prompt):
        if segment_text(prompt) == "B":
            return "not json"
        return {"questions": [mcq(f"{segment_text(prompt)}?")]}

    transport.handler = handler
    service = QuizService(funded_store, generator)
    document = ExtractedDocument(segments=["A", "B", "C"], page_count=3)

    with pytest.raises(ParseFailure):
        await service.clear_up(owner_id=OWNER, document=document, question_types=["MCQ"], file_type="text")

    assert await funded_store.count(OWNER) == 0
    assert await funded_store.find_balance(OWNER) == Decimal("10.00")


async def test_clear_up_without_title_gets_generated_one(funded_store, generator, transport):
    transport.handler = lambda prompt: {"questions": [mcq("Q?")]}
    service = QuizService(funded_store, generator)

    record = await service.clear_up(owner_id=OWNER, document=DOC, question_types=["MCQ"], file_type="text")

    assert record.title.startswith("Quiz-")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ANSWER CHECK
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def test_check_answer_returns_verdict(store, generator, transport):
    transport.responses = ['```json\n{"valid": true, "correct": true}\n```']

    verdict = await QuizService(store, generator).check_answer(
        AnswerCheckRequest(question="What is H2O?", answer="Water", explanation="H2O is water.")
    )

    assert verdict.valid and verdict.correct


async def test_check_answer_invalid_input_is_rejection(store, generator, transport):
    transport.responses = [{"valid": False, "reason": "Invalid input: not a question or not an answer."}]

    with pytest.raises(OracleRejection) as exc:
        await QuizService(store, generator).check_answer(
            AnswerCheckRequest(question="hello", answer="bye")
        )

    assert exc.value.message == "Invalid input: not a question or not an answer."


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# EDGE CASES
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def test_oversupplied_round_is_charged_for_requested_count_only(funded_store, generator, transport):
    transport.responses = [payload([f"Q{i}?" for i in range(30)])]
    service = QuizService(funded_store, generator)

    record = await create(service, number=5)

    # 3 text pages at 0.10 + 5 questions at 0.05, the same amount preflight approved
    assert record.question_count == 5
    assert record.credits_charged == Decimal("0.55")
    assert await funded_store.find_balance(OWNER) == Decimal("9.45")


async def test_clear_up_with_blank_middle_page(funded_store, generator, transport):
    def handler(prompt):
        if not segment_text(prompt).strip():
            return {"status": "error", "message": "Invalid entry."}
        return {"questions": [mcq(f"{segment_text(prompt)}?")]}

    transport.handler = handler
    service = QuizService(funded_store, generator)
    document = ExtractedDocument(segments=["A", "", "C"], page_count=3)

    record = await service.clear_up(owner_id=OWNER, document=document, question_types=["MCQ"], file_type="text")

    assert [q.question for q in record.questions] == ["A?", "C?"]
    assert len(transport.prompts) == 2
    # every measured page is still billed
    assert record.credits_charged == Decimal("0.30")


async def test_failed_cleanup_keeps_the_original_charge_error(funded_store, generator, transport):
    oracle = quiz_oracle()

    async def drain_then_answer(prompt):
        await funded_store.debit(OWNER, Decimal("9.80"))
        return oracle(prompt)

    async def failing_delete(owner_id, record_id):
        raise PersistenceFailure()

    transport.handler = drain_then_answer
    funded_store.delete = failing_delete
    service = QuizService(funded_store, generator)

    with pytest.raises(InsufficientCredits):
        await create(service, number=5)


@pytest.mark.parametrize("number", ["5.5", "five", 7.5])
async def test_non_integer_count_gets_specific_message(funded_store, generator, transport, number):
    with pytest.raises(QuizValidationError) as exc:
        await create(QuizService(funded_store, generator), number=number)

    assert exc.value.message == "Number of questions must be a whole number"


@pytest.mark.parametrize("number", [None, "", "  "])
async def test_missing_count_is_required(funded_store, generator, transport, number):
    with pytest.raises(QuizValidationError) as exc:
        await create(QuizService(funded_store, generator), number=number)

    assert exc.value.message == "Number of questions is required"
