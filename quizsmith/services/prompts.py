"""
quizsmith — Prompt Builder
==========================
Pure renderers that turn a generation request into the instruction text sent
to the oracle. The output shapes described here must stay in step with the
response models in ``schemas/quiz.py`` (RESPONSE_CONTRACT_VERSION).
"""

import json
from typing import Iterable, List, Sequence

from pydantic import BaseModel

from quizsmith.schemas.quiz import RESPONSE_CONTRACT_VERSION, Difficulty, QuestionType


class QuizPrompt(BaseModel):
    subject: str
    question_types: List[QuestionType]
    difficulty: Difficulty
    number: int
    exclude: List[str] = []


class ClearUpPrompt(BaseModel):
    subject: str
    question_types: List[QuestionType]
    exclude: List[str] = []


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SYSTEM PROMPT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

SYSTEM_PROMPT = (
    "You are an expert educational assessment designer.\n"
    "Output ONLY valid JSON — no markdown fences, no commentary.\n"
)

# ── Output contract ──────────────────────────────────────────────────────────

_QUESTION_TYPES = (
    f"Output Types (contract v{RESPONSE_CONTRACT_VERSION}):\n"
    "type MCQ = {\n"
    '    type: "MCQ";\n'
    "    question: string;\n"
    "    options: { answer: string; correct: boolean }[];\n"
    "    explanation: string;\n"
    "};\n"
    "type TF = {\n"
    '    type: "TF";\n'
    "    question: string;\n"
    "    options: [{ answer: true; correct: boolean }, { answer: false; correct: boolean }];\n"
    "    explanation: string;\n"
    "};\n"
    "type SAQ = {\n"
    '    type: "SAQ";\n'
    "    question: string;\n"
    "    answers: string;\n"
    "    explanation: string;\n"
    "};\n"
    "type FIB = {\n"
    '    type: "FIB";\n'
    "    question: string;\n"
    "    answers: string | string[];\n"
    "    explanation: string;\n"
    "};\n"
)

_DIFFICULTY_LEVELS = (
    "Difficulty Levels:\n"
    "- Basic: recall/definitions (simple facts, terms, concepts, common knowledge)\n"
    "- Regular: foundational, non-trivial (understanding principles, straightforward reasoning)\n"
    "- Intermediate: reasoning/application (apply knowledge to solve problems, analyze, explain concepts)\n"
    "- Advanced: deep/multi-step (complex problem-solving, critical thinking, multi-step reasoning)\n"
    "- Expert: tricky/problem-solving (creative thinking, synthesis, possibly beyond immediate scope)\n"
)


def serialize_exclusions(questions: Iterable[str]) -> str:
    """JSON array of question texts the oracle must not repeat."""
    return json.dumps(list(questions), ensure_ascii=False)


def _types(question_types: Sequence[QuestionType]) -> str:
    return ", ".join(QuestionType(q).value for q in question_types)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# QUIZ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def render_quiz_prompt(prompt: QuizPrompt) -> str:
    return (
        "Generate a quiz in JSON format. Output only a JSON object of type Questions. No extra text.\n\n"
        "Rules:\n"
        "1. Stick strictly to the subject, even if it is long.\n"
        f"2. The number of questions must exactly equal {prompt.number}. No more. Fewer is acceptable\n"
        "   only when the remaining questions would duplicate an excluded or already generated one.\n\n"
        "Validation:\n"
        "- If the input is not an academic topic, essay, book, lecture note, or any educational text "
        "(e.g., exam paper, non-educational content, vague/unrelated topic, casual query, command, "
        "or general conversation):\n"
        '  { "status": "error", "message": "Invalid entry." }\n'
        "- If the difficulty is unreasonable for the subject:\n"
        '  { "status": "error", "message": "Difficulty level doesn\'t match subject." }\n'
        "- If the subject is an abbreviation, vague, conversational, general, or non-educational:\n"
        '  { "status": "error", "message": "Subject too abstract or general, please enter a more specified value." }\n\n'
        + _DIFFICULTY_LEVELS
        + "\n"
        + _QUESTION_TYPES
        + "type Questions = { topic: string; questions: (MCQ | TF | SAQ | FIB)[] };\n"
        'type QuizError = { status: "error"; message: string };\n\n'
        "Exclusions:\n"
        "- Do not replicate or rewrite any question from the following list.\n"
        "- Each generated question must be unique and not a variation of any question in the list:\n"
        f"{serialize_exclusions(prompt.exclude)}\n\n"
        "Input:\n"
        f'- subject: "{prompt.subject}"\n'
        f'- difficulty: "{Difficulty(prompt.difficulty).value}"\n'
        f"- number of questions: {prompt.number}\n"
        f"- question types: {_types(prompt.question_types)}\n"
    )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CLEAR-UP
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def render_clear_up_prompt(prompt: ClearUpPrompt) -> str:
    types = _types(prompt.question_types)
    return (
        "You are processing extracted exam paper, quiz, or query text.\n\n"
        f"INPUT TEXT:\n{prompt.subject}\n\n"
        f"PREVIOUSLY EXTRACTED QUESTIONS:\n{serialize_exclusions(prompt.exclude)}\n\n"
        "RULE:\n"
        "- If the input is not an exam paper, quiz, or academic query, return:\n"
        '  { "status": "error", "message": "Invalid input: input must be an exam paper, quiz, or academic query." }\n'
        "  and do not process further.\n\n"
        "TASK:\n"
        "- Clean and parse the input.\n"
        f"- Extract only the following question types: {types}.\n"
        "- Allowed types: MCQ, TF, FIB, SAQ. Ignore everything else.\n\n"
        "RULES:\n"
        "1. Remove numbering, page refs, whitespace, unrelated text.\n"
        "2. Keep only complete questions; if incomplete, repair into concise, well-formed wording.\n"
        "3. Convert \"True\"/\"False\" into booleans.\n"
        "4. Exclude any question already listed above (exact/partial, case/punctuation variations) "
        "and remove duplicates within this batch. If uncertain, exclude.\n"
        "5. Leave explanation empty when the source does not give one.\n\n"
        + _QUESTION_TYPES
        + "\nOutput strictly:\n"
        '{ "questions": [ ... ] }\n'
    )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ANSWER CHECK
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def render_answer_check_prompt(question: str, answer: str, explanation: str) -> str:
    return (
        "You are given two inputs:\n"
        f"question: {{{question}}}\n"
        f"answer: {{{answer}}}\n\n"
        "Your task:\n"
        "1. Check if the inputs are valid: question must be a genuine question, and answer must be "
        "a genuine attempt to answer it. If either is invalid, output only:\n"
        '{ "valid": false, "reason": "Invalid input: not a question or not an answer." }\n'
        "2. If valid, determine whether the answer correctly addresses the question compared to "
        f"the following explanation:\nexplanation: {{{explanation}}}\n"
        'If correct, output: { "valid": true, "correct": true }\n'
        'If incorrect, output: { "valid": true, "correct": false }\n\n'
        "Output must be a single JSON object. Do not include any text outside the JSON."
    )
