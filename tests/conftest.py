"""
Shared fixtures: a scripted oracle transport and a throwaway SQLite store.
"""
import inspect
import itertools
import json
import re
from decimal import Decimal

import fitz  # PyMuPDF
import pytest

from quizsmith.db.database import init_db, make_engine, make_session_factory
from quizsmith.db.store import QuizStore
from quizsmith.services.generator import GeneratorClient

OWNER = "user-1"

LOREM = (
    "Photosynthesis is the process used by plants, algae and certain bacteria to harness "
    "energy from sunlight and turn it into chemical energy. It takes place in the chloroplasts."
)


class ScriptedTransport:
    """Fake oracle. Replays ``responses`` in order, or answers via ``handler(prompt)``."""

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.prompts = []

    async def submit(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.handler is not None:
            result = self.handler(prompt)
            if inspect.isawaitable(result):
                result = await result
        else:
            result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, dict):
            return json.dumps(result)
        return result


def mcq(text: str) -> dict:
    return {
        "type": "MCQ",
        "question": text,
        "options": [{"answer": "Yes", "correct": True}, {"answer": "No", "correct": False}],
        "explanation": "Because.",
    }


def payload(texts, topic="Photosynthesis") -> dict:
    return {"topic": topic, "questions": [mcq(t) for t in texts]}


def requested_number(prompt: str) -> int:
    return int(re.search(r"number of questions: (\d+)", prompt).group(1))


def segment_text(prompt: str) -> str:
    return prompt.split("INPUT TEXT:\n", 1)[1].split("\n", 1)[0]


def quiz_oracle(topic="Photosynthesis", shortfall=0):
    """Handler answering each round with as many fresh questions as asked, minus ``shortfall``."""
    counter = itertools.count(1)

    def handler(prompt: str) -> dict:
        n = max(requested_number(prompt) - shortfall, 0)
        return payload([f"Question {next(counter)}?" for _ in range(n)], topic=topic)

    return handler


def make_pdf(pages=1, text=LOREM) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page()
        page.insert_textbox(fitz.Rect(50, 50, 550, 800), f"Page {i + 1}. {text}")
    content = doc.tobytes()
    doc.close()
    return content


@pytest.fixture
def store(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'quizsmith-test.db'}")
    init_db(engine)
    yield QuizStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def generator(transport):
    return GeneratorClient(transport)


@pytest.fixture
async def funded_store(store):
    await store.create_user(OWNER, Decimal("10.00"))
    return store
