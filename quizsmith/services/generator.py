"""
quizsmith — Generator Client
============================
Fences the oracle: submit a prompt, clean the raw text, parse it, and map the
result to exactly one of

  - a validated payload (QuestionsPayload / ClearUpPayload / AnswerVerdict)
  - OracleRejection  ({"status": "error", "message": ...})
  - ParseFailure     (not JSON, or JSON that breaks the response contract)

Transport errors propagate as TransportFailure. Nothing here retries.
"""

import json
import logging
import re
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError

from quizsmith.core.errors import OracleRejection, ParseFailure
from quizsmith.schemas.quiz import RESPONSE_CONTRACT_VERSION
from quizsmith.services.llm_service import OracleTransport

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)

_FENCE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_LANG_TAG = re.compile(r"^\s*json\b", re.IGNORECASE)


def clean_and_parse_json(raw_text: str) -> Dict[str, Any]:
    """
    Strip the formatting noise the oracle sometimes adds and parse the rest:
    1. ```json ... ``` fences (or stray backticks)
    2. a bare echoed ``json`` language tag
    3. text around the first { ... } block
    Raises ParseFailure when what is left is not a JSON object.
    """
    if not raw_text or not raw_text.strip():
        raise ParseFailure("Empty AI response received")

    cleaned = raw_text.strip()

    fence_match = _FENCE.search(cleaned)
    if fence_match:
        cleaned = fence_match.group(1).strip()
    cleaned = _LANG_TAG.sub("", cleaned.replace("`", ""), count=1).strip()

    if not cleaned.startswith("{"):
        brace_match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if brace_match:
            cleaned = brace_match.group(0)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"[GEN] JSON parse failed ({e}). Raw (first 500 chars): {raw_text[:500]}")
        raise ParseFailure()

    if not isinstance(parsed, dict):
        logger.error(f"[GEN] Expected a JSON object, got {type(parsed).__name__}")
        raise ParseFailure()
    return parsed


class GeneratorClient:
    """Typed access to the oracle over any ``OracleTransport``."""

    def __init__(self, transport: OracleTransport):
        self.transport = transport

    async def generate(self, prompt: str, payload_model: Type[PayloadT]) -> PayloadT:
        raw = await self.transport.submit(prompt)
        data = clean_and_parse_json(raw)

        if data.get("status") == "error":
            message = data.get("message")
            rejection = OracleRejection(message if isinstance(message, str) and message else None)
            logger.info(f"[GEN] Oracle rejected input: {rejection.message}")
            raise rejection

        try:
            return payload_model.model_validate(data)
        except ValidationError as e:
            logger.error(
                f"[GEN] Response breaks contract v{RESPONSE_CONTRACT_VERSION} "
                f"for {payload_model.__name__}: {e.error_count()} error(s)"
            )
            raise ParseFailure()
