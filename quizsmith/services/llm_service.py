"""
quizsmith — Oracle Transport
============================
Submits a rendered prompt to the configured AI provider and returns raw text.

  - Groq (Llama 3) and Gemini providers
  - 'hybrid' mode fails over from the primary provider to the other one
  - Per-call timeout (AI_TIMEOUT_SECONDS)
  - Every provider error surfaces as TransportFailure
"""

import asyncio
import logging
from typing import Optional, Protocol

import google.generativeai as genai
from groq import AsyncGroq

from quizsmith.core.config import settings
from quizsmith.core.errors import TransportFailure
from quizsmith.services.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class OracleTransport(Protocol):
    async def submit(self, prompt: str) -> str: ...


class LLMTransport:
    """Groq / Gemini transport selected by ``settings.AI_PROVIDER``."""

    def __init__(self, provider: Optional[str] = None, primary: str = "gemini"):
        self.provider = provider or settings.AI_PROVIDER
        self.primary = primary
        self._groq: Optional[AsyncGroq] = None

        logger.info(f"[LLM] Provider mode: {self.provider}")
        if settings.GROQ_API_KEY:
            self._groq = AsyncGroq(api_key=settings.GROQ_API_KEY)
            logger.info("[LLM] ✓ Groq client ready")
        if settings.GOOGLE_API_KEY:
            genai.configure(api_key=settings.GOOGLE_API_KEY, transport="rest")
            logger.info("[LLM] ✓ Gemini client ready")

    # ── Provider calls ───────────────────────────────────────────────────────

    async def _call_groq(self, prompt: str) -> str:
        if not self._groq:
            raise ValueError("Groq API Key missing")

        logger.info(f"[LLM] Calling Groq ({settings.GROQ_MODEL})...")
        completion = await self._groq.chat.completions.create(
            model=settings.GROQ_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=0.7,
            max_tokens=8000,
        )
        return completion.choices[0].message.content or ""

    async def _call_gemini(self, prompt: str) -> str:
        if not settings.GOOGLE_API_KEY:
            raise ValueError("Google API Key missing")

        logger.info(f"[LLM] Calling Gemini ({settings.GEMINI_MODEL})...")
        model = genai.GenerativeModel(
            model_name=settings.GEMINI_MODEL,
            system_instruction=SYSTEM_PROMPT,
            generation_config={"response_mime_type": "application/json"},
        )
        response = await asyncio.to_thread(model.generate_content, prompt)
        return response.text

    def _callers(self):
        if self.provider == "groq":
            return [("Groq", self._call_groq)]
        if self.provider == "gemini":
            return [("Gemini", self._call_gemini)]
        if self.primary == "groq":
            return [("Groq", self._call_groq), ("Gemini", self._call_gemini)]
        return [("Gemini", self._call_gemini), ("Groq", self._call_groq)]

    # ── Public ───────────────────────────────────────────────────────────────

    async def submit(self, prompt: str) -> str:
        """Send one prompt. In hybrid mode a failing provider hands over to the next."""
        last_error: Optional[Exception] = None
        for name, caller in self._callers():
            try:
                result = await asyncio.wait_for(caller(prompt), timeout=settings.AI_TIMEOUT_SECONDS)
                logger.info(f"[LLM] ✓ {name} call succeeded")
                return result
            except asyncio.TimeoutError:
                last_error = TimeoutError(f"{name} timed out after {settings.AI_TIMEOUT_SECONDS}s")
                logger.warning(f"[LLM] {last_error}")
            except Exception as e:
                last_error = e
                logger.warning(f"[LLM] {name} failed: {str(e)[:200]}")

        logger.error(f"[LLM] All AI providers failed. Last error: {last_error}")
        raise TransportFailure()
