"""Structured JSON completions against an OpenAI-compatible endpoint."""
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional, Type

from openai import OpenAI
from pydantic import BaseModel

from discharger.config.settings import get_settings
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class LLMError(RuntimeError):
    """Raised when the model call fails or returns unusable output."""


class LLMService:
    """Thin wrapper around the chat completions API returning parsed JSON."""

    def __init__(self) -> None:
        settings = get_settings()
        self.model = settings.llm_model
        self.max_tokens = settings.llm_max_tokens
        if not settings.groq_api_key:
            logger.warning("llm.api_key_missing", detail="GROQ_API_KEY not set, model calls will fail")
            self.client = None
        else:
            self.client = OpenAI(
                base_url=settings.llm_base_url,
                api_key=settings.groq_api_key,
            )

    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        response_model: Optional[Type[BaseModel]] = None,
    ) -> Dict[str, Any]:
        """Run one completion and return the decoded JSON object.

        When ``response_model`` is given its JSON schema is appended to the
        system prompt so the model knows the exact shape expected.
        """
        if not self.client:
            raise LLMError("LLM client not initialized. GROQ_API_KEY missing.")

        if response_model is not None:
            schema = json.dumps(response_model.model_json_schema(by_alias=True))
            system_prompt = (
                f"{system_prompt}\n\nRespond with a single JSON object matching this JSON schema:\n{schema}"
            )

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except Exception as e:
            logger.error("llm.request_failed", model=self.model, error=str(e))
            raise LLMError(f"Model request failed: {e}") from e

        content = response.choices[0].message.content
        if not content:
            raise LLMError("Empty response from LLM API.")
        return self._parse_json(content)

    async def acomplete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        response_model: Optional[Type[BaseModel]] = None,
    ) -> Dict[str, Any]:
        return await asyncio.to_thread(
            self.complete_json,
            system_prompt,
            user_prompt,
            temperature,
            response_model,
        )

    def _parse_json(self, llm_response: str) -> Dict[str, Any]:
        # Models sometimes wrap JSON in markdown fences
        cleaned = llm_response.strip()
        if cleaned.startswith("```json"):
            cleaned = cleaned[7:]
        if cleaned.startswith("```"):
            cleaned = cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]

        try:
            parsed = json.loads(cleaned.strip())
        except json.JSONDecodeError as e:
            logger.error("llm.invalid_json", error=str(e), response=llm_response[:500])
            raise LLMError(f"Model returned invalid JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise LLMError("Model returned JSON that is not an object")
        return parsed


_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
