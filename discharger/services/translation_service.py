"""Translation of summary blocks with structural fields held fixed."""
from __future__ import annotations

import copy
import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from discharger.schemas.block_schema import (
    TRANSLATABLE_FIELDS,
    create_translation_schema,
    get_block_types_from_blocks,
)
from discharger.schemas.translation_schema import LANGUAGE_MAP
from discharger.services.llm_service import LLMError, LLMService, get_llm_service
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


def get_supported_locales() -> List[str]:
    return list(LANGUAGE_MAP)


def get_language_name(locale: str) -> str:
    return LANGUAGE_MAP.get(locale, locale)


def is_locale_supported(locale: str) -> bool:
    return locale in LANGUAGE_MAP


class TranslationError(RuntimeError):
    """Raised when blocks could not be translated."""


def _copy_text(target: Dict[str, Any], translated: Dict[str, Any], fields: frozenset[str]) -> None:
    for field in fields:
        if target.get(field) is None:
            continue
        value = translated.get(field)
        if isinstance(value, str) and value.strip():
            target[field] = value


def merge_translated_block(source: Dict[str, Any], translated: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Take human-readable text from ``translated`` and everything else from ``source``.

    Items inside a block are paired by id, falling back to position. Text
    missing from the translation stays in the source language.
    """
    result = copy.deepcopy(source)
    if not isinstance(translated, dict):
        return result

    if isinstance(translated.get("title"), str) and translated["title"].strip():
        result["title"] = translated["title"]

    list_key, fields = TRANSLATABLE_FIELDS.get(source.get("type"), (None, frozenset()))
    data = result.get("data")
    translated_data = translated.get("data")
    if not isinstance(data, dict) or not isinstance(translated_data, dict):
        return result

    if list_key is None:
        _copy_text(data, translated_data, fields)
        return result

    items = data.get(list_key) or []
    translated_items = [i for i in translated_data.get(list_key) or [] if isinstance(i, dict)]
    by_id = {i.get("id"): i for i in translated_items if i.get("id") is not None}

    for position, item in enumerate(items):
        match = by_id.get(item.get("id"))
        if match is None and position < len(translated_items):
            match = translated_items[position]
        if match is not None:
            _copy_text(item, match, fields)
    return result


class TranslationService:
    """Translates full blocks into a target locale."""

    def __init__(self, llm: Optional[LLMService] = None) -> None:
        self.llm = llm or get_llm_service()
        self.temperature = 0.1

    async def translate_blocks(
        self,
        blocks: List[Dict[str, Any]],
        target_locale: str,
        source_locale: str = "en",
    ) -> List[Dict[str, Any]]:
        if not blocks:
            return []
        if not is_locale_supported(target_locale):
            raise TranslationError(f"Unsupported locale: {target_locale}")

        block_types = get_block_types_from_blocks(blocks)
        if not block_types:
            raise TranslationError("Failed to translate blocks: no supported block types present")
        schema = create_translation_schema(block_types)

        logger.info(
            "translation.start",
            block_count=len(blocks),
            block_types=block_types,
            source_locale=source_locale,
            target_locale=target_locale,
        )
        try:
            raw = await self.llm.acomplete_json(
                self._build_system_prompt(target_locale, source_locale),
                self._build_user_prompt(blocks, target_locale),
                temperature=self.temperature,
                response_model=schema,
            )
        except LLMError as e:
            raise TranslationError(f"Failed to translate blocks: {e}") from e

        translated = raw.get("translatedBlocks")
        if translated is None:
            translated = raw.get("translated_blocks")
        if not isinstance(translated, list):
            raise TranslationError("Failed to translate blocks: response has no translated blocks")

        by_id = {b.get("id"): b for b in translated if isinstance(b, dict)}
        merged = []
        for position, block in enumerate(blocks):
            match = by_id.get(block.get("id"))
            if match is None and position < len(translated):
                match = translated[position]
            if match is None:
                logger.warning("translation.block_missing", block_id=block.get("id"))
            merged.append(merge_translated_block(block, match))

        try:
            schema.model_validate({"translatedBlocks": merged})
        except ValidationError as e:
            raise TranslationError(f"Failed to translate blocks: {e.error_count()} validation errors") from e

        logger.info("translation.completed", target_locale=target_locale, block_count=len(merged))
        return merged

    async def translate_block(
        self,
        block: Dict[str, Any],
        target_locale: str,
        source_locale: str = "en",
    ) -> Dict[str, Any]:
        translated = await self.translate_blocks([block], target_locale, source_locale)
        return translated[0]

    def _build_system_prompt(self, target_locale: str, source_locale: str) -> str:
        target = get_language_name(target_locale)
        source = get_language_name(source_locale)
        return f"""You are a professional medical translator. Translate patient discharge information from {source} to {target}.

**Preserve exactly (never change)**:
- Every id, type and boolean flag (isEditable, isRequired, completed, enableReminders)
- Every enum value (status, priority, groupBy, format)
- Every date and timestamp, and the whole metadata object
- Medication dosages and frequencies, numbers and units

**Translate**:
- Block titles
- Medication names, durations and instructions
- Task titles and descriptions
- Symptom names and descriptions
- Clinic names and appointment descriptions
- Free text content

**Conventions**:
- Write translated medication names as "Translated name (Original name)".
- Use clear, simple {target} suitable for patients.
- Keep the same number of blocks and items, in the same order.

Return ONLY a JSON object with a single key "translatedBlocks" holding the translated blocks."""

    def _build_user_prompt(self, blocks: List[Dict[str, Any]], target_locale: str) -> str:
        return f"""**Blocks to translate** (target language: {get_language_name(target_locale)}):

{json.dumps(blocks, ensure_ascii=False, indent=2)}"""


_translation_service: Optional[TranslationService] = None


def get_translation_service() -> TranslationService:
    global _translation_service
    if _translation_service is None:
        _translation_service = TranslationService()
    return _translation_service
