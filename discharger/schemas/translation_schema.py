from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel

LANGUAGE_MAP: Dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "zh": "Chinese (Simplified)",
    "ja": "Japanese",
    "ko": "Korean",
    "ar": "Arabic",
}

SupportedLocale = Literal["en", "es", "fr", "de", "it", "pt", "zh", "ja", "ko", "ar"]


class TranslateRequest(BaseModel):
    target_locale: SupportedLocale


class TranslationResponse(BaseModel):
    id: str
    summary_id: str
    locale: str
    source_locale: str
    translated_blocks: List[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime


class TranslationCreatedResponse(BaseModel):
    translation: TranslationResponse


class TranslationsListResponse(BaseModel):
    translations: List[TranslationResponse]


class LocaleInfo(BaseModel):
    code: str
    name: str


class SupportedLocalesResponse(BaseModel):
    locales: List[LocaleInfo]
