from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.api.summary_access import require_summary_access
from discharger.db.session import get_db_session
from discharger.db.models.summary_translation import SummaryTranslation
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user_optional
from discharger.schemas.translation_schema import (
    LANGUAGE_MAP,
    LocaleInfo,
    SupportedLocalesResponse,
    TranslateRequest,
    TranslationCreatedResponse,
    TranslationResponse,
    TranslationsListResponse,
)
from discharger.services.patient_summary_service import (
    TranslationExistsError,
    get_patient_summary_service,
)
from discharger.services.translation_service import (
    TranslationError,
    TranslationService,
    get_translation_service,
)
from discharger.utils.logger import get_logger

router = APIRouter(prefix="/patient-summaries", tags=["translations"])
logger = get_logger(__name__)


def _to_response(translation: SummaryTranslation) -> TranslationResponse:
    return TranslationResponse(
        id=translation.id,
        summary_id=translation.summary_id,
        locale=translation.locale,
        source_locale=translation.source_locale,
        translated_blocks=translation.translated_blocks or [],
        created_at=translation.created_at,
        updated_at=translation.updated_at,
    )


@router.get("/locales", response_model=SupportedLocalesResponse)
async def list_supported_locales() -> SupportedLocalesResponse:
    return SupportedLocalesResponse(
        locales=[LocaleInfo(code=code, name=name) for code, name in LANGUAGE_MAP.items()]
    )


@router.post(
    "/{summary_id}/translate",
    response_model=TranslationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def translate_summary(
    summary_id: str,
    data: TranslateRequest,
    access_key: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    current_user: Optional[UserProfile] = Depends(get_current_user_optional),
    translation_service: TranslationService = Depends(get_translation_service),
) -> TranslationCreatedResponse:
    """Translate the summary's blocks into ``target_locale`` and cache the result."""
    access = await require_summary_access(session, summary_id, current_user, access_key)
    summary = access.summary
    summary_service = get_patient_summary_service()

    if await summary_service.get_translation(session, summary_id, data.target_locale):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Translation already exists for this locale",
        )

    if not summary.blocks:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Summary has no blocks to translate",
        )

    source_locale = summary.preferred_locale or "en"
    try:
        translated_blocks = await translation_service.translate_blocks(
            summary.blocks,
            target_locale=data.target_locale,
            source_locale=source_locale,
        )
    except TranslationError as e:
        logger.error("summary.translate_failed", summary_id=summary_id, locale=data.target_locale, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to translate summary",
        )

    try:
        translation = await summary_service.save_translation(
            session,
            summary_id=summary_id,
            locale=data.target_locale,
            source_locale=source_locale,
            translated_blocks=translated_blocks,
        )
    except TranslationExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Translation already exists for this locale",
        )

    return TranslationCreatedResponse(translation=_to_response(translation))


@router.get("/{summary_id}/translations", response_model=TranslationsListResponse)
async def list_translations(
    summary_id: str,
    access_key: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    current_user: Optional[UserProfile] = Depends(get_current_user_optional),
) -> TranslationsListResponse:
    await require_summary_access(session, summary_id, current_user, access_key)
    translations = await get_patient_summary_service().list_translations(session, summary_id)
    return TranslationsListResponse(translations=[_to_response(t) for t in translations])


@router.get("/{summary_id}/translations/{locale}", response_model=TranslationResponse)
async def get_translation(
    summary_id: str,
    locale: str,
    access_key: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    current_user: Optional[UserProfile] = Depends(get_current_user_optional),
) -> TranslationResponse:
    await require_summary_access(session, summary_id, current_user, access_key)
    translation = await get_patient_summary_service().get_translation(session, summary_id, locale)
    if not translation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Translation not found",
        )
    return _to_response(translation)
