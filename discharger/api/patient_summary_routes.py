from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.api.summary_access import load_summary_for_doctor, require_summary_access
from discharger.db.session import get_db_session
from discharger.db.models.patient import Patient
from discharger.db.models.patient_summary import PatientSummary
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user, get_current_user_optional
from discharger.schemas.block_schema import (
    DEFAULT_GENERATION_BLOCK_TYPES,
    SUPPORTED_BLOCK_TYPES,
    UnsupportedBlockTypeError,
)
from discharger.schemas.patient_summary_schema import (
    PatientSummariesListResponse,
    PatientSummaryCreate,
    PatientSummaryResponse,
    PatientSummaryUpdate,
    PublicSummaryResponse,
    RegenerateBlocksRequest,
    SummaryStatus,
    UpdateBlocksRequest,
    UpdateLocaleRequest,
    blocks_to_json,
)
from discharger.services.block_generation_service import (
    BlockGenerationError,
    BlockGenerationService,
    get_block_generation_service,
)
from discharger.services.patient_summary_service import get_patient_summary_service
from discharger.services.pdf_service import get_pdf_service
from discharger.utils.logger import get_logger

router = APIRouter(prefix="/patient-summaries", tags=["patient-summaries"])
logger = get_logger(__name__)


def _to_response(summary: PatientSummary) -> PatientSummaryResponse:
    return PatientSummaryResponse(
        id=summary.id,
        patient_id=summary.patient_id,
        doctor_id=summary.doctor_id,
        patient_user_id=summary.patient_user_id,
        blocks=summary.blocks or [],
        discharge_text=summary.discharge_text,
        status=summary.status,
        preferred_locale=summary.preferred_locale,
        created_at=summary.created_at,
        updated_at=summary.updated_at,
    )


@router.get("", response_model=PatientSummariesListResponse)
async def list_summaries(
    patient_id: Optional[str] = Query(None, alias="patientId"),
    summary_status: Optional[SummaryStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientSummariesListResponse:
    """List the caller's summaries, newest first."""
    summaries, total = await get_patient_summary_service().list_summaries(
        session=session,
        doctor_id=current_user.id,
        patient_id=patient_id,
        status=summary_status,
        limit=limit,
        offset=offset,
    )
    return PatientSummariesListResponse(
        summaries=[_to_response(s) for s in summaries],
        total=total,
    )


@router.post("", response_model=PatientSummaryResponse, status_code=status.HTTP_201_CREATED)
async def create_summary(
    data: PatientSummaryCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientSummaryResponse:
    summary = await get_patient_summary_service().create_summary(
        session=session,
        doctor_id=current_user.id,
        patient_id=data.patient_id,
        blocks=blocks_to_json(data.blocks),
        discharge_text=data.discharge_text,
        status=data.status,
    )
    if not summary:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found or access denied",
        )
    return _to_response(summary)


@router.get("/{summary_id}", response_model=PatientSummaryResponse)
async def get_summary(
    summary_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientSummaryResponse:
    access = await require_summary_access(session, summary_id, current_user, access_key=None)
    return _to_response(access.summary)


@router.patch("/{summary_id}", response_model=PatientSummaryResponse)
async def update_summary(
    summary_id: str,
    data: PatientSummaryUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientSummaryResponse:
    """Update fields; replacing blocks drops every cached translation."""
    summary = await load_summary_for_doctor(session, summary_id, current_user)

    updates = data.model_dump(exclude_unset=True, exclude={"blocks"})
    if "blocks" in data.model_fields_set and data.blocks is not None:
        updates["blocks"] = blocks_to_json(data.blocks)
    # Columns that may not be null
    for field in ("status", "preferred_locale"):
        if field in updates and updates[field] is None:
            updates.pop(field)

    summary = await get_patient_summary_service().update_summary(session, summary, updates)
    return _to_response(summary)


@router.delete("/{summary_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_summary(
    summary_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> None:
    summary = await load_summary_for_doctor(session, summary_id, current_user)
    await get_patient_summary_service().delete_summary(session, summary)


@router.patch("/{summary_id}/blocks", response_model=PatientSummaryResponse)
async def update_blocks(
    summary_id: str,
    data: UpdateBlocksRequest,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientSummaryResponse:
    """Replace the blocks and drop every cached translation."""
    summary = await load_summary_for_doctor(session, summary_id, current_user)
    summary = await get_patient_summary_service().update_blocks(session, summary, blocks_to_json(data.blocks))
    return _to_response(summary)


@router.post("/{summary_id}/regenerate", response_model=PatientSummaryResponse)
async def regenerate_blocks(
    summary_id: str,
    data: RegenerateBlocksRequest,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
    generation_service: BlockGenerationService = Depends(get_block_generation_service),
) -> PatientSummaryResponse:
    """Rebuild the blocks from the stored discharge text."""
    summary = await load_summary_for_doctor(session, summary_id, current_user)
    if not (summary.discharge_text or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Summary has no discharge text to generate from",
        )

    block_types = data.block_types or list(DEFAULT_GENERATION_BLOCK_TYPES)
    try:
        result = await generation_service.generate_blocks(summary.discharge_text, block_types)
    except UnsupportedBlockTypeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Invalid block types: {', '.join(e.invalid_types)}. "
                f"Supported types: {', '.join(SUPPORTED_BLOCK_TYPES)}"
            ),
        )
    except BlockGenerationError as e:
        logger.error("summary.regenerate_failed", summary_id=summary_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate blocks",
        )

    summary = await get_patient_summary_service().update_blocks(session, summary, result["blocks"])
    return _to_response(summary)


@router.patch("/{summary_id}/locale", response_model=PatientSummaryResponse)
async def update_locale(
    summary_id: str,
    data: UpdateLocaleRequest,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> PatientSummaryResponse:
    """Set the language the summary is written in. Doctor or linked patient."""
    access = await require_summary_access(session, summary_id, current_user, access_key=None)
    summary = await get_patient_summary_service().update_summary(
        session, access.summary, {"preferred_locale": data.preferred_locale}
    )
    return _to_response(summary)


@router.get("/{summary_id}/summary", response_model=PublicSummaryResponse)
async def get_public_summary(
    summary_id: str,
    access_key: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    current_user: Optional[UserProfile] = Depends(get_current_user_optional),
) -> PublicSummaryResponse:
    """Patient-facing view, reachable with an access key instead of a login."""
    access = await require_summary_access(session, summary_id, current_user, access_key)
    summary = access.summary
    summary_service = get_patient_summary_service()

    patient = await session.get(Patient, summary.patient_id)
    translations = await summary_service.list_translations(session, summary_id)

    return PublicSummaryResponse(
        id=summary.id,
        patient_name=patient.name if patient else None,
        blocks=summary.blocks or [],
        status=summary.status,
        preferred_locale=summary.preferred_locale,
        access_role=access.role,
        available_locales=list(dict.fromkeys([summary.preferred_locale, *(t.locale for t in translations)])),
        updated_at=summary.updated_at,
    )


@router.get("/{summary_id}/pdf")
async def download_summary_pdf(
    summary_id: str,
    locale: Optional[str] = Query(None),
    access_key: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    current_user: Optional[UserProfile] = Depends(get_current_user_optional),
) -> Response:
    """The summary, or one of its translations, as a PDF."""
    access = await require_summary_access(session, summary_id, current_user, access_key)
    summary = access.summary

    blocks = summary.blocks or []
    rendered_locale = summary.preferred_locale
    if locale and locale != summary.preferred_locale:
        translation = await get_patient_summary_service().get_translation(session, summary_id, locale)
        if not translation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Translation not found",
            )
        blocks = translation.translated_blocks
        rendered_locale = locale

    patient = await session.get(Patient, summary.patient_id)
    pdf_bytes = get_pdf_service().render_summary(
        blocks,
        patient_name=patient.name if patient else None,
        locale=rendered_locale,
    )
    logger.info("summary.pdf_rendered", summary_id=summary_id, locale=rendered_locale, role=access.role)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="discharge-summary-{summary_id}.pdf"'},
    )
