from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.session import get_db_session
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user
from discharger.schemas.discharge_schema import (
    GenerateDischargeRequest,
    GenerateDischargeResponse,
    HighlightRequest,
    HighlightResponse,
)
from discharger.services.citation_service import highlight_citation
from discharger.services.discharge_service import (
    DischargeGenerationError,
    DischargeService,
    get_discharge_service,
)
from discharger.services.document_service import get_document_service
from discharger.utils.logger import get_logger

router = APIRouter(prefix="/discharge", tags=["discharge"])
logger = get_logger(__name__)


@router.post("", response_model=GenerateDischargeResponse)
async def generate_discharge_summary(
    data: GenerateDischargeRequest,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
    discharge_service: DischargeService = Depends(get_discharge_service),
) -> GenerateDischargeResponse:
    """Draft a cited discharge summary, or revise one using feedback."""
    documents = await get_document_service().get_documents(session, data.document_ids, current_user.id)

    try:
        summary = await discharge_service.generate(
            context=data.context,
            documents=documents,
            patient_id=data.patient_id,
            feedback=data.feedback,
            current_summary=data.current_summary,
        )
    except DischargeGenerationError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate discharge summary",
        )

    return GenerateDischargeResponse(summary=summary)


@router.post("/highlight", response_model=HighlightResponse)
async def highlight(
    data: HighlightRequest,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> HighlightResponse:
    """Mark a citation inside the context or document it came from."""
    citation = data.citation

    if citation.source_type == "user-context":
        source_text = data.context or ""
    else:
        if not citation.document_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="documentId is required for document citations",
            )
        document = await get_document_service().get_document(session, citation.document_id, current_user.id)
        if not document:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Document not found",
            )
        source_text = document.full_text or ""

    result = await asyncio.to_thread(highlight_citation, source_text, citation.text)
    return HighlightResponse(
        content=result.content,
        matched=result.matched,
        match_type=result.match_type,
        source_type=citation.source_type,
        document_id=citation.document_id,
    )
