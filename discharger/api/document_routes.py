from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.session import get_db_session
from discharger.db.models.document import Document, DocumentSourceEnum
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user
from discharger.schemas.document_schema import (
    DocumentDeleteResponse,
    DocumentDetailResponse,
    DocumentResponse,
    DocumentUploadResponse,
    SignedUrlResponse,
)
from discharger.services.document_service import (
    DocumentUploadError,
    IncomingFile,
    get_document_service,
)
from discharger.services.storage_service import StorageService, get_storage_service
from discharger.utils.document_text import UnsupportedFileTypeError
from discharger.utils.logger import get_logger

router = APIRouter(prefix="/documents", tags=["documents"])
logger = get_logger(__name__)


def _to_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        user_id=document.user_id,
        filename=document.filename,
        summary=document.summary,
        source=document.source,
        share_status=document.share_status,
        uploaded_by=document.uploaded_by,
        storage_key=document.storage_key,
        s3_url=document.s3_url,
        content_type=document.content_type,
        file_size=document.file_size,
        page_count=document.page_count,
        metadata=document.document_metadata or {},
        tags=document.tags or [],
        uploaded_at=document.uploaded_at,
        created_at=document.created_at,
    )


async def _get_document_or_404(session: AsyncSession, document_id: str, user: UserProfile) -> Document:
    document = await get_document_service().get_document(session, document_id, user.id)
    if not document:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found",
        )
    return document


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    q: Optional[str] = Query(None, description="Search filename or summary"),
    ids: Optional[str] = Query(None, description="Comma-separated document ids"),
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> List[DocumentResponse]:
    id_list = [i.strip() for i in ids.split(",") if i.strip()] if ids else None
    documents = await get_document_service().list_documents(
        session,
        user_id=current_user.id,
        search=q,
        ids=id_list,
    )
    return [_to_response(d) for d in documents]


@router.post("", response_model=DocumentUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_documents(
    files: List[UploadFile] = File(default=[]),
    source: DocumentSourceEnum = Form(DocumentSourceEnum.USER),
    tags: Optional[str] = Form(None, description="Comma-separated tags"),
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
) -> DocumentUploadResponse:
    """Upload PDF, Word or text files one after another."""
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded",
        )

    incoming = []
    for upload in files:
        incoming.append(IncomingFile(
            filename=upload.filename or "upload",
            data=await upload.read(),
            content_type=upload.content_type if upload.content_type != "application/octet-stream" else None,
        ))

    try:
        documents = await get_document_service().upload_documents(
            session,
            storage,
            user_id=current_user.id,
            uploaded_by=current_user.name or current_user.email,
            files=incoming,
            source=source.value,
            tags=[t.strip() for t in tags.split(",") if t.strip()] if tags else None,
        )
    except UnsupportedFileTypeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except DocumentUploadError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload {e.filename}",
        )

    return DocumentUploadResponse(
        documents=[_to_response(d) for d in documents],
        length=len(documents),
    )


@router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    document_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> DocumentDetailResponse:
    document = await _get_document_or_404(session, document_id, current_user)
    return DocumentDetailResponse(
        **_to_response(document).model_dump(),
        full_text=document.full_text,
    )


@router.delete("/{document_id}", response_model=DocumentDeleteResponse)
async def delete_document(
    document_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
) -> DocumentDeleteResponse:
    """Delete the stored file when possible, and the record regardless."""
    document = await _get_document_or_404(session, document_id, current_user)
    if document.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the uploader can delete this document",
        )

    storage_deleted = await get_document_service().delete_document(session, storage, document)
    return DocumentDeleteResponse(
        message="Document deleted successfully",
        document_id=document_id,
        storage_deleted=storage_deleted,
    )


@router.get("/{document_id}/signed-url", response_model=SignedUrlResponse)
async def get_signed_url(
    document_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
) -> SignedUrlResponse:
    """Time-limited download link for the original file."""
    document = await _get_document_or_404(session, document_id, current_user)
    storage_path = storage.derive_storage_path(document)
    if not storage_path:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Storage path could not be determined",
        )

    try:
        signed_url = await storage.signed_url(storage_path)
    except ConnectionError as e:
        logger.error("document.sign_failed", document_id=document_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create signed URL",
        )

    return SignedUrlResponse(signed_url=signed_url, expires_in=storage.signed_url_expiry)
