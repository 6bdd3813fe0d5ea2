from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.models.document import Document, DocumentSourceEnum, ShareStatusEnum
from discharger.services.storage_service import StorageService
from discharger.utils.document_text import content_type_for, extract_text
from discharger.utils.logger import get_logger

logger = get_logger(__name__)

SUMMARY_CHARS = 500


@dataclass
class IncomingFile:
    filename: str
    data: bytes
    content_type: Optional[str] = None


class DocumentUploadError(RuntimeError):
    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"Failed to upload {filename}: {reason}")


def _visible_to(user_id: str):
    return or_(
        Document.user_id == user_id,
        Document.share_status == ShareStatusEnum.PUBLIC.value,
        Document.source == DocumentSourceEnum.COMMUNITY.value,
    )


class DocumentService:
    """Service for reference documents and their blobs."""

    async def list_documents(
        self,
        session: AsyncSession,
        user_id: str,
        search: Optional[str] = None,
        ids: Optional[Sequence[str]] = None,
        limit: int = 20,
    ) -> List[Document]:
        query = select(Document).where(_visible_to(user_id))
        if ids:
            query = query.where(Document.id.in_(list(ids)))
        elif search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Document.filename.ilike(pattern),
                    Document.summary.ilike(pattern),
                )
            )
        query = query.order_by(Document.created_at.desc()).limit(limit)
        return list((await session.scalars(query)).all())

    async def get_document(
        self,
        session: AsyncSession,
        document_id: str,
        user_id: str,
    ) -> Optional[Document]:
        return await session.scalar(
            select(Document).where(Document.id == document_id, _visible_to(user_id))
        )

    async def get_documents(
        self,
        session: AsyncSession,
        document_ids: Sequence[str],
        user_id: str,
    ) -> List[Document]:
        """Documents in the order of ``document_ids``; unknown ids are skipped."""
        if not document_ids:
            return []
        found = (await session.scalars(
            select(Document).where(Document.id.in_(list(document_ids)), _visible_to(user_id))
        )).all()
        by_id = {d.id: d for d in found}
        return [by_id[i] for i in document_ids if i in by_id]

    async def upload_documents(
        self,
        session: AsyncSession,
        storage: StorageService,
        user_id: str,
        uploaded_by: Optional[str],
        files: Sequence[IncomingFile],
        source: str = DocumentSourceEnum.USER.value,
        tags: Optional[List[str]] = None,
    ) -> List[Document]:
        """Store each file in turn. A failing file has its blob and row removed
        before the error is raised; files already stored are kept."""
        # Reject unsupported types before anything is written
        for incoming in files:
            content_type_for(incoming.filename)

        created: List[Document] = []
        for incoming in files:
            created.append(await self._upload_one(session, storage, user_id, uploaded_by, incoming, source, tags))
        return created

    async def _upload_one(
        self,
        session: AsyncSession,
        storage: StorageService,
        user_id: str,
        uploaded_by: Optional[str],
        incoming: IncomingFile,
        source: str,
        tags: Optional[List[str]],
    ) -> Document:
        document_id = str(uuid.uuid4())
        storage_key = f"{user_id}/{document_id}/{incoming.filename}"
        content_type = incoming.content_type or content_type_for(incoming.filename)
        blob_stored = False
        document: Optional[Document] = None

        try:
            await storage.store_file(storage_key, incoming.data, content_type)
            blob_stored = True

            document = Document(
                id=document_id,
                user_id=user_id,
                filename=incoming.filename,
                source=source,
                uploaded_by=uploaded_by,
                storage_key=storage_key,
                s3_url=storage.public_url(storage_key),
                content_type=content_type,
                file_size=len(incoming.data),
                document_metadata={"storageKey": storage_key},
                tags=list(tags or []),
            )
            session.add(document)
            await session.commit()

            extracted = await asyncio.to_thread(extract_text, incoming.filename, incoming.data)
            document.full_text = extracted.text
            document.page_count = extracted.page_count
            document.summary = extracted.text[:SUMMARY_CHARS] or None
            await session.commit()
        except Exception as e:
            logger.error(
                "document.upload_failed",
                filename=incoming.filename,
                document_id=document_id,
                error=str(e),
            )
            await session.rollback()
            await self._compensate(
                session,
                storage,
                document_id if document is not None else None,
                storage_key if blob_stored else None,
            )
            raise DocumentUploadError(incoming.filename, str(e)) from e

        logger.info(
            "document.uploaded",
            document_id=document.id,
            filename=incoming.filename,
            page_count=document.page_count,
        )
        return document

    async def _compensate(
        self,
        session: AsyncSession,
        storage: StorageService,
        document_id: Optional[str],
        storage_key: Optional[str],
    ) -> None:
        if storage_key:
            try:
                await storage.delete_file(storage_key)
            except Exception as e:
                logger.warning("document.rollback_blob_failed", storage_key=storage_key, error=str(e))
        if document_id is not None:
            persisted = await session.get(Document, document_id)
            if persisted is not None:
                await session.delete(persisted)
                await session.commit()

    async def delete_document(
        self,
        session: AsyncSession,
        storage: StorageService,
        document: Document,
    ) -> bool:
        """Delete the blob when its path is known, then the row.

        Returns whether the blob was removed. Storage errors are logged and do
        not stop the row from being deleted.
        """
        storage_deleted = False
        storage_path = storage.derive_storage_path(document)
        if storage_path:
            try:
                await storage.delete_file(storage_path)
                storage_deleted = True
            except Exception as e:
                logger.warning(
                    "document.storage_delete_failed",
                    document_id=document.id,
                    storage_path=storage_path,
                    error=str(e),
                )
        else:
            logger.warning("document.storage_path_unknown", document_id=document.id)

        await session.delete(document)
        await session.commit()
        logger.info("document.deleted", document_id=document.id, storage_deleted=storage_deleted)
        return storage_deleted


_document_service: Optional[DocumentService] = None


def get_document_service() -> DocumentService:
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
