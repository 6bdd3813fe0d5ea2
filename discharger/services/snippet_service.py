from __future__ import annotations

from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.models.snippet import Snippet
from discharger.schemas.snippet_schema import SnippetCreate, SnippetUpdate
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class SnippetService:
    """Service for per-user text snippets."""

    async def list_snippets(
        self,
        session: AsyncSession,
        user_id: str,
        search: Optional[str] = None,
    ) -> List[Snippet]:
        query = select(Snippet).where(Snippet.user_id == user_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Snippet.shortcut.ilike(pattern),
                    Snippet.content.ilike(pattern),
                )
            )
        query = query.order_by(Snippet.shortcut)
        return list((await session.scalars(query)).all())

    async def get_by_shortcut(
        self,
        session: AsyncSession,
        user_id: str,
        shortcut: str,
    ) -> Optional[Snippet]:
        return await session.scalar(
            select(Snippet).where(
                Snippet.user_id == user_id,
                Snippet.shortcut == shortcut,
            )
        )

    async def get_snippet(
        self,
        session: AsyncSession,
        user_id: str,
        snippet_id: str,
    ) -> Optional[Snippet]:
        return await session.scalar(
            select(Snippet).where(
                Snippet.id == snippet_id,
                Snippet.user_id == user_id,
            )
        )

    async def create_snippet(
        self,
        session: AsyncSession,
        user_id: str,
        data: SnippetCreate,
    ) -> Optional[Snippet]:
        """Returns None when the user already has a snippet with this shortcut."""
        if await self.get_by_shortcut(session, user_id, data.shortcut):
            logger.warning("snippet.create_failed", reason="shortcut_exists", shortcut=data.shortcut)
            return None

        snippet = Snippet(user_id=user_id, shortcut=data.shortcut, content=data.content)
        session.add(snippet)
        await session.commit()
        logger.info("snippet.created", snippet_id=snippet.id, shortcut=data.shortcut)
        return snippet

    async def update_snippet(
        self,
        session: AsyncSession,
        snippet: Snippet,
        data: SnippetUpdate,
    ) -> Snippet:
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(snippet, field, value)
        await session.commit()
        logger.info("snippet.updated", snippet_id=snippet.id)
        return snippet

    async def delete_snippet(self, session: AsyncSession, snippet: Snippet) -> None:
        await session.delete(snippet)
        await session.commit()
        logger.info("snippet.deleted", snippet_id=snippet.id)


_snippet_service: Optional[SnippetService] = None


def get_snippet_service() -> SnippetService:
    global _snippet_service
    if _snippet_service is None:
        _snippet_service = SnippetService()
    return _snippet_service
