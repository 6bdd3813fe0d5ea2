from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from discharger.db.session import get_db_session
from discharger.db.models.snippet import Snippet
from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user
from discharger.schemas.snippet_schema import (
    SnippetCreate,
    SnippetResponse,
    SnippetsListResponse,
    SnippetUpdate,
)
from discharger.services.snippet_service import get_snippet_service

router = APIRouter(prefix="/snippets", tags=["snippets"])


def _to_response(snippet: Snippet) -> SnippetResponse:
    return SnippetResponse(
        id=snippet.id,
        user_id=snippet.user_id,
        shortcut=snippet.shortcut,
        content=snippet.content,
        created_at=snippet.created_at,
        updated_at=snippet.updated_at,
    )


def _shortcut_taken() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="A snippet with this shortcut already exists",
    )


async def _get_snippet_or_404(session: AsyncSession, user: UserProfile, snippet_id: str) -> Snippet:
    snippet = await get_snippet_service().get_snippet(session, user.id, snippet_id)
    if not snippet:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Snippet not found",
        )
    return snippet


@router.get("", response_model=SnippetsListResponse)
async def list_snippets(
    q: Optional[str] = Query(None, description="Search shortcut or content"),
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> SnippetsListResponse:
    snippets = await get_snippet_service().list_snippets(session, current_user.id, search=q)
    return SnippetsListResponse(snippets=[_to_response(s) for s in snippets], total=len(snippets))


@router.post("", response_model=SnippetResponse, status_code=status.HTTP_201_CREATED)
async def create_snippet(
    data: SnippetCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> SnippetResponse:
    snippet = await get_snippet_service().create_snippet(session, current_user.id, data)
    if not snippet:
        raise _shortcut_taken()
    return _to_response(snippet)


@router.get("/shortcut/{shortcut}", response_model=SnippetResponse)
async def get_snippet_by_shortcut(
    shortcut: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> SnippetResponse:
    snippet = await get_snippet_service().get_by_shortcut(session, current_user.id, shortcut)
    if not snippet:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Snippet not found",
        )
    return _to_response(snippet)


@router.patch("/{snippet_id}", response_model=SnippetResponse)
async def update_snippet(
    snippet_id: str,
    data: SnippetUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
) -> SnippetResponse:
    snippet_service = get_snippet_service()
    snippet = await _get_snippet_or_404(session, current_user, snippet_id)

    if data.shortcut and data.shortcut != snippet.shortcut:
        if await snippet_service.get_by_shortcut(session, current_user.id, data.shortcut):
            raise _shortcut_taken()

    snippet = await snippet_service.update_snippet(session, snippet, data)
    return _to_response(snippet)


@router.delete("/{snippet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_snippet(
    snippet_id: str,
    session: AsyncSession = Depends(get_db_session),
    current_user: UserProfile = Depends(get_current_user),
):
    snippet = await _get_snippet_or_404(session, current_user, snippet_id)
    await get_snippet_service().delete_snippet(session, snippet)
