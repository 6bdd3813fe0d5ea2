from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from discharger.db.models.user_profile import UserProfile
from discharger.middleware.auth_middleware import get_current_user
from discharger.schemas.block_schema import (
    DEFAULT_GENERATION_BLOCK_TYPES,
    SUPPORTED_BLOCK_TYPES,
    UnsupportedBlockTypeError,
    validate_block_types,
)
from discharger.schemas.generation_schema import GenerateBlocksRequest, GenerateBlocksResponse
from discharger.services.block_generation_service import (
    BlockGenerationError,
    BlockGenerationService,
    get_block_generation_service,
)
from discharger.utils.logger import get_logger

router = APIRouter(prefix="/blocks", tags=["blocks"])
logger = get_logger(__name__)


@router.post("/generate", response_model=GenerateBlocksResponse)
async def generate_blocks(
    data: GenerateBlocksRequest,
    current_user: UserProfile = Depends(get_current_user),
    generation_service: BlockGenerationService = Depends(get_block_generation_service),
) -> GenerateBlocksResponse:
    """Extract patient-facing blocks from a discharge summary."""
    if not isinstance(data.discharge_summary, str) or not data.discharge_summary.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="dischargeSummary is required and must be a string",
        )

    block_types = data.block_types
    if block_types is None:
        block_types = list(DEFAULT_GENERATION_BLOCK_TYPES)
    if not isinstance(block_types, list) or not block_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="blockTypes must be a non-empty array",
        )

    try:
        requested = validate_block_types(str(t) for t in block_types)
    except UnsupportedBlockTypeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Invalid block types: {', '.join(e.invalid_types)}. "
                f"Supported types: {', '.join(SUPPORTED_BLOCK_TYPES)}"
            ),
        )

    try:
        result = await generation_service.generate_blocks(data.discharge_summary, requested)
    except BlockGenerationError as e:
        logger.error("blocks.generate_failed", user_id=current_user.id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate blocks",
        )

    return GenerateBlocksResponse(blocks=result["blocks"], metadata=result["metadata"])
