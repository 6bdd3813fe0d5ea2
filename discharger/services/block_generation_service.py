"""Extraction of patient-facing blocks from a free-text discharge summary."""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from discharger.schemas.block_schema import (
    BLOCK_TYPE_DESCRIPTIONS,
    create_dynamic_block_schema,
    validate_block_types,
)
from discharger.services.llm_service import LLMError, LLMService, get_llm_service
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class BlockGenerationError(RuntimeError):
    """Model output could not be turned into blocks."""


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class BlockGenerationService:
    """Turns a discharge narrative into structured blocks of the requested types."""

    def __init__(self, llm: Optional[LLMService] = None) -> None:
        self.llm = llm or get_llm_service()
        self.temperature = 0.3

    async def generate_blocks(
        self,
        discharge_summary: str,
        block_types: Sequence[str],
    ) -> Dict[str, Any]:
        """Return ``{"blocks": [...], "metadata": {...}}``.

        Blocks carry server-assigned ids, flags and timestamps. Blocks of a
        type that was not requested are dropped before validation.
        """
        requested = validate_block_types(block_types)
        schema = create_dynamic_block_schema(requested)

        logger.info("blocks.generate.start", block_types=requested, text_length=len(discharge_summary))
        try:
            raw = await self.llm.acomplete_json(
                self._build_system_prompt(requested),
                self._build_user_prompt(discharge_summary),
                temperature=self.temperature,
                response_model=schema,
            )
        except LLMError as e:
            raise BlockGenerationError(str(e)) from e

        raw_blocks = raw.get("blocks") or []
        kept = [b for b in raw_blocks if isinstance(b, dict) and b.get("type") in requested]
        if len(kept) != len(raw_blocks):
            logger.warning(
                "blocks.generate.unrequested_dropped",
                dropped=len(raw_blocks) - len(kept),
            )

        try:
            parsed = schema.model_validate({"blocks": kept, "metadata": raw.get("metadata") or {}})
        except ValidationError as e:
            logger.error("blocks.generate.invalid_output", errors=e.errors()[:5])
            raise BlockGenerationError("Model output did not match the block schema") from e

        payload = parsed.model_dump(by_alias=True, exclude_none=True)
        blocks = self.assign_block_metadata(payload["blocks"])

        logger.info("blocks.generate.completed", block_count=len(blocks))
        return {"blocks": blocks, "metadata": payload.get("metadata", {})}

    def assign_block_metadata(self, generated: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Attach the fields the model never produces."""
        now = utc_now_iso()
        stamp = int(time.time() * 1000)
        return [
            {
                "id": f"block_{stamp}_{index}",
                "type": block["type"],
                "title": block["title"],
                "isEditable": True,
                "isRequired": True,
                "metadata": {"createdAt": now, "updatedAt": now, "version": "1.0"},
                "data": block["data"],
            }
            for index, block in enumerate(generated)
        ]

    def _build_system_prompt(self, block_types: Sequence[str]) -> str:
        descriptions = "\n".join(f"- {t}: {BLOCK_TYPE_DESCRIPTIONS[t]}" for t in block_types)
        return f"""You are a clinical assistant that rewrites hospital discharge summaries into clear, patient-friendly blocks.

**Block types to extract**:
{descriptions}

**Rules**:
1. Only use information that is explicitly present in the discharge summary. Never guess or fill in missing details.
2. Create at most one block per block type, and skip a type entirely when the summary has nothing for it.
3. Write for a patient with no medical training. Expand abbreviations and avoid jargon.
4. Give every item inside a block a short unique id (for example "med_1", "task_2").
5. Dates use ISO 8601 (YYYY-MM-DD) and are only included when stated in the summary.
6. Fill metadata.patientName, metadata.dischargeDate and metadata.primaryDiagnosis only when stated.

Return ONLY the JSON object, no other text."""

    def _build_user_prompt(self, discharge_summary: str) -> str:
        return f"""**Discharge Summary**:

{discharge_summary}

Extract the patient-facing blocks in JSON format as specified."""


_block_generation_service: Optional[BlockGenerationService] = None


def get_block_generation_service() -> BlockGenerationService:
    global _block_generation_service
    if _block_generation_service is None:
        _block_generation_service = BlockGenerationService()
    return _block_generation_service
