from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class GenerateBlocksRequest(BaseModel):
    """Loosely typed so the route can answer with its own validation messages."""
    model_config = ConfigDict(populate_by_name=True)

    discharge_summary: Any = Field(None, alias="dischargeSummary")
    block_types: Any = Field(None, alias="blockTypes")


class GenerateBlocksResponse(BaseModel):
    blocks: List[Dict[str, Any]]
    metadata: Dict[str, Any]
