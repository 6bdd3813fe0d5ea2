from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from discharger.schemas.block_schema import CamelModel


class LLMCitation(CamelModel):
    id: str = Field(..., description="Citation id: c1, c2 for clinical context, d1, d2 for documents")
    text: str = Field(..., description="The specific text being cited")
    context: str = Field("", description="Surrounding context for the citation")
    document_number: Optional[int] = Field(
        None, description="1-based number of the selected document a d-citation comes from"
    )


class LLMDischargeSection(CamelModel):
    title: str
    content: str = Field(..., description='Content with inline citations as <CIT id="c1">text</CIT>')
    citations: List[LLMCitation] = Field(default_factory=list)


class LLMDischargeSections(CamelModel):
    sections: List[LLMDischargeSection]


class Citation(CamelModel):
    id: str
    text: str
    context: str
    relevance_score: float = 1.0
    source_type: Literal["user-context", "selected-document"]
    context_section: Optional[str] = None
    document_id: Optional[str] = None
    chunk_id: Optional[str] = None
    page_number: Optional[int] = None


class DischargeSection(CamelModel):
    id: str
    title: str
    content: str
    order: int
    citations: List[Citation] = Field(default_factory=list)


class DischargeSummaryMetadata(CamelModel):
    generated_at: datetime
    llm_model: str
    document_ids: List[str] = Field(default_factory=list)
    feedback_applied: List[str] = Field(default_factory=list)


class DischargeSummary(CamelModel):
    id: str
    patient_id: Optional[str] = None
    sections: List[DischargeSection]
    metadata: DischargeSummaryMetadata


class GenerateDischargeRequest(CamelModel):
    patient_id: Optional[str] = None
    context: str = ""
    document_ids: List[str] = Field(default_factory=list)
    feedback: str = ""
    current_summary: Optional[DischargeSummary] = None


class GenerateDischargeResponse(CamelModel):
    summary: DischargeSummary


class HighlightCitation(CamelModel):
    text: str
    source_type: Literal["user-context", "selected-document"]
    document_id: Optional[str] = None


class HighlightRequest(CamelModel):
    citation: HighlightCitation
    context: Optional[str] = None


class HighlightResponse(CamelModel):
    content: str
    matched: bool
    match_type: Literal["exact", "fuzzy", "none"]
    source_type: Literal["user-context", "selected-document"]
    document_id: Optional[str] = None
