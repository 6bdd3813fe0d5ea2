"""Clinician-facing discharge summary drafts with inline citations."""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pydantic import ValidationError

from discharger.db.models.document import Document
from discharger.schemas.discharge_schema import (
    Citation,
    DischargeSection,
    DischargeSummary,
    DischargeSummaryMetadata,
    LLMDischargeSections,
)
from discharger.services.citation_service import citation_source_type, resolve_document_id
from discharger.services.llm_service import LLMError, LLMService, get_llm_service
from discharger.utils.logger import get_logger

logger = get_logger(__name__)

# Characters of each document included in the prompt
MAX_DOCUMENT_CHARS = 12000


class DischargeGenerationError(RuntimeError):
    pass


class DischargeService:
    """Generates or revises sectioned discharge summaries citing their sources."""

    def __init__(self, llm: Optional[LLMService] = None) -> None:
        self.llm = llm or get_llm_service()
        self.temperature = 0.3

    async def generate(
        self,
        context: str,
        documents: Sequence[Document] = (),
        patient_id: Optional[str] = None,
        feedback: str = "",
        current_summary: Optional[DischargeSummary] = None,
    ) -> DischargeSummary:
        is_modification = bool(feedback and current_summary)
        document_ids = [d.id for d in documents]

        if is_modification:
            user_prompt = self._build_modify_prompt(context, documents, feedback, current_summary)
        else:
            user_prompt = self._build_new_prompt(context, documents)

        logger.info(
            "discharge.generate.start",
            patient_id=patient_id,
            modification=is_modification,
            document_count=len(documents),
        )
        try:
            raw = await self.llm.acomplete_json(
                self._build_system_prompt(),
                user_prompt,
                temperature=self.temperature,
                response_model=LLMDischargeSections,
            )
            parsed = LLMDischargeSections.model_validate(raw)
        except (LLMError, ValidationError) as e:
            logger.error("discharge.generate.failed", error=str(e))
            raise DischargeGenerationError(str(e)) from e

        summary_id = f"discharge_{int(time.time() * 1000)}"
        sections: List[DischargeSection] = []
        for index, section in enumerate(parsed.sections, start=1):
            citations = []
            for citation_index, citation in enumerate(section.citations, start=1):
                source_type = citation_source_type(citation.id)
                citations.append(Citation(
                    id=f"citation_{summary_id}_{index}_{citation_index}",
                    text=citation.text,
                    context=citation.context,
                    source_type=source_type,
                    context_section="main" if source_type == "user-context" else None,
                    document_id=(
                        resolve_document_id(document_ids, citation.document_number)
                        if source_type == "selected-document" else None
                    ),
                ))
            sections.append(DischargeSection(
                id=f"section_{summary_id}_{index}",
                title=section.title,
                content=section.content,
                order=index,
                citations=citations,
            ))

        feedback_applied: List[str] = []
        if is_modification:
            feedback_applied = [*current_summary.metadata.feedback_applied, feedback]

        logger.info("discharge.generate.completed", summary_id=summary_id, section_count=len(sections))
        return DischargeSummary(
            id=summary_id,
            patient_id=patient_id,
            sections=sections,
            metadata=DischargeSummaryMetadata(
                generated_at=datetime.now(timezone.utc),
                llm_model=self.llm.model,
                document_ids=document_ids,
                feedback_applied=feedback_applied,
            ),
        )

    def _format_documents(self, documents: Sequence[Document]) -> str:
        if not documents:
            return "No documents selected"
        parts = []
        for number, document in enumerate(documents, start=1):
            text = (document.full_text or document.summary or "")[:MAX_DOCUMENT_CHARS]
            parts.append(f"[Document {number}: {document.filename}]\n{text}")
        return "\n\n".join(parts)

    def _build_system_prompt(self) -> str:
        return """You are a medical AI assistant that generates discharge summaries with proper citations.

**Citation requirements**:
- Cite inline as <CIT id="c1">highlighted text</CIT>.
- Ids starting with "c" cite the clinician's typed clinical context (c1, c2, ...).
- Ids starting with "d" cite uploaded documents (d1, d2, ...); set documentNumber to the number of the cited document.
- Every id is unique and used once. The text inside <CIT> is part of your answer, not the source text.
- Add a matching citation object for every <CIT> tag with the source text being relied on.
- Only tag key medical claims.

**New summaries**:
- Return one object per section, each with a title, content and citations.
- At minimum include "Summary of Care" (date of admission, date of discharge, admitted under, diagnosis)
  and "Discharge Plan" (follow-up instructions, medication changes split into new and ceased, red flag symptoms).
- Other common sections: Hospital Course, Discharge Diagnosis, Diet and Activity, Patient Education.

**Modifying an existing summary (feedback provided)**:
- Change ONLY what the feedback explicitly asks for and keep every other section exactly the same.
- Keep existing citations unless the feedback addresses them, and cite any new content.

Return ONLY the JSON object, no other text."""

    def _build_new_prompt(self, context: str, documents: Sequence[Document]) -> str:
        return f"""Patient Clinical Context: {context}

Selected Documents: {self._format_documents(documents)}

Generate a comprehensive discharge summary with inline citations."""

    def _build_modify_prompt(
        self,
        context: str,
        documents: Sequence[Document],
        feedback: str,
        current_summary: DischargeSummary,
    ) -> str:
        current = "\n\n".join(f"## {s.title}\n\n{s.content}" for s in current_summary.sections)
        return f"""Current Discharge Summary:
{current}

Patient Clinical Context: {context}

Selected Documents: {self._format_documents(documents)}

Specific Feedback to Address: {feedback}

Modify ONLY the parts the feedback addresses and return the complete summary with all sections."""


_discharge_service: Optional[DischargeService] = None


def get_discharge_service() -> DischargeService:
    global _discharge_service
    if _discharge_service is None:
        _discharge_service = DischargeService()
    return _discharge_service
