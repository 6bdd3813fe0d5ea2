from __future__ import annotations

import pytest

from discharger.schemas.block_schema import UnsupportedBlockTypeError
from discharger.services.block_generation_service import BlockGenerationError, BlockGenerationService
from discharger.services.llm_service import LLMError, LLMService
from tests.conftest import FakeLLM

MEDICATION_OUTPUT = {
    "type": "medication",
    "title": "Your medications",
    "data": {
        "medications": [
            {
                "id": "med_1",
                "name": "Metoprolol",
                "dosage": "25 mg",
                "frequency": "Twice a day",
                "duration": "Ongoing",
                "status": "new",
            }
        ]
    },
}

RED_FLAG_OUTPUT = {
    "type": "redFlag",
    "title": "When to get help",
    "data": {"symptoms": [{"id": "rf_1", "symptom": "Chest pain", "description": "Call 000"}]},
}


async def test_generate_blocks_assigns_server_fields():
    llm = FakeLLM()
    llm.queue({"blocks": [MEDICATION_OUTPUT, RED_FLAG_OUTPUT], "metadata": {"primaryDiagnosis": "NSTEMI"}})

    result = await BlockGenerationService(llm=llm).generate_blocks(
        "Discharged on metoprolol.", ["medication", "redFlag"]
    )

    blocks = result["blocks"]
    assert [b["type"] for b in blocks] == ["medication", "redFlag"]
    assert blocks[0]["id"].startswith("block_") and blocks[0]["id"].endswith("_0")
    assert blocks[1]["id"].endswith("_1")
    assert blocks[0]["isEditable"] is True
    assert blocks[0]["isRequired"] is True
    assert blocks[0]["metadata"]["version"] == "1.0"
    assert blocks[0]["metadata"]["createdAt"].endswith("Z")
    assert "instructions" not in blocks[0]["data"]["medications"][0]
    assert result["metadata"] == {"primaryDiagnosis": "NSTEMI"}

    call = llm.calls[0]
    assert call["temperature"] == 0.3
    assert "redFlag" in call["system_prompt"]
    assert "appointment:" not in call["system_prompt"]
    assert "Discharged on metoprolol." in call["user_prompt"]


async def test_generate_blocks_drops_unrequested_types():
    llm = FakeLLM()
    llm.queue({"blocks": [MEDICATION_OUTPUT, RED_FLAG_OUTPUT]})

    result = await BlockGenerationService(llm=llm).generate_blocks("text", ["redFlag"])
    assert [b["type"] for b in result["blocks"]] == ["redFlag"]


async def test_generate_blocks_rejects_unknown_types_before_calling_model():
    llm = FakeLLM()
    with pytest.raises(UnsupportedBlockTypeError):
        await BlockGenerationService(llm=llm).generate_blocks("text", ["medication", "diet"])
    assert llm.calls == []


async def test_generate_blocks_invalid_output():
    llm = FakeLLM()
    bad = {**MEDICATION_OUTPUT, "data": {"medications": [{"id": "m", "name": "X", "status": "paused"}]}}
    llm.queue({"blocks": [bad]})

    with pytest.raises(BlockGenerationError):
        await BlockGenerationService(llm=llm).generate_blocks("text", ["medication"])


async def test_generate_blocks_llm_failure():
    llm = FakeLLM()
    llm.queue(LLMError("rate limited"))

    with pytest.raises(BlockGenerationError):
        await BlockGenerationService(llm=llm).generate_blocks("text", ["task"])


def test_parse_json_strips_code_fences():
    service = LLMService.__new__(LLMService)
    assert service._parse_json('```json\n{"blocks": []}\n```') == {"blocks": []}
    assert service._parse_json('  {"a": 1}  ') == {"a": 1}


def test_parse_json_rejects_non_objects():
    service = LLMService.__new__(LLMService)
    with pytest.raises(LLMError):
        service._parse_json("[1, 2]")
    with pytest.raises(LLMError):
        service._parse_json("not json")
