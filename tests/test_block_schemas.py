from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from discharger.schemas.block_schema import (
    Block,
    DEFAULT_GENERATION_BLOCK_TYPES,
    SUPPORTED_BLOCK_TYPES,
    UnsupportedBlockTypeError,
    create_dynamic_block_schema,
    create_translation_schema,
    get_block_types_from_blocks,
    validate_block_types,
)
from tests.conftest import sample_blocks


def test_supported_types_cover_every_block_shape():
    assert set(SUPPORTED_BLOCK_TYPES) == {"medication", "task", "redFlag", "appointment", "text"}
    assert "text" not in DEFAULT_GENERATION_BLOCK_TYPES


def test_validate_block_types_dedupes_in_order():
    assert validate_block_types(["task", "medication", "task"]) == ["task", "medication"]


def test_validate_block_types_names_every_unknown_type():
    with pytest.raises(UnsupportedBlockTypeError) as exc_info:
        validate_block_types(["medication", "diet", "exercise"])
    assert exc_info.value.invalid_types == ["diet", "exercise"]
    assert str(exc_info.value) == "Unsupported block types: diet, exercise"


def test_dynamic_schema_rejects_types_not_requested():
    schema = create_dynamic_block_schema(["redFlag"])
    with pytest.raises(ValidationError):
        schema.model_validate({
            "blocks": [
                {"type": "medication", "title": "Meds", "data": {"medications": []}},
            ]
        })


def test_dynamic_schema_single_type_has_no_union():
    schema = create_dynamic_block_schema(["redFlag"])
    json_schema = schema.model_json_schema(by_alias=True)
    assert "oneOf" not in str(json_schema["properties"]["blocks"])


def test_dynamic_schema_multiple_types_accepts_each():
    schema = create_dynamic_block_schema(["redFlag", "appointment"])
    parsed = schema.model_validate({
        "blocks": [
            {
                "type": "redFlag",
                "title": "Get help",
                "data": {"symptoms": [{"id": "s1", "symptom": "Fever", "description": "Over 38C"}]},
            },
            {
                "type": "appointment",
                "title": "Follow up",
                "data": {
                    "appointments": [
                        {"id": "a1", "clinicName": "Cardiology", "description": "Review", "status": "clinic_will_call"}
                    ]
                },
            },
        ],
        "metadata": {"patientName": "Jane"},
    })
    dumped = parsed.model_dump(by_alias=True, exclude_none=True)
    assert [b["type"] for b in dumped["blocks"]] == ["redFlag", "appointment"]
    assert dumped["blocks"][1]["data"]["appointments"][0]["clinicName"] == "Cardiology"
    assert dumped["metadata"] == {"patientName": "Jane"}


def test_schema_is_cached_per_type_set():
    assert create_dynamic_block_schema(["task", "medication"]) is create_dynamic_block_schema(
        ["task", "medication"]
    )


def test_translation_schema_uses_translated_blocks_key():
    schema = create_translation_schema(["medication", "task"])
    parsed = schema.model_validate({"translatedBlocks": sample_blocks()})
    assert len(parsed.translated_blocks) == 2


def test_empty_type_list_is_rejected():
    with pytest.raises(ValueError):
        create_dynamic_block_schema([])


def test_block_union_validates_stored_blocks():
    adapter = TypeAdapter(list[Block])
    blocks = adapter.validate_python(sample_blocks())
    assert blocks[0].data.medications[0].status == "new"

    invalid = sample_blocks()
    invalid[0]["data"]["medications"][0]["status"] = "paused"
    with pytest.raises(ValidationError):
        adapter.validate_python(invalid)


def test_get_block_types_from_blocks_skips_unknown_types():
    blocks = sample_blocks() + [{"type": "mystery"}, {"type": "task"}]
    assert get_block_types_from_blocks(blocks) == ["medication", "task"]
