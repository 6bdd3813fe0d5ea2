from __future__ import annotations

import copy

import pytest

from discharger.services.llm_service import LLMError
from discharger.services.translation_service import (
    TranslationError,
    TranslationService,
    get_language_name,
    get_supported_locales,
    is_locale_supported,
    merge_translated_block,
)
from tests.conftest import FakeLLM, sample_blocks


def spanish(blocks):
    translated = copy.deepcopy(blocks)
    translated[0]["title"] = "Sus medicamentos"
    med = translated[0]["data"]["medications"][0]
    med["name"] = "Aspirina (Aspirin)"
    med["instructions"] = "Tomar con comida"
    # Structural fields the model is not allowed to change
    med["status"] = "stopped"
    med["id"] = "med_99"
    translated[0]["metadata"]["updatedAt"] = "2030-01-01T00:00:00Z"
    translated[1]["title"] = "Cosas que hacer"
    translated[1]["data"]["tasks"][0]["description"] = "Revise si hay enrojecimiento"
    translated[1]["data"]["tasks"][0]["priority"] = "low"
    translated[1]["data"]["tasks"][0]["completed"] = True
    return translated


def test_locale_helpers():
    assert len(get_supported_locales()) == 10
    assert get_language_name("zh") == "Chinese (Simplified)"
    assert get_language_name("xx") == "xx"
    assert is_locale_supported("ar")
    assert not is_locale_supported("ru")


async def test_translate_blocks_keeps_structure_from_source():
    llm = FakeLLM()
    source = sample_blocks()
    llm.queue({"translatedBlocks": spanish(source)})

    result = await TranslationService(llm=llm).translate_blocks(source, "es")

    med = result[0]["data"]["medications"][0]
    assert result[0]["title"] == "Sus medicamentos"
    assert med["name"] == "Aspirina (Aspirin)"
    assert med["instructions"] == "Tomar con comida"
    assert med["status"] == "new"
    assert med["id"] == "med_1"
    assert result[0]["metadata"] == source[0]["metadata"]

    task = result[1]["data"]["tasks"][0]
    assert task["description"] == "Revise si hay enrojecimiento"
    assert task["priority"] == "high"
    assert task["completed"] is False
    assert task["dueDate"] == "2025-01-10"

    assert [b["id"] for b in result] == [b["id"] for b in source]
    assert llm.calls[0]["temperature"] == 0.1
    assert "Spanish" in llm.calls[0]["system_prompt"]


async def test_translate_blocks_keeps_source_text_when_missing():
    llm = FakeLLM()
    source = sample_blocks()
    llm.queue({"translatedBlocks": [spanish(source)[0]]})

    result = await TranslationService(llm=llm).translate_blocks(source, "es")

    assert result[1] == source[1]


async def test_translate_blocks_accepts_snake_case_key():
    llm = FakeLLM()
    source = sample_blocks()
    llm.queue({"translated_blocks": spanish(source)})

    result = await TranslationService(llm=llm).translate_blocks(source, "es")
    assert result[1]["title"] == "Cosas que hacer"


async def test_translate_blocks_wraps_llm_failure():
    llm = FakeLLM()
    llm.queue(LLMError("timeout"))
    with pytest.raises(TranslationError):
        await TranslationService(llm=llm).translate_blocks(sample_blocks(), "fr")


async def test_translate_blocks_rejects_unknown_locale():
    with pytest.raises(TranslationError):
        await TranslationService(llm=FakeLLM()).translate_blocks(sample_blocks(), "ru")


async def test_translate_blocks_requires_translated_list():
    llm = FakeLLM()
    llm.queue({"blocks": []})
    with pytest.raises(TranslationError):
        await TranslationService(llm=llm).translate_blocks(sample_blocks(), "de")


def test_merge_pairs_items_by_position_when_ids_differ():
    source = sample_blocks()[1]
    translated = copy.deepcopy(source)
    translated["data"]["tasks"][0]["id"] = "something_else"
    translated["data"]["tasks"][0]["title"] = "Revisar la herida"

    merged = merge_translated_block(source, translated)
    assert merged["data"]["tasks"][0]["title"] == "Revisar la herida"
    assert merged["data"]["tasks"][0]["id"] == "task_1"


def test_merge_ignores_blank_and_non_string_text():
    source = sample_blocks()[0]
    translated = copy.deepcopy(source)
    translated["title"] = "   "
    translated["data"]["medications"][0]["instructions"] = 100

    merged = merge_translated_block(source, translated)
    assert merged == source


def test_merge_text_block():
    source = {
        "id": "b",
        "type": "text",
        "title": "Notes",
        "isEditable": True,
        "isRequired": True,
        "metadata": {"createdAt": "x", "updatedAt": "x", "version": "1.0"},
        "data": {"content": "Rest well", "format": "plain"},
    }
    translated = copy.deepcopy(source)
    translated["data"] = {"content": "Descanse bien", "format": "rich"}

    merged = merge_translated_block(source, translated)
    assert merged["data"] == {"content": "Descanse bien", "format": "plain"}


async def test_translate_blocks_keeps_source_dosage_and_frequency():
    llm = FakeLLM()
    source = sample_blocks()
    translated = spanish(source)
    translated[0]["data"]["medications"][0]["dosage"] = "200 mg"
    translated[0]["data"]["medications"][0]["frequency"] = "Dos veces al dia"
    llm.queue({"translatedBlocks": translated})

    result = await TranslationService(llm=llm).translate_blocks(source, "es")

    med = result[0]["data"]["medications"][0]
    assert med["dosage"] == "100 mg"
    assert med["frequency"] == "Once a day"
    assert med["name"] == "Aspirina (Aspirin)"
    assert "dosages and frequencies" in llm.calls[0]["system_prompt"]
