from __future__ import annotations

import asyncio
import copy

import pytest

from discharger.services.patient_summary_service import TranslationExistsError, get_patient_summary_service
from tests.conftest import sample_blocks


def translated_copy(blocks, title_prefix="ES "):
    translated = copy.deepcopy(blocks)
    for block in translated:
        block["title"] = title_prefix + block["title"]
    return translated


def test_create_summary_for_unknown_patient(client, auth_headers):
    response = client.post(
        "/patient-summaries",
        json={"patient_id": "missing", "blocks": []},
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Patient not found or access denied"


def test_create_summary_validates_blocks(client, auth_headers, patient):
    blocks = sample_blocks()
    blocks[0]["data"]["medications"][0]["status"] = "paused"
    response = client.post(
        "/patient-summaries",
        json={"patient_id": patient["id"], "blocks": blocks},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid input"
    assert response.json()["errors"]


def test_list_and_get_summary(client, auth_headers, patient, summary):
    response = client.get("/patient-summaries", params={"patientId": patient["id"]}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["summaries"][0]["id"] == summary["id"]

    response = client.get(f"/patient-summaries/{summary['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["blocks"] == summary["blocks"]
    assert summary["status"] == "draft"
    assert summary["preferred_locale"] == "en"


def test_other_doctor_cannot_edit(client, other_auth_headers, summary):
    response = client.patch(
        f"/patient-summaries/{summary['id']}/blocks",
        json={"blocks": sample_blocks()},
        headers=other_auth_headers,
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied"


def test_missing_summary_is_404(client, auth_headers):
    response = client.get("/patient-summaries/nope", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Patient summary not found"


def test_translate_then_conflict(client, auth_headers, summary, fake_llm):
    fake_llm.queue({"translatedBlocks": translated_copy(summary["blocks"])})

    response = client.post(
        f"/patient-summaries/{summary['id']}/translate",
        json={"target_locale": "es"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    translation = response.json()["translation"]
    assert translation["locale"] == "es"
    assert translation["source_locale"] == "en"
    assert translation["translated_blocks"][0]["title"] == "ES Your medications"

    response = client.post(
        f"/patient-summaries/{summary['id']}/translate",
        json={"target_locale": "es"},
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Translation already exists for this locale"

    response = client.get(f"/patient-summaries/{summary['id']}/translations/es", headers=auth_headers)
    assert response.status_code == 200
    response = client.get(f"/patient-summaries/{summary['id']}/translations/fr", headers=auth_headers)
    assert response.status_code == 404


def test_translate_unsupported_locale(client, auth_headers, summary):
    response = client.post(
        f"/patient-summaries/{summary['id']}/translate",
        json={"target_locale": "ru"},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_translate_failure_is_500(client, auth_headers, summary):
    response = client.post(
        f"/patient-summaries/{summary['id']}/translate",
        json={"target_locale": "fr"},
        headers=auth_headers,
    )
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to translate summary"


def test_updating_blocks_drops_translations(client, auth_headers, summary, fake_llm):
    fake_llm.queue({"translatedBlocks": translated_copy(summary["blocks"])})
    fake_llm.queue({"translatedBlocks": translated_copy(summary["blocks"], "FR ")})
    for locale in ("es", "fr"):
        response = client.post(
            f"/patient-summaries/{summary['id']}/translate",
            json={"target_locale": locale},
            headers=auth_headers,
        )
        assert response.status_code == 201

    response = client.get(f"/patient-summaries/{summary['id']}/translations", headers=auth_headers)
    assert len(response.json()["translations"]) == 2

    new_blocks = sample_blocks()[:1]
    response = client.patch(
        f"/patient-summaries/{summary['id']}/blocks",
        json={"blocks": new_blocks},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert len(response.json()["blocks"]) == 1

    response = client.get(f"/patient-summaries/{summary['id']}/translations", headers=auth_headers)
    assert response.json()["translations"] == []


def test_updating_status_keeps_translations(client, auth_headers, summary, fake_llm):
    fake_llm.queue({"translatedBlocks": translated_copy(summary["blocks"])})
    client.post(
        f"/patient-summaries/{summary['id']}/translate",
        json={"target_locale": "es"},
        headers=auth_headers,
    )

    response = client.patch(
        f"/patient-summaries/{summary['id']}",
        json={"status": "published"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "published"

    response = client.get(f"/patient-summaries/{summary['id']}/translations", headers=auth_headers)
    assert len(response.json()["translations"]) == 1


def test_regenerate_replaces_blocks(client, auth_headers, summary, fake_llm):
    fake_llm.queue({
        "blocks": [
            {
                "type": "redFlag",
                "title": "Get help now",
                "data": {"symptoms": [{"id": "rf_1", "symptom": "Chest pain", "description": "Call 000"}]},
            }
        ]
    })

    response = client.post(
        f"/patient-summaries/{summary['id']}/regenerate",
        json={"blockTypes": ["redFlag"]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert [b["type"] for b in response.json()["blocks"]] == ["redFlag"]


def test_update_locale(client, auth_headers, summary):
    response = client.patch(
        f"/patient-summaries/{summary['id']}/locale",
        json={"preferred_locale": "zh"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["preferred_locale"] == "zh"


def test_available_locales_are_listed_once(client, auth_headers, summary, fake_llm):
    fake_llm.queue({"translatedBlocks": translated_copy(summary["blocks"])})
    response = client.post(
        f"/patient-summaries/{summary['id']}/translate",
        json={"target_locale": "es"},
        headers=auth_headers,
    )
    assert response.status_code == 201

    client.patch(
        f"/patient-summaries/{summary['id']}/locale",
        json={"preferred_locale": "es"},
        headers=auth_headers,
    )
    response = client.get(f"/patient-summaries/{summary['id']}/summary", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["available_locales"] == ["es"]


def test_delete_summary(client, auth_headers, summary):
    response = client.delete(f"/patient-summaries/{summary['id']}", headers=auth_headers)
    assert response.status_code == 204
    response = client.get(f"/patient-summaries/{summary['id']}", headers=auth_headers)
    assert response.status_code == 404


def test_public_summary_needs_key_or_login(client, summary):
    response = client.get(f"/patient-summaries/{summary['id']}/summary")
    assert response.status_code == 401

    response = client.get(f"/patient-summaries/{summary['id']}/summary", params={"access_key": "bogus"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid or inactive access key"


def test_unknown_summary_without_credentials_is_401(client):
    response = client.get("/patient-summaries/does-not-exist/summary")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"

    response = client.get("/patient-summaries/does-not-exist/pdf")
    assert response.status_code == 401


def test_public_summary_with_access_key(client, auth_headers, summary):
    response = client.post(
        f"/patient-summaries/{summary['id']}/qr-code",
        json={"role": "caregiver"},
        headers=auth_headers,
    )
    access_key = response.json()["access_key"]

    response = client.get(f"/patient-summaries/{summary['id']}/summary", params={"access_key": access_key})
    assert response.status_code == 200
    body = response.json()
    assert body["patient_name"] == "Jane Citizen"
    assert body["access_role"] == "caregiver"
    assert body["available_locales"] == ["en"]


def test_pdf_download(client, auth_headers, summary):
    response = client.get(f"/patient-summaries/{summary['id']}/pdf", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")

    response = client.get(f"/patient-summaries/{summary['id']}/pdf", params={"locale": "ja"}, headers=auth_headers)
    assert response.status_code == 404


def test_supported_locales_route_is_not_a_summary_id(client):
    response = client.get("/patient-summaries/locales")
    assert response.status_code == 200
    codes = [locale["code"] for locale in response.json()["locales"]]
    assert codes[0] == "en"
    assert len(codes) == 10


def test_saving_duplicate_translation_conflicts(client, session_factory, summary):
    summary_service = get_patient_summary_service()
    blocks = translated_copy(summary["blocks"])

    async def save_twice():
        async with session_factory() as session:
            await summary_service.save_translation(session, summary["id"], "es", "en", blocks)
        async with session_factory() as session:
            with pytest.raises(TranslationExistsError):
                await summary_service.save_translation(session, summary["id"], "es", "en", blocks)
        async with session_factory() as session:
            return await summary_service.list_translations(session, summary["id"])

    translations = asyncio.run(save_twice())
    assert [t.locale for t in translations] == ["es"]
