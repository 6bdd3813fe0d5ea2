from __future__ import annotations

import asyncio

from discharger.services.citation_service import highlight_citation

SECTIONS_OUTPUT = {
    "sections": [
        {
            "title": "Summary of Care",
            "content": 'Admitted with <CIT id="c1">chest pain</CIT> and <CIT id="d1">troponin rise</CIT>.',
            "citations": [
                {"id": "c1", "text": "chest pain", "context": "Presenting complaint"},
                {"id": "d1", "text": "troponin rose to 120", "context": "Pathology", "documentNumber": 1},
            ],
        },
        {"title": "Discharge Plan", "content": "Follow up with cardiology.", "citations": []},
    ]
}


def upload_document(client, headers, content=b"Troponin rose to 120 overnight. Aspirin started."):
    response = client.post(
        "/documents",
        files=[("files", ("pathology.txt", content, "text/plain"))],
        headers=headers,
    )
    return response.json()["documents"][0]


def test_generate_discharge_summary(client, auth_headers, fake_llm):
    document = upload_document(client, auth_headers)
    fake_llm.queue(SECTIONS_OUTPUT)

    response = client.post(
        "/discharge",
        json={"patientId": "p1", "context": "Chest pain overnight", "documentIds": [document["id"]]},
        headers=auth_headers,
    )

    assert response.status_code == 200
    summary = response.json()["summary"]
    assert summary["id"].startswith("discharge_")
    assert summary["patientId"] == "p1"
    assert [s["order"] for s in summary["sections"]] == [1, 2]

    context_citation, document_citation = summary["sections"][0]["citations"]
    assert context_citation["sourceType"] == "user-context"
    assert context_citation["contextSection"] == "main"
    assert document_citation["sourceType"] == "selected-document"
    assert document_citation["documentId"] == document["id"]

    assert summary["metadata"]["llmModel"] == "fake-model"
    assert summary["metadata"]["documentIds"] == [document["id"]]
    assert summary["metadata"]["feedbackApplied"] == []
    assert "Troponin rose to 120" in fake_llm.calls[0]["user_prompt"]


def test_modify_discharge_summary_records_feedback(client, auth_headers, fake_llm):
    fake_llm.queue(SECTIONS_OUTPUT)
    first = client.post("/discharge", json={"context": "Chest pain"}, headers=auth_headers).json()["summary"]

    fake_llm.queue(SECTIONS_OUTPUT)
    response = client.post(
        "/discharge",
        json={"context": "Chest pain", "feedback": "Mention aspirin", "currentSummary": first},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["summary"]["metadata"]["feedbackApplied"] == ["Mention aspirin"]
    assert "Specific Feedback to Address: Mention aspirin" in fake_llm.calls[1]["user_prompt"]


def test_generate_discharge_failure(client, auth_headers, fake_llm):
    fake_llm.queue({"unexpected": True})

    response = client.post("/discharge", json={"context": "x"}, headers=auth_headers)
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to generate discharge summary"


def test_highlight_user_context(client, auth_headers):
    response = client.post(
        "/discharge/highlight",
        json={
            "citation": {"text": "chest pain", "sourceType": "user-context"},
            "context": "Presented with chest pain at night",
        },
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["matchType"] == "exact"
    assert '<span class="citation-highlighted-blue">chest pain</span>' in body["content"]


def test_highlight_document_citation(client, auth_headers):
    document = upload_document(client, auth_headers)

    response = client.post(
        "/discharge/highlight",
        json={
            "citation": {
                "text": "troponin rose to 150",
                "sourceType": "selected-document",
                "documentId": document["id"],
            }
        },
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["matchType"] == "fuzzy"
    assert response.json()["documentId"] == document["id"]


def test_highlight_document_citation_requires_document(client, auth_headers):
    response = client.post(
        "/discharge/highlight",
        json={"citation": {"text": "x", "sourceType": "selected-document"}},
        headers=auth_headers,
    )
    assert response.status_code == 400

    response = client.post(
        "/discharge/highlight",
        json={"citation": {"text": "x", "sourceType": "selected-document", "documentId": "missing"}},
        headers=auth_headers,
    )
    assert response.status_code == 404


def test_highlight_runs_off_the_event_loop(client, auth_headers, monkeypatch):
    from discharger.api import discharge_routes

    loops = []

    def recording_highlight(source_text, citation_text):
        try:
            loops.append(asyncio.get_running_loop())
        except RuntimeError:
            loops.append(None)
        return highlight_citation(source_text, citation_text)

    monkeypatch.setattr(discharge_routes, "highlight_citation", recording_highlight)
    response = client.post(
        "/discharge/highlight",
        json={
            "citation": {"text": "chest pain", "sourceType": "user-context"},
            "context": "Presented with chest pain at night",
        },
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert loops == [None]
