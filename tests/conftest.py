from __future__ import annotations

import asyncio
import copy
import os
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

# Settings are read once and cached, so the environment is fixed before any import
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./discharger-test.db"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["APP_BASE_URL"] = "https://discharger.test"
os.environ["DEFAULT_PHONE_REGION"] = "AU"

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from main import app
from discharger.db.base import Base
from discharger.db.session import get_db_session
from discharger.services.block_generation_service import BlockGenerationService, get_block_generation_service
from discharger.services.discharge_service import DischargeService, get_discharge_service
from discharger.services.llm_service import LLMError
from discharger.services.sms_service import SmsDeliveryError, get_sms_service
from discharger.services.storage_service import StorageService, get_storage_service
from discharger.services.translation_service import TranslationService, get_translation_service

DOCTOR_ID = "user_doctor_1"
OTHER_DOCTOR_ID = "user_doctor_2"


class FakeLLM:
    """Returns queued JSON objects instead of calling a model."""

    def __init__(self) -> None:
        self.model = "fake-model"
        self.responses: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def queue(self, response: Any) -> None:
        self.responses.append(response)

    async def acomplete_json(self, system_prompt, user_prompt, temperature=0.3, response_model=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "response_model": response_model,
        })
        if not self.responses:
            raise LLMError("No response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)


class FakeStorage(StorageService):
    """In-memory object store with the real path helpers."""

    def __init__(self) -> None:
        self.client = SimpleNamespace(bucket="documents", endpoint="localhost:9000", secure=False)
        self.signed_url_expiry = 3600
        self.objects: Dict[str, bytes] = {}
        self.fail_delete = False
        self.fail_store = False

    async def store_file(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_store:
            raise ConnectionError("storage unavailable")
        self.objects[path] = data
        return path

    async def delete_file(self, path: str) -> None:
        if self.fail_delete:
            raise ConnectionError("storage unavailable")
        self.objects.pop(path, None)

    async def signed_url(self, path: str, expires_seconds: Optional[int] = None) -> str:
        return f"https://storage.test/{self.client.bucket}/{path}?expires={expires_seconds or self.signed_url_expiry}"


class FakeSms:
    def __init__(self) -> None:
        self.sent: List[Dict[str, str]] = []
        self.fail = False

    async def send(self, to: str, body: str) -> str:
        if self.fail:
            raise SmsDeliveryError("provider down")
        self.sent.append({"to": to, "body": body})
        return f"SM{len(self.sent):04d}"


def make_token(user_id: str = DOCTOR_ID, email: str = "doctor@example.com", name: str = "Dr Test") -> str:
    return jwt.encode({"sub": user_id, "email": email, "name": name}, "test-secret", algorithm="HS256")


def sample_blocks() -> List[Dict[str, Any]]:
    metadata = {"createdAt": "2025-01-01T00:00:00Z", "updatedAt": "2025-01-01T00:00:00Z", "version": "1.0"}
    return [
        {
            "id": "block_1_0",
            "type": "medication",
            "title": "Your medications",
            "isEditable": True,
            "isRequired": True,
            "metadata": dict(metadata),
            "data": {
                "medications": [
                    {
                        "id": "med_1",
                        "name": "Aspirin",
                        "dosage": "100 mg",
                        "frequency": "Once a day",
                        "duration": "Ongoing",
                        "status": "new",
                        "instructions": "Take with food",
                    }
                ]
            },
        },
        {
            "id": "block_1_1",
            "type": "task",
            "title": "Things to do",
            "isEditable": True,
            "isRequired": True,
            "metadata": dict(metadata),
            "data": {
                "tasks": [
                    {
                        "id": "task_1",
                        "title": "Check your wound",
                        "description": "Look for redness every day",
                        "priority": "high",
                        "completed": False,
                        "dueDate": "2025-01-10",
                    }
                ],
                "enableReminders": False,
            },
        },
    ]


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    asyncio.run(engine.dispose())


@pytest.fixture()
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture()
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def fake_sms() -> FakeSms:
    return FakeSms()


@pytest.fixture()
def client(session_factory, fake_llm, fake_storage, fake_sms):
    async def override_session():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_block_generation_service] = lambda: BlockGenerationService(llm=fake_llm)
    app.dependency_overrides[get_translation_service] = lambda: TranslationService(llm=fake_llm)
    app.dependency_overrides[get_discharge_service] = lambda: DischargeService(llm=fake_llm)
    app.dependency_overrides[get_storage_service] = lambda: fake_storage
    app.dependency_overrides[get_sms_service] = lambda: fake_sms

    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture()
def other_auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(OTHER_DOCTOR_ID, 'other@example.com', 'Dr Other')}"}


@pytest.fixture()
def patient(client, auth_headers) -> Dict[str, Any]:
    response = client.post(
        "/patients",
        json={"name": "Jane Citizen", "age": 67, "sex": "female", "context": "Admitted with chest pain"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture()
def summary(client, auth_headers, patient) -> Dict[str, Any]:
    response = client.post(
        "/patient-summaries",
        json={
            "patient_id": patient["id"],
            "blocks": sample_blocks(),
            "discharge_text": "Patient admitted with chest pain. Started aspirin 100 mg daily.",
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()
