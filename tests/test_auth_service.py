from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from discharger.config.settings import get_settings
from discharger.services.access_key_service import build_access_url
from discharger.services.auth_service import AuthService


@pytest.fixture()
def settings(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "auth_jwt_secret", "unit-secret")
    monkeypatch.setattr(settings, "auth_jwt_audience", None)
    monkeypatch.setattr(settings, "auth_jwks_url", None)
    return settings


def encode(payload, secret="unit-secret"):
    return jwt.encode(payload, secret, algorithm="HS256")


def test_verify_builds_identity_from_claims(settings):
    token = encode({"sub": "u1", "email": "a@b.test", "given_name": "Ada", "family_name": "Lovelace"})
    identity = AuthService().verify(token)
    assert identity.user_id == "u1"
    assert identity.email == "a@b.test"
    assert identity.name == "Ada Lovelace"


def test_verify_rejects_wrong_secret(settings):
    assert AuthService().verify(encode({"sub": "u1"}, secret="other")) is None


def test_verify_rejects_expired_token(settings):
    expired = datetime.now(timezone.utc) - timedelta(minutes=5)
    assert AuthService().verify(encode({"sub": "u1", "exp": expired})) is None


def test_verify_requires_subject(settings):
    assert AuthService().verify(encode({"email": "a@b.test"})) is None


def test_audience_checked_when_configured(settings, monkeypatch):
    monkeypatch.setattr(settings, "auth_jwt_audience", "discharger")
    service = AuthService()
    assert service.verify(encode({"sub": "u1", "aud": "discharger"})).user_id == "u1"
    assert service.verify(encode({"sub": "u1", "aud": "someone-else"})) is None


def test_access_url_uses_configured_base(monkeypatch):
    monkeypatch.setattr(get_settings(), "app_base_url", "https://care.example.org/")
    assert build_access_url("s1", "k1") == "https://care.example.org/patient/s1?access=k1"
