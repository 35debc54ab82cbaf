"""Tests for signed tokens and the temporary/session token services."""

import base64
from uuid import uuid4

import pytest

from slideshow.exceptions import InvalidTokenError
from slideshow.services.access_token import SessionTokenService, TemporaryAccessTokenService
from slideshow.utils.signed_token import create_signed_token, decode_signed_token

SECRET = "test-secret"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSignedToken:
    """Tests for the HMAC token format."""

    def test_roundtrip_keeps_claims(self):
        token = create_signed_token({"uid": "u1"}, SECRET, issued_at=123)
        payload = decode_signed_token(token, SECRET)
        assert payload["uid"] == "u1"
        assert payload["iat"] == 123
        assert payload["v"] == 1

    def test_wrong_secret(self):
        token = create_signed_token({"uid": "u1"}, SECRET)
        with pytest.raises(ValueError, match="signature"):
            decode_signed_token(token, "other-secret")

    def test_tampered_payload(self):
        token = create_signed_token({"uid": "u1"}, SECRET)
        raw = base64.urlsafe_b64decode(token)
        forged = base64.urlsafe_b64encode(raw.replace(b'"u1"', b'"u2"')).decode()
        with pytest.raises(ValueError):
            decode_signed_token(forged, SECRET)

    def test_garbage(self):
        with pytest.raises(ValueError):
            decode_signed_token("not-a-token!!", SECRET)


class TestTemporaryAccessTokenService:
    """Tests for temp video access tokens."""

    def test_issue_then_verify(self):
        service = TemporaryAccessTokenService(SECRET, ttl_seconds=300, clock=FakeClock())
        job_id, user_id = uuid4(), uuid4()

        issued = service.issue(job_id, user_id)
        claims = service.verify(issued.token)

        assert issued.expires_in == 300
        assert claims.job_id == job_id
        assert claims.user_id == user_id

    def test_valid_until_ttl_then_expired(self):
        clock = FakeClock()
        service = TemporaryAccessTokenService(SECRET, ttl_seconds=300, clock=clock)
        issued = service.issue(uuid4(), uuid4())

        clock.now += 299
        service.verify(issued.token)

        clock.now += 1
        with pytest.raises(InvalidTokenError):
            service.verify(issued.token)

    def test_rejects_other_secret(self):
        issued = TemporaryAccessTokenService("a").issue(uuid4(), uuid4())
        with pytest.raises(InvalidTokenError):
            TemporaryAccessTokenService("b").verify(issued.token)

    def test_session_token_is_not_a_temp_token(self):
        session_token = SessionTokenService(SECRET, max_age_seconds=3600).create(uuid4())
        with pytest.raises(InvalidTokenError):
            TemporaryAccessTokenService(SECRET).verify(session_token)


class TestSessionTokenService:
    """Tests for session bearer tokens."""

    def test_create_then_verify(self):
        service = SessionTokenService(SECRET, max_age_seconds=3600)
        user_id = uuid4()
        assert service.verify(service.create(user_id)) == user_id

    def test_expires_after_max_age(self):
        clock = FakeClock()
        service = SessionTokenService(SECRET, max_age_seconds=60, clock=clock)
        token = service.create(uuid4())
        clock.now += 61
        with pytest.raises(InvalidTokenError):
            service.verify(token)

    def test_temp_token_is_not_a_session_token(self):
        issued = TemporaryAccessTokenService(SECRET).issue(uuid4(), uuid4())
        with pytest.raises(InvalidTokenError):
            SessionTokenService(SECRET, max_age_seconds=3600).verify(issued.token)
