"""Scoped tokens for video playback and API sessions.

Temporary access tokens let a media element fetch one slideshow without an
Authorization header (the token rides in the query string). They are bound
to a single job and user and expire after a short TTL. Session tokens
authenticate regular API calls. Each token type carries its purpose, and a
token of one purpose is never accepted as the other.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from slideshow.exceptions import InvalidTokenError
from slideshow.utils.signed_token import create_signed_token, decode_signed_token

logger = logging.getLogger(__name__)

TEMP_VIDEO_ACCESS = "temp_video_access"
SESSION = "session"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_in: int


@dataclass(frozen=True)
class TokenClaims:
    job_id: UUID
    user_id: UUID


def _decode(token: str, secret: str, purpose: str) -> dict:
    try:
        payload = decode_signed_token(token, secret)
    except ValueError as e:
        logger.debug(f"Rejected {purpose} token: {e}")
        raise InvalidTokenError()
    if payload.get("typ") != purpose:
        raise InvalidTokenError("Invalid token type")
    return payload


class TemporaryAccessTokenService:
    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def issue(self, job_id: UUID, user_id: UUID) -> IssuedToken:
        now = self.clock()
        token = create_signed_token(
            {
                "typ": TEMP_VIDEO_ACCESS,
                "jid": str(job_id),
                "uid": str(user_id),
                "exp": int(now) + self.ttl_seconds,
            },
            self.secret,
            issued_at=now,
        )
        return IssuedToken(token=token, expires_in=self.ttl_seconds)

    def verify(self, token: str) -> TokenClaims:
        """Return the claims of a valid temp token.

        Raises InvalidTokenError on bad signature, wrong purpose or expiry.
        """
        payload = _decode(token, self.secret, TEMP_VIDEO_ACCESS)
        if self.clock() >= payload.get("exp", 0):
            raise InvalidTokenError("Token expired")
        try:
            return TokenClaims(job_id=UUID(payload["jid"]), user_id=UUID(payload["uid"]))
        except (KeyError, ValueError):
            raise InvalidTokenError()


class SessionTokenService:
    """Bearer tokens for API calls, valid for ``max_age_seconds`` after issue."""

    def __init__(
        self,
        secret: str,
        max_age_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.secret = secret
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    def create(self, user_id: UUID) -> str:
        return create_signed_token(
            {"typ": SESSION, "uid": str(user_id)},
            self.secret,
            issued_at=self.clock(),
        )

    def verify(self, token: str) -> UUID:
        payload = _decode(token, self.secret, SESSION)
        if self.clock() - payload.get("iat", 0) > self.max_age_seconds:
            raise InvalidTokenError("Token expired")
        try:
            return UUID(payload["uid"])
        except (KeyError, ValueError):
            raise InvalidTokenError()
