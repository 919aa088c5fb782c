from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from app.exceptions import AuthError, ErrorType
from settings import settings

ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    external_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


class SessionTokenSigner:
    """
    Issues and verifies this application's own bearer tokens.

    Tokens are HS256 JWTs bound to the local user id. Their lifetime is fixed by configuration and has
    nothing to do with the lifetime of the user's Google tokens. Verification is purely local; whether the
    user still exists and is active is checked separately, per request.
    """

    def __init__(self, secret: str, ttl_hours: int, issuer: str, audience: str) -> None:
        self._secret = secret
        self._ttl = timedelta(hours=ttl_hours)
        self._issuer = issuer
        self._audience = audience

    @classmethod
    def from_settings(cls) -> "SessionTokenSigner":
        return cls(
            secret=settings.session_secret,
            ttl_hours=settings.session.ttl_hours,
            issuer=settings.session.issuer,
            audience=settings.session.audience,
        )

    def issue(self, user_id: int, external_id: str, email: str, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "userId": user_id,
            "externalId": external_id,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self._ttl,
            "iss": self._issuer,
            "aud": self._audience,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthError("Session token has expired", ErrorType.TOKEN_EXPIRED) from e
        except jwt.InvalidTokenError as e:
            raise AuthError("Invalid session token", ErrorType.INVALID_TOKEN) from e

        try:
            return SessionClaims(
                user_id=int(payload.get("userId", payload["sub"])),
                external_id=str(payload.get("externalId", "")),
                email=str(payload.get("email", "")),
                issued_at=datetime.fromtimestamp(payload["iat"], UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError("Invalid session token", ErrorType.INVALID_TOKEN) from e
