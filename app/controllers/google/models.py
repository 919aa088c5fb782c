from dataclasses import dataclass
from urllib.parse import urlencode

from app.exceptions import MissingConfigurationError
from settings import settings

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
REVOKE_ENDPOINT = "https://oauth2.googleapis.com/revoke"
USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v2/userinfo"
GMAIL_MESSAGES_ENDPOINT = "https://gmail.googleapis.com/gmail/v1/users/me/messages"

SCOPES = (
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/gmail.readonly",
)

# Google omits expires_in on some responses; access tokens live one hour.
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class GoogleOAuthConfig:
    """OAuth client settings. Immutable and shared; per-user tokens are never stored here."""

    client_id: str
    client_secret: str
    redirect_uri: str

    @classmethod
    def from_settings(cls) -> "GoogleOAuthConfig":
        return cls(
            client_id=settings.google.client_id,
            client_secret=settings.google.client_secret,
            redirect_uri=settings.google.redirect_uri,
        )

    def require(self) -> "GoogleOAuthConfig":
        missing = [
            name
            for name, value in (
                ("GOOGLE_CLIENT_ID", self.client_id),
                ("GOOGLE_CLIENT_SECRET", self.client_secret),
                ("GOOGLE_REDIRECT_URI", self.redirect_uri),
            )
            if not value
        ]
        if missing:
            raise MissingConfigurationError(f"Google OAuth is not configured; missing {', '.join(missing)}")
        return self

    def authorization_url(self, state: str | None = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
        }
        if state:
            params["state"] = state
        return f"{AUTHORIZATION_ENDPOINT}?{urlencode(params)}"


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    refresh_token: str | None
    expires_in: int
    scope: str | None = None


@dataclass(frozen=True)
class RemoteIdentity:
    external_id: str
    email: str
    name: str
    picture: str | None
    email_verified: bool


@dataclass(frozen=True)
class MessagePage:
    message_ids: list[str]
    next_page_token: str | None
    result_size_estimate: int = 0
