import logging
from typing import Any

from app.controllers.google.http import GoogleHttpClient, RemoteResponse, RemoteTransportError
from app.controllers.google.models import GMAIL_MESSAGES_ENDPOINT, MessagePage
from app.exceptions import (
    BaseError,
    ReauthRequiredError,
    RemoteAccessForbiddenError,
    RemoteFetchFailedError,
    RemoteRateLimitedError,
)

METADATA_HEADERS = ("Date", "From", "Subject", "To", "Message-ID", "X-Priority", "Priority")

# Gmail reports quota exhaustion as 403 with one of these reasons.
RATE_LIMIT_REASONS = frozenset({"rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded"})


class GmailClient:
    """Read-only Gmail REST client. The access token is supplied on every call."""

    def __init__(self, http: GoogleHttpClient) -> None:
        self._logger = logging.getLogger(__name__)
        self._http = http

    async def list_messages(
        self,
        access_token: str,
        query: str = "",
        label_ids: list[str] | None = None,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> MessagePage:
        params: list[tuple[str, str]] = [("maxResults", str(max_results))]
        if query:
            params.append(("q", query))
        if page_token:
            params.append(("pageToken", page_token))
        for label_id in label_ids or []:
            params.append(("labelIds", label_id))

        response = await self._call("list messages", GMAIL_MESSAGES_ENDPOINT, access_token, params)
        return MessagePage(
            message_ids=[message["id"] for message in response.body.get("messages", []) if message.get("id")],
            next_page_token=response.body.get("nextPageToken") or None,
            result_size_estimate=int(response.body.get("resultSizeEstimate", 0)),
        )

    async def get_message(self, access_token: str, message_id: str) -> dict[str, Any]:
        """Fetch one message in the metadata projection (headers, labels, size and part layout)."""
        params = [("format", "metadata")] + [("metadataHeaders", header) for header in METADATA_HEADERS]
        response = await self._call(
            f"get message {message_id}", f"{GMAIL_MESSAGES_ENDPOINT}/{message_id}", access_token, params
        )
        return response.body

    async def _call(
        self, action: str, url: str, access_token: str, params: list[tuple[str, str]]
    ) -> RemoteResponse:
        try:
            response = await self._http.request("GET", url, access_token=access_token, params=params)
        except RemoteTransportError as e:
            raise RemoteFetchFailedError(f"Gmail API unreachable while trying to {action}", action=action) from e

        if not response.ok:
            self._logger.warning(f"Gmail API failed to {action}; status: {response.status}, body: {response.body}")
            raise self._classify(action, response)
        return response

    def _classify(self, action: str, response: RemoteResponse) -> BaseError:
        error = response.body.get("error")
        error = error if isinstance(error, dict) else {}
        reasons = {item.get("reason") for item in error.get("errors", []) if isinstance(item, dict)}
        details = {"action": action, "remote_status": response.status, "remote_error": error.get("status")}

        if response.status == 401:
            return ReauthRequiredError("Gmail API authentication failed; re-authentication required", **details)
        if response.status == 429 or reasons & RATE_LIMIT_REASONS or error.get("status") == "RESOURCE_EXHAUSTED":
            return RemoteRateLimitedError("Gmail API rate limit exceeded; try again later", **details)
        if response.status == 403:
            return RemoteAccessForbiddenError("Gmail API access forbidden; check granted OAuth scopes", **details)
        return RemoteFetchFailedError(f"Gmail API failed to {action}", **details)
