import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from email.utils import getaddresses, parsedate_to_datetime
from typing import Any

from app.models import EmailPriority

logger = logging.getLogger(__name__)

NO_SUBJECT = "(No Subject)"
BODY_PREVIEW_LENGTH = 200

UNREAD_LABEL = "UNREAD"
STARRED_LABEL = "STARRED"
HIGH_PRIORITY_LABELS = frozenset({"IMPORTANT", "CATEGORY_PROMOTIONS"})

_SENDER_PATTERN = re.compile(r"^(?P<name>.*?)\s*<(?P<address>[^<>]*)>\s*$")


@dataclass
class NormalizedMessage:
    """One Gmail message reduced to the columns of ``EmailMessage``."""

    remote_id: str
    thread_id: str | None
    message_id_header: str | None
    subject: str
    sender: str
    sender_name: str
    recipients: list[str]
    snippet: str
    body_preview: str
    received_at: datetime
    is_read: bool
    is_starred: bool
    has_attachments: bool
    priority: EmailPriority
    labels: list[str] = field(default_factory=list)
    size_estimate: int = 0

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


class MessageUtils:
    """Utility class for converting Gmail API metadata payloads into local message rows."""

    @staticmethod
    def normalize(raw: dict[str, Any], now: datetime | None = None) -> NormalizedMessage:
        """Normalize a ``format=metadata`` message resource. Raises ``ValueError`` when it has no id."""
        remote_id = raw.get("id")
        if not remote_id:
            raise ValueError("Gmail message payload has no id")

        payload = raw.get("payload") or {}
        headers = MessageUtils._headers(payload)
        labels = [str(label) for label in raw.get("labelIds") or []]
        sender_name, sender = MessageUtils.parse_sender(headers.get("from", ""))
        snippet = raw.get("snippet") or ""

        return NormalizedMessage(
            remote_id=str(remote_id),
            thread_id=raw.get("threadId"),
            message_id_header=headers.get("message-id") or None,
            subject=headers.get("subject") or NO_SUBJECT,
            sender=sender,
            sender_name=sender_name,
            recipients=MessageUtils.parse_recipients(headers.get("to", "")),
            snippet=snippet,
            body_preview=snippet[:BODY_PREVIEW_LENGTH],
            received_at=MessageUtils.parse_date(headers.get("date", ""), now),
            is_read=UNREAD_LABEL not in labels,
            is_starred=STARRED_LABEL in labels,
            has_attachments=MessageUtils.has_attachments(payload),
            priority=MessageUtils.derive_priority(labels, headers.get("x-priority") or headers.get("priority")),
            labels=labels,
            size_estimate=int(raw.get("sizeEstimate") or 0),
        )

    @staticmethod
    def parse_sender(from_header: str) -> tuple[str, str]:
        """
        Split a From header into ``(display name, address)``.

        ``"Jane Smith <jane@x.com>"`` gives ``("Jane Smith", "jane@x.com")``. Without an angle-bracket pair the
        whole header is taken as the address and the name is empty.
        """
        from_header = from_header.strip()
        match = _SENDER_PATTERN.match(from_header)
        if match is None:
            return "", from_header
        name = match.group("name").strip().strip('"').strip()
        return name, match.group("address").strip()

    @staticmethod
    def parse_recipients(to_header: str) -> list[str]:
        if not to_header:
            return []
        return [address for _, address in getaddresses([to_header]) if address]

    @staticmethod
    def parse_date(date_header: str, now: datetime | None = None) -> datetime:
        """Parse an RFC 2822 Date header to aware UTC, falling back to ``now`` when absent or unparseable."""
        fallback = now or datetime.now(UTC)
        if not date_header:
            return fallback
        try:
            parsed = parsedate_to_datetime(date_header)
        except (TypeError, ValueError, IndexError):
            logger.debug(f"Unparseable Date header '{date_header}'")
            return fallback
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)

    @staticmethod
    def has_attachments(payload: dict[str, Any]) -> bool:
        """True when any body part, at any nesting depth, carries a filename or an attachment reference."""
        for part in payload.get("parts") or []:
            if not isinstance(part, dict):
                continue
            if part.get("filename") or (part.get("body") or {}).get("attachmentId"):
                return True
            if MessageUtils.has_attachments(part):
                return True
        return False

    @staticmethod
    def derive_priority(labels: list[str], priority_header: str | None) -> EmailPriority:
        if HIGH_PRIORITY_LABELS.intersection(labels):
            return EmailPriority.high

        if priority_header:
            value = priority_header.strip().lower()
            if "high" in value or value == "1":
                return EmailPriority.high
            if "low" in value or value == "5":
                return EmailPriority.low

        return EmailPriority.medium

    @staticmethod
    def _headers(payload: dict[str, Any]) -> dict[str, str]:
        # Header names are case-insensitive; the first occurrence wins.
        headers: dict[str, str] = {}
        for header in payload.get("headers") or []:
            if not isinstance(header, dict):
                continue
            name = str(header.get("name", "")).lower()
            if name and name not in headers:
                headers[name] = str(header.get("value", ""))
        return headers
