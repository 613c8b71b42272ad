"""Data models for newsletter link resolution."""

from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import parseaddr, parsedate_to_datetime
from enum import Enum


class SourceKind(Enum):
    """Where a candidate URL was found, in precedence order."""

    LIST_POST_HEADER = "list_post_header"
    CANONICAL_TAG = "canonical_tag"
    OG_URL_META = "og_url_meta"
    TWITTER_URL_META = "twitter_url_meta"
    ANCHOR = "anchor"
    PLAIN_TEXT = "plain_text"

    @property
    def precedence(self) -> int:
        return list(SourceKind).index(self)


@dataclass
class URLCandidate:
    """URL discovered during extraction, not yet chosen."""

    raw_url: str
    source_kind: SourceKind
    anchor_text: str = ""
    document_position: int = 0  # Ordinal within its source kind
    markup_context: str = ""  # Raw <a ...> tag, anchors only

    def sort_key(self) -> tuple[int, int]:
        return (self.source_kind.precedence, self.document_position)


@dataclass
class Document:
    """Newsletter email as handed over by the mailbox collaborator."""

    subject: str
    sender_address: str
    headers: dict[str, str] = field(default_factory=dict)
    html_body: str = ""
    plain_text_body: str = ""
    internal_timestamp: int = 0  # Epoch milliseconds
    message_id: str = ""

    @property
    def sender_domain(self) -> str:
        """Domain part of the sender address, lowercased."""
        _, _, domain = self.sender_address.rpartition("@")
        return domain.strip().strip(">").lower()

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @classmethod
    def from_message(cls, message: EmailMessage) -> "Document":
        """Build a document from a parsed RFC 822 message.

        Args:
            message: Message parsed with the ``email.policy.default`` policy.

        Returns:
            Document carrying the first HTML and plain-text parts.
        """
        html_body = ""
        plain_text_body = ""

        html_part = message.get_body(preferencelist=("html",))
        if html_part is not None:
            html_body = html_part.get_content()

        text_part = message.get_body(preferencelist=("plain",))
        if text_part is not None:
            plain_text_body = text_part.get_content()

        timestamp = 0
        date_header = message.get("Date")
        if date_header:
            try:
                timestamp = int(parsedate_to_datetime(str(date_header)).timestamp() * 1000)
            except (TypeError, ValueError):
                timestamp = 0

        _, sender = parseaddr(str(message.get("From", "")))

        return cls(
            subject=str(message.get("Subject", "")),
            sender_address=sender,
            headers={key: str(value) for key, value in message.items()},
            html_body=html_body,
            plain_text_body=plain_text_body,
            internal_timestamp=timestamp,
            message_id=str(message.get("Message-ID", "")).strip(),
        )


@dataclass
class SeenEntry:
    """A URL accepted and posted at some point in the retention window."""

    normalized_url: str
    first_seen_at_ms: int


@dataclass
class ScoringWeights:
    """Configurable anchor scoring weights."""

    post_title_class: int = 200
    subject_match: int = 100
    post_path: int = 50
    sender_domain: int = 35
    view_in_browser: int = 30
    read_more: int = 20
    position_max: int = 10  # First anchor gets this, decreasing by 1


@dataclass
class RelayResult:
    """Outcome of processing one document."""

    message_id: str
    subject: str
    url: str | None
    outcome: str  # 'posted', 'duplicate', 'no_link', 'failed', 'skipped'
    error: str | None = None


@dataclass
class ScoredAnchor:
    """Anchor candidate with desirability score."""

    candidate: URLCandidate
    score: int
    matched_factors: list[str] = field(default_factory=list)

    @property
    def disqualified(self) -> bool:
        return "disqualified" in self.matched_factors


@dataclass
class LogEntry:
    """Entry in relay_log.json."""

    timestamp: str  # ISO format
    message_id: str
    subject: str
    url: str | None
    outcome: str
    error: str | None = None
