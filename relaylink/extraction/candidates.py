"""Pattern-based discovery of URL candidates in newsletter emails.

Documents are untrusted and often malformed, so tags are found with regular
patterns instead of a DOM. Only ``<a>``, ``<link>`` and ``<meta>`` tags matter.
"""

import html
import logging
import re
from collections.abc import Iterator

from relaylink.extraction.junk import JunkClassifier
from relaylink.models import Document, SourceKind, URLCandidate

logger = logging.getLogger(__name__)

LIST_POST_HEADER = "List-Post"

PLAIN_URL_PATTERN = re.compile(r"https?://[^\s<>\"'\[\]{}|\\^`]+", re.IGNORECASE)
TRAILING_PUNCTUATION = ".,;:!?)*'\""

ATTRIBUTE_PATTERN = re.compile(
    r"([a-zA-Z_:][-\w:.]*)\s*=\s*(?:\"([^\"]*)\"?|'([^']*)'?|([^\s\"'>]+))",
)
ANCHOR_OPEN_PATTERN = re.compile(r"<a\b([^>]*)>", re.IGNORECASE)
ANCHOR_END_PATTERN = re.compile(r"</a\s*>|<a\b", re.IGNORECASE)
LINK_TAG_PATTERN = re.compile(r"<link\b([^>]*)>", re.IGNORECASE)
META_TAG_PATTERN = re.compile(r"<meta\b([^>]*)>", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^>]*>?")
WHITESPACE_RUN = re.compile(r"\s+")


def parse_attributes(tag_body: str) -> dict[str, str]:
    """Parse tag attributes leniently.

    Args:
        tag_body: Text between the tag name and the closing ``>``.

    Returns:
        Lowercased attribute names mapped to unescaped values. First occurrence wins.
    """
    attributes: dict[str, str] = {}
    for match in ATTRIBUTE_PATTERN.finditer(tag_body):
        name = match.group(1).lower()
        if name in attributes:
            continue
        value = next((g for g in match.groups()[1:] if g is not None), "")
        attributes[name] = html.unescape(value).strip()
    return attributes


def visible_text(markup: str) -> str:
    """Strip tags, unescape entities and collapse whitespace."""
    text = TAG_PATTERN.sub(" ", markup)
    text = html.unescape(text)
    return WHITESPACE_RUN.sub(" ", text).strip()


def find_plain_urls(text: str) -> list[str]:
    """Find bare http(s) URLs in text, in appearance order, without repeats.

    Args:
        text: Plain text to scan.

    Returns:
        URLs with trailing sentence punctuation removed.
    """
    urls: list[str] = []
    seen: set[str] = set()
    for match in PLAIN_URL_PATTERN.finditer(text or ""):
        url = match.group(0).rstrip(TRAILING_PUNCTUATION)
        if url and url not in seen:
            seen.add(url)
            urls.append(url)
    return urls


class CandidateExtractor:
    """Scans a document for URL candidates in precedence order.

    Sources, highest precedence first:
    1. ``List-Post`` header
    2. ``<link rel="canonical">``
    3. ``og:url`` meta tag
    4. ``twitter:url`` meta tag
    5. Anchors, in document order
    6. Bare URLs in the plain-text body
    """

    def __init__(self, junk: JunkClassifier | None = None, header_name: str = LIST_POST_HEADER):
        self.junk = junk or JunkClassifier()
        self.header_name = header_name

    def extract(self, document: Document) -> list[URLCandidate]:
        """Return every usable candidate in precedence order."""
        return list(self.iter_candidates(document))

    def iter_candidates(self, document: Document) -> Iterator[URLCandidate]:
        """Yield candidates lazily so callers can stop at the first usable one."""
        yield from self.header_candidates(document)
        yield from self.meta_candidates(document)
        yield from self.anchor_candidates(document)
        yield from self.plain_text_candidates(document)

    def header_candidates(self, document: Document) -> list[URLCandidate]:
        value = document.header(self.header_name)
        if not value:
            return []

        url = value.strip()
        # Header may carry several comma-separated <...> values; the first is used
        bracketed = re.search(r"<([^>]*)>", url)
        if bracketed:
            url = bracketed.group(1).strip()
        url = url.strip("<>").strip()

        return self._keep([URLCandidate(raw_url=url, source_kind=SourceKind.LIST_POST_HEADER)])

    def meta_candidates(self, document: Document) -> list[URLCandidate]:
        """Canonical link, og:url and twitter:url, each from its first tag."""
        markup = document.html_body or ""
        found: list[URLCandidate] = []

        for position, match in enumerate(LINK_TAG_PATTERN.finditer(markup)):
            attrs = parse_attributes(match.group(1))
            if "canonical" in attrs.get("rel", "").lower().split() and attrs.get("href"):
                found.append(
                    URLCandidate(
                        raw_url=attrs["href"],
                        source_kind=SourceKind.CANONICAL_TAG,
                        document_position=position,
                        markup_context=match.group(0),
                    )
                )
                break

        for kind, key in ((SourceKind.OG_URL_META, "og:url"), (SourceKind.TWITTER_URL_META, "twitter:url")):
            for position, match in enumerate(META_TAG_PATTERN.finditer(markup)):
                attrs = parse_attributes(match.group(1))
                label = (attrs.get("property") or attrs.get("name") or "").lower()
                if label == key and attrs.get("content"):
                    found.append(
                        URLCandidate(
                            raw_url=attrs["content"],
                            source_kind=kind,
                            document_position=position,
                            markup_context=match.group(0),
                        )
                    )
                    break

        return self._keep(found)

    def anchor_candidates(self, document: Document) -> list[URLCandidate]:
        """Every anchor with an href, carrying its visible text and opening tag."""
        markup = document.html_body or ""
        found: list[URLCandidate] = []

        for position, match in enumerate(ANCHOR_OPEN_PATTERN.finditer(markup)):
            attrs = parse_attributes(match.group(1))
            href = attrs.get("href", "")
            if not href:
                continue

            # Anchor text runs to </a>, or to the next <a> if the tag is unterminated
            end = ANCHOR_END_PATTERN.search(markup, match.end())
            inner = markup[match.end() : end.start() if end else len(markup)]

            found.append(
                URLCandidate(
                    raw_url=href,
                    source_kind=SourceKind.ANCHOR,
                    anchor_text=visible_text(inner),
                    document_position=position,
                    markup_context=match.group(0),
                )
            )

        return self._keep(found)

    def plain_text_candidates(self, document: Document) -> list[URLCandidate]:
        urls = find_plain_urls(document.plain_text_body)
        return self._keep(
            [
                URLCandidate(raw_url=url, source_kind=SourceKind.PLAIN_TEXT, document_position=position)
                for position, url in enumerate(urls)
            ]
        )

    def _keep(self, candidates: list[URLCandidate]) -> list[URLCandidate]:
        kept = [c for c in candidates if not self.junk.is_junk(c.raw_url, c.anchor_text)]
        if len(kept) != len(candidates):
            logger.debug(f"Rejected {len(candidates) - len(kept)} junk candidate(s)")
        return kept
