"""Parsing and formatting of absolute URLs."""

import re
from dataclasses import dataclass, field, replace
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from relaylink.exceptions import MalformedUrl

SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*$")
WHITESPACE_PATTERN = re.compile(r"\s")


@dataclass(frozen=True)
class ParsedUrl:
    """Structured form of an absolute URL.

    Query parameters are kept as an ordered list of independent name/value
    pairs, so a name may repeat.
    """

    scheme: str
    host: str
    path: str = ""
    query: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    fragment: str = ""
    port: int | None = None
    userinfo: str = ""

    def param(self, name: str) -> str | None:
        """Return the first value for a query parameter, or None."""
        for key, value in self.query:
            if key == name:
                return value
        return None

    def without_params(self, names: set[str] | frozenset[str]) -> "ParsedUrl":
        """Copy with every pair whose name is in ``names`` removed."""
        return replace(self, query=tuple((k, v) for k, v in self.query if k not in names))

    def with_changes(self, **changes) -> "ParsedUrl":
        return replace(self, **changes)


def parse_url(raw: str) -> ParsedUrl:
    """Parse a raw string into a ParsedUrl.

    Args:
        raw: Candidate URL text.

    Returns:
        ParsedUrl with scheme, host, port, path, query pairs and fragment.

    Raises:
        MalformedUrl: If the string is not a syntactically valid absolute URL.
    """
    if not isinstance(raw, str):
        raise MalformedUrl(repr(raw), "not a string")

    text = raw.strip()
    if not text:
        raise MalformedUrl(raw, "empty")
    if WHITESPACE_PATTERN.search(text):
        raise MalformedUrl(raw, "contains whitespace")

    try:
        split = urlsplit(text)
        port = split.port
    except ValueError as e:
        raise MalformedUrl(raw, str(e)) from e

    if not split.scheme or not SCHEME_PATTERN.match(split.scheme):
        raise MalformedUrl(raw, "missing scheme")
    if not split.netloc:
        raise MalformedUrl(raw, "missing host")

    userinfo, _, hostport = split.netloc.rpartition("@")
    if hostport.startswith("["):
        host = hostport[1 : hostport.find("]")]
    else:
        host = hostport.split(":", 1)[0]
    if not host:
        raise MalformedUrl(raw, "missing host")

    return ParsedUrl(
        scheme=split.scheme.lower(),
        host=host,
        path=split.path,
        query=tuple(parse_qsl(split.query, keep_blank_values=True)),
        fragment=split.fragment,
        port=port,
        userinfo=userinfo,
    )


def format_url(url: ParsedUrl) -> str:
    """Reassemble a ParsedUrl into an absolute URL string."""
    host = f"[{url.host}]" if ":" in url.host else url.host
    netloc = host if url.port is None else f"{host}:{url.port}"
    if url.userinfo:
        netloc = f"{url.userinfo}@{netloc}"

    path = url.path
    if path and not path.startswith("/"):
        path = f"/{path}"

    return urlunsplit((url.scheme, netloc, path, urlencode(list(url.query)), url.fragment))


def is_absolute_url(raw: str) -> bool:
    """Check whether a string parses as an absolute URL."""
    try:
        parse_url(raw)
    except MalformedUrl:
        return False
    return True
