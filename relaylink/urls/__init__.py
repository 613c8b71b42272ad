"""URL parsing, redirect unwrapping and normalization."""

from relaylink.urls.normalize import UrlNormalizer
from relaylink.urls.redirects import RedirectEndpoint, RedirectResolver
from relaylink.urls.syntax import ParsedUrl, format_url, is_absolute_url, parse_url

__all__ = [
    "ParsedUrl",
    "parse_url",
    "format_url",
    "is_absolute_url",
    "RedirectEndpoint",
    "RedirectResolver",
    "UrlNormalizer",
]
