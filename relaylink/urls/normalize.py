"""Canonical URL form used as the deduplication key."""

import logging

from relaylink.config import DEFAULT_TRACKING_PARAMS
from relaylink.exceptions import MalformedUrl
from relaylink.urls.redirects import RedirectResolver
from relaylink.urls.syntax import parse_url

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}


class UrlNormalizer:
    """Reduces cosmetically different URLs to one comparable string.

    The output carries no query string and no fragment, so normalizing an
    already-normalized URL returns it unchanged.
    """

    def __init__(
        self,
        resolver: RedirectResolver | None = None,
        tracking_param_names: list[str] | None = None,
    ):
        """Initialize normalizer.

        Args:
            resolver: Redirect resolver applied once per URL.
            tracking_param_names: Query parameters deleted by exact name.
        """
        self.resolver = resolver or RedirectResolver()
        self.tracking_param_names = frozenset(
            tracking_param_names if tracking_param_names is not None else DEFAULT_TRACKING_PARAMS
        )

    def normalize(self, raw: str) -> str:
        """Normalize a raw URL.

        Args:
            raw: URL text.

        Returns:
            ``scheme://host/path`` with no query or fragment.

        Raises:
            MalformedUrl: If the URL (or its redirect target) is not absolute.
        """
        url = parse_url(raw)
        url = self.resolver.unwrap(url)

        # Tracking params go first, then everything else
        url = url.without_params(self.tracking_param_names)

        host = url.host.lower()
        # Repeated prefixes are all stripped so the result normalizes to itself
        while host.startswith("www.") and len(host) > 4:
            host = host[4:]
        if ":" in host:
            host = f"[{host}]"

        if url.port is not None and DEFAULT_PORTS.get(url.scheme) != url.port:
            host = f"{host}:{url.port}"

        path = url.path.rstrip("/") or "/"
        if not path.startswith("/"):
            path = f"/{path}"

        return f"{url.scheme}://{host}{path}"

    def try_normalize(self, raw: str) -> str | None:
        """Normalize, returning None for malformed input."""
        try:
            return self.normalize(raw)
        except MalformedUrl as e:
            logger.debug(f"Skipping malformed URL: {e}")
            return None
