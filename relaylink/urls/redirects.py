"""Unwrapping of tracking and redirect wrapper URLs."""

import base64
import json
import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote

from relaylink.config import DEFAULT_REDIRECT_PARAMS
from relaylink.exceptions import DecodeFailure, MalformedUrl
from relaylink.urls.syntax import ParsedUrl, parse_url

logger = logging.getLogger(__name__)

WEB_SCHEMES = ("http", "https")


@dataclass
class RedirectEndpoint:
    """A redirect endpoint that carries its destination in a signed token."""

    name: str
    host_pattern: str
    path_pattern: str
    token_param: str
    destination_field: str


DEFAULT_REDIRECT_ENDPOINTS = [
    RedirectEndpoint(
        name="substack",
        host_pattern=r"(^|\.)substack\.com$",
        path_pattern=r"^/redirect/",
        token_param="j",
        destination_field="e",
    ),
]


def decode_token_payload(token: str) -> dict:
    """Decode the middle segment of a dot-delimited signed token.

    Args:
        token: Token of the form ``header.payload.signature``.

    Returns:
        Decoded payload object.

    Raises:
        DecodeFailure: If the token is not three segments of URL-safe base64 JSON.
    """
    segments = token.split(".")
    if len(segments) != 3 or not segments[1]:
        raise DecodeFailure(f"Expected 3 token segments, got {len(segments)}")

    payload = segments[1].replace("-", "+").replace("_", "/")
    payload += "=" * (-len(payload) % 4)

    try:
        decoded = base64.b64decode(payload, validate=True)
        data = json.loads(decoded.decode("utf-8"))
    except ValueError as e:
        raise DecodeFailure(f"Token payload is not base64 JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecodeFailure("Token payload is not an object")
    return data


class RedirectResolver:
    """Unwraps one level of redirect wrapping.

    Tries, in order:
    1. Token redirect endpoints (destination inside a signed token)
    2. Redirect query parameters (``?redirect=https%3A...``)
    """

    def __init__(
        self,
        redirect_param_names: list[str] | None = None,
        endpoints: list[RedirectEndpoint] | None = None,
    ):
        """Initialize resolver.

        Args:
            redirect_param_names: Ordered parameter names that may hold a destination.
            endpoints: Token redirect endpoints. Defaults to the built-in list.
        """
        self.redirect_param_names = (
            list(redirect_param_names) if redirect_param_names is not None else list(DEFAULT_REDIRECT_PARAMS)
        )
        self.endpoints = endpoints if endpoints is not None else DEFAULT_REDIRECT_ENDPOINTS
        self._compiled = [
            (ep, re.compile(ep.host_pattern, re.IGNORECASE), re.compile(ep.path_pattern)) for ep in self.endpoints
        ]

    def unwrap(self, url: ParsedUrl) -> ParsedUrl:
        """Return the URL a redirect wrapper points to, or the input unchanged."""
        unwrapped = self._unwrap_token(url)
        if unwrapped is not None:
            return unwrapped

        unwrapped = self._unwrap_param(url)
        if unwrapped is not None:
            return unwrapped

        return url

    def _unwrap_token(self, url: ParsedUrl) -> ParsedUrl | None:
        for endpoint, host_re, path_re in self._compiled:
            if not host_re.search(url.host) or not path_re.search(url.path):
                continue

            token = url.param(endpoint.token_param)
            if not token:
                continue

            try:
                payload = decode_token_payload(token)
                return self._destination_from_payload(payload, endpoint.destination_field)
            except (DecodeFailure, MalformedUrl) as e:
                logger.debug(f"Could not decode {endpoint.name} redirect token: {e}")
                return None

        return None

    def _destination_from_payload(self, payload: dict, field_name: str) -> ParsedUrl:
        destination = payload.get(field_name)
        if not isinstance(destination, str) or not destination.strip():
            raise DecodeFailure(f"Token payload has no '{field_name}' field")

        destination = destination.strip()
        if "://" in destination:
            parsed = parse_url(destination)
            if parsed.scheme not in WEB_SCHEMES:
                raise DecodeFailure(f"Token destination has unsupported scheme: {parsed.scheme}")
            return parsed.with_changes(scheme="https")

        # Bare host
        host = destination.strip("/").split("/", 1)[0]
        return parse_url(f"https://{host}/")

    def _unwrap_param(self, url: ParsedUrl) -> ParsedUrl | None:
        for name in self.redirect_param_names:
            value = url.param(name)
            if not value:
                continue

            # parse_qsl already decoded once; handle double-encoded values too
            for candidate in (value, unquote(value)):
                try:
                    destination = parse_url(candidate)
                except MalformedUrl:
                    continue
                if destination.scheme in WEB_SCHEMES:
                    return destination

        return None
