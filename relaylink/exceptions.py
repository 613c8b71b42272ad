"""Error taxonomy for link resolution and deduplication."""


class RelayLinkError(Exception):
    pass


class MalformedUrl(RelayLinkError, ValueError):
    """A string is not a parseable absolute URL."""

    def __init__(self, raw: str, reason: str = "not an absolute URL"):
        self.raw = raw
        self.reason = reason
        super().__init__(f"Malformed URL ({reason}): {raw[:200]!r}")


class DecodeFailure(RelayLinkError):
    """A redirect token could not be decoded."""


class PersistedStateCorrupt(RelayLinkError):
    """Stored state failed to parse."""


class ExternalServiceUnavailable(RelayLinkError):
    """History source unreachable, unauthorized or rate-limited."""
