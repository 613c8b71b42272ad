"""Best-effort cross-check against the posting account's recent history."""

import logging
from typing import Any

import httpx

from relaylink.config import HistoryConfig
from relaylink.exceptions import ExternalServiceUnavailable
from relaylink.extraction import find_plain_urls
from relaylink.urls import UrlNormalizer

logger = logging.getLogger(__name__)


class HistoryCrosscheck:
    """Collects normalized URLs the posting account published recently.

    The result augments the dedup store and is rebuilt on every call. Any
    failure yields an empty set.
    """

    def __init__(
        self,
        config: HistoryConfig | None = None,
        normalizer: UrlNormalizer | None = None,
        client: httpx.Client | None = None,
    ):
        """Initialize cross-check.

        Args:
            config: History source configuration. Disabled if None.
            normalizer: Normalizer applied to every scraped URL.
            client: HTTP client to use. A fresh client is opened per fetch if None.
        """
        self.config = config or HistoryConfig()
        self.normalizer = normalizer or UrlNormalizer()
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.config.enabled and bool(self.config.base_url)

    def fetch(self) -> set[str]:
        """Fetch recently published URLs.

        Returns:
            Set of normalized URLs; empty when disabled or on any failure.
        """
        if not self.enabled:
            return set()

        try:
            if self.client is not None:
                items = self._recent_items(self.client)
            else:
                with httpx.Client() as client:
                    items = self._recent_items(client)
        except ExternalServiceUnavailable as e:
            logger.warning(f"History cross-check unavailable: {e}")
            return set()

        urls: set[str] = set()
        for item in items:
            for raw in self._item_urls(item):
                normalized = self.normalizer.try_normalize(raw)
                if normalized:
                    urls.add(normalized)

        logger.info(f"History cross-check found {len(urls)} URL(s) in {len(items)} recent item(s)")
        return urls

    def _recent_items(self, client: httpx.Client) -> list[dict[str, Any]]:
        account = self._get_json(client, "/api/v1/accounts/verify_credentials")
        account_id = account.get("id") if isinstance(account, dict) else None
        if not account_id:
            raise ExternalServiceUnavailable("Account lookup returned no id")

        items = self._get_json(
            client,
            f"/api/v1/accounts/{account_id}/statuses",
            params={"limit": self.config.limit, "exclude_replies": "true"},
        )
        if not isinstance(items, list):
            raise ExternalServiceUnavailable("Status listing is not a list")
        return [item for item in items[: self.config.limit] if isinstance(item, dict)]

    def _get_json(self, client: httpx.Client, path: str, params: dict[str, Any] | None = None) -> Any:
        headers = {"Accept": "application/json"}
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"

        try:
            response = client.get(f"{self.config.base_url}{path}", params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceUnavailable(f"{path} returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ExternalServiceUnavailable(f"{path} failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ExternalServiceUnavailable(f"{path} returned invalid JSON") from e

    def _item_urls(self, item: dict[str, Any]) -> list[str]:
        urls = find_plain_urls(str(item.get("content") or ""))
        card = item.get("card")
        if isinstance(card, dict) and card.get("url"):
            urls.append(str(card["url"]))
        return urls
