"""Shared HTTP plumbing for the marketplace stock gateways.

Maps transport outcomes onto the two errors the batcher understands:
429 becomes RateLimitedError, everything else that is not a 2xx (and
every timeout or connection failure) becomes ProviderSyncError.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from wms.domain.exceptions import ProviderSyncError, RateLimitedError
from wms.domain.model.store import Store
from wms.domain.repository.marketplace_gateway import MarketplaceGateway

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "wms-stock-sync"
_MAX_BODY_LOGGED = 2000


def _session_with_defaults(user_agent: str | None) -> requests.Session:
    s = requests.Session()
    s.headers.update({
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
        "Accept": "application/json",
        "Content-Type": "application/json",
    })
    return s


def _retry_after(response: requests.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form; fall back to the configured backoff.
        return None


class HttpMarketplaceGateway(MarketplaceGateway):
    provider_name = "marketplace"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        user_agent: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or _session_with_defaults(user_agent)

    def _credentials(self, store: Store) -> tuple[str, str]:
        if not store.seller_id or not store.api_key or not store.api_secret:
            raise ProviderSyncError(
                f"Store {store.id} is missing seller id or API credentials"
            )
        return store.api_key, store.api_secret

    def _request(self, method: str, url: str, store: Store, **kwargs) -> requests.Response:
        auth = self._credentials(store)
        try:
            response = self._session.request(
                method, url, auth=auth, timeout=self._timeout, **kwargs
            )
        except requests.Timeout as exc:
            raise ProviderSyncError(
                f"{self.provider_name} request timed out after {self._timeout}s"
            ) from exc
        except requests.RequestException as exc:
            raise ProviderSyncError(f"{self.provider_name} request failed: {exc}") from exc

        body = response.text[:_MAX_BODY_LOGGED]
        if response.status_code == 429:
            raise RateLimitedError(
                f"{self.provider_name} rate limit hit for store {store.id}",
                retry_after=_retry_after(response),
            )
        if not response.ok:
            logger.debug("%s %s -> %s: %s", method, url, response.status_code, body)
            raise ProviderSyncError(
                f"{self.provider_name} API error: {response.status_code} - {_error_message(response)}",
                status_code=response.status_code,
                response_body=body,
            )
        return response


def _error_message(response: requests.Response) -> str:
    try:
        data: Any = response.json()
    except ValueError:
        return response.text[:200] or response.reason or ""
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return str(data)[:200]
