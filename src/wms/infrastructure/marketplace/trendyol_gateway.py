"""Trendyol price-and-inventory push.

A push is accepted asynchronously: the POST returns a batchRequestId and
per-item results appear on the batch-requests endpoint some time later.
The gateway polls a few times; items still unreported when polling
gives up are counted as accepted.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable

import requests

from wms.domain.exceptions import ProviderSyncError
from wms.domain.model.store import Store
from wms.domain.repository.marketplace_gateway import (
    ItemPushResult,
    PushResult,
    StockPushItem,
)
from wms.infrastructure.marketplace.http_gateway import HttpMarketplaceGateway

logger = logging.getLogger(__name__)

_FINISHED_BATCH_STATES = {"COMPLETED", "FAILED"}


class TrendyolGateway(HttpMarketplaceGateway):
    provider_name = "Trendyol"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        user_agent: str | None = None,
        poll_attempts: int = 3,
        poll_interval: float = 2.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(base_url, timeout=timeout, user_agent=user_agent, session=session)
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval
        self._sleep = sleep

    def endpoint_for(self, store: Store) -> str:
        return f"{self._base_url}/inventory/sellers/{store.seller_id}/products/price-and-inventory"

    def push_stock(self, store: Store, items: list[StockPushItem]) -> PushResult:
        payload = {"items": [{"barcode": i.barcode, "quantity": i.quantity} for i in items]}
        response = self._request("POST", self.endpoint_for(store), store, json=payload)
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderSyncError(
                "Trendyol returned a non-JSON body",
                status_code=response.status_code,
                response_body=response.text[:2000],
            ) from exc

        batch_request_id = data.get("batchRequestId") or data.get("id")
        failures = self._poll_failures(store, batch_request_id) if batch_request_id else {}
        results = [
            ItemPushResult(i.barcode, i.barcode not in failures, failures.get(i.barcode))
            for i in items
        ]
        return PushResult(
            items=results,
            batch_request_id=str(batch_request_id) if batch_request_id else None,
            status_code=response.status_code,
            raw_response=json.dumps(data),
        )

    def _poll_failures(self, store: Store, batch_request_id: str) -> dict[str, str]:
        url = (
            f"{self._base_url}/inventory/sellers/{store.seller_id}"
            f"/products/batch-requests/{batch_request_id}"
        )
        for _ in range(self._poll_attempts):
            self._sleep(self._poll_interval)
            data = self._request("GET", url, store).json()
            if data.get("status") not in _FINISHED_BATCH_STATES:
                continue
            failures = {}
            for entry in data.get("items", []):
                if entry.get("status") == "SUCCESS":
                    continue
                barcode = (entry.get("requestItem") or {}).get("barcode")
                if barcode:
                    failures[barcode] = "; ".join(entry.get("failureReasons") or []) or "FAILED"
            return failures
        logger.info(
            "Trendyol batch %s not finished after %d polls, treating items as accepted",
            batch_request_id, self._poll_attempts,
        )
        return {}
