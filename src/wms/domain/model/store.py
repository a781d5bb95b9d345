"""Marketplace store that receives stock pushes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MarketplaceProvider(Enum):
    TRENDYOL = "TRENDYOL"
    HEPSIBURADA = "HEPSIBURADA"
    IKAS = "IKAS"


@dataclass(eq=False)
class Store:
    id: str
    name: str
    provider: MarketplaceProvider
    seller_id: str | None = None
    api_key: str | None = None
    api_secret: str | None = None
    integration_id: str | None = None
    is_active: bool = True
    send_stock: bool = True

    @property
    def accepts_stock_push(self) -> bool:
        return self.is_active and self.send_stock
