"""Parse marketplace order packages into a neutral shape.

Accepts the Trendyol shipment-package layout (``lines[]`` with barcode,
merchantSku and productCode); other marketplaces are normalised to it
by their integrations before ingestion.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from wms.domain.exceptions import ValidationError


@dataclass(frozen=True)
class OrderLine:
    line_no: int
    quantity: int
    unit_price: Decimal
    barcode: str | None = None
    sku: str | None = None
    product_code: str | None = None
    product_name: str | None = None
    content_id: str | None = None
    vat_rate: Decimal = Decimal("0.00")

    @property
    def reference(self) -> str:
        """Best identifier to report when the line cannot be matched."""
        return self.barcode or self.sku or self.product_code or f"line-{self.line_no}"


@dataclass(frozen=True)
class OrderPackage:
    package_id: str
    lines: list[OrderLine]
    order_number: str | None = None
    customer_name: str | None = None
    total_price: Decimal = Decimal("0.00")
    currency: str = "TRY"
    cargo_provider: str | None = None
    cargo_tracking_number: str | None = None
    shipping_address: dict | None = None
    invoice_address: dict | None = None


def extract_package_id(payload: dict) -> str | None:
    for key in ("shipmentPackageId", "packageId", "orderNumber"):
        value = payload.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return None


def parse_order_package(payload: dict) -> OrderPackage:
    """Raises ValidationError for anything that cannot become an order."""
    if not isinstance(payload, dict):
        raise ValidationError("Order payload must be an object")
    package_id = extract_package_id(payload)
    if not package_id:
        raise ValidationError("Order payload has no package id")

    raw_lines = payload.get("lines")
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError(f"Package {package_id} has no lines")

    lines = [_parse_line(raw, index) for index, raw in enumerate(raw_lines, start=1)]
    customer = " ".join(
        part for part in (payload.get("customerFirstName"), payload.get("customerLastName")) if part
    )
    return OrderPackage(
        package_id=package_id,
        lines=lines,
        order_number=_text(payload.get("orderNumber")),
        customer_name=customer or None,
        total_price=_decimal(payload.get("totalPrice"), "totalPrice"),
        currency=payload.get("currencyCode") or "TRY",
        cargo_provider=_text(payload.get("cargoProviderName")),
        cargo_tracking_number=_text(payload.get("cargoTrackingNumber")),
        shipping_address=payload.get("shipmentAddress"),
        invoice_address=payload.get("invoiceAddress"),
    )


def _parse_line(raw: dict, index: int) -> OrderLine:
    if not isinstance(raw, dict):
        raise ValidationError(f"Line {index} is not an object")
    quantity = raw.get("quantity", 1)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(f"Line {index} has invalid quantity {quantity!r}")

    barcode = _text(raw.get("barcode"))
    sku = _text(raw.get("merchantSku") or raw.get("sku") or raw.get("stockCode"))
    product_code = _text(raw.get("productCode"))
    if not (barcode or sku or product_code):
        raise ValidationError(f"Line {index} has no barcode, SKU or product code")

    try:
        line_no = int(raw.get("lineNo") or index)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Line {index} has invalid lineNo {raw.get('lineNo')!r}") from exc

    price = raw.get("lineUnitPrice", raw.get("price", raw.get("unitPrice")))
    return OrderLine(
        line_no=line_no,
        quantity=quantity,
        unit_price=_decimal(price, f"line {index} price"),
        barcode=barcode,
        sku=sku,
        product_code=product_code,
        product_name=_text(raw.get("productName")),
        content_id=_text(raw.get("contentId") or raw.get("productContentId")),
        vat_rate=_decimal(raw.get("vatRate"), f"line {index} vatRate"),
    )


def _text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _decimal(value, what: str) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise ValidationError(f"Invalid {what}: {value!r}")
        if amount < 0:
            raise ValidationError(f"Negative {what}: {value!r}")
        return amount.quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        # Unparseable, or too many digits to hold in cents.
        raise ValidationError(f"Invalid {what}: {value!r}") from exc
