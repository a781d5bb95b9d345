"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Stock and sync errors carry structured fields so callers can branch on
them without parsing messages.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InsufficientStockError(DomainException):
    """A single reserve/decrement attempt cannot be satisfied.

    Local to one (shelf, product) row. The caller decides whether the
    whole order rolls back or the error is surfaced to the user.
    """

    def __init__(
        self,
        product_id: str,
        requested: int,
        available: int,
        shelf_id: str | None = None,
    ) -> None:
        self.product_id = product_id
        self.shelf_id = shelf_id
        self.requested = requested
        self.available = available
        where = f" on shelf {shelf_id}" if shelf_id else ""
        super().__init__(
            f"Insufficient stock for product {product_id}{where} "
            f"(need {requested}, have {available} available)"
        )


class StockInvariantError(DomainException):
    """A derived aggregate would be written in an inconsistent state."""


class DuplicatePackageError(DomainException):
    """The marketplace package is already known (order or quarantine).

    Always recoverable by ignoring it.
    """

    def __init__(self, package_id: str) -> None:
        self.package_id = package_id
        super().__init__(f"Package '{package_id}' already exists")


class RateLimitedError(DomainException):
    """The marketplace refused the push because of its rate limit."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class ProviderSyncError(DomainException):
    """A stock push failed for any reason other than rate limiting."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Server errors, timeouts and connection failures are transient."""
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code in (408, 409)


class DuplicateWaybillNumberError(DomainException):
    """Another transaction already took this waybill number."""

    def __init__(self, waybill_number: str) -> None:
        self.waybill_number = waybill_number
        super().__init__(f"Waybill number '{waybill_number}' already exists")
