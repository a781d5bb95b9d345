"""Abstract repositories for waybills and locked sequence counters."""

from __future__ import annotations

from abc import ABC, abstractmethod

from wms.domain.model.waybill import Waybill


class WaybillRepository(ABC):

    @abstractmethod
    def get_by_number(self, waybill_number: str) -> Waybill | None:
        """Return a waybill by number, or None."""

    @abstractmethod
    def add(self, waybill: Waybill) -> None:
        """Insert a waybill.

        Raises DuplicateWaybillNumberError if the number is taken.
        """

    @abstractmethod
    def list_for_prefix(self, prefix: str) -> list[Waybill]:
        """Return waybills whose number starts with ``prefix``."""


class SequenceRepository(ABC):

    @abstractmethod
    def next_value(self, name: str) -> int:
        """Increment a named counter under a row lock and return the new value.

        The increment becomes visible when the unit of work commits and
        is returned to the pool if it rolls back.
        """

    @abstractmethod
    def ensure_at_least(self, name: str, value: int) -> None:
        """Raise a counter to ``value`` if it is lower, under the same lock."""
