from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol, Sequence

from .model import InvoiceDetails, InvoiceInput, InvoiceLine, InvoiceStats


class InvoiceRepository(Protocol):
    def get(self, invoice_id: int) -> Optional[InvoiceDetails]:
        raise NotImplementedError

    def search(
        self,
        *,
        search: Optional[str] = None,
        paid: Optional[bool] = None,
        vessel_ids: Optional[Sequence[int]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[Sequence[InvoiceDetails], int]:
        raise NotImplementedError

    def stats(self) -> InvoiceStats:
        raise NotImplementedError

    def invoiced_work_order_ids(self) -> set[int]:
        """Work orders referenced by a live invoice."""

        raise NotImplementedError

    def create(
        self,
        data: InvoiceInput,
        *,
        work_order_id: int,
        bastp_id: Optional[int],
        lines: Sequence[tuple[int, Optional[Decimal]]],
        user_id: int,
    ) -> int:
        """Insert the invoice with one line per (work_details_id, price), atomically."""

        raise NotImplementedError

    def update(self, invoice_id: int, data: InvoiceInput, *, line_prices: dict[int, Optional[Decimal]]) -> bool:
        raise NotImplementedError

    def lines(self, invoice_id: int) -> Sequence[InvoiceLine]:
        raise NotImplementedError

    def soft_delete(self, invoice_id: int) -> bool:
        """Soft-delete the invoice and its lines."""

        raise NotImplementedError
