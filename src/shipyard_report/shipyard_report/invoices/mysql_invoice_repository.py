from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_decimal, where_sql
from .model import InvoiceDetails, InvoiceInput, InvoiceLine, InvoiceStats
from .repository import InvoiceRepository

_FROM = """
    FROM invoice_details inv
    JOIN work_order wo ON wo.id = inv.work_order_id
    LEFT JOIN vessel v ON v.id = wo.vessel_id
"""

_SELECT = f"""
    SELECT
        inv.id, inv.work_order_id, inv.bastp_id, inv.invoice_number, inv.faktur_number,
        inv.wo_document_collection_date, inv.due_date, inv.delivery_date, inv.collection_date,
        inv.receiver_name, inv.payment_price, inv.payment_status, inv.payment_date, inv.remarks,
        inv.user_id, inv.created_at,
        wo.shipyard_wo_number, wo.customer_wo_number, v.name AS vessel_name, v.company AS vessel_company
    {_FROM}
"""


def _to_invoice(r: dict) -> InvoiceDetails:
    return InvoiceDetails(
        id=int(r["id"]),
        work_order_id=int(r["work_order_id"]),
        bastp_id=int(r["bastp_id"]) if r.get("bastp_id") is not None else None,
        invoice_number=r.get("invoice_number"),
        faktur_number=r.get("faktur_number"),
        wo_document_collection_date=r.get("wo_document_collection_date"),
        due_date=r.get("due_date"),
        delivery_date=r.get("delivery_date"),
        collection_date=r.get("collection_date"),
        receiver_name=r.get("receiver_name"),
        payment_price=to_decimal(r.get("payment_price")),
        payment_status=bool(r.get("payment_status")),
        payment_date=r.get("payment_date"),
        remarks=r.get("remarks"),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        created_at=r.get("created_at"),
        shipyard_wo_number=r.get("shipyard_wo_number"),
        customer_wo_number=r.get("customer_wo_number"),
        vessel_name=r.get("vessel_name"),
        vessel_company=r.get("vessel_company"),
    )


def _params(data: InvoiceInput) -> tuple:
    return (
        data.invoice_number,
        data.faktur_number,
        data.wo_document_collection_date,
        data.due_date,
        data.delivery_date,
        data.collection_date,
        data.receiver_name,
        data.payment_price,
        1 if data.payment_status else 0,
        data.payment_date,
        data.remarks,
    )


class MySQLInvoiceRepository(InvoiceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, invoice_id: int) -> Optional[InvoiceDetails]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE inv.id=%s AND inv.deleted_at IS NULL", (int(invoice_id),))
            row = fetchone(cur)
            return _to_invoice(row) if row else None

    def search(
        self,
        *,
        search: Optional[str] = None,
        paid: Optional[bool] = None,
        vessel_ids: Optional[Sequence[int]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[Sequence[InvoiceDetails], int]:
        clauses = ["inv.deleted_at IS NULL"]
        params: list[object] = []
        if search:
            like = f"%{search}%"
            clauses.append(
                "(inv.invoice_number LIKE %s OR inv.faktur_number LIKE %s OR wo.shipyard_wo_number LIKE %s"
                " OR wo.customer_wo_number LIKE %s OR v.name LIKE %s OR v.company LIKE %s)"
            )
            params.extend([like] * 6)
        if paid is not None:
            clauses.append("inv.payment_status=%s")
            params.append(1 if paid else 0)
        if vessel_ids is not None:
            sql, ids = in_clause("wo.vessel_id", [int(v) for v in vessel_ids])
            clauses.append(sql)
            params.extend(ids)
        where = where_sql(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n {_FROM} WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {"n": 0})["n"])
            sql = f"{_SELECT} WHERE {where} ORDER BY inv.created_at DESC, inv.id DESC"
            page_params = list(params)
            if limit is not None:
                sql += " LIMIT %s OFFSET %s"
                page_params.extend([int(limit), int(offset)])
            cur.execute(sql, tuple(page_params))
            return [_to_invoice(r) for r in fetchall(cur)], total

    def stats(self) -> InvoiceStats:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total, COALESCE(SUM(payment_status = 1), 0) AS paid
                FROM invoice_details
                WHERE deleted_at IS NULL
                """
            )
            r = fetchone(cur) or {"total": 0, "paid": 0}
            total = int(r["total"] or 0)
            paid = int(r["paid"] or 0)
            return InvoiceStats(total=total, paid=paid, unpaid=total - paid)

    def invoiced_work_order_ids(self) -> set[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT DISTINCT work_order_id FROM invoice_details WHERE deleted_at IS NULL")
            return {int(r["work_order_id"]) for r in fetchall(cur)}

    def create(
        self,
        data: InvoiceInput,
        *,
        work_order_id: int,
        bastp_id: Optional[int],
        lines: Sequence[tuple[int, Optional[Decimal]]],
        user_id: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO invoice_details(
                    invoice_number, faktur_number, wo_document_collection_date, due_date,
                    delivery_date, collection_date, receiver_name, payment_price, payment_status,
                    payment_date, remarks, work_order_id, bastp_id, user_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _params(data) + (int(work_order_id), bastp_id, int(user_id)),
            )
            invoice_id = int(cur.lastrowid)
            for work_details_id, price in lines:
                cur.execute(
                    """
                    INSERT INTO invoice_work_details(invoice_details_id, work_details_id, payment_price)
                    VALUES(%s,%s,%s)
                    """,
                    (invoice_id, int(work_details_id), price),
                )
            return invoice_id

    def update(self, invoice_id: int, data: InvoiceInput, *, line_prices: dict[int, Optional[Decimal]]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE invoice_details
                SET invoice_number=%s, faktur_number=%s, wo_document_collection_date=%s, due_date=%s,
                    delivery_date=%s, collection_date=%s, receiver_name=%s, payment_price=%s,
                    payment_status=%s, payment_date=%s, remarks=%s
                WHERE id=%s AND deleted_at IS NULL
                """,
                _params(data) + (int(invoice_id),),
            )
            if cur.rowcount <= 0:
                return False
            for work_details_id, price in line_prices.items():
                cur.execute(
                    """
                    UPDATE invoice_work_details SET payment_price=%s
                    WHERE invoice_details_id=%s AND work_details_id=%s AND deleted_at IS NULL
                    """,
                    (price, int(invoice_id), int(work_details_id)),
                )
            return True

    def lines(self, invoice_id: int) -> Sequence[InvoiceLine]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT iwd.id, iwd.invoice_details_id, iwd.work_details_id, iwd.payment_price,
                       wd.description, wd.location, wd.work_type, wd.quantity, wd.uom
                FROM invoice_work_details iwd
                JOIN work_details wd ON wd.id = iwd.work_details_id
                WHERE iwd.invoice_details_id=%s AND iwd.deleted_at IS NULL
                ORDER BY iwd.id
                """,
                (int(invoice_id),),
            )
            return [
                InvoiceLine(
                    id=int(r["id"]),
                    invoice_details_id=int(r["invoice_details_id"]),
                    work_details_id=int(r["work_details_id"]),
                    payment_price=to_decimal(r.get("payment_price")),
                    description=r.get("description"),
                    location=r.get("location"),
                    work_type=r.get("work_type"),
                    quantity=to_decimal(r.get("quantity")),
                    uom=r.get("uom"),
                )
                for r in fetchall(cur)
            ]

    def soft_delete(self, invoice_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE invoice_details SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(invoice_id),),
            )
            deleted = cur.rowcount > 0
            cur.execute(
                "UPDATE invoice_work_details SET deleted_at=NOW() WHERE invoice_details_id=%s AND deleted_at IS NULL",
                (int(invoice_id),),
            )
            return deleted
