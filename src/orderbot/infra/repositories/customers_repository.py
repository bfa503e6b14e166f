"""Customers repository - repeat-customer identity keyed by phone.

Uses raw SQL with psycopg2 (no ORM). Phone numbers are stored normalized
(e.g. "60194419638"), the same form the extractor produces.
"""

from typing import Any

from psycopg2.extensions import cursor as PgCursor

from orderbot.domain.orders import ExtractedOrder
from orderbot.infra.db import fetchone, txn

_CUSTOMER_COLUMNS = ("id", "customer_name", "phone_number", "fb_name", "total_orders", "total_spent")


def find_customer_by_phone(cur: PgCursor, phone: str) -> dict[str, Any] | None:
    """Load one customer row by normalized phone, or None."""
    row = fetchone(
        cur,
        """
        SELECT id, customer_name, phone_number, fb_name, total_orders, total_spent
        FROM customers
        WHERE phone_number = %s
        """,
        (phone,),
    )
    if row is None:
        return None
    return dict(zip(_CUSTOMER_COLUMNS, row))


def upsert_customer(cur: PgCursor, order: ExtractedOrder) -> tuple[str, bool]:
    """Create the customer for an order, or bump its order totals.

    On conflict the longer of the stored and incoming names is kept.

    Returns:
        Tuple of (customer_id, created).
    """
    cur.execute(
        """
        INSERT INTO customers (customer_name, phone_number, fb_name, total_orders, total_spent)
        VALUES (%s, %s, %s, 1, %s)
        ON CONFLICT (phone_number) DO UPDATE
        SET customer_name = CASE
                WHEN length(EXCLUDED.customer_name) > length(customers.customer_name)
                THEN EXCLUDED.customer_name
                ELSE customers.customer_name
            END,
            fb_name = COALESCE(EXCLUDED.fb_name, customers.fb_name),
            total_orders = customers.total_orders + 1,
            total_spent = customers.total_spent + EXCLUDED.total_spent,
            updated_at = now()
        RETURNING id, (xmax = 0) AS created
        """,
        (order.customer_name, order.phone_number, order.group_name, order.total_paid),
    )
    row = cur.fetchone()
    return str(row[0]), bool(row[1])


class PostgresCustomerLookup:
    """CustomerLookup backed by the customers table."""

    def find_by_phone(self, phone: str) -> dict[str, Any] | None:
        if not phone:
            return None
        with txn() as cur:
            return find_customer_by_phone(cur, phone)
