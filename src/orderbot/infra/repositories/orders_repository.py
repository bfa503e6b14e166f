"""Orders repository - persist extracted orders and their line items.

Uses raw SQL with psycopg2 (no ORM). One WhatsApp message produces at
most one order: message_id is unique, so webhook redeliveries are no-ops.
"""

from psycopg2.extensions import cursor as PgCursor

from orderbot.domain.orders import ExtractedOrder
from orderbot.infra.db import fetchone, txn
from orderbot.infra.repositories.customers_repository import upsert_customer


def order_exists(cur: PgCursor, message_id: str | None) -> bool:
    if not message_id:
        return False
    return fetchone(cur, "SELECT 1 FROM orders WHERE message_id = %s", (message_id,)) is not None


def insert_order(cur: PgCursor, order: ExtractedOrder, *, customer_id: str) -> str | None:
    """Insert the order row.

    Returns:
        New order id, or None when the message was already stored.
    """
    address = order.address
    cur.execute(
        """
        INSERT INTO orders (
            message_id, customer_id, order_date, total_paid, currency,
            payment_method, is_repeat_customer, remark, product_code,
            address_line, city, postcode, state, country, group_name, format
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (message_id) DO NOTHING
        RETURNING id
        """,
        (
            order.message_id,
            customer_id,
            order.order_date,
            order.total_paid,
            order.currency,
            order.payment_method.value if order.payment_method else None,
            order.is_repeat_customer,
            order.remark,
            order.product_code,
            address.line,
            address.city,
            address.postcode,
            address.state,
            address.country,
            order.group_name,
            order.format.value,
        ),
    )
    row = cur.fetchone()
    return str(row[0]) if row else None


def insert_order_items(cur: PgCursor, order_id: str, order: ExtractedOrder) -> int:
    """Insert one row per line item. Returns the number of rows written."""
    for item in order.line_items:
        cur.execute(
            """
            INSERT INTO order_items (order_id, product_key, quantity, variant)
            VALUES (%s, %s, %s, %s)
            """,
            (order_id, item.product_key.value, item.quantity, item.variant),
        )
    return len(order.line_items)


class PostgresOrderSink:
    """OrderSink writing customer, order and items in one transaction."""

    def save_order(self, order: ExtractedOrder) -> bool:
        """Returns False when the message was already stored (webhook redelivery)."""
        with txn() as cur:
            if order_exists(cur, order.message_id):
                return False
            customer_id, _created = upsert_customer(cur, order)
            order_id = insert_order(cur, order, customer_id=customer_id)
            if order_id is None:
                return False
            insert_order_items(cur, order_id, order)
        return True
