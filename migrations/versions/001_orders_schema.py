"""Customers, orders and order items (SQL-only).

Revision ID: 001_orders_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op


# revision identifiers, used by Alembic.
revision = "001_orders_schema"
down_revision = None
branch_labels = None
depends_on = None


SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS pgcrypto;

CREATE TABLE IF NOT EXISTS customers (
    id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
    customer_name text NOT NULL,
    phone_number text NOT NULL UNIQUE,
    fb_name text,
    total_orders integer NOT NULL DEFAULT 0,
    total_spent numeric(12, 2) NOT NULL DEFAULT 0,
    created_at timestamptz NOT NULL DEFAULT now(),
    updated_at timestamptz NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS orders (
    id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
    message_id text UNIQUE,
    customer_id uuid NOT NULL REFERENCES customers(id),
    order_date date NOT NULL,
    total_paid numeric(12, 2) NOT NULL DEFAULT 0,
    currency text NOT NULL CHECK (currency IN ('MYR', 'SGD')),
    payment_method text,
    is_repeat_customer boolean NOT NULL DEFAULT false,
    remark text NOT NULL DEFAULT '',
    product_code text NOT NULL DEFAULT '',
    address_line text NOT NULL DEFAULT '',
    city text,
    postcode text,
    state text,
    country text NOT NULL DEFAULT 'Malaysia',
    group_name text,
    format text NOT NULL CHECK (format IN ('condensed', 'multiline')),
    created_at timestamptz NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_orders_customer_id ON orders (customer_id);

CREATE TABLE IF NOT EXISTS order_items (
    id bigserial PRIMARY KEY,
    order_id uuid NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
    product_key text NOT NULL,
    quantity integer NOT NULL CHECK (quantity > 0),
    variant text
);

CREATE INDEX IF NOT EXISTS idx_order_items_order_id ON order_items (order_id);
"""


def upgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql(SCHEMA_SQL)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_items")
    op.execute("DROP TABLE IF EXISTS orders")
    op.execute("DROP TABLE IF EXISTS customers")
