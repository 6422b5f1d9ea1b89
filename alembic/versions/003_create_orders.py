"""003: create orders, order_items and order_status_history

Revision ID: 003
Revises: 002
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  VARCHAR(64)     PRIMARY KEY,
            order_number        VARCHAR(8)      NOT NULL,
            group_id            VARCHAR(8)      NOT NULL,
            cart_id             VARCHAR(64),
            buyer_id            VARCHAR(64)     NOT NULL,
            vendor_id           VARCHAR(64),
            order_status        VARCHAR(20)     NOT NULL DEFAULT 'order_received',
            payment_status      VARCHAR(20),
            shipment_status     VARCHAR(20),
            order_type          VARCHAR(10)     NOT NULL,
            subtotal_base       BIGINT          NOT NULL,
            subtotal_sell       BIGINT          NOT NULL,
            shipping_total      BIGINT          NOT NULL,
            packing_total       BIGINT          NOT NULL,
            vat_rate_bps        INT             NOT NULL,
            vat_amount          BIGINT          NOT NULL,
            vendor_vat_rate_bps INT             NOT NULL,
            total_amount        BIGINT          NOT NULL,
            admin_commission    BIGINT          NOT NULL DEFAULT 0,
            currency            VARCHAR(3)      NOT NULL,
            shipping_address    JSONB,
            tracking_number     VARCHAR(64),
            payment_reference   VARCHAR(128),
            version             BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_orders_order_number   UNIQUE (order_number),
            CONSTRAINT ck_orders_order_number   CHECK (order_number ~ '^[0-9]{8}$'),
            CONSTRAINT ck_orders_group_id       CHECK (group_id ~ '^[0-9]{8}$'),
            CONSTRAINT ck_orders_order_status   CHECK (
                order_status IN (
                    'order_received', 'vendor_approved', 'vendor_rejected',
                    'approved', 'rejected', 'cancelled'
                )
            ),
            CONSTRAINT ck_orders_payment_status CHECK (
                payment_status IS NULL
                OR payment_status IN ('pending', 'paid', 'failed', 'refunded')
            ),
            CONSTRAINT ck_orders_shipment_status CHECK (
                shipment_status IS NULL
                OR shipment_status IN ('processing', 'shipped', 'delivered')
            ),
            CONSTRAINT ck_orders_order_type     CHECK (order_type IN ('direct', 'request')),
            CONSTRAINT ck_orders_amounts_gte_0  CHECK (
                subtotal_base >= 0 AND subtotal_sell >= 0 AND shipping_total >= 0
                AND packing_total >= 0 AND vat_amount >= 0 AND total_amount >= 0
                AND admin_commission >= 0
            ),
            CONSTRAINT ck_orders_total CHECK (
                total_amount = subtotal_base + shipping_total + packing_total + vat_amount
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_group ON orders (group_id);")
    op.execute("CREATE INDEX idx_orders_buyer ON orders (buyer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_orders_vendor ON orders (vendor_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_orders_tracking
        ON orders (tracking_number)
        WHERE tracking_number IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE orders IS 'One order per vendor partition of a cart; amounts in minor units';")

    op.execute("""
        CREATE TABLE order_items (
            id              BIGSERIAL       PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders (id) ON DELETE CASCADE,
            product_id      VARCHAR(64)     NOT NULL,
            product_name    VARCHAR(255)    NOT NULL,
            vendor_id       VARCHAR(64),
            quantity        INT             NOT NULL,
            unit_base_price BIGINT          NOT NULL,
            unit_sell_price BIGINT          NOT NULL,
            unit_shipping   BIGINT          NOT NULL,
            unit_packing    BIGINT          NOT NULL,
            CONSTRAINT ck_order_items_quantity CHECK (quantity > 0)
        );
    """)
    op.execute("CREATE INDEX idx_order_items_order ON order_items (order_id);")

    op.execute("""
        CREATE TABLE order_status_history (
            id              BIGSERIAL   PRIMARY KEY,
            order_id        VARCHAR(64) NOT NULL REFERENCES orders (id) ON DELETE CASCADE,
            order_status    VARCHAR(20) NOT NULL,
            payment_status  VARCHAR(20),
            shipment_status VARCHAR(20),
            actor           VARCHAR(64) NOT NULL,
            note            TEXT,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_order_history_order ON order_status_history (order_id, id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_status_history CASCADE;")
    op.execute("DROP TABLE IF EXISTS order_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
