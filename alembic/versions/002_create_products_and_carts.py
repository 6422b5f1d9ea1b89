"""002: create products, carts and cart_items

Revision ID: 002
Revises: 001
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE products (
            id                  VARCHAR(64)     PRIMARY KEY,
            vendor_id           VARCHAR(64),
            category_id         VARCHAR(64)     REFERENCES categories (id),
            name                VARCHAR(255)    NOT NULL,
            base_price          BIGINT          NOT NULL,
            sell_price          BIGINT          NOT NULL,
            shipping_charge     BIGINT          NOT NULL DEFAULT 0,
            packing_charge      BIGINT          NOT NULL DEFAULT 0,
            is_published        BOOLEAN         NOT NULL DEFAULT FALSE,
            approval_status     VARCHAR(20)     NOT NULL DEFAULT 'pending',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_products_prices_gte_0 CHECK (
                base_price >= 0 AND sell_price >= 0
                AND shipping_charge >= 0 AND packing_charge >= 0
            ),
            CONSTRAINT ck_products_approval CHECK (
                approval_status IN ('pending', 'approved', 'rejected')
            )
        );
    """)
    op.execute("CREATE INDEX idx_products_vendor ON products (vendor_id);")
    op.execute("""
        CREATE TRIGGER trg_products_updated_at
            BEFORE UPDATE ON products
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON COLUMN products.vendor_id IS 'NULL = platform-owned product';")

    op.execute("""
        CREATE TABLE carts (
            id                  VARCHAR(64) PRIMARY KEY,
            user_id             VARCHAR(64) NOT NULL,
            status              VARCHAR(20) NOT NULL DEFAULT 'active',
            converted_group_id  VARCHAR(8),
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_carts_status CHECK (status IN ('active', 'converted')),
            CONSTRAINT ck_carts_converted_group CHECK (
                (status = 'converted') = (converted_group_id IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_carts_user ON carts (user_id, status);")
    op.execute("""
        CREATE TRIGGER trg_carts_updated_at
            BEFORE UPDATE ON carts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE cart_items (
            id          BIGSERIAL   PRIMARY KEY,
            cart_id     VARCHAR(64) NOT NULL REFERENCES carts (id) ON DELETE CASCADE,
            product_id  VARCHAR(64) NOT NULL REFERENCES products (id),
            quantity    INT         NOT NULL,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_cart_items_quantity CHECK (quantity > 0)
        );
    """)
    op.execute("CREATE INDEX idx_cart_items_cart ON cart_items (cart_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS cart_items CASCADE;")
    op.execute("DROP TABLE IF EXISTS carts CASCADE;")
    op.execute("DROP TABLE IF EXISTS products CASCADE;")
