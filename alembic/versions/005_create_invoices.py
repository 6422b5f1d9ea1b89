"""005: create invoices and invoice_counters

Revision ID: 005
Revises: 004
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE invoice_counters (
            invoice_type    VARCHAR(20) NOT NULL,
            year            INT         NOT NULL,
            last_number     BIGINT      NOT NULL DEFAULT 0,
            PRIMARY KEY (invoice_type, year)
        );
    """)
    op.execute("""
        CREATE TABLE invoices (
            id              VARCHAR(64)     PRIMARY KEY,
            invoice_number  VARCHAR(20)     NOT NULL,
            invoice_type    VARCHAR(20)     NOT NULL,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders (id),
            group_id        VARCHAR(8)      NOT NULL,
            scope_key       VARCHAR(64)     NOT NULL,
            buyer_id        VARCHAR(64)     NOT NULL,
            vendor_id       VARCHAR(64),
            payment_status  VARCHAR(10)     NOT NULL DEFAULT 'unpaid',
            subtotal        BIGINT          NOT NULL,
            vat_amount      BIGINT          NOT NULL,
            shipping_amount BIGINT          NOT NULL,
            packing_amount  BIGINT          NOT NULL,
            total_amount    BIGINT          NOT NULL,
            currency        VARCHAR(3)      NOT NULL,
            access_token    VARCHAR(64)     NOT NULL,
            comments        TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_invoices_number       UNIQUE (invoice_number),
            CONSTRAINT uq_invoices_scope        UNIQUE (invoice_type, scope_key),
            CONSTRAINT uq_invoices_access_token UNIQUE (access_token),
            CONSTRAINT ck_invoices_type CHECK (
                invoice_type IN ('vendor_to_admin', 'admin_to_customer')
            ),
            CONSTRAINT ck_invoices_payment_status CHECK (payment_status IN ('unpaid', 'paid'))
        );
    """)
    op.execute("CREATE INDEX idx_invoices_order ON invoices (order_id);")
    op.execute("""
        CREATE TRIGGER trg_invoices_updated_at
            BEFORE UPDATE ON invoices
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON COLUMN invoices.scope_key IS "
        "'group_id for customer invoices, order id for vendor invoices';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS invoices CASCADE;")
    op.execute("DROP TABLE IF EXISTS invoice_counters CASCADE;")
