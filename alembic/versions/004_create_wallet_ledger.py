"""004: create wallet_accounts and ledger_entries

Revision ID: 004
Revises: 003
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE wallet_accounts (
            user_id             VARCHAR(64) PRIMARY KEY,
            available_balance   BIGINT      NOT NULL DEFAULT 0,
            locked_balance      BIGINT      NOT NULL DEFAULT 0,
            version             BIGINT      NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallet_available_gte_0 CHECK (available_balance >= 0),
            CONSTRAINT ck_wallet_locked_gte_0    CHECK (locked_balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_wallet_accounts_updated_at
            BEFORE UPDATE ON wallet_accounts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE wallet_accounts IS "
        "'Materialized ledger sums per user; row is locked before every ledger append';"
    )

    op.execute("""
        CREATE TABLE ledger_entries (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            entry_type          VARCHAR(20)     NOT NULL,
            category            VARCHAR(20)     NOT NULL,
            amount              BIGINT          NOT NULL,
            locked              BOOLEAN         NOT NULL,
            idempotency_key     VARCHAR(128)    NOT NULL,
            available_after     BIGINT          NOT NULL,
            locked_after        BIGINT          NOT NULL,
            related_order_id    VARCHAR(64),
            reference_type      VARCHAR(30),
            reference_id        VARCHAR(64),
            source_entry_id     BIGINT          REFERENCES ledger_entries (id),
            description         TEXT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_ledger_idempotency_key UNIQUE (idempotency_key),
            CONSTRAINT ck_ledger_entry_type CHECK (
                entry_type IN (
                    'CREDIT', 'UNLOCK_RELEASE', 'UNLOCK_RECEIPT', 'REVERSAL', 'PAYOUT_DEBIT'
                )
            ),
            CONSTRAINT ck_ledger_category CHECK (
                category IN ('vendor_earning', 'commission', 'payout', 'refund')
            ),
            CONSTRAINT ck_ledger_amount_ne_0     CHECK (amount <> 0),
            CONSTRAINT ck_ledger_available_gte_0 CHECK (available_after >= 0),
            CONSTRAINT ck_ledger_locked_gte_0    CHECK (locked_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_ledger_user_time ON ledger_entries (user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_ledger_order
        ON ledger_entries (related_order_id)
        WHERE related_order_id IS NOT NULL;
    """)
    op.execute("""
        CREATE INDEX idx_ledger_source
        ON ledger_entries (source_entry_id)
        WHERE source_entry_id IS NOT NULL;
    """)
    op.execute(
        "COMMENT ON TABLE ledger_entries IS "
        "'Append-only; never updated or deleted; amounts in minor units';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
    op.execute("DROP TABLE IF EXISTS wallet_accounts CASCADE;")
