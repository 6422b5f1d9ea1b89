"""006: create payout_requests

Revision ID: 006
Revises: 005
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payout_requests (
            id                      BIGSERIAL       PRIMARY KEY,
            user_id                 VARCHAR(64)     NOT NULL,
            amount                  BIGINT          NOT NULL,
            status                  VARCHAR(10)     NOT NULL DEFAULT 'pending',
            admin_note              TEXT,
            transaction_reference   VARCHAR(128),
            reviewed_by             VARCHAR(64),
            reviewed_at             TIMESTAMPTZ,
            ledger_entry_id         BIGINT          REFERENCES ledger_entries (id),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_payout_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_payout_status CHECK (
                status IN ('pending', 'approved', 'paid', 'rejected')
            ),
            CONSTRAINT ck_payout_paid_reference CHECK (
                status <> 'paid' OR transaction_reference IS NOT NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_payout_user ON payout_requests (user_id, id DESC);")
    op.execute("CREATE INDEX idx_payout_status ON payout_requests (status, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_payout_requests_updated_at
            BEFORE UPDATE ON payout_requests
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payout_requests CASCADE;")
