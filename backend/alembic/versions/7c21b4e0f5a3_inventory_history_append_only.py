"""inventory_history append-only trigger

Revision ID: 7c21b4e0f5a3
Revises: 3a8f1c2d9e47
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7c21b4e0f5a3"
down_revision: Union[str, Sequence[str], None] = "3a8f1c2d9e47"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLE_NAME = "inventory_history"
FUNCTION_NAME = "inventory_history_append_only"
TRIGGER_NAME = "trg_inventory_history_append_only"


def upgrade() -> None:
    # Postgres uniquement ; ailleurs la garde ORM (backend.app.db.audit) suffit
    if op.get_bind().dialect.name != "postgresql":
        return

    op.execute(
        f"""
        CREATE OR REPLACE FUNCTION {FUNCTION_NAME}() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION '{TABLE_NAME} is append-only (% refused)', TG_OP;
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    # Idempotent
    op.execute(
        f"""
        DO $$
        BEGIN
            IF NOT EXISTS (
                SELECT 1 FROM pg_trigger WHERE tgname = '{TRIGGER_NAME}'
            ) THEN
                CREATE TRIGGER {TRIGGER_NAME}
                BEFORE UPDATE OR DELETE ON {TABLE_NAME}
                FOR EACH ROW EXECUTE FUNCTION {FUNCTION_NAME}();
            END IF;
        END $$;
        """
    )


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute(f"DROP TRIGGER IF EXISTS {TRIGGER_NAME} ON {TABLE_NAME};")
    op.execute(f"DROP FUNCTION IF EXISTS {FUNCTION_NAME}();")
