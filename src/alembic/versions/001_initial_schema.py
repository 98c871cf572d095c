"""Initial schema -- users, artworks, ledger records, purchases, triggers.

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-10-25
"""

from alembic import op

from artledger.schema_sql import indexes, tables_art, tables_core, triggers

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _execute_all(statements: list[str]) -> None:
    """Execute a list of SQL statements sequentially."""
    for stmt in statements:
        op.execute(stmt)


def upgrade() -> None:
    _execute_all(tables_core.ALL)
    _execute_all(tables_art.ALL)
    _execute_all(indexes.ALL)
    _execute_all(triggers.FUNCTIONS_ALL)
    _execute_all(triggers.TRIGGERS_ALL)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_artwork_immutable_fields ON artworks;")
    op.execute(
        "DROP TRIGGER IF EXISTS trg_artwork_purchases_immutable ON artwork_purchases;"
    )
    op.execute("DROP TRIGGER IF EXISTS trg_ledger_records_immutable ON ledger_records;")
    op.execute("DROP FUNCTION IF EXISTS check_immutable_artwork_fields();")
    op.execute("DROP FUNCTION IF EXISTS raise_immutable_error();")
    for table in ("artwork_purchases", "ledger_records", "artworks", "users"):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
