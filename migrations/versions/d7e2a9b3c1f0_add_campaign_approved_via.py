"""add campaigns.approved_via

Revision ID: d7e2a9b3c1f0
Revises: c4a1f0e2b7d3
Create Date: 2026-03-09

Records which path approved a campaign (webhook or redirect) so optimistic
approvals can be told apart from confirmed payments.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision: str = "d7e2a9b3c1f0"
down_revision: Union[str, Sequence[str], None] = "c4a1f0e2b7d3"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _add_column_if_missing(table: str, col: sa.Column) -> None:
    """Add a column only if the table exists and the column is missing."""
    bind = op.get_bind()
    insp = inspect(bind)
    if not insp.has_table(table):
        return
    cols = {c["name"] for c in insp.get_columns(table)}
    if col.name not in cols:
        with op.batch_alter_table(table) as batch_op:
            batch_op.add_column(col)


def upgrade() -> None:
    _add_column_if_missing("campaigns", sa.Column("approved_via", sa.String(32), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("campaigns") as batch_op:
        batch_op.drop_column("approved_via")
