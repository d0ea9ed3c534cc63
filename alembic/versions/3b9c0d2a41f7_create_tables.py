"""create tables

Revision ID: 3b9c0d2a41f7
Revises: 
Create Date: 2026-10-18 09:12:40.518302

"""
from typing import Sequence, Union

from alembic import op
from perf360 import models  # noqa: F401
from perf360.database import Base


# revision identifiers, used by Alembic.
revision: str = '3b9c0d2a41f7'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, sessions, org units, feedback, assessments and attendance."""
    bind = op.get_bind()
    Base.metadata.create_all(bind)


def downgrade() -> None:
    """Drop every table."""
    bind = op.get_bind()
    Base.metadata.drop_all(bind)
