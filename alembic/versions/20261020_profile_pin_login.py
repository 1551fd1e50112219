"""add pin hash to profiles for pin sign-in

Revision ID: 20261020_profile_pin_login
Revises: 20261019_production_workflow
Create Date: 2026-10-20
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261020_profile_pin_login"
down_revision = "20261019_production_workflow"
branch_labels = None
depends_on = None


def upgrade():
    op.add_column("profiles", sa.Column("pin_hash", sa.String(length=255), nullable=True))


def downgrade():
    op.drop_column("profiles", "pin_hash")
