"""Initial schema: pictures and cars.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── pictures ──────────────────────────────────────────────────────
    op.create_table(
        "pictures",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("content_type", sa.String(100), nullable=False),
        sa.Column("data", sa.LargeBinary, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── cars ──────────────────────────────────────────────────────────
    op.create_table(
        "cars",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("make", sa.String(120), nullable=False),
        sa.Column("model", sa.String(120), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum("AVAILABLE", "RESERVED", "SOLD", name="carstatus"),
            default="AVAILABLE",
            nullable=False,
        ),
        sa.Column(
            "picture_id",
            sa.String(32),
            sa.ForeignKey("pictures.id"),
            nullable=False,
        ),
        sa.Column("customer_full_name", sa.String(200), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone_number", sa.String(40), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("year >= 1900", name="ck_cars_year_min"),
        sa.CheckConstraint("price >= 1", name="ck_cars_price_min"),
    )
    op.create_index("idx_cars_status", "cars", ["status"])


def downgrade() -> None:
    op.drop_table("cars")
    op.drop_table("pictures")
    op.execute("DROP TYPE IF EXISTS carstatus")
