"""Initial schema

Revision ID: 001
Revises:
Create Date: 2025-06-02 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Enrichment cache, one row per listing
    op.create_table(
        "enriched_items",
        sa.Column("item_id", sa.String(40), nullable=False),
        sa.Column("brand", sa.String(200), default=""),
        sa.Column("country_of_origin", sa.String(100), default=""),
        sa.Column("shipping_cost", sa.String(20), default=""),
        sa.Column("shipping_currency", sa.String(3), default=""),
        sa.Column("images_json", sa.Text(), default="[]"),
        sa.Column("resolved_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("item_id"),
    )
    op.create_index("ix_enriched_items_resolved_at", "enriched_items", ["resolved_at"])

    # US tariff rates by country of origin
    op.create_table(
        "tariff_rates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("country", sa.String(100), nullable=False, unique=True),
        sa.Column("rate", sa.Numeric(6, 4), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    # Brand default country of origin
    op.create_table(
        "brand_country_mappings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("brand", sa.String(200), nullable=False, unique=True),
        sa.Column("country", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    # API logs table
    op.create_table(
        "api_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("api_name", sa.String(50), nullable=False),
        sa.Column("endpoint", sa.String(200), default=""),
        sa.Column("method", sa.String(10), default="GET"),
        sa.Column("request_params", sa.Text(), default=""),
        sa.Column("response_status", sa.Integer(), default=0),
        sa.Column("response_size_bytes", sa.Integer(), default=0),
        sa.Column("duration_ms", sa.Integer(), default=0),
        sa.Column("error_message", sa.Text(), default=""),
        sa.Column("success", sa.Boolean(), default=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_api_logs_api_name", "api_logs", ["api_name"])
    op.create_index("ix_api_logs_created_at", "api_logs", ["created_at"])
    op.create_index("ix_api_logs_api_time", "api_logs", ["api_name", "created_at"])


def downgrade() -> None:
    op.drop_table("api_logs")
    op.drop_table("brand_country_mappings")
    op.drop_table("tariff_rates")
    op.drop_table("enriched_items")
