"""Initial schema: reference data, companies, tow trucks, areas, reviews.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── provinces / districts ─────────────────────────────────────────
    op.create_table(
        "provinces",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(100), nullable=False),
    )
    op.create_table(
        "districts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column(
            "province_id",
            sa.Integer,
            sa.ForeignKey("provinces.id"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
    )
    op.create_index("idx_districts_province", "districts", ["province_id"])

    # ── companies ─────────────────────────────────────────────────────
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("company_name", sa.String(200), nullable=False),
        sa.Column("phone_number", sa.String(20), unique=True, nullable=False),
        sa.Column("email", sa.String(100), unique=True, nullable=False),
        sa.Column("province_id", sa.Integer, nullable=False),
        sa.Column("city", sa.String(100), nullable=False, server_default=""),
        sa.Column("district_id", sa.Integer, nullable=False),
        sa.Column("district", sa.String(100), nullable=False, server_default=""),
        sa.Column("full_address", sa.String(500), nullable=False, server_default=""),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("service_city", sa.String(100), nullable=False, server_default=""),
        sa.Column("service_district", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
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
    )
    op.create_index("idx_companies_active", "companies", ["is_active"])
    op.create_index("idx_companies_district", "companies", ["district_id"])
    op.create_index("idx_companies_province", "companies", ["province_id"])

    # ── tow_trucks ────────────────────────────────────────────────────
    op.create_table(
        "tow_trucks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "company_id",
            sa.Integer,
            sa.ForeignKey("companies.id"),
            nullable=False,
        ),
        sa.Column("license_plate", sa.String(20), unique=True, nullable=False),
        sa.Column("driver_name", sa.String(100), nullable=False),
        sa.Column("driver_photo_url", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
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
    )
    op.create_index("idx_tow_trucks_active", "tow_trucks", ["is_active"])
    op.create_index("idx_tow_trucks_company", "tow_trucks", ["company_id"])

    # ── tow_truck_areas ───────────────────────────────────────────────
    op.create_table(
        "tow_truck_areas",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "tow_truck_id",
            sa.Integer,
            sa.ForeignKey("tow_trucks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("province_id", sa.Integer, nullable=False),
        sa.Column("district_id", sa.Integer, nullable=False),
        sa.Column("city", sa.String(100), nullable=False, server_default=""),
        sa.Column("district", sa.String(100), nullable=False, server_default=""),
    )
    op.create_index("idx_tow_truck_areas_truck", "tow_truck_areas", ["tow_truck_id"])
    op.create_index(
        "idx_tow_truck_areas_district", "tow_truck_areas", ["district_id"]
    )
    op.create_index(
        "idx_tow_truck_areas_province", "tow_truck_areas", ["province_id"]
    )

    # ── reviews ───────────────────────────────────────────────────────
    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "tow_truck_id",
            sa.Integer,
            sa.ForeignKey("tow_trucks.id"),
            nullable=False,
        ),
        sa.Column("reviewer_name", sa.String(100), nullable=False),
        sa.Column("reviewer_phone", sa.String(20), nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.String(1000), nullable=True),
        sa.Column("is_approved", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_visible", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )
    op.create_index("idx_reviews_truck", "reviews", ["tow_truck_id"])


def downgrade() -> None:
    op.drop_table("reviews")
    op.drop_table("tow_truck_areas")
    op.drop_table("tow_trucks")
    op.drop_table("companies")
    op.drop_table("districts")
    op.drop_table("provinces")
