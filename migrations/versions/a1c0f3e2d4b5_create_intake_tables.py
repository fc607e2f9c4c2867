"""create site visit intake tables

Revision ID: a1c0f3e2d4b5
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "a1c0f3e2d4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp())


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    def _has_index(table: str, name: str) -> bool:
        try:
            return any(ix.get("name") == name for ix in insp.get_indexes(table))
        except Exception:
            return False

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            _ts("created_at"),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
        )

    if "customer_id_log" not in existing_tables:
        op.create_table(
            "customer_id_log",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(16), nullable=False),
            sa.Column("source", sa.Text(), nullable=True),
            _ts("issued_at"),
            sa.UniqueConstraint("customer_id", name="uq_customer_id_log_customer_id"),
        )

    if "site_visits" not in existing_tables:
        op.create_table(
            "site_visits",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(16), nullable=False),
            sa.Column("customer_name", sa.Text(), nullable=False),
            sa.Column("date_received", sa.Date(), nullable=False),
            sa.Column("day_of_week", sa.String(16), nullable=False),
            sa.Column("phone_number", sa.Text(), nullable=False),
            sa.Column("has_whatsapp", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("has_whatsapp_number", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("whatsapp_number", sa.Text(), nullable=True),
            sa.Column("district", sa.Text(), nullable=False),
            sa.Column("city", sa.Text(), nullable=False),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            sa.Column("has_removals", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("removal_charge", sa.Float(), nullable=True),
            sa.Column("has_additional_labour", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("additional_labour_charge", sa.Float(), nullable=True),
            sa.Column("service_type", sa.String(16), nullable=False),
            sa.Column("status", sa.String(16), nullable=False, server_default="Pending"),
            sa.Column("quotation_number", sa.Text(), nullable=True),
            sa.Column("quotation_attachment", sa.Text(), nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
            sa.UniqueConstraint("customer_id", name="uq_site_visits_customer_id"),
        )
        existing_tables.add("site_visits")

    if "site_visits" in existing_tables:
        insp = inspect(op.get_bind())
        for idx_name, cols in (
            ("idx_site_visits_district", ["district"]),
            ("idx_site_visits_status", ["status"]),
            ("idx_site_visits_created_at", ["created_at"]),
        ):
            if not _has_index("site_visits", idx_name):
                op.create_index(idx_name, "site_visits", cols)

    if "ceiling_details" not in existing_tables:
        op.create_table(
            "ceiling_details",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("site_visit_id", sa.Integer(), nullable=False),
            sa.Column("ceiling_type", sa.Text(), nullable=False),
            sa.Column("has_macfoil", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("price_per_square_feet", sa.Float(), nullable=False, server_default="0"),
            sa.Column("total_area", sa.Float(), nullable=False, server_default="0"),
            sa.Column("total_price", sa.Float(), nullable=False, server_default="0"),
            sa.ForeignKeyConstraint(["site_visit_id"], ["site_visits.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("site_visit_id", name="uq_ceiling_details_site_visit_id"),
        )

    if "ceiling_areas" not in existing_tables:
        op.create_table(
            "ceiling_areas",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("ceiling_details_id", sa.Integer(), nullable=False),
            sa.Column("length", sa.Float(), nullable=False),
            sa.Column("width", sa.Float(), nullable=False),
            sa.Column("area", sa.Float(), nullable=False),
            sa.ForeignKeyConstraint(["ceiling_details_id"], ["ceiling_details.id"], ondelete="CASCADE"),
        )
        op.create_index("idx_ceiling_areas_ceiling_details_id", "ceiling_areas", ["ceiling_details_id"])

    if "gutter_details" not in existing_tables:
        text_cols = (
            "gutters_valance_b",
            "b_flashing_valance_b",
            "gutters",
            "valance_b",
            "b_flashing",
            "d_pipes",
            "wall_f_size",
            "wall_f",
            "blind_wall_flashing_size",
            "blind_wall_flashing",
            "ridge_cover",
            "rat_guard",
            "custom_design_note",
        )
        op.create_table(
            "gutter_details",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("site_visit_id", sa.Integer(), nullable=False),
            *[sa.Column(c, sa.Text(), nullable=True) for c in text_cols],
            sa.Column("nozzels", sa.Integer(), nullable=True),
            sa.Column("end_caps", sa.Integer(), nullable=True),
            sa.Column("chain_packets", sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(["site_visit_id"], ["site_visits.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("site_visit_id", name="uq_gutter_details_site_visit_id"),
        )

    if "roof_details" not in existing_tables:
        op.create_table(
            "roof_details",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("site_visit_id", sa.Integer(), nullable=False),
            *[
                sa.Column(c, sa.Text(), nullable=True)
                for c in ("roof_type", "structure_type", "finish_type", "material_type", "color", "sub_type")
            ],
            sa.ForeignKeyConstraint(["site_visit_id"], ["site_visits.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("site_visit_id", name="uq_roof_details_site_visit_id"),
        )

    if "site_attachments" not in existing_tables:
        op.create_table(
            "site_attachments",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("site_visit_id", sa.Integer(), nullable=False),
            sa.Column("kind", sa.String(16), nullable=False),
            sa.Column("filename", sa.Text(), nullable=False),
            sa.Column("storage_key", sa.Text(), nullable=False),
            sa.Column("content_type", sa.Text(), nullable=True),
            sa.Column("size_bytes", sa.Integer(), nullable=False, server_default="0"),
            _ts("created_at"),
            sa.ForeignKeyConstraint(["site_visit_id"], ["site_visits.id"], ondelete="CASCADE"),
        )
        op.create_index("idx_site_attachments_site_visit_id", "site_attachments", ["site_visit_id"])


def downgrade() -> None:
    op.drop_index("idx_site_attachments_site_visit_id", table_name="site_attachments")
    op.drop_table("site_attachments")
    op.drop_table("roof_details")
    op.drop_table("gutter_details")
    op.drop_index("idx_ceiling_areas_ceiling_details_id", table_name="ceiling_areas")
    op.drop_table("ceiling_areas")
    op.drop_table("ceiling_details")

    op.drop_index("idx_site_visits_created_at", table_name="site_visits")
    op.drop_index("idx_site_visits_status", table_name="site_visits")
    op.drop_index("idx_site_visits_district", table_name="site_visits")
    op.drop_table("site_visits")

    op.drop_table("customer_id_log")
    op.drop_table("audit_events")
