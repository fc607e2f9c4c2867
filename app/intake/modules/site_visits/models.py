from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.intake.models import Base


class SiteVisit(Base):
    __tablename__ = "site_visits"
    __table_args__ = (
        Index("idx_site_visits_district", "district"),
        Index("idx_site_visits_status", "status"),
        Index("idx_site_visits_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    customer_id: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    date_received: Mapped[date] = mapped_column(Date, nullable=False)
    day_of_week: Mapped[str] = mapped_column(String(16), nullable=False)

    phone_number: Mapped[str] = mapped_column(Text, nullable=False)
    has_whatsapp: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_whatsapp_number: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    whatsapp_number: Mapped[str | None] = mapped_column(Text, nullable=True)

    district: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    has_removals: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    removal_charge: Mapped[float | None] = mapped_column(Float, nullable=True)
    has_additional_labour: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    additional_labour_charge: Mapped[float | None] = mapped_column(Float, nullable=True)

    service_type: Mapped[str] = mapped_column(String(16), nullable=False)  # Roof | Ceiling | Gutters
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="Pending")
    quotation_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    quotation_attachment: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    ceiling_details = relationship(
        "CeilingDetails",
        back_populates="site_visit",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )
    gutter_details = relationship(
        "GutterDetails",
        back_populates="site_visit",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )
    roof_details = relationship(
        "RoofDetails",
        back_populates="site_visit",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin",
    )
    attachments: Mapped[list["SiteAttachment"]] = relationship(
        "SiteAttachment",
        back_populates="site_visit",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class CeilingDetails(Base):
    __tablename__ = "ceiling_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_visit_id: Mapped[int] = mapped_column(
        ForeignKey("site_visits.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    ceiling_type: Mapped[str] = mapped_column(Text, nullable=False)
    has_macfoil: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    price_per_square_feet: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_area: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    site_visit: Mapped[SiteVisit] = relationship("SiteVisit", back_populates="ceiling_details")
    areas: Mapped[list["CeilingArea"]] = relationship(
        "CeilingArea",
        back_populates="ceiling_details",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CeilingArea.id",
    )


class CeilingArea(Base):
    __tablename__ = "ceiling_areas"
    __table_args__ = (
        Index("idx_ceiling_areas_ceiling_details_id", "ceiling_details_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ceiling_details_id: Mapped[int] = mapped_column(ForeignKey("ceiling_details.id", ondelete="CASCADE"), nullable=False)

    length: Mapped[float] = mapped_column(Float, nullable=False)
    width: Mapped[float] = mapped_column(Float, nullable=False)
    area: Mapped[float] = mapped_column(Float, nullable=False)

    ceiling_details: Mapped[CeilingDetails] = relationship("CeilingDetails", back_populates="areas")


class GutterDetails(Base):
    __tablename__ = "gutter_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_visit_id: Mapped[int] = mapped_column(
        ForeignKey("site_visits.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    gutters_valance_b: Mapped[str | None] = mapped_column(Text, nullable=True)
    b_flashing_valance_b: Mapped[str | None] = mapped_column(Text, nullable=True)
    gutters: Mapped[str | None] = mapped_column(Text, nullable=True)
    valance_b: Mapped[str | None] = mapped_column(Text, nullable=True)
    b_flashing: Mapped[str | None] = mapped_column(Text, nullable=True)
    d_pipes: Mapped[str | None] = mapped_column(Text, nullable=True)
    nozzels: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_caps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    chain_packets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    wall_f_size: Mapped[str | None] = mapped_column(Text, nullable=True)
    wall_f: Mapped[str | None] = mapped_column(Text, nullable=True)
    blind_wall_flashing_size: Mapped[str | None] = mapped_column(Text, nullable=True)
    blind_wall_flashing: Mapped[str | None] = mapped_column(Text, nullable=True)
    ridge_cover: Mapped[str | None] = mapped_column(Text, nullable=True)
    rat_guard: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_design_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    site_visit: Mapped[SiteVisit] = relationship("SiteVisit", back_populates="gutter_details")


class RoofDetails(Base):
    __tablename__ = "roof_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_visit_id: Mapped[int] = mapped_column(
        ForeignKey("site_visits.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    roof_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    structure_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    finish_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    material_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(Text, nullable=True)
    sub_type: Mapped[str | None] = mapped_column(Text, nullable=True)

    site_visit: Mapped[SiteVisit] = relationship("SiteVisit", back_populates="roof_details")


class SiteAttachment(Base):
    __tablename__ = "site_attachments"
    __table_args__ = (
        Index("idx_site_attachments_site_visit_id", "site_visit_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_visit_id: Mapped[int] = mapped_column(ForeignKey("site_visits.id", ondelete="CASCADE"), nullable=False)

    kind: Mapped[str] = mapped_column(String(16), nullable=False)  # image | drawing | video
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    storage_key: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    site_visit: Mapped[SiteVisit] = relationship("SiteVisit", back_populates="attachments")
