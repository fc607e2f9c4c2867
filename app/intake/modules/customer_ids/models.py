from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.intake.models import Base


class CustomerIdLogEntry(Base):
    """
    One row per customer ID ever issued. Append-only; insertion order (id) is
    the issuance order, so the highest id holds the last issued value.
    """

    __tablename__ = "customer_id_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    source: Mapped[str | None] = mapped_column(Text, nullable=True)  # e.g. "site_visit", "manual"
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
