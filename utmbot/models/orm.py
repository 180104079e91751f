# utmbot/models/orm.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from utmbot.core.db import Base


# ---------- Orders (donations reported by the website) ----------
class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(16), nullable=False)
    # [{"item_id", "item_name", "quantity", "price"}, ...]
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    utm_source: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    utm_medium: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    utm_campaign: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    utm_content: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    utm_term: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gad_source: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gad_campaignid: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    traffic_channel: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # naive UTC
    event_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_orders_source_event_time", "utm_source", "event_time"),
    )
