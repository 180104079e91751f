# utmbot/models/schemas.py
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------- Order ingestion (/throw-data) ----------
class OrderItem(BaseModel):
    item_id: str = ""
    item_name: str = ""
    quantity: int = 0
    price: float = 0.0


class ThrowDataRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    order_id: str = Field(..., min_length=1, max_length=255)
    amount: float
    currency: str = Field(..., min_length=1, max_length=16)
    items: List[OrderItem] = Field(default_factory=list)
    utm_source: str = ""
    utm_medium: str = ""
    utm_campaign: str = ""
    utm_content: str = ""
    utm_term: str = ""
    gad_source: str = ""
    gad_campaignid: str = ""
    traffic_channel: str = ""
    event_time: datetime

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, v):
        return v or []

    @field_validator("event_time")
    @classmethod
    def _to_naive_utc(cls, v: datetime) -> datetime:
        # stored as naive UTC; timestamps without an offset are taken as UTC
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class ThrowDataResponse(BaseModel):
    success: bool
    message: str
