"""Aggregation queries over stored orders. Rendering lives in report_messages."""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import and_, case, desc, func, or_, select
from sqlalchemy.orm import Session

from utmbot.models.orm import Order
from utmbot.services.periods import Period

logger = logging.getLogger("utmbot.reports")

UNKNOWN = "Bilinmiyor"
GOOGLE_ADS = "Google Ads"
DIRECT = "Doğrudan"


@dataclass
class Bucket:
    label: str
    total: float
    count: int
    avg: float = 0.0


@dataclass
class Totals:
    total: float = 0.0
    count: int = 0

    @property
    def avg(self) -> float:
        return self.total / self.count if self.count else 0.0


def _in_period(stmt, period: Optional[Period]):
    if period is None:
        return stmt
    return stmt.where(Order.event_time >= period.start, Order.event_time <= period.end)


def _in_window(stmt, window: Optional[Tuple[datetime, datetime]]):
    if window is None:
        return stmt
    start, end = window
    return stmt.where(Order.event_time >= start, Order.event_time < end)


def _buckets(rows) -> List[Bucket]:
    out = []
    for r in rows:
        avg = float(r.avg) if "avg" in r._fields and r.avg is not None else 0.0
        out.append(Bucket(label=r.label, total=float(r.total or 0), count=int(r.count or 0), avg=avg))
    return out


def channel_label_expr():
    """utm_source when present, else 'Google Ads' for google traffic, else direct."""
    return case(
        (and_(Order.utm_source.isnot(None), Order.utm_source != ""), Order.utm_source),
        (Order.traffic_channel == "google", GOOGLE_ADS),
        else_=DIRECT,
    )


def channel_label(order: Order) -> str:
    if order.utm_source:
        return order.utm_source
    if order.traffic_channel == "google":
        return GOOGLE_ADS
    return DIRECT


def source_filter(source: str):
    if source == "google":
        return or_(Order.utm_source == "google", Order.traffic_channel == "google")
    return Order.utm_source == source


# ---------- grouped totals ----------
def currency_totals(db: Session, period: Optional[Period] = None) -> List[Bucket]:
    stmt = select(
        Order.currency.label("label"),
        func.sum(Order.amount).label("total"),
        func.count().label("count"),
    ).group_by(Order.currency).order_by(Order.currency)
    return _buckets(db.execute(_in_period(stmt, period)).all())


def _grouped(db: Session, column, period: Optional[Period], *, order_by_avg: bool = False,
             limit: Optional[int] = None) -> List[Bucket]:
    label = func.coalesce(column, UNKNOWN).label("label")
    avg = func.avg(Order.amount).label("avg")
    total = func.sum(Order.amount).label("total")
    stmt = select(label, total, func.count().label("count"), avg).group_by(label)
    stmt = stmt.order_by(desc(avg) if order_by_avg else desc(total))
    if limit:
        stmt = stmt.limit(limit)
    return _buckets(db.execute(_in_period(stmt, period)).all())


def source_totals(db: Session, period: Optional[Period] = None) -> List[Bucket]:
    return _grouped(db, Order.utm_source, period)


def campaign_totals(db: Session, period: Optional[Period] = None, limit: int = 10) -> List[Bucket]:
    return _grouped(db, Order.utm_campaign, period, limit=limit)


def medium_totals(db: Session, period: Optional[Period] = None) -> List[Bucket]:
    return _grouped(db, Order.utm_medium, period)


def source_averages(db: Session, period: Optional[Period] = None) -> List[Bucket]:
    return _grouped(db, Order.utm_source, period, order_by_avg=True)


def campaign_averages(db: Session, period: Optional[Period] = None, limit: int = 5) -> List[Bucket]:
    return _grouped(db, Order.utm_campaign, period, order_by_avg=True, limit=limit)


# ---------- day / window ----------
def window_totals(db: Session, window: Optional[Tuple[datetime, datetime]] = None, where=None) -> Totals:
    stmt = select(func.coalesce(func.sum(Order.amount), 0), func.count())
    if where is not None:
        stmt = stmt.where(where)
    total, count = db.execute(_in_window(stmt, window)).one()
    return Totals(total=float(total or 0), count=int(count or 0))


def channel_totals(db: Session, window: Tuple[datetime, datetime]) -> List[Bucket]:
    label = channel_label_expr().label("label")
    total = func.sum(Order.amount).label("total")
    stmt = select(label, total, func.count().label("count")).group_by(label).order_by(desc(total))
    return _buckets(db.execute(_in_window(stmt, window)).all())


# ---------- order lists ----------
def latest_orders(db: Session, limit: int = 5) -> List[Order]:
    return list(db.scalars(select(Order).order_by(Order.event_time.desc()).limit(limit)))


def orders_in_period(db: Session, period: Optional[Period] = None) -> List[Order]:
    stmt = select(Order).order_by(Order.event_time.desc())
    return list(db.scalars(_in_period(stmt, period)))


def orders_matching_tags(db: Session, source: str = "", medium: str = "", campaign: str = "",
                         limit: int = 50) -> List[Order]:
    """Only the non-empty tags filter; newest first."""
    stmt = select(Order)
    if source:
        stmt = stmt.where(Order.utm_source == source)
    if medium:
        stmt = stmt.where(Order.utm_medium == medium)
    if campaign:
        stmt = stmt.where(Order.utm_campaign == campaign)
    return list(db.scalars(stmt.order_by(Order.event_time.desc()).limit(limit)))


def orders_where(db: Session, where=None, window: Optional[Tuple[datetime, datetime]] = None) -> List[Order]:
    stmt = select(Order)
    if where is not None:
        stmt = stmt.where(where)
    return list(db.scalars(_in_window(stmt, window)))


# ---------- donation items (JSON column, aggregated in Python for portability) ----------
def _item_total(item: dict) -> float:
    return float(item.get("price") or 0) * float(item.get("quantity") or 0)


def item_names(db: Session) -> List[str]:
    names = set()
    for items in db.scalars(select(Order.items)):
        for item in items or []:
            name = item.get("item_name")
            if name:
                names.add(name)
    return sorted(names)


def _matches(name: str, needle: str) -> bool:
    return needle.casefold() in (name or "").casefold()


def item_totals(orders: Iterable[Order], needle: str) -> Totals:
    out = Totals()
    for o in orders:
        for item in o.items or []:
            if _matches(item.get("item_name", ""), needle):
                out.total += _item_total(item)
                out.count += int(item.get("quantity") or 0)
    return out


def item_channel_totals(orders: Iterable[Order], needle: str) -> List[Bucket]:
    acc: "OrderedDict[str, Bucket]" = OrderedDict()
    for o in orders:
        for item in o.items or []:
            if not _matches(item.get("item_name", ""), needle):
                continue
            label = channel_label(o)
            b = acc.setdefault(label, Bucket(label=label, total=0.0, count=0))
            b.total += _item_total(item)
            b.count += int(item.get("quantity") or 0)
    return sorted(acc.values(), key=lambda b: b.total, reverse=True)


def items_breakdown(orders: Iterable[Order]) -> List[Bucket]:
    acc: "OrderedDict[str, Bucket]" = OrderedDict()
    for o in orders:
        for item in o.items or []:
            label = item.get("item_name") or UNKNOWN
            b = acc.setdefault(label, Bucket(label=label, total=0.0, count=0))
            b.total += _item_total(item)
            b.count += int(item.get("quantity") or 0)
    return sorted(acc.values(), key=lambda b: b.total, reverse=True)
