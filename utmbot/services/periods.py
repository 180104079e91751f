from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from utmbot.core.config import REPORT_UTC_OFFSET_HOURS

DATE_FMT = "%d.%m.%Y"

TURKISH_DAYS = ["Pazartesi", "Salı", "Çarşamba", "Perşembe", "Cuma", "Cumartesi", "Pazar"]
TURKISH_MONTHS = ["Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
                  "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık"]


@dataclass(frozen=True)
class Period:
    """Inclusive [start, end] in naive UTC, as stored in orders.event_time."""
    start: datetime
    end: datetime

    def label(self) -> str:
        return f"{self.start.strftime(DATE_FMT)} - {self.end.strftime(DATE_FMT)}"


def parse_date_range(args: str) -> Optional[Period]:
    """
    "DD.MM.YYYY - DD.MM.YYYY" -> Period (end moved to 23:59:59).
    Returns None for empty or unparsable input.
    """
    args = (args or "").strip()
    if not args:
        return None
    parts = args.split("-")
    if len(parts) != 2:
        return None
    try:
        start = datetime.strptime(parts[0].strip(), DATE_FMT)
        end = datetime.strptime(parts[1].strip(), DATE_FMT)
    except ValueError:
        return None
    return Period(start=start, end=end + timedelta(hours=23, minutes=59, seconds=59))


def local_now(now_utc: Optional[datetime] = None, offset_hours: int = REPORT_UTC_OFFSET_HOURS) -> datetime:
    now_utc = now_utc or datetime.utcnow()
    return now_utc + timedelta(hours=offset_hours)


def today_window(now_utc: Optional[datetime] = None, offset_hours: int = REPORT_UTC_OFFSET_HOURS):
    """[start, end) of the local calendar day, expressed in naive UTC."""
    local = local_now(now_utc, offset_hours)
    start_local = local.replace(hour=0, minute=0, second=0, microsecond=0)
    start_utc = start_local - timedelta(hours=offset_hours)
    return start_utc, start_utc + timedelta(days=1)


def turkish_day_name(d: datetime) -> str:
    return TURKISH_DAYS[d.weekday()]


def turkish_long_date(d: datetime) -> str:
    return f"{d.day:02d} {TURKISH_MONTHS[d.month - 1]} {d.year}"


def rank_emoji(rank: int) -> str:
    return {0: "🥇", 1: "🥈", 2: "🥉"}.get(rank, "▫️")


def medium_emoji(medium: str) -> str:
    return {
        "paid_social": "📱",
        "cpc": "🔍",
        "display": "🖼️",
        "organic_social": "🌿",
        "email": "📧",
        "sms": "💬",
    }.get((medium or "").lower(), "📊")
