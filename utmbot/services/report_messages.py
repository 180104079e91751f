"""
Reporting commands rendered as Telegram HTML.

Every public renderer takes an open SQLAlchemy session plus the raw command
arguments and returns the message text. ``render`` is the entry point the
router uses; it owns the session and turns database failures into a reply.
"""
from __future__ import annotations

import html
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from utmbot.core.db import session_scope
from utmbot.services import report_service as rs
from utmbot.services.periods import (
    DATE_FMT,
    local_now,
    medium_emoji,
    parse_date_range,
    rank_emoji,
    today_window,
    turkish_day_name,
    turkish_long_date,
)

logger = logging.getLogger("utmbot.reports")

RULE = "━━━━━━━━━━━━━━━━━━━━━━\n"
DB_ERROR = "❌ Veritabanı sorgu hatası oluştu."
TOTAL_USAGE = (
    "⚠️ Geçersiz tarih formatı.\n\nKullanım:\n/toplam - Tüm bağışlar\n"
    "/toplam DD.MM.YYYY - DD.MM.YYYY - Tarih aralığı"
)
ANALYZE_HELP = """📊 <b>Link Analizi</b>

UTM parametreli bir link gönderin, o linke ait tüm bağışları listeleyelim.

<b>Kullanım:</b>
<code>/analiz https://hayratyardim.org/bagis/su-kuyusu/?utm_source=google&amp;utm_campaign=test</code>

Link içindeki UTM parametreleri (utm_source, utm_medium, utm_campaign) kullanılarak eşleşen bağışlar bulunur."""

SOURCE_TITLES = {
    "google": ("🔍", "GOOGLE ADS"),
    "meta": ("📱", "META (Facebook/Instagram)"),
}


def _e(value) -> str:
    return html.escape(str(value if value is not None else ""), quote=False)


def _period_line(period, label: str = "Tarih") -> str:
    return f"📅 <b>{label}:</b> {period.label()}\n\n" if period else ""


def _share(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


# ---------- /toplam ----------
def total(db: Session, args: str = "") -> str:
    period = parse_date_range(args)
    if args.strip() and period is None:
        return TOTAL_USAGE

    rows = rs.currency_totals(db, period)
    count = sum(r.count for r in rows)
    out = "📊 <b>Bağış Özeti</b>\n\n"
    out += _period_line(period, "Tarih Aralığı") if period else "📅 <b>Dönem:</b> Tüm zamanlar\n\n"
    if not count:
        return out + "ℹ️ Bu dönemde bağış bulunmamaktadır."
    out += f"🛒 <b>Toplam Bağış Sayısı:</b> {count}\n\n"
    out += "💰 <b>Para Birimi Bazında:</b>\n"
    for r in rows:
        out += f"  • {_e(r.label)}: {r.total:.2f} ({r.count} bağış)\n"
    return out


# ---------- /kaynaklar, /ortamlar ----------
def _share_report(title: str, rows: List[rs.Bucket], period, emoji: Callable[[int, str], str]) -> str:
    out = title + "\n\n" + _period_line(period)
    if not rows:
        return out + "ℹ️ Bu dönemde veri bulunmamaktadır."
    grand = sum(r.total for r in rows)
    for i, r in enumerate(rows):
        out += f"{emoji(i, r.label)} <b>{_e(r.label)}</b>\n"
        out += f"   💰 {r.total:.2f} TRY ({r.count} bağış) - %{_share(r.total, grand):.1f}\n\n"
    return out + f"📈 <b>Toplam:</b> {grand:.2f} TRY"


def sources(db: Session, args: str = "") -> str:
    period = parse_date_range(args)
    return _share_report(
        "📊 <b>Kaynak Bazlı Analiz (UTM Source)</b>",
        rs.source_totals(db, period), period,
        lambda i, _label: rank_emoji(i),
    )


def mediums(db: Session, args: str = "") -> str:
    period = parse_date_range(args)
    return _share_report(
        "📡 <b>Reklam Ortamı Analizi (UTM Medium)</b>",
        rs.medium_totals(db, period), period,
        lambda _i, label: medium_emoji(label),
    )


# ---------- /kampanyalar ----------
def campaigns(db: Session, args: str = "") -> str:
    period = parse_date_range(args)
    rows = rs.campaign_totals(db, period, limit=10)
    out = "🎯 <b>Kampanya Performansı (Top 10)</b>\n\n" + _period_line(period)
    if not rows:
        return out + "ℹ️ Bu dönemde kampanya verisi bulunmamaktadır."
    for i, r in enumerate(rows):
        out += f"{rank_emoji(i)} <b>{_e(r.label)}</b>\n"
        out += f"   💰 {r.total:.2f} TRY | 🛒 {r.count} bağış | 📊 Ort: {r.avg:.2f} TRY\n\n"
    return out


# ---------- /son ----------
def parse_limit(args: str, default: int = 5, upper: int = 20) -> int:
    try:
        n = int((args or "").strip())
    except ValueError:
        return default
    return n if 0 < n <= upper else default


def latest(db: Session, args: str = "") -> str:
    limit = parse_limit(args)
    orders = rs.latest_orders(db, limit)
    out = f"🕐 <b>Son {limit} Bağış</b>\n\n"
    if not orders:
        return out + "ℹ️ Henüz bağış bulunmamaktadır."
    for i, o in enumerate(orders, start=1):
        out += f"<b>{i}.</b> 💰 {o.amount:.2f} {_e(o.currency)}\n"
        out += f"   📅 {o.event_time.strftime('%d.%m.%Y %H:%M')}\n"
        if o.utm_source:
            out += f"   📊 {_e(o.utm_source)} / {_e(o.utm_medium)}\n"
        if o.utm_campaign:
            out += f"   🎯 {_e(o.utm_campaign)}\n"
        if o.gad_source:
            out += f"   🔍 Google: {_e(o.gad_source)} / {_e(o.gad_campaignid)}\n"
        if o.traffic_channel:
            out += f"   📡 Kanal: {_e(o.traffic_channel)}\n"
        out += "\n"
    return out


# ---------- /gunluk ----------
def daily(db: Session, args: str = "", now_utc: Optional[datetime] = None) -> str:
    window = today_window(now_utc)
    now = local_now(now_utc)
    stats = rs.window_totals(db, window)

    out = RULE + "☀️ <b>GÜNLÜK RAPOR</b>\n" + RULE + "\n"
    out += f"📅 <b>Tarih:</b> {turkish_long_date(now)}, {turkish_day_name(now)}\n"
    out += f"🕐 <b>Saat:</b> {now.strftime('%H:%M')}\n\n"
    if not stats.count:
        return out + RULE + "ℹ️ Bugün henüz bağış bulunmamaktadır.\n" + RULE

    out += RULE + "💰 <b>GENEL ÖZET</b>\n" + RULE + "\n"
    out += f"   🛒 Bağış Sayısı    : <b>{stats.count}</b>\n"
    out += f"   💵 Toplam Tutar    : <b>{stats.total:.2f} TRY</b>\n"
    out += f"   📊 Ortalama        : <b>{stats.avg:.2f} TRY</b>\n\n"

    channels = rs.channel_totals(db, window)
    if channels:
        out += RULE + "📡 <b>KAYNAK DAĞILIMI</b>\n" + RULE + "\n"
        for i, c in enumerate(channels):
            out += f"{rank_emoji(i)} <b>{_e(c.label)}</b>\n"
            out += f"   └ {c.total:.2f} TRY | {c.count} bağış | %{_share(c.total, stats.total):.1f}\n\n"
    return out + RULE


# ---------- /ortalama ----------
def averages(db: Session, args: str = "") -> str:
    period = parse_date_range(args)
    by_source = rs.source_averages(db, period)
    out = "📊 <b>Ortalama Bağış Analizi</b>\n\n" + _period_line(period)
    if not by_source:
        return out + "ℹ️ Bu dönemde veri bulunmamaktadır."
    out += "<b>🎯 Kaynak Bazlı Ortalama:</b>\n"
    out += "<i>(Hangi kaynak daha kaliteli bağışçı getiriyor?)</i>\n\n"
    for s in by_source:
        out += f"• <b>{_e(s.label)}</b>\n"
        out += f"  Ort: {s.avg:.2f} TRY | {s.count} bağış | Toplam: {s.total:.2f} TRY\n\n"
    by_campaign = rs.campaign_averages(db, period, limit=5)
    if by_campaign:
        out += "\n<b>🏆 En Yüksek Ortalama Kampanyalar (Top 5):</b>\n\n"
        for i, c in enumerate(by_campaign):
            out += f"{rank_emoji(i)} <b>{_e(c.label)}</b>\n"
            out += f"   Ort: {c.avg:.2f} TRY ({c.count} bağış)\n\n"
    return out


# ---------- /analiz ----------
def analyze(db: Session, args: str = "") -> str:
    args = (args or "").strip()
    if not args:
        return ANALYZE_HELP
    try:
        query = parse_qs(urlsplit(args).query)
    except ValueError:
        return "❌ Geçersiz URL formatı."

    def first(key: str) -> str:
        return (query.get(key) or [""])[0]

    source, medium, campaign = first("utm_source"), first("utm_medium"), first("utm_campaign")
    if not (source or medium or campaign):
        return "⚠️ Bu linkte UTM parametresi bulunamadı.\n\nÖrnek: ?utm_source=google&amp;utm_campaign=test"

    orders = rs.orders_matching_tags(db, source, medium, campaign, limit=50)
    out = "🔍 <b>Link Analizi Sonuçları</b>\n\n<b>🎯 Arama Kriterleri:</b>\n"
    for key, value in (("utm_source", source), ("utm_medium", medium), ("utm_campaign", campaign)):
        if value:
            out += f"  • {key}: <code>{_e(value)}</code>\n"
    out += "\n"
    if not orders:
        return out + "ℹ️ Bu kriterlere uyan bağış bulunamadı."

    grand = sum(o.amount for o in orders)
    out += "📈 <b>Özet:</b>\n"
    out += f"  • Toplam Bağış: {len(orders)}\n"
    out += f"  • Toplam Tutar: {grand:.2f} TRY\n"
    out += f"  • Ortalama: {grand / len(orders):.2f} TRY\n\n"
    shown = orders[:10]
    out += f"🕐 <b>Son {len(shown)} Bağış:</b>\n"
    for i, o in enumerate(shown, start=1):
        out += f"{i}. {o.amount:.2f} {_e(o.currency)} - {o.event_time.strftime('%d.%m.%Y %H:%M')}\n"
    if len(orders) > 10:
        out += f"\n<i>...ve {len(orders) - 10} bağış daha</i>"
    return out


# ---------- /kalem ----------
def _channel_lines(rows: List[rs.Bucket], whole: float) -> str:
    if not rows:
        return ""
    out = "   <b>Kaynak Dağılımı:</b>\n"
    for r in rows:
        out += f"   • {_e(r.label)}: {r.total:.2f} TRY ({r.count}) %{_share(r.total, whole):.1f}\n"
    return out


def item(db: Session, args: str = "", now_utc: Optional[datetime] = None) -> str:
    name = (args or "").strip()
    if not name:
        names = rs.item_names(db)
        if not names:
            return "❌ Bağış kalemi bulunamadı."
        out = "📦 <b>Mevcut Bağış Kalemleri</b>\n\n"
        out += "Detay görmek için:\n<code>/kalem [kalem adı]</code>\n\n<b>Kalemler:</b>\n"
        return out + "".join(f"  • {_e(n)}\n" for n in names)

    window = today_window(now_utc)
    now = local_now(now_utc)
    everything = rs.orders_where(db)
    all_time = rs.item_totals(everything, name)
    if not all_time.count and not all_time.total:
        return f"❌ <b>{_e(name)}</b> adında bağış kalemi bulunamadı."
    todays = rs.orders_where(db, window=window)
    today = rs.item_totals(todays, name)

    out = RULE + f"📦 <b>{_e(name.upper())}</b>\n" + RULE + "\n"
    out += "📊 <b>TÜM ZAMANLAR</b>\n" + RULE + "\n"
    out += f"   💵 Toplam Tutar : <b>{all_time.total:.2f} TRY</b>\n"
    out += f"   📦 Toplam Adet  : <b>{all_time.count}</b>\n\n"
    out += _channel_lines(rs.item_channel_totals(everything, name), all_time.total)
    out += "\n"
    out += f"☀️ <b>BUGÜN</b> ({now.strftime(DATE_FMT)}, {turkish_day_name(now)})\n" + RULE + "\n"
    if not today.count and not today.total:
        out += "   ℹ️ Bugün bu kalemden bağış yok.\n"
    else:
        out += f"   💵 Toplam Tutar : <b>{today.total:.2f} TRY</b>\n"
        out += f"   📦 Toplam Adet  : <b>{today.count}</b>\n\n"
        out += _channel_lines(rs.item_channel_totals(todays, name), today.total)
    return out + "\n" + RULE


# ---------- /google, /meta ----------
def _source_block(stats: rs.Totals, orders, empty: str) -> str:
    if not stats.count:
        return f"   ℹ️ {empty}\n"
    out = f"   💵 Toplam Gelir  : <b>{stats.total:.2f} TRY</b>\n"
    out += f"   🛒 Bağış Sayısı  : <b>{stats.count}</b>\n"
    out += f"   📊 Ortalama      : <b>{stats.avg:.2f} TRY</b>\n\n"
    items = rs.items_breakdown(orders)
    if items:
        out += "   <b>📦 Bağış Kalemleri:</b>\n"
        for it in items:
            out += f"   • {_e(it.label)}\n     └ {it.total:.2f} TRY | {it.count} adet\n"
    return out


def source_analysis(db: Session, source: str, now_utc: Optional[datetime] = None) -> str:
    emoji, title = SOURCE_TITLES.get(source, ("📊", source.upper()))
    where = rs.source_filter(source)
    window = today_window(now_utc)
    now = local_now(now_utc)

    out = RULE + f"{emoji} <b>{_e(title)}</b>\n" + RULE + "\n"
    out += "📊 <b>TÜM ZAMANLAR</b>\n" + RULE + "\n"
    out += _source_block(rs.window_totals(db, where=where), rs.orders_where(db, where),
                         "Bu kaynaktan bağış bulunmuyor.\n")
    out += "\n"
    out += f"☀️ <b>BUGÜN</b> ({now.strftime(DATE_FMT)}, {turkish_day_name(now)})\n" + RULE + "\n"
    out += _source_block(rs.window_totals(db, window, where), rs.orders_where(db, where, window),
                         "Bugün bu kaynaktan bağış yok.")
    return out + "\n" + RULE


def google(db: Session, args: str = "") -> str:
    return source_analysis(db, "google")


def meta(db: Session, args: str = "") -> str:
    return source_analysis(db, "meta")


REPORTS: Dict[str, Callable[[Session, str], str]] = {
    "toplam": total,
    "kaynaklar": sources,
    "kampanyalar": campaigns,
    "ortamlar": mediums,
    "son": latest,
    "gunluk": daily,
    "ortalama": averages,
    "analiz": analyze,
    "kalem": item,
    "google": google,
    "meta": meta,
}


def render(command: str, args: str = "") -> str:
    """Run one reporting command in its own DB session."""
    fn = REPORTS[command]
    try:
        with session_scope() as db:
            return fn(db, args)
    except SQLAlchemyError:
        logger.exception("report /%s failed", command)
        return DB_ERROR
