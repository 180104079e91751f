from datetime import datetime
from io import BytesIO

from openpyxl import load_workbook

from conftest import make_order

from utmbot.services import export_service, report_messages as rm, report_service as rs
from utmbot.services.periods import (
    parse_date_range,
    rank_emoji,
    today_window,
    turkish_day_name,
    turkish_long_date,
)

NOW = datetime(2025, 1, 10, 9, 0, 0)  # 12:00 local, a Friday
SU = {"item_id": "1", "item_name": "Su Kuyusu", "quantity": 2, "price": 50.0}
KURBAN = {"item_id": "2", "item_name": "Kurban Hissesi", "quantity": 1, "price": 300.0}


def _seed(db):
    make_order(db, "A", 100.0, source="meta", medium="paid_social", campaign="ramazan", items=[SU],
               when=datetime(2025, 1, 10, 8, 0))
    make_order(db, "B", 300.0, source="google", medium="cpc", campaign="kurban", items=[KURBAN],
               when=datetime(2025, 1, 10, 7, 0))
    make_order(db, "C", 50.0, channel="google", items=[SU], when=datetime(2025, 1, 9, 22, 0))
    make_order(db, "D", 20.0, when=datetime(2024, 12, 1, 10, 0), currency="USD")


# ---------- periods ----------
def test_parse_date_range():
    p = parse_date_range("01.01.2025 - 31.01.2025")
    assert p.start == datetime(2025, 1, 1)
    assert p.end == datetime(2025, 1, 31, 23, 59, 59)
    assert p.label() == "01.01.2025 - 31.01.2025"
    assert parse_date_range("") is None
    assert parse_date_range("2025-01-01") is None
    assert parse_date_range("32.01.2025 - 01.02.2025") is None


def test_today_window_is_local_day_in_utc():
    start, end = today_window(datetime(2025, 1, 9, 22, 30), offset_hours=3)
    assert start == datetime(2025, 1, 9, 21, 0)
    assert end == datetime(2025, 1, 10, 21, 0)


def test_turkish_names():
    assert turkish_day_name(NOW) == "Cuma"
    assert turkish_long_date(NOW) == "10 Ocak 2025"
    assert [rank_emoji(i) for i in range(4)] == ["🥇", "🥈", "🥉", "▫️"]


# ---------- queries ----------
def test_grouped_totals(db):
    _seed(db)
    by_currency = {b.label: (b.total, b.count) for b in rs.currency_totals(db)}
    assert by_currency == {"TRY": (450.0, 3), "USD": (20.0, 1)}

    sources = rs.source_totals(db)
    assert sources[0].label == "google" and sources[0].total == 300.0
    assert {b.label for b in sources} == {"google", "meta", rs.UNKNOWN}

    period = parse_date_range("10.01.2025 - 10.01.2025")
    assert sum(b.count for b in rs.source_totals(db, period)) == 2


def test_channel_totals_today(db):
    _seed(db)
    rows = {b.label: b.total for b in rs.channel_totals(db, today_window(NOW))}
    # C at 22:00 UTC on the 9th is 01:00 local on the 10th
    assert rows == {"google": 300.0, "meta": 100.0, rs.GOOGLE_ADS: 50.0}


def test_item_aggregation(db):
    _seed(db)
    orders = rs.orders_where(db)
    su = rs.item_totals(orders, "su kuyu")
    assert (su.total, su.count) == (200.0, 4)
    assert rs.item_names(db) == ["Kurban Hissesi", "Su Kuyusu"]
    channels = {b.label: b.total for b in rs.item_channel_totals(orders, "SU")}
    assert channels == {"meta": 100.0, rs.GOOGLE_ADS: 100.0}


# ---------- rendered reports ----------
def test_total_report(db):
    _seed(db)
    text = rm.total(db, "")
    assert "Toplam Bağış Sayısı:</b> 4" in text
    assert "TRY: 450.00 (3 bağış)" in text
    assert rm.total(db, "bogus") == rm.TOTAL_USAGE


def test_sources_report_shares(db):
    _seed(db)
    text = rm.sources(db, "")
    assert "🥇 <b>google</b>" in text
    assert "%63.8" in text  # 300 / 470
    assert "📈 <b>Toplam:</b> 470.00 TRY" in text


def test_empty_reports(db):
    assert "bulunmamaktadır" in rm.sources(db, "")
    assert "Henüz bağış" in rm.latest(db, "")
    assert rm.item(db, "") == "❌ Bağış kalemi bulunamadı."


def test_latest_limit(db):
    _seed(db)
    assert rm.parse_limit("3") == 3
    assert rm.parse_limit("50") == 5
    assert rm.parse_limit("x") == 5
    text = rm.latest(db, "2")
    assert "Son 2 Bağış" in text and "<b>3.</b>" not in text


def test_daily_report(db):
    _seed(db)
    text = rm.daily(db, "", now_utc=NOW)
    assert "10 Ocak 2025, Cuma" in text
    assert "Bağış Sayısı    : <b>3</b>" in text
    assert "Google Ads" in text


def test_analyze_report(db):
    _seed(db)
    assert rm.analyze(db, "") == rm.ANALYZE_HELP
    assert "UTM parametresi bulunamadı" in rm.analyze(db, "https://example.org/")
    text = rm.analyze(db, "https://hayratyardim.org/bagis/?utm_source=google&utm_campaign=kurban")
    assert "Toplam Bağış: 1" in text
    assert "300.00 TRY" in text


def test_item_and_source_reports(db):
    _seed(db)
    text = rm.item(db, "su kuyusu", now_utc=NOW)
    assert "SU KUYUSU" in text and "200.00 TRY" in text
    assert "bulunamadı" in rm.item(db, "yok böyle")

    google = rm.source_analysis(db, "google", now_utc=NOW)
    assert "GOOGLE ADS" in google
    assert "Bağış Sayısı  : <b>2</b>" in google
    assert "Kurban Hissesi" in google


def test_render_wraps_session(db):
    _seed(db)
    assert "Ortalama Bağış Analizi" in rm.render("ortalama", "")


# ---------- export ----------
def test_export_workbook(db):
    _seed(db)
    out = export_service.export_orders(1, "")
    wb = load_workbook(BytesIO(out.content))
    assert wb.sheetnames == ["Bağışlar", "Özet"]
    ws = wb["Bağışlar"]
    assert ws.max_column == 14 and ws.max_row == 5
    assert ws["A2"].value == "A"
    assert ws["D2"].value == "Su Kuyusu (x2)"
    assert ws["B2"].number_format == "#,##0.00"
    assert wb["Özet"]["B5"].value == 4
    assert "4 kayıt" in out.caption


def test_export_filenames_and_empty(db):
    period = parse_date_range("01.01.2025 - 31.01.2025")
    assert export_service.export_filename(period) == "bagislar_01-01-2025_31-01-2025.xlsx"
    assert export_service.export_filename(None, NOW) == "bagislar_tum_10-01-2025.xlsx"
    assert export_service.export_orders(1, "").text == export_service.NO_DATA
