"""/export: orders as an .xlsx workbook, built in memory."""
from __future__ import annotations

import logging
from datetime import datetime
from io import BytesIO
from typing import List, Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from sqlalchemy.exc import SQLAlchemyError

from utmbot.core.db import session_scope
from utmbot.models.events import OutboundDocument, OutboundMessage
from utmbot.models.orm import Order
from utmbot.services import report_service as rs
from utmbot.services.periods import Period, local_now, parse_date_range
from utmbot.services.report_messages import DB_ERROR

logger = logging.getLogger("utmbot.export")

ORDERS_SHEET = "Bağışlar"
SUMMARY_SHEET = "Özet"
NO_DATA = "ℹ️ Dışa aktarılacak veri bulunmamaktadır."
BUILD_FAILED = "❌ Excel dosyası oluşturulamadı."

HEADERS = [
    "Sipariş ID", "Tutar", "Para Birimi", "Bağış Kalemleri", "UTM Source", "UTM Medium",
    "UTM Campaign", "UTM Content", "UTM Term", "GAD Source", "GAD Campaign ID",
    "Traffic Channel", "Tarih", "Kayıt Tarihi",
]
WIDTHS = [40, 12, 10, 40, 12, 15, 25, 20, 15, 12, 18, 15, 18, 18]
STAMP_FMT = "%d.%m.%Y %H:%M:%S"

_THIN = Side(style="thin", color="000000")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
_HEADER_FILL = PatternFill(fill_type="solid", start_color="4472C4", end_color="4472C4")


def _column(i: int) -> str:
    # 14 columns, never past Z
    return chr(ord("A") + i)


def items_text(order: Order) -> str:
    return ", ".join(f"{it.get('item_name', '')} (x{int(it.get('quantity') or 0)})" for it in order.items or [])


def _row(o: Order) -> list:
    return [
        o.order_id, o.amount, o.currency, items_text(o),
        o.utm_source or "", o.utm_medium or "", o.utm_campaign or "", o.utm_content or "",
        o.utm_term or "", o.gad_source or "", o.gad_campaignid or "", o.traffic_channel or "",
        o.event_time.strftime(STAMP_FMT) if o.event_time else "",
        o.created_at.strftime(STAMP_FMT) if o.created_at else "",
    ]


def build_workbook(orders: List[Order], period: Optional[Period]) -> bytes:
    wb = Workbook()

    ws = wb.active
    ws.title = ORDERS_SHEET
    ws.append(HEADERS)
    for cell in ws[1]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.border = _BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for o in orders:
        ws.append(_row(o))
        for col, cell in enumerate(ws[ws.max_row], start=1):
            cell.border = _BORDER
            if col == 2:
                cell.number_format = "#,##0.00"
                cell.alignment = Alignment(horizontal="right", vertical="center")
            else:
                cell.alignment = Alignment(vertical="center")

    for i, width in enumerate(WIDTHS):
        ws.column_dimensions[_column(i)].width = width

    grand = sum(o.amount for o in orders)
    summary = wb.create_sheet(title=SUMMARY_SHEET)
    summary["A1"] = "📊 Bağış Raporu Özeti"
    summary.merge_cells("A1:C1")
    summary["A1"].font = Font(bold=True, size=14, color="4472C4")
    summary["A1"].alignment = Alignment(horizontal="center")
    summary["A3"] = f"Tarih Aralığı: {period.label()}" if period else "Dönem: Tüm Zamanlar"
    summary["A5"], summary["B5"] = "Toplam Bağış Sayısı:", len(orders)
    summary["A6"], summary["B6"] = "Toplam Tutar:", f"{grand:.2f} TRY"
    summary["A7"], summary["B7"] = "Ortalama Bağış:", f"{grand / len(orders) if orders else 0:.2f} TRY"
    summary.column_dimensions["A"].width = 25
    summary.column_dimensions["B"].width = 20

    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def export_filename(period: Optional[Period], now_utc: Optional[datetime] = None) -> str:
    if period:
        return f"bagislar_{period.start.strftime('%d-%m-%Y')}_{period.end.strftime('%d-%m-%Y')}.xlsx"
    return f"bagislar_tum_{local_now(now_utc).strftime('%d-%m-%Y')}.xlsx"


def export_orders(chat_id: int, args: str = "") -> Union[OutboundDocument, OutboundMessage]:
    period = parse_date_range(args)
    try:
        with session_scope() as db:
            orders = rs.orders_in_period(db, period)
            if not orders:
                return OutboundMessage(chat_id=chat_id, text=NO_DATA)
            content = build_workbook(orders, period)
            grand = sum(o.amount for o in orders)
            count = len(orders)
    except SQLAlchemyError:
        logger.exception("export query failed")
        return OutboundMessage(chat_id=chat_id, text=DB_ERROR)
    except (OSError, ValueError):
        logger.exception("export workbook failed")
        return OutboundMessage(chat_id=chat_id, text=BUILD_FAILED)

    name = export_filename(period)
    logger.info("export ready chat=%s rows=%d file=%s", chat_id, count, name)
    return OutboundDocument(
        chat_id=chat_id,
        filename=name,
        content=content,
        caption=f"📊 Bağış Raporu\n📁 {count} kayıt\n💰 Toplam: {grand:.2f} TRY",
    )
