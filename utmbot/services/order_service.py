# utmbot/services/order_service.py
import html
import logging
from datetime import timedelta
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from utmbot.core.config import REPORT_UTC_OFFSET_HOURS, notification_chat_ids
from utmbot.models.events import OutboundMessage
from utmbot.models.orm import Order
from utmbot.models.schemas import ThrowDataRequest
from utmbot.services.telegram_service import MessengerError, TelegramClient, get_client

logger = logging.getLogger("utmbot.orders")

OPTIONAL_FIELDS = (
    "utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term",
    "gad_source", "gad_campaignid", "traffic_channel",
)


def save_order(db: Session, req: ThrowDataRequest) -> Order:
    """Insert one order. Blank optional strings are stored as NULL."""
    fields = {k: (getattr(req, k) or None) for k in OPTIONAL_FIELDS}
    order = Order(
        order_id=req.order_id,
        amount=req.amount,
        currency=req.currency,
        items=[it.model_dump() for it in req.items],
        event_time=req.event_time,
        **fields,
    )
    db.add(order)
    db.flush()
    logger.info("order stored order_id=%s amount=%.2f %s", req.order_id, req.amount, req.currency)
    return order


def _e(value) -> str:
    return html.escape(str(value), quote=False)


def format_order_message(req: ThrowDataRequest, offset_hours: int = REPORT_UTC_OFFSET_HOURS) -> str:
    local = req.event_time + timedelta(hours=offset_hours)
    out = "🛒 <b>Yeni Bağış Bildirimi</b>\n\n"
    out += f"📋 <b>Sipariş ID:</b> <code>{_e(req.order_id)}</code>\n"
    out += f"💰 <b>Tutar:</b> {req.amount:.2f} {_e(req.currency)}\n"
    out += f"📅 <b>Tarih:</b> {local.strftime('%d.%m.%Y %H:%M:%S')}\n\n"

    if req.items:
        out += "📦 <b>Bağış Kalemleri:</b>\n"
        for it in req.items:
            out += f"  • {_e(it.item_name)} (x{it.quantity}) - {it.price:.2f} {_e(req.currency)}\n"
        out += "\n"

    utm = [
        ("Kaynak", req.utm_source),
        ("Ortam", req.utm_medium),
        ("Kampanya", req.utm_campaign),
        ("İçerik", req.utm_content),
        ("Terim", req.utm_term),
    ]
    if any(v for _, v in utm):
        out += "📊 <b>UTM Bilgileri:</b>\n"
        out += "".join(f"  • {label}: {_e(v)}\n" for label, v in utm if v)
        out += "\n"

    gad = [("gad_source", req.gad_source), ("gad_campaignid", req.gad_campaignid)]
    if any(v for _, v in gad):
        out += "🔍 <b>Google Ads Bilgileri:</b>\n"
        out += "".join(f"  • {label}: {_e(v)}\n" for label, v in gad if v)
        out += "\n"

    if req.traffic_channel:
        out += f"📡 <b>Trafik Kanalı:</b> {_e(req.traffic_channel)}\n"
    return out


def notify_order(text: str, chat_ids: Optional[Iterable[int]] = None,
                 client: Optional[TelegramClient] = None) -> List[int]:
    """
    Send the notification to every target. Failures are logged per chat and
    never raised; returns the chat ids that were reached.
    """
    client = client or get_client()
    targets = list(notification_chat_ids() if chat_ids is None else chat_ids)
    if client is None or not targets:
        logger.debug("order notification skipped client=%s targets=%d", client is not None, len(targets))
        return []

    sent: List[int] = []
    for chat_id in targets:
        try:
            client.send(OutboundMessage(chat_id=chat_id, text=text, parse_mode="HTML"))
        except MessengerError as e:
            logger.warning("order notification failed chat=%s err=%s", chat_id, e)
            continue
        sent.append(chat_id)
        logger.info("order notification sent chat=%s", chat_id)
    return sent
