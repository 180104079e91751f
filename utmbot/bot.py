# utmbot/bot.py
"""Process-wide wiring: one session store, one link builder, one router."""
import logging
from typing import Optional

from utmbot.core.config import SESSION_SHARDS, SESSION_TTL_SECONDS
from utmbot.links.router import EventRouter
from utmbot.links.session_store import InMemorySessionStore
from utmbot.links.state_machine import build_default
from utmbot.services.poller import UpdatePoller
from utmbot.services.telegram_service import get_client

logger = logging.getLogger("utmbot.bot")

store = InMemorySessionStore(shards=SESSION_SHARDS, ttl=SESSION_TTL_SECONDS)
builder = build_default(store)
router = EventRouter(builder, messenger=get_client())

_poller: Optional[UpdatePoller] = None


def start_polling() -> Optional[UpdatePoller]:
    """Start the getUpdates loop; returns None when no bot token is configured."""
    global _poller
    client = get_client()
    if client is None:
        logger.warning("TELEGRAM_BOT_TOKEN not set, bot polling disabled")
        return None
    if _poller is None:
        _poller = UpdatePoller(client, router, store)
    _poller.start()
    return _poller


def stop_polling() -> None:
    if _poller is not None:
        _poller.stop()
