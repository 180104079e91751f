from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from utmbot.core.config import TELEGRAM_POLL_TIMEOUT
from utmbot.links.router import EventRouter
from utmbot.links.session_store import SessionStore
from utmbot.models.events import InboundSelection
from utmbot.services.telegram_service import MessengerError, TelegramClient, parse_update

logger = logging.getLogger("utmbot.poller")

ERROR_BACKOFF = 5.0  # seconds between failed getUpdates calls


class UpdatePoller:
    """Long-polls getUpdates on a daemon thread and feeds the router."""

    def __init__(self, client: TelegramClient, router: EventRouter, store: Optional[SessionStore] = None,
                 timeout: int = TELEGRAM_POLL_TIMEOUT) -> None:
        self.client = client
        self.router = router
        self.store = store
        self.timeout = timeout
        self.offset = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="telegram-poller", daemon=True)
        self._thread.start()
        logger.info("poller started timeout=%ss", self.timeout)

    def stop(self, join_timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(join_timeout)
        logger.info("poller stopped offset=%s", self.offset)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll_once()
            except MessengerError as e:
                logger.warning("getUpdates failed: %s", e)
                self._stop.wait(ERROR_BACKOFF)
            except Exception:
                logger.exception("poll loop crashed, backing off")
                self._stop.wait(ERROR_BACKOFF)

    def poll_once(self) -> int:
        """Fetch one batch, dispatch it, return how many updates were seen."""
        updates = self.client.get_updates(offset=self.offset, timeout=self.timeout)
        for update in updates:
            self.offset = max(self.offset, int(update.get("update_id", 0)) + 1)
            self.process(update)
        if self.store is not None:
            self.store.purge_expired()
        return len(updates)

    def process(self, update: dict) -> None:
        event = parse_update(update)
        if event is None:
            logger.debug("ignored update id=%s", update.get("update_id"))
            return
        if isinstance(event, InboundSelection) and event.selection_id:
            try:
                self.client.answer_callback(event.selection_id)
            except MessengerError as e:
                logger.warning("answerCallbackQuery failed id=%s err=%s", event.selection_id, e)
        t0 = time.perf_counter()
        replies = self.router.handle(event)
        logger.debug("update id=%s handled replies=%d in %.1fms",
                     update.get("update_id"), len(replies), (time.perf_counter() - t0) * 1000)
