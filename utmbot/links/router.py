from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Protocol

from utmbot.links import prompts
from utmbot.links.state_machine import EventKind, LinkBuilder
from utmbot.models.events import (
    InboundEvent,
    InboundMessage,
    InboundSelection,
    Outbound,
    OutboundMessage,
)
from utmbot.services import export_service, report_messages
from utmbot.services.telegram_service import MessengerError

logger = logging.getLogger("utmbot.router")


class Messenger(Protocol):
    def send(self, out: Outbound) -> None: ...


CommandHandler = Callable[["EventRouter", InboundMessage], List[Outbound]]


class EventRouter:
    """
    Turns inbound events into replies and hands them to the messenger.

    ``dispatch`` only computes replies. ``handle`` dispatches and then sends,
    so nothing is sent while a session lock is held.
    """

    def __init__(self, builder: LinkBuilder, messenger: Optional[Messenger] = None) -> None:
        self.builder = builder
        self.messenger = messenger

    # ---------- entry points ----------
    def handle(self, event: InboundEvent) -> List[Outbound]:
        try:
            replies = self.dispatch(event)
        except Exception:
            logger.exception("dispatch failed user=%s", event.user_id)
            return []
        self._send_all(replies)
        return replies

    def dispatch(self, event: InboundEvent) -> List[Outbound]:
        if isinstance(event, InboundSelection):
            return self.builder.handle(event.user_id, event.chat_id, EventKind.SELECTION, event.payload)

        if event.is_command and event.command_name:
            handler = COMMANDS.get(event.command_name)
            logger.info("command /%s user=%s known=%s", event.command_name, event.user_id, handler is not None)
            if handler is None:
                return [OutboundMessage(chat_id=event.chat_id, text=prompts.UNKNOWN_COMMAND)]
            return handler(self, event)

        # free text outside a session is not for us
        if not event.text or not self.builder.has_session(event.user_id):
            return []
        return self.builder.handle(event.user_id, event.chat_id, EventKind.TEXT, event.text)

    def _send_all(self, replies: List[Outbound]) -> None:
        if self.messenger is None:
            return
        for out in replies:
            try:
                self.messenger.send(out)
            except MessengerError as e:
                logger.warning("send failed chat=%s err=%s", out.chat_id, e)
            except Exception:
                logger.exception("send crashed chat=%s", out.chat_id)

    # ---------- commands ----------
    def _start(self, msg: InboundMessage) -> List[Outbound]:
        return [OutboundMessage(chat_id=msg.chat_id, text=prompts.WELCOME, parse_mode="HTML")]

    def _build(self, msg: InboundMessage) -> List[Outbound]:
        return self.builder.start(msg.user_id, msg.chat_id)

    def _cancel(self, msg: InboundMessage) -> List[Outbound]:
        return self.builder.cancel(msg.user_id, msg.chat_id)

    def _myid(self, msg: InboundMessage) -> List[Outbound]:
        return [OutboundMessage(chat_id=msg.chat_id, text=prompts.my_id(msg.chat_id, msg.user_id),
                                parse_mode="Markdown")]

    def _export(self, msg: InboundMessage) -> List[Outbound]:
        return [export_service.export_orders(msg.chat_id, msg.command_args)]

    def _report(self, msg: InboundMessage) -> List[Outbound]:
        text = report_messages.render(msg.command_name, msg.command_args)
        return [OutboundMessage(chat_id=msg.chat_id, text=text, parse_mode="HTML")]


COMMANDS: Dict[str, CommandHandler] = {
    "start": EventRouter._start,
    "build": EventRouter._build,
    "cancel": EventRouter._cancel,
    "myid": EventRouter._myid,
    "export": EventRouter._export,
}
COMMANDS.update({name: EventRouter._report for name in report_messages.REPORTS})
