import os
import json
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from utmbot.core.config import TELEGRAM_API_URL, TELEGRAM_BOT_TOKEN
from utmbot.models.events import (
    InboundEvent,
    InboundMessage,
    InboundSelection,
    Outbound,
    OutboundDocument,
    OutboundMessage,
)

logger = logging.getLogger("utmbot.telegram")

# ---------- Tunables ----------
CONNECT_TIMEOUT = float(os.getenv("TELEGRAM_CONNECT_TIMEOUT", "5"))   # seconds
READ_TIMEOUT    = float(os.getenv("TELEGRAM_READ_TIMEOUT", "35"))     # seconds
TOTAL_RETRIES   = int(os.getenv("TELEGRAM_TOTAL_RETRIES", "3"))
BACKOFF_FACTOR  = float(os.getenv("TELEGRAM_BACKOFF", "0.6"))
POOL_MAXSIZE    = int(os.getenv("TELEGRAM_POOL_MAXSIZE", "10"))

_RETRY = Retry(
    total=TOTAL_RETRIES,
    connect=TOTAL_RETRIES,
    read=TOTAL_RETRIES,
    backoff_factor=BACKOFF_FACTOR,
    status_forcelist=(429, 500, 502, 503, 504),
    allowed_methods=("GET", "POST"),
    raise_on_status=False,
)


class MessengerError(RuntimeError):
    """Telegram rejected a call or could not be reached."""

    def __init__(self, message: str, description: str = ""):
        super().__init__(message)
        self.description = description

    @property
    def bad_markup(self) -> bool:
        return "can't parse entities" in self.description.lower()


class TelegramClient:
    """Minimal Bot API client: the calls the bot needs and nothing else."""

    def __init__(self, token: str, api_url: str = TELEGRAM_API_URL, session: Optional[requests.Session] = None):
        if not token:
            raise ValueError("TELEGRAM_BOT_TOKEN is not set")
        self._base = f"{api_url.rstrip('/')}/bot{token}"
        self._session = session or self._make_session()

    @staticmethod
    def _make_session() -> requests.Session:
        s = requests.Session()
        adapter = HTTPAdapter(max_retries=_RETRY, pool_maxsize=POOL_MAXSIZE)
        s.mount("https://", adapter)
        s.mount("http://", adapter)
        return s

    def _call(self, method: str, *, data: Optional[Dict[str, Any]] = None,
              files: Optional[Dict[str, Any]] = None, read_timeout: float = READ_TIMEOUT) -> Any:
        try:
            resp = self._session.post(
                f"{self._base}/{method}",
                data=data,
                files=files,
                timeout=(CONNECT_TIMEOUT, read_timeout),
            )
        except requests.RequestException as e:
            raise MessengerError(f"{method}: {e!r}") from e

        try:
            body = resp.json()
        except ValueError:
            raise MessengerError(f"{method}: HTTP {resp.status_code} non-JSON body: {resp.text[:300]}") from None
        if not body.get("ok"):
            description = body.get("description", "")
            raise MessengerError(f"{method}: HTTP {resp.status_code} {description}", description)
        return body.get("result")

    # ------------ Public API ------------
    def get_updates(self, offset: int = 0, timeout: int = 60) -> List[Dict[str, Any]]:
        data = {
            "offset": offset,
            "timeout": timeout,
            "allowed_updates": json.dumps(["message", "callback_query"]),
        }
        return self._call("getUpdates", data=data, read_timeout=timeout + READ_TIMEOUT) or []

    def answer_callback(self, callback_id: str, text: str = "") -> None:
        self._call("answerCallbackQuery", data={"callback_query_id": callback_id, "text": text})

    def send(self, out: Outbound) -> None:
        if isinstance(out, OutboundDocument):
            self._call(
                "sendDocument",
                data={"chat_id": out.chat_id, "caption": out.caption},
                files={"document": (out.filename, out.content)},
            )
            return

        data: Dict[str, Any] = {"chat_id": out.chat_id, "text": out.text}
        if out.parse_mode:
            data["parse_mode"] = out.parse_mode
        if out.options:
            data["reply_markup"] = json.dumps(inline_keyboard(out))
        try:
            self._call("sendMessage", data=data)
        except MessengerError as e:
            if not out.parse_mode or not e.bad_markup:
                raise
            # markup rejected: retry once with the unformatted variant
            logger.warning("sendMessage with parse_mode=%s rejected chat=%s, retrying plain", out.parse_mode, out.chat_id)
            data.pop("parse_mode", None)
            data["text"] = out.plain_text or out.text
            self._call("sendMessage", data=data)


def inline_keyboard(out: OutboundMessage) -> Dict[str, Any]:
    return {
        "inline_keyboard": [
            [{"text": o.label, "callback_data": o.payload} for o in row]
            for row in out.options
        ]
    }


def parse_update(update: Dict[str, Any]) -> Optional[InboundEvent]:
    """
    Telegram update -> inbound event. Returns None for update kinds the bot
    does not handle (edited messages, channel posts, ...).
    """
    cb = update.get("callback_query")
    if cb:
        msg = cb.get("message") or {}
        chat_id = (msg.get("chat") or {}).get("id") or cb["from"]["id"]
        return InboundSelection(
            user_id=cb["from"]["id"],
            chat_id=chat_id,
            selection_id=str(cb.get("id", "")),
            payload=cb.get("data") or "",
        )

    msg = update.get("message")
    if not msg or "from" not in msg:
        return None
    text = msg.get("text") or ""
    name, args, is_command = None, "", False
    if _is_command(msg, text):
        head, _, args = text.partition(" ")
        name = head[1:].split("@", 1)[0].lower()
        args = args.strip()
        is_command = True
    return InboundMessage(
        user_id=msg["from"]["id"],
        chat_id=msg["chat"]["id"],
        text=text,
        is_command=is_command,
        command_name=name,
        command_args=args,
    )


def _is_command(msg: Dict[str, Any], text: str) -> bool:
    for ent in msg.get("entities") or []:
        if ent.get("type") == "bot_command" and ent.get("offset") == 0:
            return True
    return text.startswith("/") and len(text) > 1 and not text[1].isspace()


_client: Optional[TelegramClient] = None


def get_client() -> Optional[TelegramClient]:
    """Process-wide client, or None when no token is configured."""
    global _client
    if _client is None and TELEGRAM_BOT_TOKEN:
        _client = TelegramClient(TELEGRAM_BOT_TOKEN)
    return _client
