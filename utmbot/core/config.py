import os, json
import logging
from typing import List, Optional

logger = logging.getLogger("utmbot.config")

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.dirname(os.path.dirname(BASE_DIR))
DATA_DIR = os.path.join(ROOT_DIR, "data")

# ---- Telegram ---------------------------------------------------------------
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_API_URL = os.getenv("TELEGRAM_API_URL", "https://api.telegram.org")
TELEGRAM_POLL_TIMEOUT = int(os.getenv("TELEGRAM_POLL_TIMEOUT", "60"))  # seconds

# ---- HTTP API ---------------------------------------------------------------
API_PORT = int(os.getenv("API_PORT", "3061"))
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3061,https://www.hayratyardim.org,https://hayratyardim.org",
    ).split(",")
    if o.strip()
]

# ---- Link building ----------------------------------------------------------
UTM_PARAM_PREFIX = os.getenv("UTM_PARAM_PREFIX", "utm_")
SESSION_TTL_SECONDS = float(os.getenv("SESSION_TTL_SECONDS", "0"))  # 0 = never expire
SESSION_SHARDS = int(os.getenv("SESSION_SHARDS", "16"))

# ---- Reports ----------------------------------------------------------------
REPORT_UTC_OFFSET_HOURS = int(os.getenv("REPORT_UTC_OFFSET_HOURS", "3"))  # Europe/Istanbul, no DST

# Option sets shown as buttons at steps 2-3
OPTIONS_PATH = os.getenv("UTM_OPTIONS_PATH", os.path.join(DATA_DIR, "utm_options.json"))

DEFAULT_SOURCE_OPTIONS = ["meta", "google", "tiktok", "linkedin", "sms", "email", "x"]
DEFAULT_MEDIUM_OPTIONS = ["paid_social", "cpc", "display", "paid_search", "sms", "email", "organic_social"]


def _load_options(path: str) -> dict:
    if not os.path.exists(path):
        logger.info("options file not found, using defaults path=%s", path)
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object with 'sources' and 'mediums'")
    return data


_OPTIONS = _load_options(OPTIONS_PATH)
SOURCE_OPTIONS: List[str] = [str(o) for o in _OPTIONS.get("sources") or DEFAULT_SOURCE_OPTIONS]
MEDIUM_OPTIONS: List[str] = [str(o) for o in _OPTIONS.get("mediums") or DEFAULT_MEDIUM_OPTIONS]
SOURCE_ROW_WIDTH = 3
MEDIUM_ROW_WIDTH = 2


def notification_chat_ids(raw: Optional[str] = None) -> List[int]:
    """
    Chat IDs that receive order notifications.
    NOTIFICATION_CHAT_IDS=1026146458,-1001234567890 (legacy: NOTIFICATION_CHAT_ID).
    Unparsable or zero entries are skipped.
    """
    if raw is None:
        raw = os.getenv("NOTIFICATION_CHAT_IDS") or os.getenv("NOTIFICATION_CHAT_ID") or ""
    out: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            chat_id = int(part)
        except ValueError:
            logger.warning("ignoring bad notification chat id %r", part)
            continue
        if chat_id != 0:
            out.append(chat_id)
    return out
