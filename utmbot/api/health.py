from __future__ import annotations

import logging

from fastapi import APIRouter

from utmbot import bot

logger = logging.getLogger("utmbot.api.health")
router = APIRouter()


@router.get("")
def health():
    return {"status": "ok"}


@router.get("/sessions")
def sessions_health():
    count = len(bot.store)
    logger.info("GET /health/sessions active=%d", count)
    return {"ok": True, "sessions": count}
