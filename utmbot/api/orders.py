from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from utmbot.core.db import get_db
from utmbot.models.schemas import ThrowDataRequest, ThrowDataResponse
from utmbot.services import order_service

logger = logging.getLogger("utmbot.api.orders")
router = APIRouter()

INVALID_JSON = "Geçersiz JSON formatı"
DB_FAILURE = "Veritabanı hatası"
STORED = "Veri başarıyla kaydedildi ve bildirim gönderildi"


@router.post("/throw-data", response_model=ThrowDataResponse)
def throw_data(req: ThrowDataRequest, background: BackgroundTasks, db: Session = Depends(get_db)):
    logger.info("POST /throw-data order_id=%s amount=%.2f %s", req.order_id, req.amount, req.currency)
    try:
        order_service.save_order(db, req)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("order insert failed order_id=%s", req.order_id)
        return JSONResponse(status_code=500, content={"error": DB_FAILURE})

    # notification is best effort and never delays the response
    background.add_task(order_service.notify_order, order_service.format_order_message(req))
    return ThrowDataResponse(success=True, message=STORED)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or incomplete order bodies answer 400 with a flat error message."""
    logger.warning("invalid body %s %s errors=%s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": INVALID_JSON})
