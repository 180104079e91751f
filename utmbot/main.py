from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import logging

from utmbot import bot
from utmbot.api import health, orders
from utmbot.core.config import API_PORT, CORS_ORIGINS
from utmbot.core.db import create_all
from utmbot.core.logger import LOG_LEVEL, setup_logging
from utmbot.middleware.request_logger import RequestLoggerMiddleware

# ---- Logging config ---------------------------------------------------------
setup_logging(LOG_LEVEL)
logger = logging.getLogger("utmbot.main")
logger.info("Starting UTM Builder Bot with LOG_LEVEL=%s", LOG_LEVEL)

# ---- FastAPI app ------------------------------------------------------------
app = FastAPI(title="UTM Builder Bot")
app.add_middleware(RequestLoggerMiddleware)

# ---- CORS -------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---- Routers ----------------------------------------------------------------
app.include_router(orders.router,  tags=["Orders"])
app.include_router(health.router,  prefix="/health", tags=["Health"])
app.add_exception_handler(RequestValidationError, orders.validation_error_handler)

logger.info("Routers registered.")


# ---- Startup / shutdown -----------------------------------------------------
@app.on_event("startup")
def _startup() -> None:
    create_all()
    bot.start_polling()
    logger.info("Startup completed. port=%s", API_PORT)


@app.on_event("shutdown")
def _shutdown() -> None:
    bot.stop_polling()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("utmbot.main:app", host="0.0.0.0", port=API_PORT, log_level=LOG_LEVEL.lower())
