from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
import logging
import os
import time

from db.database import engine, Base

# models を import しておく（create_all / relationship がテーブルを認識するため）
from models.user import User
from models.room import Room
from models.plant import Plant
from models.watering_event import WateringEvent
from models.usage_record import UsageRecord
from models.ai_feedback import AIFeedback

from routers import auth, plants, watering, rooms, usage, ai
from services.errors import (
    AIProviderError,
    NotFoundOrUnauthorized,
    QuotaExceeded,
    StoreUnavailable,
    ValidationError,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("flor")

app = FastAPI(title="Flor API")

STARTED_AT = time.time()

# --- CORS設定（開発用：本番は allow_origins を絞る）---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- ルーター ---
app.include_router(auth.router)
app.include_router(plants.router)
app.include_router(watering.router)
app.include_router(rooms.router)
app.include_router(usage.router)
app.include_router(ai.router)


# --- サービス層エラー → HTTP ---
@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message, "fields": exc.fields})


@app.exception_handler(NotFoundOrUnauthorized)
async def _not_found(request: Request, exc: NotFoundOrUnauthorized):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(QuotaExceeded)
async def _quota_exceeded(request: Request, exc: QuotaExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": exc.message, "kind": exc.kind, "limit": exc.limit, "used": exc.used},
    )


@app.exception_handler(AIProviderError)
async def _ai_provider_error(request: Request, exc: AIProviderError):
    return JSONResponse(status_code=502, content={"detail": exc.message})


@app.exception_handler(StoreUnavailable)
async def _store_unavailable(request: Request, exc: StoreUnavailable):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=503, content={"detail": "Storage backend is unavailable"})


@app.on_event("startup")
def _startup():
    """起動時に1回だけ: DBテーブル作成"""
    Base.metadata.create_all(bind=engine)
    logger.info("tables ready")


# --- コールドスタート対策：超軽量エンドポイント（DBに触らない） ---
@app.get("/ping", include_in_schema=False)
def ping():
    return {
        "ok": True,
        "service": "flor-backend",
        "ts": datetime.now(timezone.utc).isoformat(),
        "uptime_sec": round(time.time() - STARTED_AT, 2),
    }
