"""
FastAPI メインアプリケーション
UrbanSetu - 物件ウォッチリストの値下げアラートAPI
"""

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import text
from contextlib import asynccontextmanager
import logging
from datetime import datetime
from dotenv import load_dotenv
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

load_dotenv()

from app.config import settings
from app.database import get_db, engine
from app.rate_limiter import limiter
from app.routers.listing import router as listing_router
from app.routers.notification import router as notification_router
from app.routers.price_drop_alert import router as price_drop_alert_router
from app.routers.watchlist import router as watchlist_router
from app.services.scheduler_service import (
    get_scheduler_status,
    start_scheduler,
    stop_scheduler,
)

# ログ設定
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================
# ライフサイクル管理
# ============================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """アプリケーションの起動・終了処理"""
    logger.info("🚀 UrbanSetu Price Alerts starting...")
    logger.info(f"Database engine: {engine.url}")

    # DB接続テスト
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            logger.info("✅ Database connection test successful")
    except Exception as e:
        logger.error(f"❌ Database connection test failed: {e}")

    if settings.PRICE_DROP_SCHEDULER_ENABLED:
        start_scheduler()

    yield

    stop_scheduler()
    logger.info("👋 UrbanSetu Price Alerts shutting down...")
    engine.dispose()


# ============================================
# FastAPI アプリケーション
# ============================================
app = FastAPI(
    title="UrbanSetu API",
    description="UrbanSetu - 物件ウォッチリストの値下げアラート",
    version=settings.VERSION,
    lifespan=lifespan,
)

# レート制限
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS設定
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    max_age=3600,
)

# ルータ登録
app.include_router(price_drop_alert_router)
app.include_router(watchlist_router)
app.include_router(notification_router)
app.include_router(listing_router)


# ============================================
# 基本エンドポイント
# ============================================
@app.get("/")
async def root():
    """ルートエンドポイント"""
    return {
        "message": "UrbanSetu Price Alerts API",
        "version": settings.VERSION,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "health": "/api/health",
            "db_health": "/api/db/health",
            "trigger_alerts": "/api/price-drop-alerts/trigger-alerts",
        },
    }


@app.get("/api/health")
async def health_check():
    """ヘルスチェックエンドポイント"""
    return {
        "status": "ok",
        "service": "UrbanSetu Price Alerts",
        "scheduler": get_scheduler_status(),
        "timestamp": datetime.now().isoformat(),
    }


@app.get("/api/db/health")
def db_health_check(db: Session = Depends(get_db)):
    """データベース接続確認エンドポイント"""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "connected"}
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return {"status": "error", "message": str(e)}
