from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import QueuePool
import os
from dotenv import load_dotenv

load_dotenv()

from app.config import settings

DATABASE_URL = settings.DATABASE_URL

engine_kwargs = {}

if DATABASE_URL.startswith("sqlite"):
    # SQLiteはローカル開発・テスト用
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    connect_args = {}
    # SSL必須のMySQLではCA証明書を指定する
    ssl_ca_path = os.getenv("SSL_CA_PATH")
    if ssl_ca_path and os.path.exists(ssl_ca_path):
        connect_args = {
            "ssl_ca": ssl_ca_path,
            "ssl_verify_cert": True,
        }
    engine_kwargs.update(
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,
        pool_pre_ping=True,
        connect_args=connect_args,
    )

engine = create_engine(DATABASE_URL, echo=settings.DEBUG, **engine_kwargs)

# セッションファクトリー
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Base Class for ORM models
class Base(DeclarativeBase):
    pass


# 依存性注入用のジェネレータ
def get_db():
    """
    FastAPIの依存性注入で使用するDBセッション

    使用例:
        from sqlalchemy.orm import Session
        from app.database import get_db

        @router.get("/api/watchlist")
        def get_watchlist(db: Session = Depends(get_db)):
            return db.query(PropertyWatchlist).all()
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
