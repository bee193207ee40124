"""Application configuration"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "UrbanSetu"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # database
    DATABASE_URL: str

    # JWT
    SECRET_KEY: str = "your-secret-key-change-in-production"

    # Email (Resend)
    RESEND_API_KEY: str = ""
    RESEND_FROM_EMAIL: str = "UrbanSetu <alerts@urbansetu.com>"

    # Frontend
    FRONTEND_URL: str = "http://localhost:5173"
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # 値下げアラートの定期実行
    PRICE_DROP_SCHEDULER_ENABLED: bool = False
    PRICE_DROP_CHECK_HOUR: int = 9

    # テストメールのレート制限
    TEST_EMAIL_RATE_LIMIT: str = "10/minute"

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )


settings = Settings()
