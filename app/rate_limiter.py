"""
レート制限設定
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

# レート制限インスタンス（クライアントIP単位）
limiter = Limiter(key_func=get_remote_address)

# テストメール送信の上限（外部メール送信の乱用防止）
TEST_EMAIL_RATE_LIMIT = settings.TEST_EMAIL_RATE_LIMIT
