"""
Price Drop Alert API スキーマ定義
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from pydantic.alias_generators import to_camel


class CamelRequest(BaseModel):
    """camelCase / snake_case どちらのキーでも受け付けるリクエスト"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================
# 値下げ情報
# ============================================
class PriceDropDetails(CamelRequest):
    """値下げ情報（金額はルピー）"""
    original_price: int = Field(..., gt=0, description="ウォッチ登録時の実効価格")
    current_price: int = Field(..., ge=0, description="現在の実効価格")
    drop_amount: int = Field(..., ge=0, description="値下げ額")
    drop_percentage: int = Field(..., ge=0, le=100, description="値下げ率（%、四捨五入）")


class PriceDropEmailData(BaseModel):
    """値下げ通知メールのペイロード"""
    property_name: str
    property_description: str
    property_image: Optional[str] = None
    original_price: int
    current_price: int
    drop_amount: int
    drop_percentage: int
    property_type: str
    property_location: str
    listing_id: str
    listing_url: str
    watchlist_date: datetime
    recipient_name: Optional[str] = None


# ============================================
# リクエストスキーマ
# ============================================
class PriceDropAlertRequest(CamelRequest):
    """個別の値下げアラート送信リクエスト

    必須項目の欠落は400で返すため、ここではすべて任意にしている
    """
    user_id: Optional[str] = None
    listing_id: Optional[str] = None
    price_drop_details: Optional[PriceDropDetails] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "userId": "6f1c2a9e-0000-4000-8000-000000000001",
                "listingId": "6f1c2a9e-0000-4000-8000-000000000002",
                "priceDropDetails": {
                    "originalPrice": 1000000,
                    "currentPrice": 800000,
                    "dropAmount": 200000,
                    "dropPercentage": 20,
                },
            }
        },
    )


class TestEmailRequest(BaseModel):
    """テストメール送信リクエスト"""
    email: Optional[EmailStr] = Field(None, description="送信先メールアドレス")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "test@example.com"
            }
        }
    )


# ============================================
# レスポンススキーマ
# ============================================
class AlertResult(BaseModel):
    """スイープ（全ウォッチリスト走査）の集計結果"""
    success: bool
    message: str
    total_entries: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    no_drop_count: int = 0
    errors: Optional[List[str]] = None
    error: Optional[str] = None


class PriceDropAlertResponse(BaseModel):
    """値下げアラートAPIの共通レスポンス"""
    success: bool
    message: str
    data: Optional[dict] = None
    error: Optional[str] = None
