"""Listing pricing schemas"""
from typing import Optional

from pydantic import BaseModel, Field

from .base import BaseSchema


class ListingPricingUpdate(BaseModel):
    """物件価格の更新リクエスト（指定された項目のみ更新）"""
    regular_price: Optional[int] = Field(None, ge=0)
    discount_price: Optional[int] = Field(None, ge=0)
    # 未指定は変更なし、null は不可（offer 列は NOT NULL）
    offer: bool = False


class ListingPricingResponse(BaseSchema):
    id: str
    name: str
    regular_price: Optional[int] = None
    discount_price: Optional[int] = None
    offer: bool
    effective_price: Optional[int] = None
    watchers_notified: int = 0
