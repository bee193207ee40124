"""
Watchlist API スキーマ定義
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict


# ============================================
# リクエストスキーマ
# ============================================
class WatchlistCreateRequest(BaseModel):
    """ウォッチリスト追加リクエスト"""
    listing_id: str = Field(..., description="物件ID")


# ============================================
# レスポンススキーマ
# ============================================
class ListingInWatchlist(BaseModel):
    """ウォッチリスト内の物件情報"""
    id: str
    name: str
    type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    regular_price: Optional[int] = None
    discount_price: Optional[int] = None
    offer: bool = False
    effective_price: Optional[int] = None
    image_urls: List[str] = []

    model_config = ConfigDict(from_attributes=True)


class WatchlistItemResponse(BaseModel):
    """ウォッチリストアイテムレスポンス"""
    id: str
    listing_id: str
    # 削除済み物件の場合はNone
    listing: Optional[ListingInWatchlist] = None
    effective_price_at_add: Optional[int] = None
    added_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WatchlistResponse(BaseModel):
    """ウォッチリスト一覧レスポンス"""
    watchlist: List[WatchlistItemResponse]


class WatchlistStatusResponse(BaseModel):
    is_in_watchlist: bool


class WatchCountResponse(BaseModel):
    count: int


class TopWatchedListing(ListingInWatchlist):
    """ウォッチ数付きの物件情報"""
    watch_count: int


class WatchlistStatsResponse(BaseModel):
    total_watchlists: int
    total_watched_properties: int


class MessageResponse(BaseModel):
    """メッセージレスポンス"""
    success: bool
    message: str
