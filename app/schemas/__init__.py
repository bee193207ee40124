"""
Pydantic Schemas for UrbanSetu price-drop alerts
Based on app/models
"""

from .base import BaseSchema
from .price_drop_alert import (
    PriceDropDetails,
    PriceDropEmailData,
    PriceDropAlertRequest,
    TestEmailRequest,
    AlertResult,
    PriceDropAlertResponse,
)
from .watchlist import (
    WatchlistCreateRequest,
    WatchlistItemResponse,
    WatchlistResponse,
    ListingInWatchlist,
)
from .notification import NotificationResponse, NotificationListResponse
from .listing import ListingPricingUpdate, ListingPricingResponse

__all__ = [
    "BaseSchema",
    "PriceDropDetails",
    "PriceDropEmailData",
    "PriceDropAlertRequest",
    "TestEmailRequest",
    "AlertResult",
    "PriceDropAlertResponse",
    "WatchlistCreateRequest",
    "WatchlistItemResponse",
    "WatchlistResponse",
    "ListingInWatchlist",
    "NotificationResponse",
    "NotificationListResponse",
    "ListingPricingUpdate",
    "ListingPricingResponse",
]
