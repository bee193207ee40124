"""
PropertyWatchlist Model - 物件ウォッチテーブル (ウォッチリスト)
"""
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from .base import Base

if TYPE_CHECKING:
    from .user import User
    from .listing import Listing


class PropertyWatchlist(Base):
    """物件ウォッチテーブル (ウォッチリスト)"""
    __tablename__ = "property_watchlists"
    __table_args__ = (UniqueConstraint("user_id", "listing_id", name="uq_user_listing"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    listing_id: Mapped[str] = mapped_column(String(36), ForeignKey("listings.id"), nullable=False, index=True)
    # ウォッチ登録時の実効価格
    effective_price_at_add: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)

    # Relationships（参照先が削除済みの場合は None）
    user: Mapped[Optional["User"]] = relationship("User", back_populates="watchlists")
    listing: Mapped[Optional["Listing"]] = relationship("Listing", back_populates="watchlists")
