"""
Listing Model - 物件テーブル
"""
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Integer, Boolean, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from .base import Base

if TYPE_CHECKING:
    from .watchlist import PropertyWatchlist
    from .user import User


class Listing(Base):
    """物件テーブル（価格はルピー単位の整数）"""
    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # "sale", "rent"
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    regular_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    discount_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    offer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    image_urls: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    # 掲載者（未設定の物件は管理者のみ編集可）
    user_ref: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    watchlists: Mapped[list["PropertyWatchlist"]] = relationship(
        "PropertyWatchlist",
        back_populates="listing",
    )

    @property
    def effective_price(self) -> Optional[int]:
        """オファー中で割引価格があれば割引価格、それ以外は通常価格"""
        if self.offer and self.discount_price:
            return self.discount_price
        return self.regular_price

    def can_be_edited_by(self, user: "User") -> bool:
        """掲載者本人または管理者のみ編集・削除できる"""
        return user.is_admin or (self.user_ref is not None and self.user_ref == user.id)

    @property
    def location(self) -> str:
        """「市, 州」形式の所在地"""
        location = ", ".join(part for part in (self.city, self.state) if part)
        return location or "Location not specified"
