"""
物件価格の更新API
価格更新・物件削除時にウォッチしているユーザーへ通知する
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.listing import Listing
from app.models.user import User
from app.models.watchlist import PropertyWatchlist
from app.schemas.listing import ListingPricingResponse, ListingPricingUpdate
from app.schemas.watchlist import MessageResponse
from app.services.email_service import EmailService, get_email_service
from app.services.price_drop_alert_service import (
    CHANGE_PRICE_DROP,
    CHANGE_REMOVED,
    PriceDropAlertService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/listings", tags=["listings"])


def _get_listing_or_404(db: Session, listing_id: str) -> Listing:
    listing = db.query(Listing).filter(Listing.id == listing_id).first()
    if not listing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found"
        )
    return listing


def _ensure_can_edit(listing: Listing, user: User, action: str) -> None:
    if not listing.can_be_edited_by(user):
        logger.warning(f"⚠️ 権限のない物件操作: listing={listing.id}, user={user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only {action} your own listing",
        )


@router.put("/{listing_id}/pricing", response_model=ListingPricingResponse)
def update_listing_pricing(
    listing_id: str,
    request: ListingPricingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    email_sender: EmailService = Depends(get_email_service),
):
    """
    物件の価格・オファーを更新（掲載者または管理者のみ）

    実効価格が下がった場合はウォッチしているユーザーへ通知する
    """
    listing = _get_listing_or_404(db, listing_id)
    _ensure_can_edit(listing, current_user, "edit")

    # 更新前の実効価格
    old_effective = listing.effective_price

    for field, value in request.model_dump(exclude_unset=True).items():
        setattr(listing, field, value)
    db.commit()
    db.refresh(listing)

    new_effective = listing.effective_price
    notified = 0
    if old_effective and new_effective and new_effective < old_effective:
        service = PriceDropAlertService(db, email_sender=email_sender)
        notifications = service.notify_watchers_on_change(
            listing, CHANGE_PRICE_DROP, old_price=old_effective, new_price=new_effective
        )
        notified = len(notifications)

    logger.info(
        f"物件価格更新: listing={listing.id}, {old_effective} → {new_effective}, "
        f"通知={notified}件"
    )

    return ListingPricingResponse(
        id=listing.id,
        name=listing.name,
        regular_price=listing.regular_price,
        discount_price=listing.discount_price,
        offer=listing.offer,
        effective_price=new_effective,
        watchers_notified=notified,
    )


@router.delete("/{listing_id}", response_model=MessageResponse)
def delete_listing(
    listing_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    email_sender: EmailService = Depends(get_email_service),
):
    """物件を削除し、ウォッチしているユーザーへ通知してからウォッチリストを片付ける（掲載者または管理者のみ）"""
    listing = _get_listing_or_404(db, listing_id)
    _ensure_can_edit(listing, current_user, "delete")

    service = PriceDropAlertService(db, email_sender=email_sender)
    service.notify_watchers_on_change(listing, CHANGE_REMOVED)

    db.query(PropertyWatchlist).filter(
        PropertyWatchlist.listing_id == listing_id
    ).delete(synchronize_session="fetch")
    db.delete(listing)
    db.commit()

    logger.info(f"物件削除: listing={listing_id}")
    return MessageResponse(success=True, message="Listing deleted")
