"""
Watchlist API エンドポイント
"""

import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.database import get_db
from app.dependencies import get_current_user
from app.models.listing import Listing
from app.models.user import User
from app.models.watchlist import PropertyWatchlist
from app.schemas.watchlist import (
    WatchlistCreateRequest,
    WatchlistResponse,
    WatchlistItemResponse,
    ListingInWatchlist,
    WatchlistStatusResponse,
    WatchCountResponse,
    TopWatchedListing,
    WatchlistStatsResponse,
    MessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/watchlist", tags=["Watchlist"])


def _to_item_response(item: PropertyWatchlist) -> WatchlistItemResponse:
    return WatchlistItemResponse(
        id=item.id,
        listing_id=item.listing_id,
        listing=ListingInWatchlist.model_validate(item.listing) if item.listing else None,
        effective_price_at_add=item.effective_price_at_add,
        added_at=item.added_at,
    )


@router.post(
    "", response_model=WatchlistItemResponse, status_code=status.HTTP_201_CREATED
)
def add_to_watchlist(
    request: WatchlistCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    ウォッチリストに物件を追加

    値下げ判定の基準として、登録時点の実効価格を記録する
    """
    listing = db.query(Listing).filter(Listing.id == request.listing_id).first()
    if not listing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found"
        )

    # 重複チェック
    existing = (
        db.query(PropertyWatchlist)
        .filter(
            PropertyWatchlist.user_id == current_user.id,
            PropertyWatchlist.listing_id == request.listing_id,
        )
        .first()
    )

    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Already in watchlist",
        )

    watchlist_item = PropertyWatchlist(
        id=str(uuid.uuid4()),
        user_id=current_user.id,
        listing_id=listing.id,
        effective_price_at_add=listing.effective_price,
    )

    db.add(watchlist_item)
    db.commit()
    db.refresh(watchlist_item)

    logger.info(
        f"ウォッチリスト追加: user={current_user.id}, listing={listing.id}, "
        f"price={watchlist_item.effective_price_at_add}"
    )
    return _to_item_response(watchlist_item)


@router.get("", response_model=WatchlistResponse)
def get_watchlist(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    ウォッチリスト一覧を取得（新しい順、削除済み物件は listing=None）
    """
    watchlist_items = (
        db.query(PropertyWatchlist)
        .options(joinedload(PropertyWatchlist.listing))
        .filter(PropertyWatchlist.user_id == current_user.id)
        .order_by(PropertyWatchlist.added_at.desc())
        .all()
    )

    return WatchlistResponse(watchlist=[_to_item_response(item) for item in watchlist_items])


@router.delete("/{listing_id}", response_model=MessageResponse)
def remove_from_watchlist(
    listing_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    ウォッチリストから物件を削除
    """
    watchlist_item = (
        db.query(PropertyWatchlist)
        .filter(
            PropertyWatchlist.user_id == current_user.id,
            PropertyWatchlist.listing_id == listing_id,
        )
        .first()
    )

    if not watchlist_item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not in watchlist",
        )

    db.delete(watchlist_item)
    db.commit()

    return MessageResponse(success=True, message="Removed from watchlist")


@router.get("/status/{listing_id}", response_model=WatchlistStatusResponse)
def check_watchlist_status(
    listing_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """物件がウォッチリストに入っているか確認"""
    exists = (
        db.query(PropertyWatchlist.id)
        .filter(
            PropertyWatchlist.user_id == current_user.id,
            PropertyWatchlist.listing_id == listing_id,
        )
        .first()
    )
    return WatchlistStatusResponse(is_in_watchlist=exists is not None)


@router.get("/count/{listing_id}", response_model=WatchCountResponse)
def get_listing_watch_count(
    listing_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """物件をウォッチしているユーザー数"""
    count = (
        db.query(PropertyWatchlist)
        .filter(PropertyWatchlist.listing_id == listing_id)
        .count()
    )
    return WatchCountResponse(count=count)


@router.get("/top", response_model=list[TopWatchedListing])
def get_top_watched_listings(
    limit: int = Query(10, ge=1, le=50, description="取得件数"),
    db: Session = Depends(get_db),
):
    """ウォッチ数の多い物件ランキング"""
    watch_count = func.count(PropertyWatchlist.id).label("watch_count")
    rows = (
        db.query(Listing, watch_count)
        .join(PropertyWatchlist, PropertyWatchlist.listing_id == Listing.id)
        .group_by(Listing.id)
        .order_by(watch_count.desc())
        .limit(limit)
        .all()
    )

    return [
        TopWatchedListing(
            **ListingInWatchlist.model_validate(listing).model_dump(),
            watch_count=count,
        )
        for listing, count in rows
    ]


@router.get("/stats", response_model=WatchlistStatsResponse)
def get_watchlist_stats(db: Session = Depends(get_db)):
    """ウォッチリスト全体の統計"""
    total_watchlists = db.query(PropertyWatchlist).count()
    total_watched_properties = (
        db.query(func.count(func.distinct(PropertyWatchlist.listing_id))).scalar() or 0
    )
    return WatchlistStatsResponse(
        total_watchlists=total_watchlists,
        total_watched_properties=total_watched_properties,
    )
