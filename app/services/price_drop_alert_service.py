"""
値下げアラートサービス
ウォッチリストの登録時価格と現在価格を比較し、値下げがあればメールで通知する
"""
import math
import uuid
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol
from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.models.listing import Listing
from app.models.notification import Notification
from app.models.user import User
from app.models.watchlist import PropertyWatchlist
from app.schemas.price_drop_alert import AlertResult, PriceDropDetails, PriceDropEmailData
from app.services.email_service import email_service, format_inr

logger = logging.getLogger(__name__)

# エントリごとの判定結果
ENTRY_SENT = "sent"
ENTRY_FAILED = "failed"
ENTRY_SKIPPED = "skipped"
ENTRY_NO_DROP = "no_drop"

# 物件変更の種類
CHANGE_PRICE_DROP = "price_drop"
CHANGE_REMOVED = "removed"
CHANGE_UPDATED = "updated"

NOTIFICATION_TYPES = {
    CHANGE_PRICE_DROP: "watchlist_price_drop",
    CHANGE_REMOVED: "watchlist_property_removed",
    CHANGE_UPDATED: "watchlist_price_update",
}


class PriceDropEmailSender(Protocol):
    """値下げメール送信の契約 (EmailService が実装)"""

    def send_price_drop_alert_email(self, to: str, payload: PriceDropEmailData) -> dict:
        ...


def calculate_price_drop(
    original_price: Optional[int], current_price: Optional[int]
) -> Optional[PriceDropDetails]:
    """
    値下げを判定する

    Returns:
        値下げがあれば PriceDropDetails、同額・値上げ・価格不明なら None
    """
    if not original_price or not current_price:
        return None
    if current_price >= original_price:
        return None

    drop_amount = original_price - current_price
    # 0.5は切り上げ
    drop_percentage = math.floor(drop_amount / original_price * 100 + 0.5)

    return PriceDropDetails(
        original_price=original_price,
        current_price=current_price,
        drop_amount=drop_amount,
        drop_percentage=drop_percentage,
    )


class PriceDropAlertService:
    """値下げアラートサービスクラス"""

    def __init__(self, db: Session, email_sender: Optional[PriceDropEmailSender] = None):
        self.db = db
        self.email_sender = email_sender or email_service

    # ============================================
    # ウォッチリスト読み込み
    # ============================================
    def get_watchlist_entries(self) -> List[PropertyWatchlist]:
        """全ウォッチリストをユーザー・物件と結合して取得"""
        return (
            self.db.query(PropertyWatchlist)
            .options(
                joinedload(PropertyWatchlist.user),
                joinedload(PropertyWatchlist.listing),
            )
            .all()
        )

    # ============================================
    # 個別送信
    # ============================================
    def send_price_drop_alert(
        self,
        user_id: str,
        listing_id: str,
        price_drop_details: PriceDropDetails,
    ) -> Dict[str, Any]:
        """
        指定ユーザーに物件の値下げアラートメールを送信

        Parameters:
            user_id: ユーザーID
            listing_id: 物件ID
            price_drop_details: 値下げ情報

        Returns:
            {"success": True, "message": ...} または {"success": False, "error": ...}
        """
        try:
            logger.info(f"🔍 値下げアラート送信: user={user_id}, listing={listing_id}")

            user = self.db.query(User).filter(User.id == user_id).first()
            if not user:
                logger.error(f"❌ ユーザーが見つかりません: {user_id}")
                return {"success": False, "error": "User not found"}

            listing = self.db.query(Listing).filter(Listing.id == listing_id).first()
            if not listing:
                logger.error(f"❌ 物件が見つかりません: {listing_id}")
                return {"success": False, "error": "Listing not found"}

            # ウォッチ登録日をメールに載せるためエントリを取得
            entry = self.db.query(PropertyWatchlist).filter(
                PropertyWatchlist.user_id == user_id,
                PropertyWatchlist.listing_id == listing_id,
            ).first()
            if not entry:
                logger.error(
                    f"❌ ウォッチリストが見つかりません: user={user_id}, listing={listing_id}"
                )
                return {"success": False, "error": "Watchlist entry not found"}

            payload = self._build_email_payload(user, listing, entry, price_drop_details)

            logger.info(f"📧 値下げメール送信: {user.email}")
            result = self.email_sender.send_price_drop_alert_email(user.email, payload)

            if result.get("success"):
                logger.info(f"✅ 値下げアラート送信成功: {user.email}")
                return {"success": True, "message": "Price drop alert sent successfully"}

            logger.error(f"❌ 値下げアラート送信失敗: {user.email}, error={result.get('error')}")
            return {"success": False, "error": result.get("error") or "Email dispatch failed"}

        except Exception as e:
            logger.error(f"❌ 値下げアラート送信エラー: {str(e)}")
            return {"success": False, "error": str(e)}

    def _build_email_payload(
        self,
        user: User,
        listing: Listing,
        entry: PropertyWatchlist,
        details: PriceDropDetails,
    ) -> PriceDropEmailData:
        """メールのペイロードを組み立てる"""
        return PriceDropEmailData(
            property_name=listing.name or "Property",
            property_description=listing.description or "No description available",
            property_image=listing.image_urls[0] if listing.image_urls else None,
            original_price=details.original_price,
            current_price=details.current_price,
            drop_amount=details.drop_amount,
            drop_percentage=details.drop_percentage,
            property_type=listing.type or "Property",
            property_location=listing.location,
            listing_id=listing.id,
            listing_url=f"{settings.FRONTEND_URL}/listing/{listing.id}",
            watchlist_date=entry.added_at or datetime.now(),
            recipient_name=user.display_name,
        )

    # ============================================
    # スイープ（全件チェック）
    # ============================================
    def process_entry(self, entry: PropertyWatchlist, result: AlertResult) -> str:
        """1エントリを判定し、値下げがあれば送信して集計する"""
        if entry.listing is None or entry.user is None:
            logger.warning(f"⚠️ 参照先が無いためスキップ: {entry.id}")
            result.skipped_count += 1
            return ENTRY_SKIPPED

        listing = entry.listing
        user = entry.user
        original_price = entry.effective_price_at_add
        current_price = listing.effective_price

        if not original_price or not current_price:
            logger.warning(f"⚠️ 価格情報が無いためスキップ: {entry.id}")
            result.skipped_count += 1
            return ENTRY_SKIPPED

        details = calculate_price_drop(original_price, current_price)
        if details is None:
            logger.info(
                f"📈 値下げなし: {listing.name} "
                f"{format_inr(original_price)} → {format_inr(current_price)}"
            )
            result.no_drop_count += 1
            return ENTRY_NO_DROP

        logger.info(
            f"💰 値下げ検出: {listing.name} "
            f"{format_inr(original_price)} → {format_inr(current_price)} "
            f"({details.drop_percentage}% drop)"
        )

        send_result = self.send_price_drop_alert(user.id, listing.id, details)
        if send_result.get("success"):
            result.success_count += 1
            return ENTRY_SENT

        result.error_count += 1
        result.errors.append(f"User {user.email}: {send_result.get('error')}")
        return ENTRY_FAILED

    def check_and_send_price_drop_alerts(self) -> AlertResult:
        """
        全ウォッチリストを走査し、値下げされた物件をウォッチしているユーザーへ通知

        1件の失敗で全体を中断せず、残りのエントリの処理を続ける
        """
        logger.info("🔍 ウォッチリスト物件の値下げチェックを開始")

        try:
            entries = self.get_watchlist_entries()
        except Exception as e:
            logger.error(f"❌ ウォッチリスト取得エラー: {str(e)}")
            return AlertResult(
                success=False,
                message="Failed to check price drop alerts",
                error=str(e),
            )

        logger.info(f"📋 ウォッチリスト件数: {len(entries)}")

        if not entries:
            return AlertResult(success=True, message="No watchlist entries found")

        result = AlertResult(
            success=False,
            message="",
            total_entries=len(entries),
            errors=[],
        )

        for entry in entries:
            try:
                self.process_entry(entry, result)
            except Exception as e:
                logger.error(f"❌ エントリ処理エラー: {entry.id} - {str(e)}")
                result.error_count += 1
                result.errors.append(f"Entry {entry.id}: {str(e)}")

        result.success = result.error_count == 0
        result.message = (
            f"Processed {result.total_entries} watchlist entries. "
            f"{result.success_count} price drop alerts sent, {result.error_count} failed."
        )
        if not result.errors:
            result.errors = None

        logger.info(
            f"📊 値下げアラート集計: 件数={result.total_entries}, 送信={result.success_count}, "
            f"エラー={result.error_count}, スキップ={result.skipped_count}, "
            f"値下げなし={result.no_drop_count}"
        )
        return result

    # ============================================
    # 物件変更時のウォッチャー通知
    # ============================================
    def notify_watchers_on_change(
        self,
        listing: Listing,
        change_type: str,
        old_price: Optional[int] = None,
        new_price: Optional[int] = None,
    ) -> List[Notification]:
        """
        物件の値下げ・削除をウォッチしているユーザーへアプリ内通知する

        値下げの場合は値下げアラートメールも送信する
        """
        try:
            watchers = self.db.query(PropertyWatchlist).filter(
                PropertyWatchlist.listing_id == listing.id
            ).all()
            if not watchers:
                return []

            notifications = []
            for watcher in watchers:
                title, message = self._notification_text(listing, change_type, old_price, new_price)
                notification = Notification(
                    id=str(uuid.uuid4()),
                    user_id=watcher.user_id,
                    listing_id=listing.id,
                    type=NOTIFICATION_TYPES.get(change_type, NOTIFICATION_TYPES[CHANGE_UPDATED]),
                    title=title,
                    message=message,
                    is_read=False,
                )
                self.db.add(notification)
                notifications.append(notification)

            self.db.commit()

            if change_type == CHANGE_PRICE_DROP and old_price and new_price:
                details = calculate_price_drop(old_price, new_price)
                if details is not None:
                    for watcher in watchers:
                        logger.info(
                            f"📧 値下げメール送信: listing={listing.id}, user={watcher.user_id}"
                        )
                        result = self.send_price_drop_alert(watcher.user_id, listing.id, details)
                        if not result.get("success"):
                            logger.error(f"❌ 値下げメール送信失敗: {result.get('error')}")

            logger.info(
                f"🔔 ウォッチャー通知: listing={listing.id}, type={change_type}, "
                f"件数={len(notifications)}"
            )
            return notifications

        except Exception as e:
            logger.error(f"❌ ウォッチャー通知エラー: {str(e)}")
            self.db.rollback()
            return []

    @staticmethod
    def _notification_text(
        listing: Listing,
        change_type: str,
        old_price: Optional[int],
        new_price: Optional[int],
    ) -> tuple[str, str]:
        """通知のタイトルと本文"""
        if change_type == CHANGE_PRICE_DROP:
            return (
                "Price Drop Alert",
                f'Good news! "{listing.name}" price dropped from '
                f"{format_inr(old_price or 0)} to {format_inr(new_price or 0)}.",
            )
        if change_type == CHANGE_REMOVED:
            return (
                "Property Unavailable",
                f'Heads up! "{listing.name}" has been sold or removed.',
            )
        return (
            "Property Updated",
            f'"{listing.name}" has new updates. Check it out!',
        )


def check_and_send_price_drop_alerts(db: Session) -> AlertResult:
    """値下げアラートのスイープを実行するヘルパー関数"""
    service = PriceDropAlertService(db)
    return service.check_and_send_price_drop_alerts()


def run_price_drop_alert_sweep() -> AlertResult:
    """独自のDBセッションでスイープを実行するエントリーポイント（バッチ用）"""
    from app.database import SessionLocal

    db = SessionLocal()
    try:
        return check_and_send_price_drop_alerts(db)
    finally:
        db.close()
