"""
値下げアラートのAPIエンドポイント
個別送信、全件チェックの手動実行、テストメール送信
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.rate_limiter import limiter, TEST_EMAIL_RATE_LIMIT
from app.schemas.price_drop_alert import (
    PriceDropAlertRequest,
    PriceDropAlertResponse,
    TestEmailRequest,
)
from app.services.email_service import EmailService, get_email_service
from app.services.price_drop_alert_service import PriceDropAlertService
from app.services.scheduler_service import sweep_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/price-drop-alerts", tags=["price-drop-alerts"])


def _error_response(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    """失敗時のJSONレスポンス"""
    content = {"success": False, "message": message}
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=content)


@router.post(
    "/send",
    response_model=PriceDropAlertResponse,
    summary="値下げアラートの個別送信",
    responses={
        400: {"description": "必須項目（userId, listingId, priceDropDetails）の欠落"},
        500: {"description": "ユーザー・物件が見つからない、またはメール送信失敗"},
    },
)
def send_price_drop_alert_endpoint(
    body: Optional[PriceDropAlertRequest] = None,
    db: Session = Depends(get_db),
    email_sender: EmailService = Depends(get_email_service),
):
    """指定ユーザー・物件の値下げアラートを送信"""
    if (
        body is None
        or not body.user_id
        or not body.listing_id
        or body.price_drop_details is None
    ):
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "Missing required fields: userId, listingId, priceDropDetails",
        )

    try:
        logger.info(f"🚀 値下げアラート送信: user={body.user_id}, listing={body.listing_id}")

        service = PriceDropAlertService(db, email_sender=email_sender)
        result = service.send_price_drop_alert(
            body.user_id, body.listing_id, body.price_drop_details
        )

        if result.get("success"):
            return PriceDropAlertResponse(
                success=True,
                message="Price drop alert sent successfully",
                data=result,
            )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send price drop alert",
            result.get("error"),
        )

    except Exception as e:
        logger.error(f"❌ 値下げアラート送信APIエラー: {str(e)}")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send price drop alert",
            str(e),
        )


@router.post(
    "/trigger-alerts",
    response_model=PriceDropAlertResponse,
    summary="値下げチェックの手動実行",
    description="""
全ウォッチリストを走査し、値下げされた物件をウォッチしているユーザーへメールを送信します。

## 用途
- 定期実行（スケジューラー）の代替・動作確認

## 注意
- 実行ごとに全件を再評価するため、値下げ済みの物件には再実行のたびに通知されます
- 定期実行のスイープが実行中の場合は 409 を返します
""",
)
def trigger_price_drop_alerts(
    db: Session = Depends(get_db),
    email_sender: EmailService = Depends(get_email_service),
):
    """値下げチェックを手動実行"""
    if not sweep_lock.acquire(blocking=False):
        logger.warning("⏳ 値下げチェック: 別のスイープが実行中")
        return _error_response(
            status.HTTP_409_CONFLICT, "Price drop alert check already running"
        )

    try:
        logger.info("🚀 値下げアラートを手動実行")
        service = PriceDropAlertService(db, email_sender=email_sender)
        result = service.check_and_send_price_drop_alerts()

        return PriceDropAlertResponse(
            success=True,
            message="Price drop alert check completed",
            data=result.model_dump(),
        )
    except Exception as e:
        logger.error(f"❌ 値下げアラート手動実行エラー: {str(e)}")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to trigger price drop alerts",
            str(e),
        )
    finally:
        sweep_lock.release()


@router.post(
    "/test-email",
    response_model=PriceDropAlertResponse,
    summary="テストメール送信",
)
@limiter.limit(TEST_EMAIL_RATE_LIMIT)
def send_test_email(
    request: Request,
    body: Optional[TestEmailRequest] = None,
    email_sender: EmailService = Depends(get_email_service),
):
    """サンプル物件の値下げアラートをテスト送信"""
    if body is None or not body.email:
        return _error_response(status.HTTP_400_BAD_REQUEST, "Email is required")

    try:
        result = email_sender.send_test_email(body.email)

        if result.get("success"):
            return PriceDropAlertResponse(
                success=True,
                message=f"Test price drop email sent to {body.email}",
                data={"email_id": result.get("id")},
            )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send test email",
            result.get("error"),
        )
    except Exception as e:
        logger.error(f"❌ テストメール送信エラー: {str(e)}")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send test email",
            str(e),
        )
