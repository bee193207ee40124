"""
メール送信サービス
Resend APIを使用してメールを送信する
"""
import html
import logging
from datetime import datetime
from typing import Optional
import resend

from app.config import settings
from app.schemas.price_drop_alert import PriceDropEmailData

logger = logging.getLogger(__name__)

# Resend API設定
resend.api_key = settings.RESEND_API_KEY


def format_inr(amount: int) -> str:
    """ルピー金額をインド式の桁区切りで整形する (1000000 -> ₹10,00,000)"""
    sign = "-" if amount < 0 else ""
    digits = str(abs(int(amount)))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups) + "," + tail
    return f"{sign}₹{digits}"


class EmailService:
    """メール送信サービスクラス"""

    def __init__(self, from_email: Optional[str] = None):
        self.from_email = from_email or settings.RESEND_FROM_EMAIL

        if not resend.api_key:
            logger.warning("RESEND_API_KEY が設定されていません")

    def send_email(
        self,
        to: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> dict:
        """メールを送信する"""
        try:
            params: resend.Emails.SendParams = {
                "from": self.from_email,
                "to": [to],
                "subject": subject,
                "html": html_content,
            }

            if text_content:
                params["text"] = text_content

            response = resend.Emails.send(params)

            logger.info(f"メール送信成功: to={to}, subject={subject}")
            return {"success": True, "id": response.get("id")}

        except Exception as e:
            logger.error(f"メール送信エラー: to={to}, error={str(e)}")
            return {"success": False, "error": str(e)}

    def send_price_drop_alert_email(self, to: str, payload: PriceDropEmailData) -> dict:
        """値下げアラートメールを送信"""
        subject = (
            f"Price Drop Alert: {payload.property_name} is now "
            f"{format_inr(payload.current_price)} ({payload.drop_percentage}% off)"
        )
        html_content = self._generate_price_drop_html(payload)
        text_content = (
            f"Good news! {payload.property_name} dropped from "
            f"{format_inr(payload.original_price)} to {format_inr(payload.current_price)} "
            f"(save {format_inr(payload.drop_amount)}). View it: {payload.listing_url}"
        )

        return self.send_email(
            to=to, subject=subject, html_content=html_content, text_content=text_content
        )

    def _generate_price_drop_html(self, payload: PriceDropEmailData) -> str:
        """値下げアラートメールのHTMLを生成"""
        # 掲載者が入力した値はエスケープする
        name = html.escape(payload.property_name)
        description = html.escape(payload.property_description)
        property_type = html.escape(payload.property_type)
        location = html.escape(payload.property_location)
        listing_url = html.escape(payload.listing_url)

        image_tag = (
            f'<img src="{html.escape(payload.property_image)}" alt="{name}" '
            f'style="max-width: 100%; border-radius: 8px;">'
            if payload.property_image
            else ""
        )
        greeting = f"Hi {html.escape(payload.recipient_name)}," if payload.recipient_name else "Hi,"
        watched_on = payload.watchlist_date.strftime("%d %b %Y")

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="UTF-8">
        </head>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #16a34a;">📉 Price Drop Alert</h1>
            <p>{greeting}</p>
            <p>A property on your watchlist just got cheaper.</p>

            {image_tag}

            <h2>{name}</h2>
            <p style="color: #666;">{property_type} · {location}</p>
            <p>{description}</p>

            <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">
                <p style="font-size: 18px; margin: 0;">
                    <span style="text-decoration: line-through; color: #999;">{format_inr(payload.original_price)}</span>
                    →
                    <span style="color: #16a34a; font-weight: bold; font-size: 24px;">{format_inr(payload.current_price)}</span>
                </p>
                <p style="color: #16a34a; font-weight: bold; margin: 10px 0 0 0;">
                    {payload.drop_percentage}% OFF (you save {format_inr(payload.drop_amount)})
                </p>
            </div>

            <a href="{listing_url}" style="display: inline-block; background: #2563eb; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px;">
                View Property
            </a>

            <hr style="margin: 30px 0; border: none; border-top: 1px solid #eee;">
            <p style="color: #999; font-size: 12px;">
                You are receiving this because you added this property to your watchlist on {watched_on}.
            </p>
        </body>
        </html>
        """

    def send_test_email(self, to: str) -> dict:
        """固定のサンプル物件で値下げアラートのテストメールを送信"""
        payload = PriceDropEmailData(
            property_name="Test Property - 3BHK Apartment",
            property_description="This is a test email to verify price drop alerts are working correctly.",
            property_image=None,
            original_price=1000000,
            current_price=800000,
            drop_amount=200000,
            drop_percentage=20,
            property_type="sale",
            property_location="Mumbai, Maharashtra",
            listing_id="test-listing-id",
            listing_url=f"{settings.FRONTEND_URL}/listing/test-listing-id",
            watchlist_date=datetime.now(),
        )
        return self.send_price_drop_alert_email(to, payload)


# シングルトンインスタンス
email_service = EmailService()


def get_email_service() -> EmailService:
    """FastAPIの依存性注入用（テストでは差し替える）"""
    return email_service
