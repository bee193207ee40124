"""
値下げアラート関連サービス
"""

from .email_service import EmailService, email_service, format_inr
from .price_drop_alert_service import (
    PriceDropAlertService,
    calculate_price_drop,
    check_and_send_price_drop_alerts,
    run_price_drop_alert_sweep,
)

__all__ = [
    "EmailService",
    "email_service",
    "format_inr",
    "PriceDropAlertService",
    "calculate_price_drop",
    "check_and_send_price_drop_alerts",
    "run_price_drop_alert_sweep",
]
