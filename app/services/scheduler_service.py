"""
バッチスケジューラーサービス

APSchedulerを使用して値下げアラートのスイープを定期実行する
- 値下げチェック: 毎日 PRICE_DROP_CHECK_HOUR 時

定期ジョブと手動実行（/api/price-drop-alerts/trigger-alerts）は
sweep_lock を共有し、同時に1つのスイープのみ実行する
"""

import logging
import threading
from datetime import datetime
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings

logger = logging.getLogger(__name__)

# スケジューラーインスタンス（グローバル）
scheduler = BackgroundScheduler()

# スイープの同時実行防止用ロック
sweep_lock = threading.Lock()


def run_price_drop_alert_job():
    """値下げアラートジョブ"""
    acquired = sweep_lock.acquire(blocking=False)
    if not acquired:
        logger.warning("⏳ 値下げチェック: 別のスイープが実行中のためスキップ")
        return

    try:
        from app.services.price_drop_alert_service import run_price_drop_alert_sweep

        logger.info(f"💰 値下げチェック開始: {datetime.now().isoformat()}")

        result = run_price_drop_alert_sweep()

        logger.info(
            f"✅ 値下げチェック完了: "
            f"件数={result.total_entries}, 送信={result.success_count}, "
            f"エラー={result.error_count}"
        )
    except Exception as e:
        logger.error(f"❌ 値下げチェックエラー: {str(e)}")
    finally:
        sweep_lock.release()


def start_scheduler():
    """スケジューラーを開始"""
    if scheduler.running:
        logger.warning("スケジューラーは既に実行中です")
        return

    scheduler.add_job(
        run_price_drop_alert_job,
        trigger=CronTrigger(hour=settings.PRICE_DROP_CHECK_HOUR, minute=0),
        id="price_drop_alerts",
        name="値下げアラート",
        replace_existing=True,
        max_instances=1,  # 同時に1インスタンスのみ
    )

    scheduler.start()
    logger.info("📅 スケジューラー開始")
    logger.info(f"   - 値下げアラート: 毎日 {settings.PRICE_DROP_CHECK_HOUR}:00")


def stop_scheduler():
    """スケジューラーを停止"""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("📅 スケジューラー停止")


def get_scheduler_status() -> dict:
    """スケジューラーの状態を取得"""
    jobs = []
    if scheduler.running:
        for job in scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            })

    return {
        "running": scheduler.running,
        "jobs": jobs,
    }
