"""
値下げアラートのスイープ実行スクリプト

使い方:
    python -m app.scripts.run_price_drop_alerts

cronで定期実行する場合:
    0 9 * * * cd /path/to/project && python -m app.scripts.run_price_drop_alerts >> /var/log/price_drop_alerts.log 2>&1
"""
import sys
import logging
from datetime import datetime

from dotenv import load_dotenv
load_dotenv()

from app.services.price_drop_alert_service import run_price_drop_alert_sweep

# ログ設定
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def main() -> int:
    """メイン処理"""
    print("=" * 60)
    print("🚀 値下げアラート スイープ")
    print(f"   実行日時: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60)

    try:
        result = run_price_drop_alert_sweep()

        print("\n📊 実行結果:")
        print(f"   結果: {'成功' if result.success else '一部失敗'}")
        print(f"   {result.message}")
        print(f"   処理件数: {result.total_entries}")
        print(f"   送信成功: {result.success_count}")
        print(f"   エラー: {result.error_count}")
        print(f"   スキップ: {result.skipped_count}")
        print(f"   値下げなし: {result.no_drop_count}")

        if result.errors:
            print("\n⚠️ エラー詳細:")
            for error in result.errors:
                print(f"   - {error}")

        if result.error:
            print(f"\n❌ {result.error}")
            return 1

        print("\n✅ スイープが完了しました")
        return 0 if result.success else 1

    except Exception as e:
        print(f"\n❌ エラーが発生しました: {str(e)}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
