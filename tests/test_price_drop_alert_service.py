"""
値下げアラートサービスのテスト
"""

import pytest

from app.models import Notification, PropertyWatchlist
from app.schemas.price_drop_alert import PriceDropDetails
from app.services.price_drop_alert_service import (
    CHANGE_PRICE_DROP,
    CHANGE_REMOVED,
    ENTRY_NO_DROP,
    ENTRY_SENT,
    PriceDropAlertService,
)


@pytest.fixture
def service(db_session, email_sender):
    return PriceDropAlertService(db_session, email_sender=email_sender)


@pytest.fixture
def drop_details():
    return PriceDropDetails(
        original_price=1000000, current_price=800000, drop_amount=200000, drop_percentage=20
    )


def assert_counts_consistent(result):
    assert result.total_entries == (
        result.success_count + result.error_count + result.skipped_count + result.no_drop_count
    )


class TestSendPriceDropAlert:
    """個別送信テスト"""

    def test_sends_email_with_listing_details(
        self, service, email_sender, test_user, make_listing, make_watch, drop_details
    ):
        """物件情報を含む値下げメールが送信される"""
        listing = make_listing(offer=True, discount_price=800000)
        make_watch(test_user.id, listing.id)

        result = service.send_price_drop_alert(test_user.id, listing.id, drop_details)

        assert result == {"success": True, "message": "Price drop alert sent successfully"}
        assert len(email_sender.sent) == 1
        to, payload = email_sender.sent[0]
        assert to == test_user.email
        assert payload.property_name == "Sea View 3BHK"
        assert payload.property_image == "https://cdn.urbansetu.test/1.jpg"
        assert payload.property_location == "Mumbai, Maharashtra"
        assert payload.drop_amount == 200000
        assert payload.drop_percentage == 20
        assert payload.listing_url == f"https://urbansetu.test/listing/{listing.id}"
        assert payload.recipient_name == "Asha Rao"
        assert payload.watchlist_date is not None

    def test_unknown_user(self, service, email_sender, make_listing, drop_details):
        """存在しないユーザーはエラー結果を返す"""
        listing = make_listing()
        result = service.send_price_drop_alert("no-such-user", listing.id, drop_details)
        assert result == {"success": False, "error": "User not found"}
        assert email_sender.sent == []

    def test_unknown_listing(self, service, email_sender, test_user, drop_details):
        """存在しない物件はエラー結果を返す"""
        result = service.send_price_drop_alert(test_user.id, "no-such-listing", drop_details)
        assert result == {"success": False, "error": "Listing not found"}
        assert email_sender.sent == []

    def test_listing_not_watched(self, service, email_sender, test_user, make_listing, drop_details):
        """ウォッチしていない物件はエラー結果を返す"""
        listing = make_listing()
        result = service.send_price_drop_alert(test_user.id, listing.id, drop_details)
        assert result == {"success": False, "error": "Watchlist entry not found"}
        assert email_sender.sent == []

    def test_dispatch_failure(
        self, service, email_sender, test_user, make_listing, make_watch, drop_details
    ):
        """メール送信失敗はエラー結果として返る"""
        listing = make_listing()
        make_watch(test_user.id, listing.id)
        email_sender.fail_for[test_user.email] = "Mailbox unavailable"

        result = service.send_price_drop_alert(test_user.id, listing.id, drop_details)

        assert result == {"success": False, "error": "Mailbox unavailable"}

    def test_dispatch_exception_is_captured(
        self, service, email_sender, test_user, make_listing, make_watch, drop_details
    ):
        """送信中の例外は捕捉されエラー結果になる"""
        listing = make_listing()
        make_watch(test_user.id, listing.id)
        email_sender.raise_for.add(test_user.email)

        result = service.send_price_drop_alert(test_user.id, listing.id, drop_details)

        assert result["success"] is False
        assert "SMTP connection lost" in result["error"]


class TestPriceDropSweep:
    """全件チェックテスト"""

    def test_empty_watchlist(self, service, email_sender):
        """ウォッチリストが空なら成功として終了する"""
        result = service.check_and_send_price_drop_alerts()
        assert result.success is True
        assert result.message == "No watchlist entries found"
        assert result.total_entries == 0
        assert email_sender.sent == []

    def test_offer_price_drop_sends_one_email(
        self, service, email_sender, test_user, make_listing, make_watch
    ):
        """₹10,00,000で登録 → オファーで₹8,00,000 → 20%の値下げ通知を1通"""
        listing = make_listing(regular_price=1000000, offer=True, discount_price=800000)
        make_watch(test_user.id, listing.id, effective_price_at_add=1000000)

        result = service.check_and_send_price_drop_alerts()

        assert result.success is True
        assert result.success_count == 1
        assert result.error_count == 0
        assert result.errors is None
        assert len(email_sender.sent) == 1
        to, payload = email_sender.sent[0]
        assert to == test_user.email
        assert payload.original_price == 1000000
        assert payload.current_price == 800000
        assert payload.drop_amount == 200000
        assert payload.drop_percentage == 20
        assert_counts_consistent(result)

    def test_unchanged_price_sends_nothing(
        self, service, email_sender, test_user, make_listing, make_watch
    ):
        """価格が変わらなければ送信しない"""
        listing = make_listing(regular_price=1000000)
        make_watch(test_user.id, listing.id, effective_price_at_add=1000000)

        result = service.check_and_send_price_drop_alerts()

        assert result.success is True
        assert result.no_drop_count == 1
        assert result.success_count == 0
        assert email_sender.sent == []
        assert_counts_consistent(result)

    def test_price_increase_sends_nothing(
        self, service, email_sender, test_user, make_listing, make_watch
    ):
        """値上げされた場合は送信しない"""
        listing = make_listing(regular_price=1100000)
        make_watch(test_user.id, listing.id, effective_price_at_add=1000000)

        result = service.check_and_send_price_drop_alerts()

        assert result.no_drop_count == 1
        assert email_sender.sent == []

    def test_orphaned_entries_are_skipped(
        self, db_session, service, email_sender, test_user, make_listing, make_watch
    ):
        """参照先のユーザー・物件が無いエントリはエラーにも成功にも数えない"""
        listing = make_listing(regular_price=500000)
        make_watch(test_user.id, "deleted-listing")
        make_watch("deleted-user", listing.id)

        result = service.check_and_send_price_drop_alerts()

        assert result.total_entries == 2
        assert result.skipped_count == 2
        assert result.success_count == 0
        assert result.error_count == 0
        assert result.success is True
        assert email_sender.sent == []
        assert_counts_consistent(result)

    def test_missing_price_is_skipped(
        self, service, email_sender, test_user, make_listing, make_watch
    ):
        """価格が無いエントリはスキップされる"""
        listing = make_listing(regular_price=None)
        make_watch(test_user.id, listing.id, effective_price_at_add=1000000)
        other = make_listing(name="Hill Villa", regular_price=700000)
        make_watch(test_user.id, other.id, effective_price_at_add=None)

        result = service.check_and_send_price_drop_alerts()

        assert result.skipped_count == 2
        assert email_sender.sent == []
        assert_counts_consistent(result)

    def test_failure_is_isolated_per_entry(
        self, service, email_sender, make_user, make_listing, make_watch
    ):
        """1件の送信失敗で残りの処理は中断しない"""
        listing = make_listing(regular_price=900000)
        alice = make_user(email="alice@example.com", username="alice")
        bob = make_user(email="bob@example.com", username="bob")
        carol = make_user(email="carol@example.com", username="carol")
        for user in (alice, bob, carol):
            make_watch(user.id, listing.id, effective_price_at_add=1000000)
        email_sender.fail_for["bob@example.com"] = "Mailbox full"

        result = service.check_and_send_price_drop_alerts()

        assert result.success is False
        assert result.success_count == 2
        assert result.error_count == 1
        assert result.errors == ["User bob@example.com: Mailbox full"]
        assert result.message == (
            "Processed 3 watchlist entries. 2 price drop alerts sent, 1 failed."
        )
        assert len(email_sender.sent) == 3
        assert_counts_consistent(result)

    def test_unexpected_entry_error_is_counted(
        self, service, email_sender, make_user, make_listing, make_watch, monkeypatch
    ):
        """エントリ処理中の例外はエラーとして集計される"""
        listing = make_listing(regular_price=900000)
        alice = make_user(email="alice@example.com", username="alice")
        bob = make_user(email="bob@example.com", username="bob")
        make_watch(alice.id, listing.id)
        broken = make_watch(bob.id, listing.id)

        original_send = service.send_price_drop_alert

        def flaky_send(user_id, listing_id, details):
            if user_id == bob.id:
                raise ValueError("lost connection to database")
            return original_send(user_id, listing_id, details)

        monkeypatch.setattr(service, "send_price_drop_alert", flaky_send)

        result = service.check_and_send_price_drop_alerts()

        assert result.success_count == 1
        assert result.error_count == 1
        assert result.errors == [f"Entry {broken.id}: lost connection to database"]
        assert_counts_consistent(result)

    def test_repeat_sweep_resends(
        self, service, email_sender, test_user, make_listing, make_watch
    ):
        """状態を持たないため、同じ値下げには実行のたびに通知される"""
        listing = make_listing(regular_price=900000)
        make_watch(test_user.id, listing.id)

        service.check_and_send_price_drop_alerts()
        service.check_and_send_price_drop_alerts()

        assert len(email_sender.sent) == 2

    def test_watchlist_is_not_mutated(
        self, db_session, service, test_user, make_listing, make_watch
    ):
        """スイープはウォッチリストを変更しない"""
        listing = make_listing(regular_price=900000)
        entry = make_watch(test_user.id, listing.id)

        service.check_and_send_price_drop_alerts()

        db_session.expire_all()
        stored = db_session.get(PropertyWatchlist, entry.id)
        assert stored.effective_price_at_add == 1000000

    def test_watchlist_load_failure(self, service, monkeypatch):
        """ウォッチリストの取得失敗は失敗結果を返す"""
        def broken_reader():
            raise RuntimeError("database is locked")

        monkeypatch.setattr(service, "get_watchlist_entries", broken_reader)

        result = service.check_and_send_price_drop_alerts()

        assert result.success is False
        assert result.message == "Failed to check price drop alerts"
        assert result.error == "database is locked"

    def test_process_entry_outcomes(self, service, test_user, make_listing, make_watch):
        """エントリごとの判定結果を返す"""
        from app.schemas.price_drop_alert import AlertResult

        dropped = make_listing(regular_price=900000)
        same = make_listing(name="Same Price Flat", regular_price=1000000)
        make_watch(test_user.id, dropped.id)
        make_watch(test_user.id, same.id)

        entries = {e.listing_id: e for e in service.get_watchlist_entries()}
        result = AlertResult(success=False, message="", errors=[])

        assert service.process_entry(entries[dropped.id], result) == ENTRY_SENT
        assert service.process_entry(entries[same.id], result) == ENTRY_NO_DROP


class TestNotifyWatchersOnChange:
    """物件変更時のウォッチャー通知テスト"""

    def test_price_drop_creates_notifications_and_emails(
        self, db_session, service, email_sender, make_user, make_listing, make_watch
    ):
        """値下げ時は通知作成とメール送信を行う"""
        listing = make_listing(regular_price=800000)
        alice = make_user(email="alice@example.com", username="alice")
        bob = make_user(email="bob@example.com", username="bob")
        make_watch(alice.id, listing.id)
        make_watch(bob.id, listing.id)

        notifications = service.notify_watchers_on_change(
            listing, CHANGE_PRICE_DROP, old_price=1000000, new_price=800000
        )

        assert len(notifications) == 2
        stored = db_session.query(Notification).all()
        assert {n.user_id for n in stored} == {alice.id, bob.id}
        assert all(n.type == "watchlist_price_drop" for n in stored)
        assert all(n.title == "Price Drop Alert" for n in stored)
        assert "₹10,00,000" in stored[0].message
        assert "₹8,00,000" in stored[0].message
        assert sorted(to for to, _ in email_sender.sent) == ["alice@example.com", "bob@example.com"]

    def test_email_failure_does_not_stop_other_watchers(
        self, service, email_sender, make_user, make_listing, make_watch
    ):
        """メール送信失敗でも他のウォッチャーへの通知は続く"""
        listing = make_listing(regular_price=800000)
        alice = make_user(email="alice@example.com", username="alice")
        bob = make_user(email="bob@example.com", username="bob")
        make_watch(alice.id, listing.id)
        make_watch(bob.id, listing.id)
        email_sender.raise_for.add("alice@example.com")

        notifications = service.notify_watchers_on_change(
            listing, CHANGE_PRICE_DROP, old_price=1000000, new_price=800000
        )

        assert len(notifications) == 2
        assert [to for to, _ in email_sender.sent] == ["bob@example.com"]

    def test_removed_listing_notifies_without_email(
        self, db_session, service, email_sender, test_user, make_listing, make_watch
    ):
        """物件削除の通知ではメールを送らない"""
        listing = make_listing()
        make_watch(test_user.id, listing.id)

        notifications = service.notify_watchers_on_change(listing, CHANGE_REMOVED)

        assert len(notifications) == 1
        stored = db_session.query(Notification).one()
        assert stored.type == "watchlist_property_removed"
        assert stored.title == "Property Unavailable"
        assert email_sender.sent == []

    def test_no_watchers(self, service, make_listing):
        """ウォッチャーがいなければ通知しない"""
        listing = make_listing()
        assert service.notify_watchers_on_change(listing, CHANGE_REMOVED) == []
