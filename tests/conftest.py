"""
テスト用の共通設定・フィクスチャ
"""

import os
import uuid
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# テスト用の環境変数を設定（app.mainをインポートする前に設定）
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("RESEND_API_KEY", "test-resend-api-key")
os.environ.setdefault("FRONTEND_URL", "https://urbansetu.test")

from app.main import app
from app.database import get_db, Base
from app.dependencies import create_access_token
from app.models import Listing, PropertyWatchlist, User
from app.services.email_service import get_email_service


# テスト用のインメモリSQLiteデータベース
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """テスト用のDBセッションを提供"""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


class FakeEmailSender:
    """送信内容を記録するメール送信のテストダブル"""

    def __init__(self):
        self.sent = []
        self.test_emails = []
        self.fail_for = {}
        self.raise_for = set()

    def send_price_drop_alert_email(self, to, payload):
        if to in self.raise_for:
            raise RuntimeError(f"SMTP connection lost for {to}")
        self.sent.append((to, payload))
        if to in self.fail_for:
            return {"success": False, "error": self.fail_for[to]}
        return {"success": True, "id": f"email-{len(self.sent)}"}

    def send_test_email(self, to):
        self.test_emails.append(to)
        if to in self.fail_for:
            return {"success": False, "error": self.fail_for[to]}
        return {"success": True, "id": "test-email-id"}


@pytest.fixture(scope="function")
def db_session():
    """各テスト用のDBセッション"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def email_sender():
    """記録用のメール送信"""
    return FakeEmailSender()


@pytest.fixture(scope="function")
def client(db_session, email_sender):
    """テスト用のAPIクライアント"""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_sender

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """テスト用ユーザーを作成する関数"""
    def _make_user(email="buyer@example.com", username="buyer", **kwargs):
        user = User(id=str(uuid.uuid4()), email=email, username=username, **kwargs)
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_listing(db_session):
    """テスト用物件を作成する関数"""
    def _make_listing(
        name="Sea View 3BHK",
        regular_price=1000000,
        discount_price=None,
        offer=False,
        **kwargs,
    ):
        kwargs.setdefault("description", "Spacious apartment near the beach")
        kwargs.setdefault("type", "sale")
        kwargs.setdefault("city", "Mumbai")
        kwargs.setdefault("state", "Maharashtra")
        kwargs.setdefault("image_urls", ["https://cdn.urbansetu.test/1.jpg"])
        listing = Listing(
            id=str(uuid.uuid4()),
            name=name,
            regular_price=regular_price,
            discount_price=discount_price,
            offer=offer,
            **kwargs,
        )
        db_session.add(listing)
        db_session.commit()
        return listing
    return _make_listing


@pytest.fixture
def make_watch(db_session):
    """ウォッチリストのエントリを作成する関数"""
    def _make_watch(user_id, listing_id, effective_price_at_add=1000000):
        entry = PropertyWatchlist(
            id=str(uuid.uuid4()),
            user_id=user_id,
            listing_id=listing_id,
            effective_price_at_add=effective_price_at_add,
        )
        db_session.add(entry)
        db_session.commit()
        return entry
    return _make_watch


@pytest.fixture
def test_user(make_user):
    """テスト用ユーザー"""
    return make_user(first_name="Asha", last_name="Rao")


@pytest.fixture
def auth_headers(test_user):
    """認証ヘッダーを取得"""
    token = create_access_token({"sub": test_user.email})
    return {"Authorization": f"Bearer {token}"}
