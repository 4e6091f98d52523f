import asyncio

import httpx

from models.catalog import ListedProduct, Profile
from utils import emailing, notifications
from utils.notifications import (
    ConfirmationRequest,
    base_url_for,
    load_recommendations,
    merchant_reference,
    send_payment_confirmation,
)


def _request(**overrides) -> ConfirmationRequest:
    values = dict(
        user_id="user-1",
        email="a@x.com",
        first_name="Asha",
        plan_name="gold",
        txnid="WH_1700000000_ab12",
        amount="100.00",
        payu_id="403993715523",
        redirect_target="https://app.wanderhub.ai/payment-status?x=1",
    )
    values.update(overrides)
    return ConfirmationRequest(**values)


def _seed_catalog(db):
    db.add(Profile(id="user-1", personalization={"tripTypes": ["Beach"], "excitement": "food"}))
    db.add_all([
        ListedProduct(id="d1", title="Alpine Trek", theme_tags=["mountains"], is_active=True),
        ListedProduct(id="d2", title="Goa Shacks", location="Goa", theme_tags="beach, food",
                      media_urls=["https://img.example/goa.jpg"], pricing=[{"cost": 4999}], is_active=True),
        ListedProduct(id="d3", title="Hidden Beach", theme_tags=["beach"], is_active=False),
    ])
    db.commit()


def test_merchant_reference_uses_last_txnid_segment():
    assert merchant_reference("WH_1700000000_ab12") == "WHub-AB12"
    assert merchant_reference("T1") == "WHub-T1"


def test_base_url_for_prefers_redirect_origin():
    assert base_url_for("https://app.wanderhub.ai/payment-status?x=1", "https://wanderhub.ai") == "https://app.wanderhub.ai"
    assert base_url_for("", "https://wanderhub.ai") == "https://wanderhub.ai"
    assert base_url_for("not a url", "https://wanderhub.ai") == "https://wanderhub.ai"


def test_load_recommendations_ranks_active_products(db):
    _seed_catalog(db)
    cards = load_recommendations(db, "user-1")
    assert [c["id"] for c in cards] == ["d2", "d1"]
    assert cards[0]["price"] == 4999
    assert cards[0]["image_url"] == "https://img.example/goa.jpg"
    assert cards[1]["image_url"] == notifications.DEFAULT_DEAL_IMAGE


def test_confirmation_sent_with_recommendations(db, settings, sent_emails):
    _seed_catalog(db)
    assert asyncio.run(send_payment_confirmation(_request(), settings)) is True

    assert len(sent_emails) == 1
    mail = sent_emails[0]
    assert mail["to"] == "a@x.com"
    assert "GOLD" in mail["subject"]
    assert mail["api_key"] == settings.resend_api_key
    assert mail["timeout"] == settings.notify_timeout_sec
    assert "Goa Shacks" in mail["html"]
    assert "WHub-AB12" in mail["html"]
    assert "https://app.wanderhub.ai/user/deals?id=d2" in mail["html"]


def test_catalog_failure_still_sends(settings, sent_emails, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("catalog offline")

    monkeypatch.setattr(notifications, "load_recommendations", _boom)
    assert asyncio.run(send_payment_confirmation(_request(), settings)) is True
    assert len(sent_emails) == 1
    assert "Selected for Your DNA" not in sent_emails[0]["html"]


def test_sender_failure_is_swallowed(settings, monkeypatch):
    async def _explode(*args, **kwargs):
        raise RuntimeError("smtp gone")

    monkeypatch.setattr(emailing, "send_email_resend", _explode)
    assert asyncio.run(send_payment_confirmation(_request(), settings)) is False


def test_resend_http_error_returns_false(monkeypatch):
    class _FailingClient:
        def __init__(self, *args, **kwargs):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        async def post(self, *args, **kwargs):
            raise httpx.ConnectTimeout("timed out")

    # The autouse recorder replaced send_email_resend; undo it for this test
    monkeypatch.undo()
    monkeypatch.setattr(httpx, "AsyncClient", _FailingClient)
    ok = asyncio.run(emailing.send_email_resend(
        "a@x.com", "subject", "<p>hi</p>", api_key="re_test", from_addr="WanderHub <info@x.com>", timeout=0.1,
    ))
    assert ok is False
