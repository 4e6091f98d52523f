"""
Payment confirmation e-mails for direct customers.

Runs as a FastAPI background task after the verify-hash response is built.
Every failure here is logged and swallowed; the payment result never depends on it.
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from sqlalchemy.orm import Session

from core.config import GatewaySettings, logger
from core.database import SessionLocal
from models.catalog import ListedProduct, Profile
from utils import emailing
from utils.recommendations import collect_interests, rank_recommendations

DEFAULT_DEAL_IMAGE = "https://images.unsplash.com/photo-1501785888041-af3ef285b470?auto=format&fit=crop&w=300"
SUPPORT_EMAIL = "help@wanderhub.ai"


@dataclass
class ConfirmationRequest:
    user_id: str
    email: str
    first_name: str
    plan_name: str
    txnid: str
    amount: str
    payu_id: str = ""
    redirect_target: str = ""


def merchant_reference(txnid: str) -> str:
    return f"WHub-{(txnid or '').split('_')[-1].upper()}"


def base_url_for(redirect_target: Optional[str], default: str) -> str:
    """Origin of the page the payer came from, else the configured app URL."""
    try:
        parts = urlsplit(redirect_target or "")
    except ValueError:
        return default
    if parts.scheme in ("http", "https") and parts.netloc:
        return f"{parts.scheme}://{parts.netloc}"
    return default


def _product_dict(p: ListedProduct) -> dict:
    return {
        "id": p.id,
        "title": p.title,
        "location": p.location,
        "theme_tags": p.theme_tags,
        "media_urls": p.media_urls,
        "pricing": p.pricing,
    }


def _card(product: dict) -> dict:
    media = product.get("media_urls") or []
    pricing = product.get("pricing") or []
    price = None
    if isinstance(pricing, list) and pricing and isinstance(pricing[0], dict):
        price = pricing[0].get("cost")
    return {
        "id": product.get("id"),
        "title": product.get("title"),
        "location": product.get("location"),
        "image_url": (media[0] if isinstance(media, list) and media else None) or DEFAULT_DEAL_IMAGE,
        "price": price,
    }


def load_recommendations(db: Session, user_id: str, catalog_limit: int = 20) -> list[dict]:
    profile = db.query(Profile).filter(Profile.id == user_id).first() if user_id else None
    interests = collect_interests(profile.personalization if profile else None)
    products = (
        db.query(ListedProduct)
        .filter(ListedProduct.is_active.is_(True))
        .limit(catalog_limit)
        .all()
    )
    ranked = rank_recommendations([_product_dict(p) for p in products], interests)
    return [_card(p) for p in ranked]


def build_confirmation_email(req: ConfirmationRequest, recommendations: list[dict], settings: GatewaySettings) -> tuple[str, str]:
    plan = (req.plan_name or "").upper()
    subject = " ".join(p for p in ("Activation Confirmed: Welcome to", emailing.APP_NAME, plan, "🚀") if p)
    html = emailing.render_email(
        "payment_confirmation.html",
        first_name=req.first_name,
        plan_name=req.plan_name or "",
        merchant_ref=merchant_reference(req.txnid),
        gateway_ref=req.payu_id or "N/A",
        amount=req.amount,
        base_url=base_url_for(req.redirect_target, settings.app_base_url),
        recommendations=recommendations,
        support_email=SUPPORT_EMAIL,
    )
    return subject, html


async def send_payment_confirmation(req: ConfirmationRequest, settings: GatewaySettings) -> bool:
    try:
        recommendations: list[dict] = []
        db = SessionLocal()
        try:
            recommendations = load_recommendations(db, req.user_id, settings.catalog_limit)
        except Exception as ex:
            logger.warning(f"[notify] recommendations unavailable for {req.user_id}: {ex}")
        finally:
            db.close()

        subject, html = build_confirmation_email(req, recommendations, settings)
        sent = await emailing.send_email_resend(
            req.email,
            subject,
            html,
            api_key=settings.resend_api_key,
            from_addr=settings.mail_from,
            api_base=settings.resend_api_base,
            timeout=settings.notify_timeout_sec,
        )
        if sent:
            logger.info(f"[notify] confirmation sent for {req.txnid}")
        return sent
    except Exception as ex:
        logger.exception(f"[notify] confirmation failed for {req.txnid}: {ex}")
        return False
