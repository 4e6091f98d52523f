from typing import Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape
import httpx
import os

from core.config import logger

# Jinja env
_templates_dir = os.path.join(os.path.dirname(__file__), "..", "templates")
_jinja_env = Environment(
    loader=FileSystemLoader(_templates_dir),
    autoescape=select_autoescape(["html", "xml"]),
)

EMAIL_BRAND_ACCENT = os.getenv("EMAIL_BRAND_ACCENT", "#0d9488")
EMAIL_BRAND_BG = os.getenv("EMAIL_BRAND_BG", "#0f172a")
APP_NAME = os.getenv("APP_NAME", "WanderHub")


def render_email(template_name: str, **context) -> str:
    base = {
        "app_name": APP_NAME,
        "brand_bg": EMAIL_BRAND_BG,
        "accent": EMAIL_BRAND_ACCENT,
    }
    base.update(context or {})
    return _jinja_env.get_template(template_name).render(**base)


async def send_email_resend(
    to_addr: str,
    subject: str,
    html: str,
    *,
    api_key: str,
    from_addr: str,
    api_base: str = "https://api.resend.com",
    timeout: float = 10.0,
    reply_to: Optional[str] = None,
) -> bool:
    """POST one message to the Resend API. Returns False instead of raising."""
    if not api_key or not to_addr:
        logger.error("[email] Resend not configured or no recipient; cannot send email")
        return False
    payload = {
        "from": from_addr,
        "to": [to_addr],
        "subject": subject,
        "html": html,
    }
    if reply_to:
        payload["reply_to"] = reply_to
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(f"{api_base.rstrip('/')}/emails", headers=headers, json=payload)
        if resp.status_code >= 400:
            logger.warning(f"[email] Resend rejected message ({resp.status_code}): {resp.text[:300]}")
            return False
        return True
    except httpx.HTTPError as ex:
        logger.warning(f"[email] Resend request failed: {ex}")
        return False
