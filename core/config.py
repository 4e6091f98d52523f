import os
import logging
from dataclasses import dataclass
from functools import lru_cache
from dotenv import load_dotenv

from utils.errors import ConfigurationError

# Load .env from project root
try:
    load_dotenv(dotenv_path=os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".env")))
except Exception:
    try:
        load_dotenv()
    except Exception:
        pass

# Logging
LOG_LEVEL = (os.getenv("LOG_LEVEL", "INFO") or "INFO").strip().upper()
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s | %(levelname)s | %(message)s")
logger = logging.getLogger("wanderhub")

REQUIRED_ENV = (
    "PAYU_MERCHANT_KEY",
    "PAYU_MERCHANT_SALT",
    "DATABASE_URL",
    "RESEND_API_KEY",
)


def _env(name: str, default: str = "") -> str:
    # Values pasted from dashboards often carry quotes or backticks
    return (os.getenv(name, default) or "").strip().strip('"').strip("'").strip('`')


@dataclass(frozen=True)
class GatewaySettings:
    """Processor, storage and mail credentials, resolved once at startup."""

    payu_merchant_key: str
    payu_merchant_salt: str
    database_url: str
    resend_api_key: str
    mail_from: str = "TraivoAI <info@traivoai.com>"
    resend_api_base: str = "https://api.resend.com"
    app_base_url: str = "https://wanderhub.ai"
    notify_timeout_sec: float = 10.0
    catalog_limit: int = 20


def load_settings() -> GatewaySettings:
    missing = [name for name in REQUIRED_ENV if not _env(name)]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    try:
        timeout = float(_env("NOTIFY_TIMEOUT_SEC", "10") or "10")
        catalog_limit = int(_env("CATALOG_LIMIT", "20") or "20")
    except ValueError:
        raise ConfigurationError("NOTIFY_TIMEOUT_SEC and CATALOG_LIMIT must be numbers")
    if timeout <= 0:
        raise ConfigurationError("NOTIFY_TIMEOUT_SEC must be positive")

    return GatewaySettings(
        payu_merchant_key=_env("PAYU_MERCHANT_KEY"),
        payu_merchant_salt=_env("PAYU_MERCHANT_SALT"),
        database_url=_env("DATABASE_URL"),
        resend_api_key=_env("RESEND_API_KEY"),
        mail_from=_env("MAIL_FROM") or "TraivoAI <info@traivoai.com>",
        resend_api_base=(_env("RESEND_API_BASE") or "https://api.resend.com").rstrip("/"),
        app_base_url=(_env("APP_BASE_URL") or "https://wanderhub.ai").rstrip("/"),
        notify_timeout_sec=timeout,
        catalog_limit=catalog_limit,
    )


@lru_cache(maxsize=1)
def get_settings() -> GatewaySettings:
    """
    Dependency for FastAPI routes that need credentials.
    Raises ConfigurationError when the environment is incomplete.
    """
    return load_settings()
