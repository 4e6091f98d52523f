from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import os

from core.config import logger, get_settings  # type: ignore
from utils.errors import ConfigurationError, CallbackValidationError

# Routers
from routers import payu  # type: ignore

app = FastAPI(title="WanderHub PayU Bridge")

# ---- CORS setup ----
# PayU posts from its own domain and the web client calls from the app origin;
# the original edge function answered with "*", which stays the default.
_origins_env = os.getenv("ALLOWED_ORIGINS") or os.getenv("CORS_ORIGINS") or "*"
ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=ALLOWED_ORIGINS != ["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# --- Security headers ---
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    try:
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Cache-Control", "no-store")
    except Exception:
        pass
    return response


@app.exception_handler(ConfigurationError)
async def _configuration_error(request: Request, exc: ConfigurationError):
    logger.error(f"configuration error on {request.url.path}: {exc}")
    return JSONResponse({"error": "Missing PayU Configuration"}, status_code=500)


@app.exception_handler(CallbackValidationError)
async def _validation_error(request: Request, exc: CallbackValidationError):
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code)


app.include_router(payu.router)


@app.on_event("startup")
async def _check_configuration():
    # Fail fast: refuse to serve without processor, storage and mail credentials
    settings = get_settings()
    logger.info(f"PayU bridge configured (key ...{settings.payu_merchant_key[-4:]})")


@app.on_event("startup")
async def _init_ledger_schema():
    try:
        from core.database import init_db
        init_db()
    except Exception as _ex:
        logger.warning(f"init_db failed: {_ex}")


@app.get("/healthz")
async def healthz():
    return {"ok": True}
