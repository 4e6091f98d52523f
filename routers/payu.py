from fastapi import APIRouter, Request, Depends, Query, BackgroundTasks
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session
from urllib.parse import urlencode

from core.config import GatewaySettings, get_settings, logger
from core.database import SessionLocal, get_db
from utils.callback import InboundCallback, read_callback
from utils.errors import CallbackValidationError
from utils.ledger import (
    LedgerVariant,
    PaymentAttempt,
    find_attempt,
    find_subscription,
    reconcile,
)
from utils.notifications import ConfirmationRequest, send_payment_confirmation
from utils.payu_hash import PayUCredentials, sign_request, sign_response, verify_response

router = APIRouter(tags=["payu"])

ACTION_GENERATE = "generate-hash"
ACTION_VERIFY = "verify-hash"

SIGNING_FIELDS = ("txnid", "amount", "productinfo", "firstname", "email")
VERIFY_FIELDS = ("txnid", "status", "hash")


def _credentials(settings: GatewaySettings) -> PayUCredentials:
    return PayUCredentials(settings.payu_merchant_key, settings.payu_merchant_salt)


def _require(callback: InboundCallback, names: tuple[str, ...], purpose: str) -> None:
    missing = callback.fields.missing(*names)
    if missing:
        raise CallbackValidationError(f"Missing required fields for {purpose}: {', '.join(missing)}")


def redirect_url(target: str, pairs: list[tuple[str, str]]) -> str:
    query = urlencode(pairs)
    if not query:
        return target
    joiner = "&" if "?" in target else "?"
    return f"{target}{joiner}{query}"


def generate_hash(callback: InboundCallback, settings: GatewaySettings) -> dict:
    _require(callback, SIGNING_FIELDS, "hash generation")
    try:
        digest = sign_request(callback.fields.signature_context(), _credentials(settings))
    except ValueError as ex:
        raise CallbackValidationError(f"Invalid amount: {ex}")
    logger.info(f"[payu] generated request hash for {callback.fields.txnid}")
    return {"digest": digest, "signingKey": settings.payu_merchant_key}


def verify_hash(
    callback: InboundCallback,
    db: Session,
    background_tasks: BackgroundTasks,
    settings: GatewaySettings,
) -> dict:
    _require(callback, VERIFY_FIELDS, "hash verification")
    fields = callback.fields
    ctx, creds = fields.signature_context(), _credentials(settings)
    expected = sign_response(ctx, creds)
    verified = verify_response(ctx, creds, fields.hash)
    attempt = PaymentAttempt.from_callback(fields, callback.raw)

    if not verified:
        logger.warning(f"[payu] hash mismatch for {fields.txnid} (status={fields.status})")
    result = reconcile(db, attempt, verified)

    # Replays of an already successful txnid do not e-mail again
    if result.first_success and attempt.ledger is LedgerVariant.CUSTOMER and fields.email:
        background_tasks.add_task(
            send_payment_confirmation,
            ConfirmationRequest(
                user_id=attempt.user_id,
                email=fields.email,
                first_name=fields.firstname,
                plan_name=attempt.plan_name,
                txnid=fields.txnid,
                amount=fields.amount,
                payu_id=fields.mihpayid,
                redirect_target=fields.udf1,
            ),
            settings,
        )

    return {
        "verified": verified,
        "status": fields.status,
        "generatedDigest": expected,
        "receivedDigest": fields.hash,
        "ledger": attempt.ledger.label,
        "recorded": result.history_recorded,
        "activated": result.subscription_activated,
        "ok": result.ok,
    }


def _reconcile_detached(attempt: PaymentAttempt) -> None:
    """Background reconciliation for browser redirects; owns its own session."""
    db = SessionLocal()
    try:
        reconcile(db, attempt, verified=True)
    except Exception as ex:
        logger.exception(f"[payu] redirect reconciliation failed for {attempt.txnid}: {ex}")
    finally:
        db.close()


def handle_redirect(callback: InboundCallback, background_tasks: BackgroundTasks, settings: GatewaySettings):
    target = callback.redirect_target or callback.success_url
    if not target:
        logger.warning(f"[payu] redirect callback without udf1/surl (txnid={callback.fields.txnid or '-'})")
        return JSONResponse({"error": "Missing redirect URL (udf1 or surl)"}, status_code=400)

    fields = callback.fields
    if fields.missing(*VERIFY_FIELDS):
        logger.warning(f"[payu] redirect callback missing {', '.join(fields.missing(*VERIFY_FIELDS))}; ledger not updated")
    elif verify_response(fields.signature_context(), _credentials(settings), fields.hash):
        background_tasks.add_task(_reconcile_detached, PaymentAttempt.from_callback(fields, callback.raw))
    else:
        logger.warning(f"[payu] hash mismatch for redirect payload {fields.txnid}")

    return RedirectResponse(url=redirect_url(target, callback.pairs), status_code=303)


@router.post("/api/payu")
@router.post("/functions/v1/payu-api")
async def payu_api(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: GatewaySettings = Depends(get_settings),
):
    """
    PayU bridge.

    JSON body with ``action``:
      generate-hash -> { digest, signingKey }
      verify-hash   -> { verified, status, generatedDigest, receivedDigest, ledger, recorded, activated, ok }
    Form post (PayU surl/furl) -> 303 to udf1 (or surl) with every posted field as query params.
    """
    try:
        callback = await read_callback(request)
        if callback.is_form:
            return handle_redirect(callback, background_tasks, settings)
        if callback.action == ACTION_GENERATE:
            return generate_hash(callback, settings)
        if callback.action == ACTION_VERIFY:
            return verify_hash(callback, db, background_tasks, settings)
    except CallbackValidationError as ex:
        logger.info(f"[payu] rejected request: {ex}")
        return JSONResponse({"error": str(ex)}, status_code=ex.status_code)

    return JSONResponse({"error": "Invalid action"}, status_code=400)


@router.get("/api/payu/transactions/{txnid}")
def payu_transaction(txnid: str, ledger: str = Query("customer"), db: Session = Depends(get_db)):
    """Read back a reconciled attempt so the status page can confirm activation."""
    try:
        variant = LedgerVariant.from_label(ledger)
    except ValueError:
        return JSONResponse({"error": "ledger must be 'customer' or 'affiliate'"}, status_code=400)

    row = find_attempt(db, txnid, variant)
    if not row:
        return JSONResponse({"error": "Transaction not found"}, status_code=404)

    subscription = None
    sub = find_subscription(db, row.user_id, variant) if row.user_id else None
    if sub:
        subscription = {
            "status": sub.status,
            "plan": getattr(sub, variant.tables.plan_column),
            "currentPeriodStart": sub.current_period_start.isoformat() if sub.current_period_start else None,
        }

    return {
        "txnid": row.txnid,
        "ledger": variant.label,
        "status": row.status,
        "amount": str(row.amount) if row.amount is not None else None,
        "planName": row.plan_name,
        "processorRef": row.payu_id,
        "userId": row.user_id,
        "recordedAt": row.created_at.isoformat() if row.created_at else None,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
        "subscription": subscription,
    }
