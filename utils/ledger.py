"""
Idempotent reconciliation of PayU outcomes into the payment ledger.

A verified attempt is written to its history table keyed by ``txnid``; a
``success`` additionally activates the payer's subscription keyed by
``user_id``. Both writes are INSERT .. ON CONFLICT DO UPDATE so processor
retries overwrite instead of duplicating. Write failures are logged and
reported on the result; they never abort the caller.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from core.config import logger
from models.ledger import (
    AgentSubscriptionPaymentHistory,
    AgentUserSubscription,
    PaymentHistory,
    UserSubscription,
)
from utils.errors import LedgerWriteError

AFFILIATE_DISCRIMINATOR = "affiliate"
STATUS_SUCCESS = "success"


@dataclass(frozen=True)
class LedgerTables:
    name: str
    history: type
    subscription: type
    plan_column: str  # column on the subscription row holding udf3


class LedgerVariant(Enum):
    CUSTOMER = LedgerTables("customer", PaymentHistory, UserSubscription, "plan_name")
    AFFILIATE = LedgerTables("affiliate", AgentSubscriptionPaymentHistory, AgentUserSubscription, "tier_name")

    @property
    def tables(self) -> LedgerTables:
        return self.value

    @property
    def label(self) -> str:
        return self.value.name

    @classmethod
    def from_label(cls, label: str) -> "LedgerVariant":
        for variant in cls:
            if variant.label == (label or "").strip().lower():
                return variant
        raise ValueError(f"unknown ledger: {label!r}")


def select_ledger(discriminator: Optional[str]) -> LedgerVariant:
    if (discriminator or "") == AFFILIATE_DISCRIMINATOR:
        return LedgerVariant.AFFILIATE
    return LedgerVariant.CUSTOMER


@dataclass
class PaymentAttempt:
    txnid: str
    status: str
    user_id: str = ""
    plan_name: str = ""
    amount: str = ""
    payu_id: str = ""
    discriminator: str = ""
    raw_response: dict = field(default_factory=dict)

    @classmethod
    def from_callback(cls, fields, raw: Optional[dict] = None) -> "PaymentAttempt":
        """Map PayU fields: udf2 = payer id, udf3 = plan/tier, udf4 = ledger flag."""
        return cls(
            txnid=fields.txnid,
            status=fields.status,
            user_id=fields.udf2,
            plan_name=fields.udf3,
            amount=fields.amount,
            payu_id=fields.mihpayid,
            discriminator=fields.udf4,
            raw_response=dict(raw or {}),
        )

    @property
    def ledger(self) -> LedgerVariant:
        return select_ledger(self.discriminator)

    @property
    def is_success(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass
class ReconcileResult:
    verified: bool
    ledger: Optional[LedgerVariant] = None
    history_recorded: bool = False
    subscription_activated: bool = False
    previous_status: Optional[str] = None
    errors: list[str] = field(default_factory=list)

    @property
    def first_success(self) -> bool:
        """This call moved the attempt into ``success``; replays report False."""
        return self.subscription_activated and self.previous_status != STATUS_SUCCESS

    @property
    def ok(self) -> bool:
        return self.verified and not self.errors


def _parse_amount(amount: str) -> Optional[Decimal]:
    try:
        value = Decimal((amount or "0.00").strip())
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise LedgerWriteError(f"upsert not supported on dialect {dialect}")
    return insert


def upsert(db: Session, model: type, values: dict[str, Any], key: str) -> None:
    """INSERT .. ON CONFLICT (key) DO UPDATE SET <every other column>."""
    insert = _dialect_insert(db)
    stmt = insert(model).values(**values)
    updates = {col: stmt.excluded[col] for col in values if col != key}
    if "updated_at" in model.__table__.columns:
        updates["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(index_elements=[key], set_=updates)
    try:
        db.execute(stmt)
        db.commit()
    except Exception as ex:
        db.rollback()
        raise LedgerWriteError(f"{model.__tablename__}: {ex}") from ex


def previous_status(db: Session, txnid: str, ledger: LedgerVariant) -> Optional[str]:
    model = ledger.tables.history
    try:
        return db.query(model.status).filter(model.txnid == txnid).scalar()
    except SQLAlchemyError as ex:
        db.rollback()
        raise LedgerWriteError(f"{model.__tablename__}: {ex}") from ex


def record_attempt(db: Session, attempt: PaymentAttempt, ledger: LedgerVariant) -> Optional[str]:
    """Upsert the history row; returns the status it held before this call."""
    previous = previous_status(db, attempt.txnid, ledger)
    amount = _parse_amount(attempt.amount)
    if amount is None:
        logger.warning(f"[ledger] unparseable amount for {attempt.txnid}; storing null")
    upsert(
        db,
        ledger.tables.history,
        {
            "txnid": attempt.txnid,
            "user_id": attempt.user_id or None,
            "plan_name": attempt.plan_name or None,
            "amount": amount,
            "status": attempt.status,
            "payu_id": attempt.payu_id or None,
            "raw_response": attempt.raw_response,
        },
        key="txnid",
    )
    return previous


def activate_subscription(db: Session, attempt: PaymentAttempt, ledger: LedgerVariant) -> None:
    if not attempt.user_id:
        raise LedgerWriteError(f"no payer id (udf2) on {attempt.txnid}")
    tables = ledger.tables
    upsert(
        db,
        tables.subscription,
        {
            "user_id": attempt.user_id,
            tables.plan_column: attempt.plan_name or None,
            "status": "active",
            "current_period_start": datetime.now(timezone.utc),
        },
        key="user_id",
    )


def reconcile(db: Session, attempt: PaymentAttempt, verified: bool) -> ReconcileResult:
    if not verified:
        logger.warning(f"[ledger] refusing unverified attempt {attempt.txnid}")
        return ReconcileResult(verified=False)

    ledger = attempt.ledger
    result = ReconcileResult(verified=True, ledger=ledger)

    try:
        result.previous_status = record_attempt(db, attempt, ledger)
        result.history_recorded = True
    except LedgerWriteError as ex:
        logger.exception(f"[ledger] history write failed ({ledger.label}) txnid={attempt.txnid}: {ex}")
        result.errors.append(f"history: {ex}")

    if attempt.is_success and not attempt.user_id:
        logger.warning(f"[ledger] success without payer id (udf2) on {attempt.txnid}; subscription not activated")
        result.errors.append(f"subscription: no payer id (udf2) on {attempt.txnid}")
    elif attempt.is_success:
        try:
            activate_subscription(db, attempt, ledger)
            result.subscription_activated = True
        except LedgerWriteError as ex:
            logger.exception(
                f"[ledger] subscription update failed ({ledger.label}) user={attempt.user_id} txnid={attempt.txnid}: {ex}"
            )
            result.errors.append(f"subscription: {ex}")

    logger.info(
        f"[ledger] reconciled {attempt.txnid} status={attempt.status} ledger={ledger.label} "
        f"history={result.history_recorded} activated={result.subscription_activated}"
    )
    return result


def find_attempt(db: Session, txnid: str, ledger: LedgerVariant):
    model = ledger.tables.history
    return db.query(model).filter(model.txnid == txnid).first()


def find_subscription(db: Session, user_id: str, ledger: LedgerVariant):
    model = ledger.tables.subscription
    return db.query(model).filter(model.user_id == user_id).first()
