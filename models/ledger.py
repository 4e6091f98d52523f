"""
Payment ledger models for PostgreSQL
Two parallel table pairs share one shape:
- payment_history / user_subscriptions                         (direct customers, keyed by plan)
- agent_subscription_payment_history / agent_user_subscriptions (affiliate agents, keyed by tier)
"""
from sqlalchemy import Column, Integer, String, DateTime, Numeric, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class PaymentHistory(Base):
    __tablename__ = "payment_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    txnid = Column(String(255), nullable=False, unique=True, index=True)  # Merchant transaction id (idempotency key)
    user_id = Column(String(128), nullable=True, index=True)
    plan_name = Column(String(100), nullable=True)
    amount = Column(Numeric(12, 2), nullable=True)
    status = Column(String(50), nullable=False)  # success, failure, pending, ...
    payu_id = Column(String(255), nullable=True)  # mihpayid
    raw_response = Column(JSONPayload, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, unique=True, index=True)
    plan_name = Column(String(100), nullable=True)
    status = Column(String(50), nullable=False, default="inactive")  # active, inactive, cancelled
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class AgentSubscriptionPaymentHistory(Base):
    __tablename__ = "agent_subscription_payment_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    txnid = Column(String(255), nullable=False, unique=True, index=True)
    user_id = Column(String(128), nullable=True, index=True)
    plan_name = Column(String(100), nullable=True)  # Tier name as sent in udf3
    amount = Column(Numeric(12, 2), nullable=True)
    status = Column(String(50), nullable=False)
    payu_id = Column(String(255), nullable=True)
    raw_response = Column(JSONPayload, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class AgentUserSubscription(Base):
    __tablename__ = "agent_user_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, unique=True, index=True)
    tier_name = Column(String(100), nullable=True)
    status = Column(String(50), nullable=False, default="inactive")
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
