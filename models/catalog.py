"""
Read-only collaborator tables used to enrich confirmation e-mails
- profiles: payer personalization ("travel DNA")
- listed_products: recommendable deals with theme tags
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base

JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the auth user (udf2 on payments)
    id = Column(String(128), primary_key=True, index=True)
    full_name = Column(String(255), nullable=True)
    personalization = Column(JSONPayload, nullable=True)  # {"tripTypes": [...], "excitement": "..."}


class ListedProduct(Base):
    __tablename__ = "listed_products"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    theme_tags = Column(JSONPayload, nullable=True)  # list of tags or a comma separated string
    media_urls = Column(JSONPayload, nullable=True)
    pricing = Column(JSONPayload, nullable=True)  # [{"cost": ..., "label": ...}]
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
