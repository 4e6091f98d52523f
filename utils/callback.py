"""Canonical field extraction for PayU calls arriving as JSON or as form posts."""
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from fastapi import Request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from utils.errors import CallbackValidationError
from utils.payu_hash import SignatureContext

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _alias(*names: str):
    return Field("", validation_alias=AliasChoices(*names))


class CallbackFields(BaseModel):
    """PayU wire fields; the camelCase names used by the web client are accepted too."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    txnid: str = _alias("txnid", "transactionId", "transaction_id")
    amount: str = _alias("amount")
    productinfo: str = _alias("productinfo", "productInfo", "product_info")
    firstname: str = _alias("firstname", "firstName", "first_name")
    email: str = _alias("email")
    udf1: str = _alias("udf1", "userField1")
    udf2: str = _alias("udf2", "userField2")
    udf3: str = _alias("udf3", "userField3")
    udf4: str = _alias("udf4", "userField4")
    udf5: str = _alias("udf5", "userField5")
    status: str = _alias("status")
    hash: str = _alias("hash", "digest")
    mihpayid: str = _alias("mihpayid", "processorRef", "processorReference")
    surl: str = _alias("surl", "successUrl")

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def signature_context(self) -> SignatureContext:
        return SignatureContext.from_fields(self.model_dump(include=set(SignatureContext._fields)))

    def missing(self, *names: str) -> list[str]:
        return [n for n in names if not str(getattr(self, n, "") or "").strip()]


@dataclass
class InboundCallback:
    transport: str  # "json" or "form"
    fields: CallbackFields
    action: Optional[str] = None
    # Form posts keep every (name, value) pair verbatim, in arrival order
    pairs: list[tuple[str, str]] = field(default_factory=list)
    raw: dict = field(default_factory=dict)

    @property
    def is_form(self) -> bool:
        return self.transport == "form"

    @property
    def redirect_target(self) -> Optional[str]:
        return self.fields.udf1.strip() or None

    @property
    def success_url(self) -> Optional[str]:
        return self.fields.surl.strip() or None


def _validate(data: dict) -> CallbackFields:
    try:
        return CallbackFields.model_validate(data)
    except ValidationError as ex:
        bad = ", ".join(str(e["loc"][0]) for e in ex.errors() if e.get("loc"))
        raise CallbackValidationError(f"Invalid field values: {bad or 'payload'}")


def from_json(body: Any) -> InboundCallback:
    if not isinstance(body, dict):
        raise CallbackValidationError("Request body must be a JSON object")
    data = {k: v for k, v in body.items() if k != "action"}
    action = body.get("action")
    return InboundCallback(
        transport="json",
        fields=_validate(data),
        action=str(action) if action is not None else None,
        raw=data,
    )


def from_form_pairs(pairs: Iterable[tuple[str, Any]]) -> InboundCallback:
    kept: list[tuple[str, str]] = []
    for key, value in pairs:
        if not isinstance(value, str):
            # Uploaded files carry no PayU fields; keep their name only
            value = getattr(value, "filename", None) or ""
        kept.append((key, value))
    data = dict(kept)
    return InboundCallback(
        transport="form",
        fields=_validate(data),
        action="redirect-callback",
        pairs=kept,
        raw=data,
    )


async def read_callback(request: Request) -> InboundCallback:
    content_type = (request.headers.get("content-type") or "").lower()
    if any(ct in content_type for ct in FORM_CONTENT_TYPES):
        form = await request.form()
        return from_form_pairs(form.multi_items())
    try:
        body = await request.json()
    except Exception:
        raise CallbackValidationError("Invalid JSON body")
    return from_json(body)
