"""
PayU hash codec.

PayU signs requests and responses with SHA-512 over a pipe-delimited string. The
two directions use different field orders:

    request:  key|txnid|amount|productinfo|firstname|email|udf1|udf2|udf3|udf4|udf5||||||SALT
    response: SALT|status||||||udf5|udf4|udf3|udf2|udf1|email|firstname|productinfo|amount|txnid|key

The run of empty slots stands for udf6..udf10 and must always be present. Missing
optional fields are substituted with empty strings, never dropped.
"""
import hashlib
import hmac
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, NamedTuple, Optional

# udf6..udf10 are reserved by PayU and always sent empty
_RESERVED_UDF_SLOTS = ("",) * 5


class PayUCredentials(NamedTuple):
    key: str
    salt: str


class SignatureContext(NamedTuple):
    txnid: str
    amount: str
    productinfo: str = ""
    firstname: str = ""
    email: str = ""
    udf1: str = ""
    udf2: str = ""
    udf3: str = ""
    udf4: str = ""
    udf5: str = ""
    status: str = ""

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "SignatureContext":
        """Build a context from a field map, defaulting absent slots to ''."""
        values = {}
        for name in cls._fields:
            raw = fields.get(name)
            values[name] = "" if raw is None else str(raw)
        return cls(**values)


def format_amount(amount: Any) -> str:
    """
    Render an amount the way PayU signs it on the request leg.

    Whole numbers lose their decimal point ("100.00" -> "100"); fractional
    amounts keep the caller's string ("499.50" stays "499.50").
    """
    text = str(amount).strip()
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"amount is not a number: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"amount is not a number: {amount!r}")
    if value == value.to_integral_value():
        return str(int(value))
    return text


def request_hash_string(ctx: SignatureContext, creds: PayUCredentials) -> str:
    parts = (
        creds.key,
        ctx.txnid,
        format_amount(ctx.amount),
        ctx.productinfo,
        ctx.firstname,
        ctx.email,
        ctx.udf1,
        ctx.udf2,
        ctx.udf3,
        ctx.udf4,
        ctx.udf5,
        *_RESERVED_UDF_SLOTS,
        creds.salt,
    )
    return "|".join(parts)


def response_hash_string(ctx: SignatureContext, creds: PayUCredentials) -> str:
    parts = (
        creds.salt,
        ctx.status,
        *_RESERVED_UDF_SLOTS,
        ctx.udf5,
        ctx.udf4,
        ctx.udf3,
        ctx.udf2,
        ctx.udf1,
        ctx.email,
        ctx.firstname,
        ctx.productinfo,
        ctx.amount or "0.00",
        ctx.txnid,
        creds.key,
    )
    return "|".join(parts)


def sha512_hex(value: str) -> str:
    return hashlib.sha512(value.encode("utf-8")).hexdigest()


def sign_request(ctx: SignatureContext, creds: PayUCredentials) -> str:
    """Hash for a payment request that is about to be posted to PayU."""
    return sha512_hex(request_hash_string(ctx, creds))


def sign_response(ctx: SignatureContext, creds: PayUCredentials) -> str:
    """Hash PayU is expected to send back for this response."""
    return sha512_hex(response_hash_string(ctx, creds))


def digests_match(expected: str, received: Optional[str]) -> bool:
    if not isinstance(received, str) or not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def verify_response(ctx: SignatureContext, creds: PayUCredentials, received: Optional[str]) -> bool:
    """True when ``received`` is the response hash for ``ctx``; never raises."""
    return digests_match(sign_response(ctx, creds), received)
