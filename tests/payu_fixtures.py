"""Field-set builders shared by the test modules."""
from utils.payu_hash import PayUCredentials, SignatureContext, sign_response

KEY = "gtKFFx"
SALT = "eCwWELxi"


def make_fields(**overrides) -> dict:
    """PayU style field set for a Gold plan purchase by payer user-1."""
    fields = {
        "txnid": "T1",
        "amount": "100",
        "productinfo": "Gold Plan",
        "firstname": "Asha",
        "email": "a@x.com",
        "udf1": "https://app.wanderhub.ai/payment-status",
        "udf2": "user-1",
        "udf3": "gold",
        "udf4": "customer",
        "udf5": "monthly",
    }
    fields.update(overrides)
    return fields


def processor_response(**overrides) -> dict:
    """What PayU posts back: the request fields plus status, mihpayid and a response hash."""
    fields = make_fields(**overrides)
    fields.setdefault("status", "success")
    fields.setdefault("mihpayid", "403993715523")
    fields["hash"] = sign_response(SignatureContext.from_fields(fields), PayUCredentials(KEY, SALT))
    return fields
