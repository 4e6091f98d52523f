"""Exception types shared by the PayU bridge."""


class PaymentBridgeError(Exception):
    """Base class for errors raised by the bridge."""


class ConfigurationError(PaymentBridgeError):
    """Required credentials or connection settings are missing or invalid."""


class CallbackValidationError(PaymentBridgeError):
    """An inbound request lacks fields needed to sign or verify it."""

    status_code = 400


class LedgerWriteError(PaymentBridgeError):
    """A ledger upsert could not be applied."""
