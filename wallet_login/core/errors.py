"""
Error taxonomy for wallet login.

Every error carries a stable ``code`` that the HTTP layer maps to a status code
(see wallet_login/api/errors.py). Authentication failures are intentionally
coarse: nonce mismatch, signature mismatch and bad or expired tokens all surface
as the same ``AuthError`` so a caller cannot tell which check failed.
"""


class WalletLoginError(Exception):
    """Base exception for the service."""

    code = "INTERNAL_ERROR"
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(WalletLoginError):
    """Malformed input. Raised before any registry access."""

    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class NotFoundError(WalletLoginError):
    code = "NOT_FOUND"
    default_message = "User does not exist"


class AlreadyExistsError(WalletLoginError):
    code = "ALREADY_EXISTS"
    default_message = "User already exists"


class AuthError(WalletLoginError):
    """Uniform authentication failure."""

    code = "AUTHENTICATION_ERROR"
    default_message = "Unauthorized"


class SignatureFormatError(WalletLoginError):
    """Signature is structurally invalid or does not recover to a public key."""

    code = "SIGNATURE_FORMAT_ERROR"
    default_message = "Malformed signature"


class InternalError(WalletLoginError):
    code = "INTERNAL_ERROR"
    default_message = "Internal error"


class RandomSourceError(InternalError):
    """The OS entropy source could not produce a value. Retryable."""

    default_message = "Random source unavailable"
