"""
JWT Token Utilities

This module handles JSON Web Token (JWT) creation and verification for wallet authentication.
After a user successfully signs their nonce, the TokenProvider creates a JWT token
that can be used for subsequent authenticated API requests.

Flow:
1. User signs in with a valid signature -> TokenProvider.issue() generates JWT
2. User makes API request with JWT in Authorization header -> TokenProvider.verify() validates it
3. Protected endpoints use get_current_user() from dependencies.py to resolve the user record

The JWT contains:
- iss: The configured issuer (TOKEN_ISSUER)
- sub: The authenticated account address (lowercase)
- iat: Issued at timestamp
- exp: Expiration timestamp (configurable via ACCESS_TOKEN_EXPIRE_SECONDS)

Tokens are not stored anywhere; validity is decided by signature and expiry alone.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from wallet_login.core.errors import AuthError, InternalError


HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
REQUIRED_CLAIMS = ["iss", "sub", "iat", "exp"]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    issuer: str
    subject: str
    issued_at: datetime
    expires_at: datetime


class TokenProvider:
    """Issues and verifies HMAC-signed bearer tokens."""

    def __init__(
        self,
        secret: str,
        issuer: str,
        ttl: timedelta,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not secret:
            raise ValueError("secret is required")
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"unsupported signing algorithm: {algorithm}")
        self._secret = secret
        self._issuer = issuer
        self._ttl = ttl
        self._algorithm = algorithm
        self._clock = clock or _utc_now

    def issue(self, subject: str) -> str:
        """
        Create a JWT access token for an authenticated account address.

        This is called after successful signature verification in /signin.
        The token is returned to the frontend and used in subsequent API requests.

        Args:
            subject: The account address that was verified

        Returns:
            A JWT token string that can be used in Authorization: Bearer <token> header

        Raises:
            ValueError: If subject is empty
            InternalError: If the token cannot be encoded
        """
        if not subject:
            raise ValueError("subject is required")

        now = self._clock()
        payload = {
            "iss": self._issuer,
            "sub": subject,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            raise InternalError("Could not sign access token") from e

    def verify(self, token: str) -> TokenClaims:
        """
        Verify and decode a JWT token.

        Only the configured HMAC algorithm is accepted, so a token whose header
        names a different algorithm (including "none") is rejected outright.

        Args:
            token: The JWT token string from Authorization header

        Returns:
            TokenClaims for the token

        Raises:
            AuthError: If token is missing, expired, forged, issued by someone else or malformed
        """
        if not token:
            raise AuthError()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError:
            raise AuthError()

        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            raise AuthError()

        return TokenClaims(
            issuer=payload["iss"],
            subject=subject,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
