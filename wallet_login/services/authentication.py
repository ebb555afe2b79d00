"""
Wallet sign-in protocol.

register / get_nonce / sign_in / authorize are the operations the HTTP layer
exposes. A sign-in attempt walks:

    validate -> look up user -> check nonce -> recover signer -> match address
    -> rotate nonce -> issue token

and is only reported successful once the nonce rotation has committed. The
rotation is a compare-and-swap against the nonce that was checked, so two
requests racing on the same signed nonce cannot both get through.
"""

import logging
import secrets

from wallet_login.core import eth_auth
from wallet_login.core.errors import (
    AuthError,
    NotFoundError,
    SignatureFormatError,
    ValidationError,
)
from wallet_login.core.jwt_utils import TokenProvider
from wallet_login.core.nonce import NonceGenerator
from wallet_login.db.registry import UserRegistry
from wallet_login.models.users import UserRecord

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        registry: UserRegistry,
        tokens: TokenProvider,
        nonces: NonceGenerator,
    ):
        self.registry = registry
        self.tokens = tokens
        self.nonces = nonces

    def register(self, address: str) -> UserRecord:
        address = eth_auth.normalize_address(address)
        record = self.registry.create_if_absent(address, self.nonces.next())
        logger.info("registered %s", address)
        return record

    def get_nonce(self, address: str) -> str:
        address = eth_auth.normalize_address(address)
        return self.registry.get(address).nonce

    def authenticate(self, address: str, nonce: str, signature: str) -> UserRecord:
        """
        Check a signed nonce and consume it.

        Raises:
            ValidationError: malformed address, nonce or empty signature (no state touched)
            NotFoundError: the address is not registered
            AuthError: nonce mismatch, signer mismatch, or the nonce was consumed concurrently
            SignatureFormatError: the signature cannot be decoded or recovered
            InternalError: a fresh nonce could not be generated; the old one stays valid
        """
        if not eth_auth.is_valid_address(address):
            raise ValidationError("Invalid address")
        if not eth_auth.is_valid_nonce(nonce):
            raise ValidationError("Invalid nonce")
        if not signature:
            raise ValidationError("Signature is missing")

        address = address.lower()
        user = self.registry.get(address)

        if not secrets.compare_digest(user.nonce, nonce):
            logger.warning("sign-in rejected for %s: nonce mismatch", address)
            raise AuthError()

        try:
            matched = eth_auth.verify_signature(user.address, nonce, signature)
        except SignatureFormatError:
            logger.warning("sign-in rejected for %s: malformed signature", address)
            raise
        if not matched:
            logger.warning("sign-in rejected for %s: signer mismatch", address)
            raise AuthError()

        fresh = self.nonces.next()
        if not self.registry.compare_and_swap_nonce(address, nonce, fresh):
            logger.warning("sign-in rejected for %s: nonce already consumed", address)
            raise AuthError()

        return UserRecord(address=address, nonce=fresh)

    def sign_in(self, address: str, nonce: str, signature: str) -> str:
        """Authenticate and return a bearer token for the address."""
        user = self.authenticate(address, nonce, signature)
        token = self.tokens.issue(user.address)
        logger.info("signed in %s", user.address)
        return token

    def authorize(self, token: str) -> UserRecord:
        """Resolve a bearer token to the current user record."""
        claims = self.tokens.verify(token)
        try:
            return self.registry.get(claims.subject)
        except NotFoundError:
            raise AuthError()
